from enum import Enum


class ServiceCategory(str, Enum):
    TELECOM = "telecom"
    UTILITIES = "utilities"
    EDUCATION = "education"


class RiskCategory(str, Enum):
    EXPIRING_CARD = "expiring-card"
    FAILED_PAYMENT = "failed-payment"
    MULTIPLE_FAILURES = "multiple-failures"
    HIGH_VALUE = "high-value"
    LOW_ENGAGEMENT = "low-engagement"


class RiskSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AccountStatus(str, Enum):
    ACTIVE = "active"
    AT_RISK = "at-risk"
    CHURNED = "churned"
    SUSPENDED = "suspended"


class InterventionOutcome(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    NO_ANSWER = "no_answer"
    SCHEDULED = "scheduled"


class ChatSessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class MessageSender(str, Enum):
    AI = "ai"
    CUSTOMER = "customer"
    SYSTEM = "system"


class MessageKind(str, Enum):
    TEXT = "text"
    GREETING = "greeting"
    SYSTEM = "system"


class SchedulerState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class SchedulerAction(str, Enum):
    START = "start"
    STOP = "stop"
