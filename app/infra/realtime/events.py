from enum import Enum


class OutreachEvent(str, Enum):
    CONTACT_INITIATED = "contact-initiated"
    AUTONOMOUS_MODE_STARTED = "autonomous-mode-started"
    AUTONOMOUS_MODE_STOPPED = "autonomous-mode-stopped"
    CONFIG_UPDATED = "config-updated"
    SESSION_COMPLETED = "session-completed"
