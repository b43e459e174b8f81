from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.domain.enums import ChatSessionStatus, SchedulerState


class SchedulerConfigUpdate(BaseModel):
    enabled: bool | None = None
    max_concurrent_sessions: int | None = Field(default=None, ge=0, le=100)
    tick_interval_ms: int | None = Field(default=None, gt=0)
    max_contacts_per_day: int | None = Field(default=None, ge=0)
    quiet_hours_start: int | None = Field(default=None, ge=0, le=23)
    quiet_hours_end: int | None = Field(default=None, ge=0, le=23)
    min_hours_between_contacts: float | None = Field(default=None, ge=0)

    model_config = ConfigDict(extra="forbid")


class SchedulerConfigResponse(BaseModel):
    enabled: bool
    max_concurrent_sessions: int
    tick_interval_ms: int
    max_contacts_per_day: int
    quiet_hours_start: int
    quiet_hours_end: int
    min_hours_between_contacts: float

    model_config = ConfigDict(from_attributes=True)


class QueueEntryResponse(BaseModel):
    customer_id: str
    customer_name: str
    priority: int
    urgency_score: int
    queued_at: datetime
    last_contacted_at: datetime | None
    contact_attempts: int
    risk_category: str
    account_value: int


class ActiveSessionResponse(BaseModel):
    session_id: str
    customer_id: str
    customer_name: str
    started_at: datetime
    status: ChatSessionStatus
    payment_issue: str

    model_config = ConfigDict(from_attributes=True)


class SchedulerStatsResponse(BaseModel):
    queue_length: int
    active_sessions_count: int
    available_slots: int
    is_processing_active: bool

    model_config = ConfigDict(from_attributes=True)


class SchedulerStatusResponse(BaseModel):
    state: SchedulerState
    queue: list[QueueEntryResponse]
    active_sessions: list[ActiveSessionResponse]
    config: SchedulerConfigResponse
    stats: SchedulerStatsResponse


class RefreshResponse(BaseModel):
    queue_length: int


class CompleteSessionRequest(BaseModel):
    status: ChatSessionStatus = ChatSessionStatus.COMPLETED
    outcome: str | None = Field(default=None, max_length=500)

    @field_validator("status")
    @classmethod
    def status_must_end_session(cls, value: ChatSessionStatus) -> ChatSessionStatus:
        if value == ChatSessionStatus.ACTIVE:
            raise ValueError("A session can only be completed or abandoned")
        return value
