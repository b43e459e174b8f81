import pytest
from pydantic import ValidationError

from app.domain.enums import ChatSessionStatus
from app.schemas.outreach import CompleteSessionRequest, SchedulerConfigUpdate


def test_complete_session_defaults_to_completed() -> None:
    assert CompleteSessionRequest().status == ChatSessionStatus.COMPLETED


def test_complete_session_accepts_abandoned() -> None:
    payload = CompleteSessionRequest.model_validate({"status": "abandoned", "outcome": "no reply"})

    assert payload.status == ChatSessionStatus.ABANDONED
    assert payload.outcome == "no reply"


def test_complete_session_rejects_active_status() -> None:
    with pytest.raises(ValidationError):
        CompleteSessionRequest.model_validate({"status": "active"})


def test_config_update_rejects_unknown_fields() -> None:
    with pytest.raises(ValidationError):
        SchedulerConfigUpdate.model_validate({"tick_interval": 1000})
