import pytest

from app.domain.enums import SchedulerAction, SchedulerState
from app.domain.exceptions import InvalidSchedulerTransition
from app.domain.state_machine import SchedulerLifecycle


def test_stopped_to_running_transition() -> None:
    next_state = SchedulerLifecycle.transition(SchedulerState.STOPPED, SchedulerAction.START)
    assert next_state == SchedulerState.RUNNING


def test_running_to_stopped_transition() -> None:
    next_state = SchedulerLifecycle.transition(SchedulerState.RUNNING, SchedulerAction.STOP)
    assert next_state == SchedulerState.STOPPED


def test_restart_keeps_running_state() -> None:
    next_state = SchedulerLifecycle.transition(SchedulerState.RUNNING, SchedulerAction.START)
    assert next_state == SchedulerState.RUNNING


def test_stop_when_stopped_raises() -> None:
    with pytest.raises(InvalidSchedulerTransition) as exc_info:
        SchedulerLifecycle.transition(SchedulerState.STOPPED, SchedulerAction.STOP)

    assert exc_info.value.current == SchedulerState.STOPPED
    assert exc_info.value.action == SchedulerAction.STOP


def test_is_running() -> None:
    assert SchedulerLifecycle.is_running(SchedulerState.RUNNING)
    assert not SchedulerLifecycle.is_running(SchedulerState.STOPPED)
