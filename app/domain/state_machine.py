from app.domain.enums import SchedulerAction, SchedulerState
from app.domain.exceptions import InvalidSchedulerTransition


class SchedulerLifecycle:
    """State machine for the scheduling loop: stopped -> running -> stopped."""

    _allowed_transitions: dict[tuple[SchedulerState, SchedulerAction], SchedulerState] = {
        (SchedulerState.STOPPED, SchedulerAction.START): SchedulerState.RUNNING,
        (SchedulerState.RUNNING, SchedulerAction.STOP): SchedulerState.STOPPED,
    }

    @classmethod
    def transition(cls, current: SchedulerState, action: SchedulerAction) -> SchedulerState:
        # Restarting a running loop replaces its timer.
        if current == SchedulerState.RUNNING and action == SchedulerAction.START:
            return SchedulerState.RUNNING

        next_state = cls._allowed_transitions.get((current, action))
        if not next_state:
            raise InvalidSchedulerTransition(current=current, action=action)
        return next_state

    @staticmethod
    def is_running(state: SchedulerState) -> bool:
        return state == SchedulerState.RUNNING
