from app.domain.enums import SchedulerAction, SchedulerState


class InvalidSchedulerTransition(ValueError):
    def __init__(self, current: SchedulerState, action: SchedulerAction) -> None:
        super().__init__(
            f"Cannot apply action '{action.value}' from state '{current.value}'."
        )
        self.current = current
        self.action = action


class InvalidSchedulerConfigError(ValueError):
    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"Invalid scheduler config '{field}': {reason}")
        self.field = field
        self.reason = reason


class IncompleteSnapshotError(ValueError):
    def __init__(self, customer_id: str | None, missing: list[str]) -> None:
        super().__init__(
            f"Customer '{customer_id or '<unknown>'}' snapshot is missing: "
            f"{', '.join(missing)}"
        )
        self.customer_id = customer_id
        self.missing = missing
