class QueueEntryNotFoundError(LookupError):
    def __init__(self, customer_id: str) -> None:
        super().__init__(f"Customer '{customer_id}' is not in the outreach queue")
        self.customer_id = customer_id


class CustomerNotFoundError(LookupError):
    def __init__(self, customer_id: str) -> None:
        super().__init__(f"Customer '{customer_id}' not found or not at risk")
        self.customer_id = customer_id


class ActiveSessionNotFoundError(LookupError):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"Active session '{session_id}' not found")
        self.session_id = session_id


class SessionInitiationError(RuntimeError):
    def __init__(self, customer_id: str, session_id: str) -> None:
        super().__init__(
            f"Could not open session '{session_id}' for customer '{customer_id}'"
        )
        self.customer_id = customer_id
        self.session_id = session_id
