from collections.abc import Iterator

from app.domain.outreach import ActiveSession
from app.services.errors import ActiveSessionNotFoundError


class CustomerAlreadyInSessionError(ValueError):
    def __init__(self, customer_id: str, session_id: str) -> None:
        super().__init__(
            f"Customer '{customer_id}' already owns active session '{session_id}'"
        )
        self.customer_id = customer_id
        self.session_id = session_id


class ActiveSessionRegistry:
    """In-flight conversations, at most one per customer."""

    def __init__(self) -> None:
        self._by_session: dict[str, ActiveSession] = {}
        self._by_customer: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._by_session)

    def __iter__(self) -> Iterator[ActiveSession]:
        return iter(list(self._by_session.values()))

    def customer_ids(self) -> frozenset[str]:
        return frozenset(self._by_customer)

    def has_customer(self, customer_id: str) -> bool:
        return customer_id in self._by_customer

    def register(self, session: ActiveSession) -> None:
        existing = self._by_customer.get(session.customer_id)
        if existing is not None:
            raise CustomerAlreadyInSessionError(session.customer_id, existing)
        self._by_session[session.session_id] = session
        self._by_customer[session.customer_id] = session.session_id

    def release(self, session_id: str) -> ActiveSession:
        session = self._by_session.pop(session_id, None)
        if session is None:
            raise ActiveSessionNotFoundError(session_id)
        self._by_customer.pop(session.customer_id, None)
        return session
