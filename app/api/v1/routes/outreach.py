from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.exc import SQLAlchemyError

from app.domain.exceptions import InvalidSchedulerConfigError, InvalidSchedulerTransition
from app.domain.outreach import QueueEntry
from app.schemas.common import ApiMessage
from app.schemas.outreach import (
    ActiveSessionResponse,
    CompleteSessionRequest,
    QueueEntryResponse,
    RefreshResponse,
    SchedulerConfigResponse,
    SchedulerConfigUpdate,
    SchedulerStatsResponse,
    SchedulerStatusResponse,
)
from app.services.errors import (
    ActiveSessionNotFoundError,
    CustomerNotFoundError,
    QueueEntryNotFoundError,
)
from app.services.scheduler_service import OutreachScheduler

router = APIRouter()


async def get_scheduler(request: Request) -> OutreachScheduler:
    scheduler = getattr(request.app.state, "outreach_scheduler", None)
    if scheduler is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Outreach scheduler is not initialized",
        )
    return scheduler


def _to_queue_entry_response(entry: QueueEntry) -> QueueEntryResponse:
    return QueueEntryResponse(
        customer_id=entry.customer_id,
        customer_name=entry.snapshot.name,
        priority=entry.priority,
        urgency_score=entry.urgency_score,
        queued_at=entry.queued_at,
        last_contacted_at=entry.last_contacted_at,
        contact_attempts=entry.contact_attempts,
        risk_category=entry.snapshot.risk_category,
        account_value=entry.snapshot.account_value,
    )


def _raise_for_service_error(exc: Exception) -> None:
    if isinstance(exc, (QueueEntryNotFoundError, CustomerNotFoundError, ActiveSessionNotFoundError)):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, InvalidSchedulerTransition):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    if isinstance(exc, ValueError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    if isinstance(exc, SQLAlchemyError):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Customer store is unavailable",
        ) from exc
    raise exc


@router.get("/status", response_model=SchedulerStatusResponse)
async def get_status(
    scheduler: OutreachScheduler = Depends(get_scheduler),
) -> SchedulerStatusResponse:
    snapshot = scheduler.get_status()
    return SchedulerStatusResponse(
        state=snapshot.state,
        queue=[_to_queue_entry_response(entry) for entry in snapshot.queue],
        active_sessions=[
            ActiveSessionResponse.model_validate(session)
            for session in snapshot.active_sessions
        ],
        config=SchedulerConfigResponse.model_validate(snapshot.config),
        stats=SchedulerStatsResponse.model_validate(snapshot.stats),
    )


@router.post("/start", response_model=ApiMessage)
async def start_autonomous_mode(
    scheduler: OutreachScheduler = Depends(get_scheduler),
) -> ApiMessage:
    scheduler.start()
    return ApiMessage(detail="Autonomous mode started")


@router.post("/stop", response_model=ApiMessage)
async def stop_autonomous_mode(
    scheduler: OutreachScheduler = Depends(get_scheduler),
) -> ApiMessage:
    try:
        scheduler.stop()
    except InvalidSchedulerTransition as exc:
        _raise_for_service_error(exc)
    return ApiMessage(detail="Autonomous mode stopped")


@router.post("/config", response_model=SchedulerConfigResponse)
async def update_config(
    payload: SchedulerConfigUpdate,
    scheduler: OutreachScheduler = Depends(get_scheduler),
) -> SchedulerConfigResponse:
    try:
        config = scheduler.update_config(payload.model_dump(exclude_none=True))
    except InvalidSchedulerConfigError as exc:
        _raise_for_service_error(exc)
    return SchedulerConfigResponse.model_validate(config)


@router.post("/refresh", response_model=RefreshResponse)
async def refresh_queue(
    scheduler: OutreachScheduler = Depends(get_scheduler),
) -> RefreshResponse:
    try:
        queue_length = await scheduler.refresh()
    except SQLAlchemyError as exc:
        _raise_for_service_error(exc)
    return RefreshResponse(queue_length=queue_length)


@router.post(
    "/customers/{customer_id}",
    response_model=QueueEntryResponse,
    status_code=status.HTTP_201_CREATED,
)
async def enqueue_customer(
    customer_id: str,
    scheduler: OutreachScheduler = Depends(get_scheduler),
) -> QueueEntryResponse:
    try:
        entry = await scheduler.enqueue_from_source(customer_id)
    except (CustomerNotFoundError, SQLAlchemyError) as exc:
        _raise_for_service_error(exc)
    return _to_queue_entry_response(entry)


@router.delete("/customers/{customer_id}", response_model=ApiMessage)
async def remove_customer(
    customer_id: str,
    scheduler: OutreachScheduler = Depends(get_scheduler),
) -> ApiMessage:
    try:
        scheduler.remove_customer(customer_id)
    except QueueEntryNotFoundError as exc:
        _raise_for_service_error(exc)
    return ApiMessage(detail=f"Customer '{customer_id}' removed from queue")


@router.post("/sessions/{session_id}/complete", response_model=ActiveSessionResponse)
async def complete_session(
    session_id: str,
    payload: CompleteSessionRequest | None = None,
    scheduler: OutreachScheduler = Depends(get_scheduler),
) -> ActiveSessionResponse:
    payload = payload or CompleteSessionRequest()
    try:
        session = await scheduler.complete_session(
            session_id, status=payload.status, outcome=payload.outcome
        )
    except ActiveSessionNotFoundError as exc:
        _raise_for_service_error(exc)
    return ActiveSessionResponse.model_validate(session)
