from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db_session

router = APIRouter()


@router.get("/health")
async def health(request: Request) -> dict[str, str]:
    scheduler = getattr(request.app.state, "outreach_scheduler", None)
    return {
        "status": "ok",
        "scheduler": scheduler.state.value if scheduler is not None else "unavailable",
    }


@router.get("/health/db")
async def db_health(session: AsyncSession = Depends(get_db_session)) -> dict[str, str]:
    await session.execute(text("SELECT 1"))
    return {"db": "ok"}
