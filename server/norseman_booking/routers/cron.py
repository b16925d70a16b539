"""Scheduled expiry sweep endpoint."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import CronAuthorized, DatabaseSession, NotifierDependency
from ..schemas.sweep import SweepResult
from ..services.notification_service import Notifier
from ..services.sweep_service import ExpirySweeper

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cron", tags=["cron"])


@router.api_route(
    "/waitlist-promote",
    methods=["GET", "POST"],
    response_model=SweepResult,
    dependencies=[CronAuthorized],
)
async def waitlist_promote(
    db: AsyncSession = DatabaseSession,
    notifier: Notifier = NotifierDependency,
) -> JSONResponse:
    """Delete lapsed reservations and promote from every waitlist with free seats."""
    result = await ExpirySweeper(db, notifier).run()
    return JSONResponse(status_code=200, content=result.to_json())
