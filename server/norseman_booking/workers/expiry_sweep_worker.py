"""In-process schedule for the expiry sweep."""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.database import async_session_factory
from ..services.notification_service import Notifier
from ..services.sweep_service import ExpirySweeper
from .base import BaseWorker

logger = logging.getLogger(__name__)


class ExpirySweepWorker(BaseWorker):
    """
    Runs the expiry sweep periodically.

    For deployments without an external scheduler calling the cron endpoint.
    """

    def __init__(
        self,
        notifier: Notifier,
        interval_seconds: int = 300,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    ):
        super().__init__(name="ExpirySweep", interval_seconds=interval_seconds)
        self.notifier = notifier
        self.session_factory = session_factory or async_session_factory

    async def process(self) -> None:
        async with self.session_factory() as db:
            result = await ExpirySweeper(db, self.notifier).run()

        if result.expired_reservations_deleted or result.total_promoted:
            logger.info(
                "Scheduled sweep changed bookings",
                extra={
                    "worker": self.name,
                    "expired_reservations_deleted": result.expired_reservations_deleted,
                    "total_promoted": result.total_promoted,
                },
            )
