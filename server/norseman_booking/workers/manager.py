"""Worker manager for coordinating background tasks."""

import asyncio
import logging
from typing import Dict

from ..core.config import Settings
from ..services.notification_service import Notifier
from .base import BaseWorker
from .expiry_sweep_worker import ExpirySweepWorker

logger = logging.getLogger(__name__)


class WorkerManager:
    """
    Manages background workers for the application.

    Only workers enabled in settings are created.
    """

    def __init__(self, settings: Settings, notifier: Notifier):
        self.workers: Dict[str, BaseWorker] = {}

        if settings.sweep_worker_enabled:
            self.workers["expiry_sweep"] = ExpirySweepWorker(
                notifier=notifier,
                interval_seconds=settings.sweep_interval_seconds,
            )

        logger.info("Initialized workers", extra={"workers": list(self.workers)})

    async def start_all(self) -> None:
        """Start all workers."""
        for name, worker in self.workers.items():
            await worker.start()
            logger.info("Started worker", extra={"worker": name})

    async def stop_all(self) -> None:
        """Stop all workers gracefully."""
        results = await asyncio.gather(
            *(worker.stop() for worker in self.workers.values()),
            return_exceptions=True,
        )

        for name, result in zip(self.workers, results):
            if isinstance(result, Exception):
                logger.error("Error stopping worker", extra={"worker": name, "error": str(result)})

    def get_worker_status(self) -> Dict[str, bool]:
        """
        Get the status of all workers.

        Returns:
            Dictionary mapping worker names to their running status
        """
        return {name: worker.running for name, worker in self.workers.items()}
