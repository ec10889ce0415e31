"""
Cleanup Background Worker
Retention enforcement for sessions, analysis results and network events
"""

import asyncio
import logging
from typing import Dict, Any, List, Optional

from nac_policy.core.cache import ResultCache
from nac_policy.core.config import settings
from nac_policy.utils.helpers import utc_now

logger = logging.getLogger(__name__)

class CleanupWorker:
    def __init__(
        self,
        session_store=None,
        event_generator=None,
        caches: Optional[List[ResultCache]] = None,
        cleanup_interval: int = settings.cleanup_interval_seconds,
        session_retention_hours: int = settings.session_retention_hours,
        event_retention_hours: int = settings.event_retention_hours
    ):
        self.session_store = session_store
        self.event_generator = event_generator
        self.caches = caches or []
        self.is_running = False
        self.cleanup_interval = cleanup_interval
        self.retention_periods = {
            'sessions': session_retention_hours,
            'events': event_retention_hours
        }
        self.last_run: Optional[Dict[str, Any]] = None
        self._task: Optional[asyncio.Task] = None

    async def start(self):
        if self.is_running:
            logger.warning("Cleanup worker already running")
            return

        self.is_running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("Starting cleanup background worker")

    async def _run_loop(self):
        try:
            while self.is_running:
                start_time = utc_now()

                try:
                    self.run_cleanup_tasks()
                except Exception as e:
                    logger.error(f"Cleanup worker processing error: {e}")

                processing_time = (utc_now() - start_time).total_seconds()
                await asyncio.sleep(max(1, self.cleanup_interval - processing_time))

        except asyncio.CancelledError:
            logger.info("Cleanup worker stopped")
        finally:
            self.is_running = False

    async def stop(self):
        self.is_running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Stopping cleanup worker")

    def run_cleanup_tasks(self, task_type: str = "all") -> Dict[str, Any]:
        results: Dict[str, Any] = {}

        tasks = {
            'sessions': self._cleanup_old_sessions,
            'results': self._cleanup_expired_results,
            'events': self._cleanup_old_events
        }

        for name, task in tasks.items():
            if task_type not in ("all", name):
                continue
            try:
                results[name] = task()
            except Exception as e:
                logger.error(f"Cleanup task {name} failed: {e}")
                results[name] = f"error: {e}"

        self.last_run = {'timestamp': utc_now().isoformat(), 'results': results}
        logger.debug(f"Cleanup tasks completed: {results}")
        return results

    def _cleanup_old_sessions(self) -> int:
        if self.session_store is None:
            return 0
        return self.session_store.cleanup_old_sessions(self.retention_periods['sessions'])

    def _cleanup_expired_results(self) -> int:
        removed = 0
        for cache in self.caches:
            purged = cache.purge_expired()
            if purged:
                logger.info(f"Purged {purged} expired entries from {cache.name} cache")
            removed += purged
        return removed

    def _cleanup_old_events(self) -> int:
        if self.event_generator is None:
            return 0
        purged = self.event_generator.purge(self.retention_periods['events'])
        if purged:
            logger.info(f"Purged {purged} network events")
        return purged

    def get_worker_status(self) -> Dict[str, Any]:
        return {
            'is_running': self.is_running,
            'cleanup_interval': self.cleanup_interval,
            'retention_hours': dict(self.retention_periods),
            'caches': [cache.get_stats() for cache in self.caches],
            'last_run': self.last_run
        }
