import asyncio
from unittest.mock import MagicMock

from nac_policy.core.cache import ResultCache
from nac_policy.workers.cleanup_worker import CleanupWorker

class TestCleanupWorker:
    def setup_method(self):
        self.session_store = MagicMock()
        self.session_store.cleanup_old_sessions.return_value = 3
        self.event_generator = MagicMock()
        self.event_generator.purge.return_value = 5
        self.cache = MagicMock(spec=ResultCache)
        self.cache.name = "risk"
        self.cache.purge_expired.return_value = 2
        self.worker = CleanupWorker(
            session_store=self.session_store,
            event_generator=self.event_generator,
            caches=[self.cache],
            cleanup_interval=60,
            session_retention_hours=12,
            event_retention_hours=6
        )

    def test_run_all_tasks(self):
        results = self.worker.run_cleanup_tasks()

        assert results == {"sessions": 3, "results": 2, "events": 5}
        self.session_store.cleanup_old_sessions.assert_called_once_with(12)
        self.event_generator.purge.assert_called_once_with(6)
        assert self.worker.last_run["results"] == results

    def test_run_single_task(self):
        results = self.worker.run_cleanup_tasks("events")

        assert results == {"events": 5}
        self.session_store.cleanup_old_sessions.assert_not_called()

    def test_failing_task_does_not_stop_others(self):
        self.session_store.cleanup_old_sessions.side_effect = RuntimeError("boom")

        results = self.worker.run_cleanup_tasks()

        assert results["sessions"].startswith("error")
        assert results["events"] == 5

    def test_without_components(self):
        assert CleanupWorker().run_cleanup_tasks() == {"sessions": 0, "results": 0, "events": 0}

    def test_start_and_stop(self):
        async def scenario():
            await self.worker.start()
            running = self.worker.is_running
            await asyncio.sleep(0)
            await self.worker.stop()
            return running

        assert asyncio.run(scenario()) is True
        assert self.worker.is_running is False
        self.session_store.cleanup_old_sessions.assert_called_once()

    def test_status(self):
        self.cache.get_stats.return_value = {"name": "risk"}

        status = self.worker.get_worker_status()

        assert status["is_running"] is False
        assert status["retention_hours"] == {"sessions": 12, "events": 6}
        assert status["caches"] == [{"name": "risk"}]
