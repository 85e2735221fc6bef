"""
Scheduler API blueprint.

Status and start/stop of the background jobs.
"""

from flask import Blueprint

from brief_aggregation.core.factories import Components
from brief_aggregation.logger import get_logger
from brief_aggregation.storage.repositories import FeedSourceRepository
from brief_aggregation.web.serializers import api_response, serialize_datetime

logger = get_logger(__name__)


class SchedulerBlueprint:
    """Blueprint for scheduler management operations."""

    def __init__(self, components: Components):
        self.components = components
        self.blueprint = Blueprint("scheduler", __name__, url_prefix="/api/scheduler")
        self._register_routes()

    def _register_routes(self):
        self.blueprint.add_url_rule("/status", view_func=self._status, methods=["GET"])
        self.blueprint.add_url_rule("/start", view_func=self._start, methods=["POST"])
        self.blueprint.add_url_rule("/stop", view_func=self._stop, methods=["POST"])
        self.blueprint.add_url_rule("/jobs/<job_id>/pause", view_func=self._pause, methods=["POST"])
        self.blueprint.add_url_rule("/jobs/<job_id>/resume", view_func=self._resume, methods=["POST"])

    def _status(self):
        """Scheduler state, job list and source counts."""
        scheduler = self.components.scheduler

        with self.components.db_manager.session() as session:
            repo = FeedSourceRepository(session)
            total_sources = repo.count()
            active_sources = repo.count_active()

        stats = scheduler.get_stats()
        return api_response(
            success=True,
            data={
                "is_running": scheduler.is_running(),
                "total_sources_count": total_sources,
                "active_sources_count": active_sources,
                "total_executions": stats.total_executions,
                "failed_executions": stats.failed_executions,
                "jobs": [
                    {
                        "id": job.job_id,
                        "name": job.name,
                        "next_run_time": serialize_datetime(job.next_run_time),
                        "last_run_time": serialize_datetime(job.last_run_time),
                        "runs_count": job.runs_count,
                        "errors_count": job.errors_count,
                        "last_error": job.last_error,
                    }
                    for job in scheduler.get_all_jobs()
                ],
            },
        )

    def _start(self):
        scheduler = self.components.scheduler
        if scheduler.is_running():
            return api_response(success=False, error="Scheduler is already running", status=409)

        scheduler.start()
        logger.info("Scheduler started via API")
        return api_response(success=True, message="Scheduler started")

    def _stop(self):
        scheduler = self.components.scheduler
        if not scheduler.is_running():
            return api_response(success=False, error="Scheduler is not running", status=409)

        scheduler.stop(wait=False)
        logger.info("Scheduler stopped via API")
        return api_response(success=True, message="Scheduler stopped")

    def _pause(self, job_id: str):
        if not self.components.scheduler.pause_job(job_id):
            return api_response(success=False, error=f"Job {job_id} not found", status=404)
        return api_response(success=True, message=f"Job {job_id} paused")

    def _resume(self, job_id: str):
        if not self.components.scheduler.resume_job(job_id):
            return api_response(success=False, error=f"Job {job_id} not found", status=404)
        return api_response(success=True, message=f"Job {job_id} resumed")
