"""
Task scheduler for periodic ingestion, maintenance and digest assembly.

Uses APScheduler to run one fetch cycle job per source type, a retention
cleanup job and, optionally, a daily digest job.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, JobExecutionEvent
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from brief_aggregation.config import SchedulerConfig, get_config
from brief_aggregation.core.pipeline import IngestionPipeline
from brief_aggregation.logger import get_logger
from brief_aggregation.models import SourceType

logger = get_logger(__name__)

MAINTENANCE_JOB_ID = "maintenance"
DIGEST_JOB_ID = "daily_digests"


def fetch_job_id(source_type: str) -> str:
    return f"fetch_{source_type}"


@dataclass
class JobStatus:
    """Status of a scheduled job."""

    job_id: str
    name: str
    next_run_time: Optional[datetime]
    last_run_time: Optional[datetime]
    is_active: bool
    trigger: str
    runs_count: int = 0
    errors_count: int = 0
    last_result: Any = None
    last_error: Optional[str] = None


@dataclass
class SchedulerStats:
    """Statistics for scheduler operations."""

    total_jobs: int = 0
    active_jobs: int = 0
    paused_jobs: int = 0
    total_executions: int = 0
    successful_executions: int = 0
    failed_executions: int = 0
    last_execution_time: Optional[datetime] = None
    uptime_seconds: float = 0.0


class AggregationScheduler:
    """Scheduler driving the ingestion pipeline and digest generation."""

    def __init__(
        self,
        pipeline: IngestionPipeline,
        digest_job: Optional[Callable[[], Any]] = None,
        config: Optional[SchedulerConfig] = None,
    ):
        """Initialize scheduler.

        Args:
            pipeline: Ingestion pipeline run by fetch and maintenance jobs
            digest_job: Callable generating all digests (``DigestService.generate_all``)
            config: Intervals, worker count and timezone
        """
        self.config = config or get_config().scheduler
        self.pipeline = pipeline
        self.digest_job = digest_job
        self.max_workers = self.config.max_workers

        self.scheduler = BackgroundScheduler(
            executors={"default": ThreadPoolExecutor(max_workers=self.max_workers)},
            job_defaults={
                "max_instances": 1,
                "coalesce": self.config.coalesce,
                "misfire_grace_time": self.config.misfire_grace_time,
            },
            timezone=self.config.timezone,
        )

        # Statistics
        self.stats = SchedulerStats()
        self.start_time: Optional[datetime] = None

        # Job tracking
        self._job_results: dict[str, Any] = {}
        self._job_errors: dict[str, str] = {}
        self._job_runs: dict[str, int] = {}
        self._job_error_counts: dict[str, int] = {}
        self._job_last_run: dict[str, datetime] = {}

        self.scheduler.add_listener(self._on_job_executed, EVENT_JOB_EXECUTED)
        self.scheduler.add_listener(self._on_job_error, EVENT_JOB_ERROR)

    def start(self) -> None:
        """Register the default jobs if missing and start the scheduler."""
        if self.scheduler.running:
            logger.warning("Scheduler is already running")
            return

        self.add_default_jobs()
        self.scheduler.start()
        self.start_time = datetime.now()
        logger.info(f"Scheduler started with {self.max_workers} workers")

    def stop(self, wait: bool = True) -> None:
        """Stop the scheduler.

        Args:
            wait: Whether to wait for running jobs to complete
        """
        if not self.scheduler.running:
            logger.warning("Scheduler is not running")
            return

        self.scheduler.shutdown(wait=wait)
        if self.start_time:
            self.stats.uptime_seconds = (datetime.now() - self.start_time).total_seconds()
        logger.info("Scheduler stopped")

    def is_running(self) -> bool:
        return self.scheduler.running

    def add_default_jobs(self) -> None:
        """One fetch job per source type, maintenance, and the digest job if configured."""
        for source_type in SourceType:
            if self.scheduler.get_job(fetch_job_id(source_type.value)) is None:
                self.add_fetch_job(source_type.value)

        if self.scheduler.get_job(MAINTENANCE_JOB_ID) is None:
            self.add_maintenance_job()

        if (
            self.digest_job is not None
            and self.config.digest_hour_utc is not None
            and self.scheduler.get_job(DIGEST_JOB_ID) is None
        ):
            self.add_digest_job(self.config.digest_hour_utc)

    def add_fetch_job(self, source_type: str, interval_minutes: Optional[int] = None) -> str:
        """Add a periodic fetch cycle for every active source of one type.

        Returns:
            Job ID
        """
        job_id = fetch_job_id(source_type)
        interval = interval_minutes or self.config.fetch_interval_minutes

        self.scheduler.add_job(
            func=self._run_fetch_cycle,
            trigger=IntervalTrigger(minutes=interval),
            id=job_id,
            name=f"Fetch {source_type} sources",
            args=[source_type],
            replace_existing=True,
        )
        logger.info(f"Added fetch job for {source_type} sources (every {interval} minutes)")
        return job_id

    def add_maintenance_job(self, interval_minutes: Optional[int] = None) -> str:
        interval = interval_minutes or self.config.maintenance_interval_minutes
        self.scheduler.add_job(
            func=self._run_maintenance,
            trigger=IntervalTrigger(minutes=interval),
            id=MAINTENANCE_JOB_ID,
            name="Retention cleanup",
            replace_existing=True,
        )
        logger.info(f"Added maintenance job (every {interval} minutes)")
        return MAINTENANCE_JOB_ID

    def add_digest_job(self, hour_utc: int) -> str:
        if self.digest_job is None:
            raise ValueError("No digest job configured")

        self.scheduler.add_job(
            func=self._run_digests,
            trigger=CronTrigger(hour=hour_utc, minute=0, timezone="UTC"),
            id=DIGEST_JOB_ID,
            name="Daily digests",
            replace_existing=True,
        )
        logger.info(f"Added daily digest job at {hour_utc:02d}:00 UTC")
        return DIGEST_JOB_ID

    def remove_job(self, job_id: str) -> bool:
        try:
            self.scheduler.remove_job(job_id)
            logger.info(f"Removed job {job_id}")
            return True
        except JobLookupError:
            logger.warning(f"Job {job_id} not found")
            return False

    def pause_job(self, job_id: str) -> bool:
        try:
            self.scheduler.pause_job(job_id)
            logger.info(f"Paused job {job_id}")
            return True
        except JobLookupError:
            logger.warning(f"Failed to pause job {job_id}")
            return False

    def resume_job(self, job_id: str) -> bool:
        try:
            self.scheduler.resume_job(job_id)
            logger.info(f"Resumed job {job_id}")
            return True
        except JobLookupError:
            logger.warning(f"Failed to resume job {job_id}")
            return False

    def _status(self, job) -> JobStatus:
        next_run_time = getattr(job, "next_run_time", None)
        return JobStatus(
            job_id=job.id,
            name=job.name,
            next_run_time=next_run_time,
            last_run_time=self._job_last_run.get(job.id),
            is_active=next_run_time is not None,
            trigger=str(job.trigger),
            runs_count=self._job_runs.get(job.id, 0),
            errors_count=self._job_error_counts.get(job.id, 0),
            last_result=self._job_results.get(job.id),
            last_error=self._job_errors.get(job.id),
        )

    def get_job_status(self, job_id: str) -> Optional[JobStatus]:
        """Get status of a specific job, or None if not scheduled."""
        job = self.scheduler.get_job(job_id)
        return self._status(job) if job else None

    def get_all_jobs(self) -> list[JobStatus]:
        return [self._status(job) for job in self.scheduler.get_jobs()]

    def get_stats(self) -> SchedulerStats:
        """Get scheduler statistics."""
        jobs = self.scheduler.get_jobs()
        self.stats.total_jobs = len(jobs)
        self.stats.active_jobs = len([j for j in jobs if getattr(j, "next_run_time", None) is not None])
        self.stats.paused_jobs = self.stats.total_jobs - self.stats.active_jobs

        if self.start_time and self.scheduler.running:
            self.stats.uptime_seconds = (datetime.now() - self.start_time).total_seconds()

        return self.stats

    def _record(self, job_id: str, result: Any = None, error: Optional[str] = None) -> None:
        self.stats.total_executions += 1
        self.stats.last_execution_time = datetime.now()
        self._job_runs[job_id] = self._job_runs.get(job_id, 0) + 1
        self._job_last_run[job_id] = self.stats.last_execution_time

        if error is None:
            self.stats.successful_executions += 1
            self._job_results[job_id] = result
        else:
            self.stats.failed_executions += 1
            self._job_error_counts[job_id] = self._job_error_counts.get(job_id, 0) + 1
            self._job_errors[job_id] = error

    def _run_fetch_cycle(self, source_type: str):
        """Job body for a fetch cycle; exceptions are reported, not raised."""
        job_id = fetch_job_id(source_type)
        try:
            result = self.pipeline.run_cycle(source_type)
        except Exception as e:
            logger.exception(f"Error in job {job_id}: {e}")
            self._record(job_id, error=str(e))
            return None

        self._record(job_id, result=result)
        return result

    def _run_maintenance(self):
        try:
            result = self.pipeline.run_maintenance()
        except Exception as e:
            logger.exception(f"Error in job {MAINTENANCE_JOB_ID}: {e}")
            self._record(MAINTENANCE_JOB_ID, error=str(e))
            return None

        self._record(MAINTENANCE_JOB_ID, result=result)
        return result

    def _run_digests(self):
        try:
            result = self.digest_job()
        except Exception as e:
            logger.exception(f"Error in job {DIGEST_JOB_ID}: {e}")
            self._record(DIGEST_JOB_ID, error=str(e))
            return None

        self._record(DIGEST_JOB_ID, result=result)
        return result

    def _on_job_executed(self, event: JobExecutionEvent) -> None:
        """Clear the previous error of a job that ran cleanly."""
        job_id = event.job_id
        if job_id and job_id in self._job_errors and event.retval is not None:
            del self._job_errors[job_id]

    def _on_job_error(self, event: JobExecutionEvent) -> None:
        job_id = event.job_id
        exception = event.exception
        if job_id and exception:
            error_msg = f"{type(exception).__name__}: {str(exception)}"
            self._job_errors[job_id] = error_msg
            logger.error(f"Job {job_id} failed: {error_msg}")


def create_scheduler(
    pipeline: IngestionPipeline,
    digest_job: Optional[Callable[[], Any]] = None,
    config: Optional[SchedulerConfig] = None,
) -> AggregationScheduler:
    """Create a configured AggregationScheduler instance."""
    return AggregationScheduler(pipeline, digest_job=digest_job, config=config)
