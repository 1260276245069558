"""
Background Job Scheduler - Runs periodic CRM sync work in a daemon thread.

Jobs are plain callables registered with an interval. The loop wakes every
few seconds, runs whatever is due, and records the outcome per job so the
status endpoint can report it.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Dict, Any, Optional, Callable

logger = logging.getLogger(__name__)

# Global scheduler instance
_scheduler = None


class BackgroundScheduler:
    """Simple interval scheduler for running periodic tasks."""

    def __init__(self, tick_seconds: int = 10):
        self.jobs: Dict[str, Dict] = {}
        self.running = False
        self.tick_seconds = tick_seconds
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._stop_event = threading.Event()

    def add_job(self, job_id: str, func: Callable, interval_seconds: int,
                run_immediately: bool = False, kwargs: Dict = None):
        """
        Add (or replace) a job.

        Args:
            job_id: Unique identifier for the job
            func: Function to call
            interval_seconds: How often to run (in seconds)
            run_immediately: Whether the first run is due now
            kwargs: Keyword arguments to pass to the function
        """
        now = datetime.utcnow()
        with self._lock:
            self.jobs[job_id] = {
                'func': func,
                'interval': interval_seconds,
                'kwargs': kwargs or {},
                'last_run': None,
                'next_run': now if run_immediately else now + timedelta(seconds=interval_seconds),
                'run_count': 0,
                'last_error': None,
                'last_result': None,
                'enabled': True
            }
            logger.info(f"Added job '{job_id}' with interval {interval_seconds}s")

    def remove_job(self, job_id: str):
        with self._lock:
            if job_id in self.jobs:
                del self.jobs[job_id]
                logger.info(f"Removed job '{job_id}'")

    def enable_job(self, job_id: str):
        with self._lock:
            if job_id in self.jobs:
                self.jobs[job_id]['enabled'] = True

    def disable_job(self, job_id: str):
        """Disable a job without removing it."""
        with self._lock:
            if job_id in self.jobs:
                self.jobs[job_id]['enabled'] = False

    def has_job(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self.jobs

    def get_job_status(self) -> Dict[str, Any]:
        """Get status of all jobs."""
        with self._lock:
            return {
                job_id: {
                    'interval': job['interval'],
                    'last_run': job['last_run'].isoformat() if job['last_run'] else None,
                    'next_run': job['next_run'].isoformat() if job['next_run'] else None,
                    'run_count': job['run_count'],
                    'last_error': job['last_error'],
                    'enabled': job['enabled']
                }
                for job_id, job in self.jobs.items()
            }

    def start(self):
        """Start the scheduler in a background thread."""
        if self.running:
            logger.warning("Scheduler is already running")
            return

        self.running = True
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name='sync-scheduler', daemon=True)
        self._thread.start()
        logger.info("Background scheduler started")

    def stop(self):
        self.running = False
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5)
            self._thread = None
        logger.info("Background scheduler stopped")

    def _due_jobs(self, now: datetime):
        with self._lock:
            return [
                (job_id, job) for job_id, job in self.jobs.items()
                if job['enabled'] and job['next_run'] and now >= job['next_run']
            ]

    def _execute(self, job_id: str, job: Dict, now: datetime) -> bool:
        """Run one job and record the outcome. Errors never escape the loop."""
        try:
            logger.debug(f"Running job '{job_id}'")
            result = job['func'](**job['kwargs'])
            with self._lock:
                job['last_run'] = now
                job['run_count'] += 1
                job['last_error'] = None
                job['last_result'] = result
            return True
        except Exception as e:
            logger.error(f"Job '{job_id}' failed: {e}")
            with self._lock:
                job['last_error'] = str(e)
            return False
        finally:
            with self._lock:
                job['next_run'] = now + timedelta(seconds=job['interval'])

    def run_pending(self, now: datetime = None) -> int:
        """Run every due job once. Returns the number of jobs run."""
        now = now or datetime.utcnow()
        due = self._due_jobs(now)
        for job_id, job in due:
            self._execute(job_id, job, now)
        return len(due)

    def _run_loop(self):
        while self.running and not self._stop_event.is_set():
            self.run_pending()
            self._stop_event.wait(timeout=self.tick_seconds)

    def run_job_now(self, job_id: str) -> bool:
        """Manually trigger a job to run immediately."""
        with self._lock:
            if job_id not in self.jobs:
                return False
            job = self.jobs[job_id]

        return self._execute(job_id, job, datetime.utcnow())


def get_scheduler() -> BackgroundScheduler:
    """Get or create the global scheduler instance."""
    global _scheduler
    if _scheduler is None:
        _scheduler = BackgroundScheduler()
    return _scheduler


def shutdown_scheduler():
    """Stop and discard the global scheduler."""
    global _scheduler
    if _scheduler is not None:
        if _scheduler.running:
            _scheduler.stop()
        _scheduler = None


# =============================================================================
# SCHEDULED JOBS
# =============================================================================

def delta_sync_job():
    """Job to pull recent CRM changes for every configured company."""
    from database.connection import is_db_configured
    from services.delta_sync import get_delta_sync_service

    if not is_db_configured():
        logger.warning("Skipping delta sync: database not configured")
        return {}

    return get_delta_sync_service().sync_all_companies()


def init_scheduler(config: Dict = None):
    """Initialize the scheduler with the delta sync job and start it."""
    from services.delta_sync import get_delta_sync_service, SYNC_JOB_ID

    config = config or {}
    interval_minutes = int(config.get('SYNC_INTERVAL_MINUTES', 5))

    # Build the service with app settings before the first run
    get_delta_sync_service(config)

    scheduler = get_scheduler()
    scheduler.add_job(
        SYNC_JOB_ID,
        delta_sync_job,
        interval_seconds=interval_minutes * 60,
        run_immediately=True
    )

    scheduler.start()
    logger.info(f"Scheduler initialized, delta sync every {interval_minutes} minutes")

    return scheduler
