"""
APScheduler Service
Runs the reminder sweep and calendar sync in-process when no external cron is used
"""
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from textback.api.dependencies import build_reminder_service, build_sync_service
from textback.config import Settings

logger = logging.getLogger(__name__)


class SchedulerService:
    """Service to manage background scheduler tasks"""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.scheduler = BackgroundScheduler(timezone=settings.timezone)
        self._setup_jobs()

    def _setup_jobs(self):
        """Setup all background jobs"""
        # One running instance per job
        self.scheduler.add_job(
            self._send_appointment_reminders,
            IntervalTrigger(minutes=self.settings.reminder_interval_minutes),
            id="appointment_reminders",
            name="Send appointment reminders",
            max_instances=1,
            replace_existing=True
        )

        self.scheduler.add_job(
            self._sync_calendars,
            IntervalTrigger(minutes=self.settings.sync_interval_minutes),
            id="calendar_sync",
            name="Sync connected calendars",
            max_instances=1,
            replace_existing=True
        )

    def _send_appointment_reminders(self):
        try:
            summary = build_reminder_service(self.settings).run()
            logger.info("Reminder sweep finished: %s", summary)
        except Exception:
            logger.exception("Error in appointment reminders job")

    def _sync_calendars(self):
        try:
            summary = build_sync_service(self.settings).run()
            logger.info("Calendar sync finished: %s", summary)
        except Exception:
            logger.exception("Error in calendar sync job")

    def start(self):
        """Start the scheduler"""
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Scheduler started")

    def stop(self):
        """Stop the scheduler"""
        if self.scheduler.running:
            self.scheduler.shutdown()
            logger.info("Scheduler stopped")


# Global scheduler instance
_scheduler_service = None


def get_scheduler(settings: Settings) -> SchedulerService:
    """Get or create scheduler instance"""
    global _scheduler_service
    if _scheduler_service is None:
        _scheduler_service = SchedulerService(settings)
    return _scheduler_service


def start_scheduler(settings: Settings):
    """Start the background scheduler"""
    get_scheduler(settings).start()


def stop_scheduler():
    """Stop the background scheduler"""
    if _scheduler_service is not None:
        _scheduler_service.stop()
