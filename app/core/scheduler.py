import threading

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from app.config import get_settings
from app.core.logger import get_logger
from app.database import SessionLocal
from app.services.user_cleanup import cleanup_expired_unverified_users

logger = get_logger(__name__)

scheduler = BackgroundScheduler()
_start_lock = threading.Lock()

def _ensure_running():
    with _start_lock:
        if not scheduler.running:
            scheduler.start()

def run_in_background(func, **kwargs):
    # One-shot job on the scheduler thread pool, never on the caller thread
    _ensure_running()
    scheduler.add_job(func, kwargs=kwargs, misfire_grace_time=None)

def cleanup_users_job():
    db = SessionLocal()
    try:
        logger.info("Starting cleanup of expired unverified users")
        cleanup_expired_unverified_users(db)
    except Exception:
        db.rollback()
        logger.exception("User cleanup job failed")
    finally:
        db.close()

def start_scheduler():
    settings = get_settings()
    if not settings.SCHEDULER_ENABLED:
        logger.info("Periodic jobs disabled")
        return

    # Remove expired unverified accounts once a day
    scheduler.add_job(
        cleanup_users_job,
        trigger=CronTrigger(hour=settings.CLEANUP_CRON_HOUR, minute=0),
        id='cleanup_unverified_users',
        replace_existing=True
    )
    _ensure_running()
    logger.info("Scheduler started")

def shutdown_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
