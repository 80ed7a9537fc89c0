# adsync/scheduler.py
from datetime import timedelta
from apscheduler.schedulers.background import BackgroundScheduler
from . import crud
from .utils import logger, as_utc, utc_now

def sweep_stale_devices(database, stale_days: int, clock=utc_now) -> int:
    db = database.session()
    try:
        count = crud.deactivate_stale_devices(db, as_utc(clock()), timedelta(days=stale_days))
    finally:
        db.close()
    if count:
        logger.info("Marked %d stale devices inactive", count)
    return count

def build_scheduler(database, settings) -> BackgroundScheduler:
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        sweep_stale_devices, 'interval', hours=settings.device_sweep_hours,
        args=[database, settings.device_stale_days], id="sweep_stale_devices",
    )
    return scheduler
