import logging

from celery import shared_task
from redis import Redis
from redlock import Redlock

from swapstats.config.settings import COLLECT_LOCK_MS, REDIS_URL

log = logging.getLogger(__name__)

LOCK_NAME = "swapstats_collect_lock"

_locker = None


def get_locker() -> Redlock:
    global _locker
    if _locker is None:
        _locker = Redlock([Redis.from_url(REDIS_URL)])
    return _locker


def run_locked(locker, run, lock_ms: int = COLLECT_LOCK_MS):
    """Call ``run()`` only while holding the collector lease; None when another holder has it."""
    lock = locker.lock(LOCK_NAME, lock_ms)
    if not lock:
        log.info("Another collector is running; skipping.")
        return None
    try:
        return run()
    finally:
        locker.unlock(lock)


@shared_task(name="collect_stats", queue="collect", bind=True)
def collect_stats(self):
    """One collector pass. At most one runs at a time across all workers."""
    from swapstats.collector.runner import run_collection
    from swapstats.storage.db import WorkerSessionLocal, worker_engine

    log.info("Starting collector...")
    result = run_locked(get_locker(), lambda: run_collection(WorkerSessionLocal, worker_engine))
    if result is None:
        return {"status": "locked"}
    return {
        "status": "skipped" if result.skipped else "ok",
        "stop_at": result.stop_at.isoformat(),
        "events": result.events,
        "last_block_number": result.last_block_number,
    }
