# celery_app.py  ─────────────────────────────────────────────────────────
import logging
import logging.config
import os

from celery import Celery
from celery.schedules import crontab

# ── 1.  Broker / backend  ────────────────────────────────────
CELERY_BROKER_URL     = os.getenv("CELERY_BROKER_URL", "redis://redis:6379/0")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", "redis://redis:6379/0")

celery_app = Celery(
    "swapstats",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# ── 2.  Core config  ─────────────────────────────────────────
celery_app.conf.update(
    task_serializer       ='json',
    result_serializer     ='json',
    accept_content        =['json'],
    timezone              ='UTC',
    enable_utc            =True,

    # --- use RedBeat for persistent schedules
    beat_scheduler        ="redbeat.RedBeatScheduler",
    redbeat_redis_url     =os.getenv("REDIS_URL", CELERY_BROKER_URL),

    # --- collector passes are long; one at a time per worker process
    task_routes           ={"collect_stats": {"queue": "collect"}},
    worker_prefetch_multiplier = 1,
    task_acks_late        =True,
    result_expires        =24 * 3600,

    # --- recycle workers to avoid long-lived memory creep
    worker_max_tasks_per_child = 20,
)

# ── 3.  Beat schedule: one collector pass a few minutes past every hour ─
celery_app.conf.beat_schedule = {
    "hourly-collect": {
        "task": "collect_stats",
        "schedule": crontab(minute=5),
        "options": {"queue": "collect"},
    }
}

# ── 4.  Logging ────────────────────────────────────────────
LOGGING_CONFIG = {
    "version": 1,
    "filters": {
        "shortname": {"()": "swapstats.utils.shortname.ShortNameFilter"},
    },
    "formatters": {
        "custom": {
            "format": "[%(asctime)s] [%(levelname)s] %(shortname)s: %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        }
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "custom", "filters": ["shortname"]},
    },
    "root": {"level": "INFO", "handlers": ["console"]},
}
celery_app.conf.worker_hijack_root_logger = False
logging.config.dictConfig(LOGGING_CONFIG)

# ── 5.  Task modules, so Celery registers them ──────────────
import swapstats.scheduler.dispatcher  # noqa: E402,F401
