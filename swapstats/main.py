# swapstats/main.py
import logging

from fastapi import FastAPI
from sqlalchemy import text

from swapstats.api import api
from swapstats.storage.db import engine, init_db
from swapstats.utils.shortname import ShortNameFilter

app = FastAPI(title="swapstats")

logging.basicConfig(
    level=logging.INFO,
    format="[%(levelname)s] %(shortname)s: %(message)s",
)
for handler in logging.getLogger().handlers:
    handler.addFilter(ShortNameFilter())
log = logging.getLogger(__name__)

app.include_router(api.router, prefix="/api")


@app.on_event("startup")
def check_db_connection():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        init_db(engine)
        log.info("Database connected.")
    except Exception as e:
        log.error(f"DB connection failed: {e}")
