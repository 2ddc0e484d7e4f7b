import logging

from swapstats.collector.collector import Collector
from swapstats.sources.chain.client import ChainClient
from swapstats.storage.db import SessionLocal, engine, init_db
from swapstats.storage.sql_backend import SqlBackend
from swapstats.utils.types import CollectionResult

log = logging.getLogger(__name__)


def build_collector(session_factory=SessionLocal, chain=None, **kwargs) -> Collector:
    if chain is None:
        chain = ChainClient.connect()
    return Collector(chain, SqlBackend(session_factory), **kwargs)


def run_collection(session_factory=SessionLocal, bind=engine, **kwargs) -> CollectionResult:
    """One collector pass against the configured database and RPC endpoint."""
    init_db(bind)
    result = build_collector(session_factory, **kwargs).run()
    log.info(f"[runner] {result}")
    return result
