from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, scoped_session
from sqlalchemy.pool import NullPool

from swapstats.config.settings import DATABASE_URL
from swapstats.storage.base import Base


def make_engine(url: str, worker: bool = False) -> Engine:
    if url.startswith("sqlite"):
        # sqlite pools don't take sizing args; API threads share connections
        return create_engine(url, connect_args={"check_same_thread": False})
    if worker:
        return create_engine(url, pool_pre_ping=True, poolclass=NullPool)
    return create_engine(url, pool_pre_ping=True, pool_size=10, max_overflow=20)


def make_session_factory(engine: Engine):
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


# celery workers fork; don't share pooled connections across processes
worker_engine = make_engine(DATABASE_URL, worker=True)
WorkerSessionLocal = scoped_session(make_session_factory(worker_engine))

engine = make_engine(DATABASE_URL)
SessionLocal = scoped_session(make_session_factory(engine))


def init_db(bind: Engine = engine) -> None:
    # import for side effect: registers every table on Base.metadata
    from swapstats.storage.models import buckets, checkpoints, pairs, tokens  # noqa: F401
    Base.metadata.create_all(bind)


_backend = None


def get_backend():
    """Process-wide cached stats backend over ``SessionLocal``."""
    global _backend
    if _backend is None:
        from swapstats.storage.cache import CachedBackend
        from swapstats.storage.sql_backend import SqlBackend
        _backend = CachedBackend(SqlBackend(SessionLocal))
    return _backend
