"""
SQLAlchemy implementation of the stats store.

Reads select the hourly rows of a ``[from_, to)`` window in ascending time,
decode them into records and hand them to the shared rollup. Writes are
keyed upserts (``INSERT .. ON CONFLICT DO UPDATE``) so a collector re-run
overwrites the rows it produced before.
"""
import logging
from datetime import datetime, timedelta
from typing import Dict, Iterable, Iterator, List, Optional

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from swapstats.storage.backend import CollectorStore, StatsBackend, decode_documents
from swapstats.storage.models.buckets import PairBucketRow, TokenBucketRow, TotalBucketRow
from swapstats.storage.models.checkpoints import CheckpointRow
from swapstats.storage.models.pairs import PairRow
from swapstats.storage.models.tokens import TokenRow
from swapstats.storage.rollup import rollup
from swapstats.utils.errors import NotFoundError
from swapstats.utils.time_utils import optional_unix
from swapstats.utils.types import (
    Checkpoint,
    Pair,
    PairBucket,
    Token,
    TokenBucket,
    TotalBucket,
)

log = logging.getLogger(__name__)

YIELD_PER = 1000
# keeps sqlite under its bound-parameter limit
WRITE_CHUNK = 500


def upsert(session: Session, model, rows: List[dict], key: str = "id") -> None:
    """Insert ``rows`` into ``model``'s table, overwriting every column on key conflict."""
    if not rows:
        return
    table = model.__table__
    insert = pg_insert if session.get_bind().dialect.name == "postgresql" else sqlite_insert
    stmt = insert(table).values(rows)
    stmt = stmt.on_conflict_do_update(
        index_elements=[key],
        set_={c.name: stmt.excluded[c.name] for c in table.columns if c.name != key},
    )
    session.execute(stmt)


class SqlBackend(StatsBackend, CollectorStore):

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def _stream(self, stmt) -> Iterator[dict]:
        with self.session_factory() as session:
            result = session.execute(stmt.execution_options(yield_per=YIELD_PER)).scalars()
            for row in result:
                yield row.to_document()

    def _write(self, model, docs: List[dict], key: str = "id") -> None:
        if not docs:
            return
        with self.session_factory() as session:
            try:
                for i in range(0, len(docs), WRITE_CHUNK):
                    upsert(session, model, docs[i:i + WRITE_CHUNK], key)
                session.commit()
            except Exception:
                session.rollback()
                raise
        log.info("upserted %d rows into %s", len(docs), model.__tablename__)

    def _range(self, model, address: Optional[str], from_: Optional[datetime],
               to: Optional[datetime]):
        stmt = select(model)
        if address:
            stmt = stmt.where(model.address == address)
        lo, hi = optional_unix(from_), optional_unix(to)
        if lo is not None:
            stmt = stmt.where(model.time >= lo)
        if hi is not None:
            stmt = stmt.where(model.time < hi)
        return stmt.order_by(model.time.asc())

    # ---- read side ----

    def _token_map(self) -> Dict[str, Token]:
        docs = self._stream(select(TokenRow))
        return {t.address: t for t in decode_documents(docs, Token)}

    def get_tokens(self) -> List[Token]:
        return list(self._token_map().values())

    def get_token(self, address: str) -> Token:
        with self.session_factory() as session:
            row = session.get(TokenRow, address)
            doc = row.to_document() if row else None
        if doc is None:
            raise NotFoundError(f"token {address} not found")
        return Token.from_document(doc)

    def get_pairs(self) -> List[Pair]:
        tokens = self._token_map()
        docs = self._stream(select(PairRow).order_by(PairRow.index.asc()))
        return [Pair.from_document(d, tokens) for d in docs]

    def get_pair(self, address: str) -> Pair:
        with self.session_factory() as session:
            row = session.get(PairRow, address)
            if row is None:
                raise NotFoundError(f"pair {address} not found")
            doc = row.to_document()
            tokens = {}
            for token_address in (doc["token0_address"], doc["token1_address"]):
                t = session.get(TokenRow, token_address)
                if t is not None:
                    tokens[token_address] = Token.from_document(t.to_document())
        return Pair.from_document(doc, tokens)

    def get_totals(self, from_, to, interval: timedelta) -> List[TotalBucket]:
        docs = self._stream(self._range(TotalBucketRow, None, from_, to))
        return rollup(decode_documents(docs, TotalBucket), to, interval)

    def get_pair_buckets(self, address, from_, to, interval: timedelta) -> List[PairBucket]:
        docs = self._stream(self._range(PairBucketRow, address, from_, to))
        return rollup(decode_documents(docs, PairBucket), to, interval)

    def get_token_buckets(self, address, from_, to, interval: timedelta) -> List[TokenBucket]:
        docs = self._stream(self._range(TokenBucketRow, address, from_, to))
        return rollup(decode_documents(docs, TokenBucket), to, interval)

    # ---- write side ----

    def get_checkpoint(self) -> Optional[Checkpoint]:
        with self.session_factory() as session:
            row = session.get(CheckpointRow, "last_check")
            return Checkpoint.from_document(row.to_document()) if row else None

    def save_checkpoint(self, checkpoint: Checkpoint) -> None:
        self._write(CheckpointRow, [checkpoint.to_document()])

    def save_tokens(self, tokens: Iterable[Token]) -> None:
        self._write(TokenRow, [t.to_document() for t in tokens], key="address")

    def save_pairs(self, pairs: Iterable[Pair]) -> None:
        pairs = list(pairs)
        tokens = {}
        for p in pairs:
            tokens[p.token0.address] = p.token0
            tokens[p.token1.address] = p.token1
        self.save_tokens(tokens.values())
        self._write(PairRow, [p.to_document() for p in pairs], key="address")

    def save_pair_buckets(self, buckets: Iterable[PairBucket]) -> None:
        self._write(PairBucketRow, [b.to_document() for b in buckets])

    def save_token_buckets(self, buckets: Iterable[TokenBucket]) -> None:
        self._write(TokenBucketRow, [b.to_document() for b in buckets])

    def save_total_buckets(self, buckets: Iterable[TotalBucket]) -> None:
        self._write(TotalBucketRow, [b.to_document() for b in buckets])
