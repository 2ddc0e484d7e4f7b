import threading
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from swapstats.storage.backend import CollectorStore, StatsBackend, decode_documents
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


class MemoryBackend(StatsBackend, CollectorStore):
    """Document store held in dicts. Same document shapes and rollup as the SQL backend.

    Used by the tests and by ``swapstats collect --dry-run``.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.tables: Dict[str, Dict[str, dict]] = {
            "pairs": {},
            "tokens": {},
            "pair_buckets": {},
            "token_buckets": {},
            "total_buckets": {},
            "checkpoints": {},
        }

    def _put(self, table: str, key: str, doc: dict) -> None:
        with self._lock:
            self.tables[table][key] = dict(doc)

    def _docs(self, table: str) -> List[dict]:
        with self._lock:
            return [dict(d) for d in self.tables[table].values()]

    def _range(self, table: str, address: Optional[str], from_: Optional[datetime],
               to: Optional[datetime]) -> List[dict]:
        lo, hi = optional_unix(from_), optional_unix(to)
        docs = [
            d for d in self._docs(table)
            if (not address or d.get("address") == address)
            and (lo is None or d["time"] >= lo)
            and (hi is None or d["time"] < hi)
        ]
        docs.sort(key=lambda d: d["time"])
        return docs

    # ---- read side ----

    def _token_map(self) -> Dict[str, Token]:
        return {t.address: t for t in decode_documents(self._docs("tokens"), Token)}

    def get_tokens(self) -> List[Token]:
        return list(self._token_map().values())

    def get_token(self, address: str) -> Token:
        token = self._token_map().get(address)
        if token is None:
            raise NotFoundError(f"token {address} not found")
        return token

    def get_pairs(self) -> List[Pair]:
        tokens = self._token_map()
        docs = sorted(self._docs("pairs"), key=lambda d: d["index"])
        return [Pair.from_document(d, tokens) for d in docs]

    def get_pair(self, address: str) -> Pair:
        with self._lock:
            doc = self.tables["pairs"].get(address)
        if doc is None:
            raise NotFoundError(f"pair {address} not found")
        return Pair.from_document(doc, self._token_map())

    def get_totals(self, from_, to, interval: timedelta) -> List[TotalBucket]:
        rows = decode_documents(self._range("total_buckets", None, from_, to), TotalBucket)
        return rollup(rows, to, interval)

    def get_pair_buckets(self, address, from_, to, interval: timedelta) -> List[PairBucket]:
        rows = decode_documents(self._range("pair_buckets", address, from_, to), PairBucket)
        return rollup(rows, to, interval)

    def get_token_buckets(self, address, from_, to, interval: timedelta) -> List[TokenBucket]:
        rows = decode_documents(self._range("token_buckets", address, from_, to), TokenBucket)
        return rollup(rows, to, interval)

    # ---- write side ----

    def get_checkpoint(self) -> Optional[Checkpoint]:
        with self._lock:
            doc = self.tables["checkpoints"].get("last_check")
        return Checkpoint.from_document(doc) if doc else None

    def save_checkpoint(self, checkpoint: Checkpoint) -> None:
        self._put("checkpoints", "last_check", checkpoint.to_document())

    def save_tokens(self, tokens: Iterable[Token]) -> None:
        for t in tokens:
            self._put("tokens", t.address, t.to_document())

    def save_pairs(self, pairs: Iterable[Pair]) -> None:
        for p in pairs:
            self.save_tokens([p.token0, p.token1])
            self._put("pairs", p.address, p.to_document())

    def save_pair_buckets(self, buckets: Iterable[PairBucket]) -> None:
        for b in buckets:
            self._put("pair_buckets", b.key, b.to_document())

    def save_token_buckets(self, buckets: Iterable[TokenBucket]) -> None:
        for b in buckets:
            self._put("token_buckets", b.key, b.to_document())

    def save_total_buckets(self, buckets: Iterable[TotalBucket]) -> None:
        for b in buckets:
            self._put("total_buckets", b.key, b.to_document())
