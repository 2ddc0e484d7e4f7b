import threading
from datetime import datetime
from typing import Dict, Iterator, Tuple

from swapstats.utils.time_utils import from_unix


class BlockClient:
    """Block lookups for one collector run. Block times are cached per block number, tx senders per hash."""

    def __init__(self, chain):
        self.chain = chain
        self._timestamps: Dict[int, datetime] = {}
        self._senders: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get_latest_block(self) -> int:
        return self.chain.latest_block_number()

    def get_block_time(self, block_number: int) -> datetime:
        with self._lock:
            cached = self._timestamps.get(block_number)
        if cached is not None:
            return cached
        ts = from_unix(self.chain.block_timestamp(block_number))
        with self._lock:
            self._timestamps[block_number] = ts
        return ts

    @staticmethod
    def walk_block_ranges(start: int, end: int, step: int = 1000) -> Iterator[Tuple[int, int]]:
        """Inclusive ``(from, to)`` chunks covering ``[start, end]``, each at most ``step`` blocks."""
        for i in range(start, end + 1, step):
            yield i, min(i + step - 1, end)

    def get_tx_sender(self, tx_hash: str) -> str:
        with self._lock:
            cached = self._senders.get(tx_hash)
        if cached is not None:
            return cached
        sender = self.chain.transaction_sender(tx_hash)
        with self._lock:
            self._senders[tx_hash] = sender
        return sender
