from typing import Dict, Iterable, List, Optional

from swapstats.utils.rwlock import RWLock
from swapstats.utils.types import Pair, Token


class TokenRegistry:
    """Tokens and pairs known to one collector run.

    Discovery workers read and add concurrently. The first token added for
    an address wins, so every pair of a run shares one Token instance per
    address.
    """

    def __init__(self, pairs: Iterable[Pair] = ()):
        self._lock = RWLock()
        self._tokens: Dict[str, Token] = {}
        self._pairs: Dict[str, Pair] = {}
        self.add_pairs(pairs)

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._pairs)

    def token(self, address: str) -> Optional[Token]:
        with self._lock.read():
            return self._tokens.get(address)

    def add_token(self, token: Token) -> Token:
        with self._lock.write():
            return self._tokens.setdefault(token.address, token)

    def add_pairs(self, pairs: Iterable[Pair]) -> None:
        with self._lock.write():
            for p in pairs:
                p.token0 = self._tokens.setdefault(p.token0.address, p.token0)
                p.token1 = self._tokens.setdefault(p.token1.address, p.token1)
                self._pairs[p.address] = p

    def tokens(self) -> List[Token]:
        with self._lock.read():
            return list(self._tokens.values())

    def pairs(self) -> List[Pair]:
        with self._lock.read():
            return sorted(self._pairs.values(), key=lambda p: p.index)

    def reference_pairs(self, symbol: str) -> Dict[str, Pair]:
        """token address -> the pair quoting it directly against ``symbol``."""
        out: Dict[str, Pair] = {}
        for p in self.pairs():
            if p.token0.symbol == symbol:
                out.setdefault(p.token1.address, p)
            elif p.token1.symbol == symbol:
                out.setdefault(p.token0.address, p)
        return out
