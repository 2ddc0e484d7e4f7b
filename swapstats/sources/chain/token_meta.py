import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List

from web3 import Web3

from swapstats.collector.registry import TokenRegistry
from swapstats.config.settings import DISCOVERY_WORKERS
from swapstats.utils.numeric import int_to_dec
from swapstats.utils.types import Pair, Token

logger = logging.getLogger(__name__)


def get_token_meta(chain, token_addr: str) -> Token:
    name, symbol, decimals, total_supply = chain.erc20_details(token_addr)
    return Token(
        address=token_addr,
        name=name,
        symbol=symbol,
        decimals=decimals,
        total_supply=int_to_dec(total_supply, decimals),
    )


def resolve_token(chain, registry: TokenRegistry, token_addr: str) -> Token:
    token = registry.token(token_addr)
    if token is None:
        token = registry.add_token(get_token_meta(chain, token_addr))
    return token


def inspect_pair(chain, registry: TokenRegistry, index: int) -> Pair:
    """Pair at factory position ``index`` with both tokens' metadata."""
    address = Web3.to_checksum_address(chain.factory_pair_at(index))
    token0, token1 = chain.pair_tokens(address)
    pair = Pair(
        address=address,
        index=index,
        token0=resolve_token(chain, registry, Web3.to_checksum_address(token0)),
        token1=resolve_token(chain, registry, Web3.to_checksum_address(token1)),
    )
    logger.info(f"Discovered pair #{index} {pair} {address}")
    return pair


def discover_new_pairs(chain, registry: TokenRegistry, workers: int = DISCOVERY_WORKERS) -> List[Pair]:
    """Inspect every factory pair past the ones ``registry`` knows, concurrently.

    The first failure cancels the inspections not yet started and is raised;
    nothing is added to ``registry`` pairs either way, the caller persists
    and merges the returned list.
    """
    known = len(registry)
    total = chain.factory_pairs_length()
    if total <= known:
        return []

    logger.info(f"Discovering pairs {known}..{total - 1}")
    found: List[Pair] = []
    with ThreadPoolExecutor(max_workers=max(1, min(workers, total - known))) as ex:
        futures = [ex.submit(inspect_pair, chain, registry, i) for i in range(known, total)]
        try:
            for fut in as_completed(futures):
                found.append(fut.result())
        except Exception:
            for f in futures:
                f.cancel()
            raise
    return sorted(found, key=lambda p: p.index)
