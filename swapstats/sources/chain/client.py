import logging
from typing import Dict, List, Tuple

import backoff
from web3 import HTTPProvider, Web3

from swapstats.config.settings import ERC20_ABI, FACTORY_ABI, FACTORY_ADDRESS, PAIR_ABI, RPC_URL
from swapstats.utils.log_utils import sanitize_logs

logger = logging.getLogger(__name__)

# Cache of Web3 clients per RPC URL
_web3_clients: Dict[str, Web3] = {}


@backoff.on_exception(backoff.expo, Exception, max_tries=5, jitter=None)
def _create_web3_client(rpc_url: str) -> Web3:
    logger.info(f"Connecting to RPC: {rpc_url}")
    w3 = Web3(HTTPProvider(rpc_url, request_kwargs={"timeout": 10}))

    if not w3.is_connected():
        raise ConnectionError(f"Failed to connect to RPC: {rpc_url}")

    logger.info(f"Connected to {rpc_url}")
    return w3


def get_web3_client(rpc_url: str = RPC_URL) -> Web3:
    """Returns a cached or newly created Web3 client for a given RPC URL."""
    if rpc_url not in _web3_clients:
        _web3_clients[rpc_url] = _create_web3_client(rpc_url)
    return _web3_clients[rpc_url]


class ChainClient:
    """Every chain read the collector makes. Tests swap in a fake with the same methods.

    Raw logs come back sanitized (plain dicts, 0x-hex strings).
    """

    def __init__(self, w3: Web3, factory_address: str = FACTORY_ADDRESS):
        self.w3 = w3
        self.factory = w3.eth.contract(address=Web3.to_checksum_address(factory_address), abi=FACTORY_ABI)

    @classmethod
    def connect(cls, rpc_url: str = RPC_URL, factory_address: str = FACTORY_ADDRESS) -> "ChainClient":
        return cls(get_web3_client(rpc_url), factory_address)

    # ---- blocks / logs / txs ----

    def latest_block_number(self) -> int:
        return self.w3.eth.block_number

    def block_timestamp(self, block_number: int) -> int:
        return self.w3.eth.get_block(block_number)["timestamp"]

    def get_logs(self, address: str, topics: List[str], from_block: int, to_block: int) -> List[dict]:
        logs = self.w3.eth.get_logs({
            "fromBlock": from_block,
            "toBlock": to_block,
            "address": address,
            "topics": topics,
        })
        return sanitize_logs(logs)

    def transaction_sender(self, tx_hash: str) -> str:
        return self.w3.eth.get_transaction(tx_hash)["from"]

    # ---- contracts ----

    def _pair(self, address: str):
        return self.w3.eth.contract(address=address, abi=PAIR_ABI)

    def _erc20(self, address: str):
        return self.w3.eth.contract(address=address, abi=ERC20_ABI)

    def factory_pairs_length(self) -> int:
        return self.factory.functions.allPairsLength().call()

    def factory_pair_at(self, index: int) -> str:
        return self.factory.functions.allPairs(index).call()

    def pair_tokens(self, pair_address: str) -> Tuple[str, str]:
        pair = self._pair(pair_address)
        return pair.functions.token0().call(), pair.functions.token1().call()

    def pair_reserves(self, pair_address: str) -> Tuple[int, int]:
        reserve0, reserve1, _ = self._pair(pair_address).functions.getReserves().call()
        return reserve0, reserve1

    def pair_total_supply(self, pair_address: str) -> int:
        return self._pair(pair_address).functions.totalSupply().call()

    def erc20_details(self, token_address: str) -> Tuple[str, str, int, int]:
        """(name, symbol, decimals, raw total supply)"""
        token = self._erc20(token_address)
        return (
            token.functions.name().call(),
            token.functions.symbol().call(),
            token.functions.decimals().call(),
            token.functions.totalSupply().call(),
        )

    def erc20_total_supply(self, token_address: str) -> int:
        return self._erc20(token_address).functions.totalSupply().call()
