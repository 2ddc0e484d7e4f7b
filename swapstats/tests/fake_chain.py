"""In-memory stand-in for ChainClient plus helpers that build raw Uniswap V2 logs."""
from typing import Dict, List, Set, Tuple

from eth_abi import encode
from web3 import Web3

from swapstats.utils.constants import MINT_TOPIC, SWAP_TOPIC

T0 = 1704067200  # 2024-01-01 00:00:00 UTC
BLOCK_TIME = 5


def addr(n: int) -> str:
    return Web3.to_checksum_address("0x" + f"{n:040x}")


def topic_for(address: str) -> str:
    return "0x" + "0" * 24 + address[2:].lower()


def tx_hash(n: int) -> str:
    return "0x" + f"{n:064x}"


def swap_log(pair: str, block: int, amount0_in=0, amount1_in=0, amount0_out=0, amount1_out=0,
             sender: str = None, to: str = None, log_index: int = 0, tx: int = None) -> dict:
    sender = sender or addr(0xAAAA)
    to = to or addr(0xBBBB)
    data = encode(["uint256", "uint256", "uint256", "uint256"],
                  [amount0_in, amount1_in, amount0_out, amount1_out])
    return {
        "address": pair,
        "topics": [SWAP_TOPIC, topic_for(sender), topic_for(to)],
        "data": Web3.to_hex(data),
        "blockNumber": block,
        "transactionHash": tx_hash(tx if tx is not None else block * 1000 + log_index),
        "logIndex": log_index,
    }


def mint_log(pair: str, block: int, amount0: int, amount1: int, sender: str = None,
             log_index: int = 0, tx: int = None) -> dict:
    sender = sender or addr(0xCCCC)
    data = encode(["uint256", "uint256"], [amount0, amount1])
    return {
        "address": pair,
        "topics": [MINT_TOPIC, topic_for(sender)],
        "data": Web3.to_hex(data),
        "blockNumber": block,
        "transactionHash": tx_hash(tx if tx is not None else block * 1000 + log_index),
        "logIndex": log_index,
    }


class FakeChain:
    """Blocks are ``BLOCK_TIME`` seconds apart starting at ``T0``."""

    def __init__(self, head: int = 0):
        self.head = head
        self.logs: List[dict] = []
        self.pairs: List[str] = []
        self.pair_token_map: Dict[str, Tuple[str, str]] = {}
        self.reserves: Dict[str, Tuple[int, int]] = {}
        self.lp_supply: Dict[str, int] = {}
        self.tokens: Dict[str, Tuple[str, str, int, int]] = {}
        self.senders: Dict[str, str] = {}

        self.fail_get_logs = 0          # next N get_logs calls raise
        self.fail_pair_at: Set[int] = set()
        self.calls: Dict[str, int] = {}

    def _count(self, name: str) -> None:
        self.calls[name] = self.calls.get(name, 0) + 1

    # ---- setup ----

    def add_token(self, address: str, symbol: str, decimals: int = 18, supply: int = 0, name: str = None):
        self.tokens[address] = (name or symbol, symbol, decimals, supply)

    def add_pair(self, address: str, token0: str, token1: str, reserve0: int, reserve1: int,
                 lp_supply: int = 10 ** 18):
        self.pairs.append(address)
        self.pair_token_map[address] = (token0, token1)
        self.reserves[address] = (reserve0, reserve1)
        self.lp_supply[address] = lp_supply

    # ---- ChainClient surface ----

    def latest_block_number(self) -> int:
        return self.head

    def block_timestamp(self, block_number: int) -> int:
        self._count("block_timestamp")
        return T0 + block_number * BLOCK_TIME

    def get_logs(self, address: str, topics: List[str], from_block: int, to_block: int) -> List[dict]:
        self._count("get_logs")
        if self.fail_get_logs > 0:
            self.fail_get_logs -= 1
            raise ConnectionError("rpc unavailable")
        return [
            dict(log) for log in self.logs
            if log["address"] == address
            and log["topics"][0] == topics[0]
            and from_block <= log["blockNumber"] <= to_block
        ]

    def transaction_sender(self, tx_hash: str) -> str:
        self._count("transaction_sender")
        return self.senders.get(tx_hash, addr(0xEEEE))

    def factory_pairs_length(self) -> int:
        return len(self.pairs)

    def factory_pair_at(self, index: int) -> str:
        if index in self.fail_pair_at:
            raise ConnectionError(f"allPairs({index}) failed")
        return self.pairs[index]

    def pair_tokens(self, pair_address: str) -> Tuple[str, str]:
        return self.pair_token_map[pair_address]

    def pair_reserves(self, pair_address: str) -> Tuple[int, int]:
        self._count("pair_reserves")
        return self.reserves[pair_address]

    def pair_total_supply(self, pair_address: str) -> int:
        return self.lp_supply[pair_address]

    def erc20_details(self, token_address: str) -> Tuple[str, str, int, int]:
        self._count("erc20_details")
        return self.tokens[token_address]

    def erc20_total_supply(self, token_address: str) -> int:
        return self.tokens[token_address][3]
