import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./swapstats.db")
RPC_URL = os.getenv("RPC_URL", "https://rpc.gochain.io")

FACTORY_ADDRESS = os.getenv("FACTORY_ADDRESS", "0xe93c2cD333902d8dd65bF9420B68fC7B1be94bB3")
REFERENCE_SYMBOL = os.getenv("REFERENCE_SYMBOL", "USDC")
MIN_REFERENCE_RESERVE = int(os.getenv("MIN_REFERENCE_RESERVE", "10"))

# ~2 hours of 5s blocks, stop_at drops the final partial hour
LOOKBACK_BLOCKS = int(os.getenv("LOOKBACK_BLOCKS", "1440"))
MAX_BLOCKS_PER_REQUEST = int(os.getenv("MAX_BLOCKS_PER_REQUEST", "10000"))
LOG_FETCH_MAX_TRIES = int(os.getenv("LOG_FETCH_MAX_TRIES", "5"))
LOG_FETCH_BACKOFF = float(os.getenv("LOG_FETCH_BACKOFF", "2.0"))
DISCOVERY_WORKERS = int(os.getenv("DISCOVERY_WORKERS", "16"))
RESOLVE_TX_SENDER = os.getenv("RESOLVE_TX_SENDER", "true").lower() in ("1", "true", "yes")

CACHE_TTL_SECONDS = int(os.getenv("CACHE_TTL_SECONDS", "60"))
CACHE_MAX_ENTRIES = int(os.getenv("CACHE_MAX_ENTRIES", "10000"))

REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379/0")
COLLECT_LOCK_MS = int(os.getenv("COLLECT_LOCK_MS", str(10 * 60 * 1000)))

FACTORY_ABI = [
    { "name": "allPairsLength", "outputs": [ { "type": "uint256" } ],
      "inputs": [], "stateMutability": "view", "type": "function"},
    { "name": "allPairs", "outputs": [ { "type": "address" } ],
      "inputs": [ { "name": "", "type": "uint256" } ], "stateMutability": "view", "type": "function"},
]

PAIR_ABI = [
    { "name": "token0", "outputs": [ { "type": "address" } ],
      "inputs": [], "stateMutability": "view", "type": "function"},
    { "name": "token1", "outputs": [ { "type": "address" } ],
      "inputs": [], "stateMutability": "view", "type": "function"},
    { "name": "getReserves",
      "outputs": [
          { "name": "_reserve0", "type": "uint112" },
          { "name": "_reserve1", "type": "uint112" },
          { "name": "_blockTimestampLast", "type": "uint32" },
      ],
      "inputs": [], "stateMutability": "view", "type": "function"},
    { "name": "totalSupply", "outputs": [ { "type": "uint256" } ],
      "inputs": [], "stateMutability": "view", "type": "function"},
]

ERC20_ABI = [
    { "name": "name", "outputs": [ { "type": "string" } ],
      "inputs": [], "stateMutability": "view", "type": "function"},
    { "name": "symbol", "outputs": [ { "type": "string" } ],
      "inputs": [], "stateMutability": "view", "type": "function"},
    { "name": "decimals", "outputs": [ { "type": "uint8" } ],
      "inputs": [], "stateMutability": "view", "type": "function"},
    { "name": "totalSupply", "outputs": [ { "type": "uint256" } ],
      "inputs": [], "stateMutability": "view", "type": "function"},
]
