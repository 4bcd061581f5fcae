"""
Application constants.

Centralized constants for the ledger.
"""

# ========================================================================
# ERC-20 / JSON-RPC CONSTANTS
# ========================================================================

# keccak256("Transfer(address,address,uint256)")
TRANSFER_EVENT_TOPIC = (
    "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"
)
TRANSFER_TOPIC_COUNT = 3  # signature + indexed from + indexed to

RPC_METHOD_GET_LOGS = "eth_getLogs"
RPC_JSONRPC_VERSION = "2.0"
RPC_REQUEST_ID = 1  # Fixed id, checked against every response

ETH_ADDRESS_HEX_LEN = 40
ZERO_ADDRESS = "0x" + "0" * ETH_ADDRESS_HEX_LEN

UINT64_MAX = 2**64 - 1

# ========================================================================
# WORKER CONSTANTS
# ========================================================================

LOG_BATCH_QUEUE_SIZE = 20  # Fetched batches waiting for the decoder
DEFAULT_POLL_INTERVAL_SECONDS = 5
DEFAULT_RPC_TIMEOUT_SECONDS = 10
DEFAULT_BLOCK_STEP = 100

# Bounded retry of the same range inside one tick (0 = skip on failure)
RPC_MAX_RETRIES = 0
RPC_RETRY_DELAY_BASE = 1.0  # Base delay in seconds for exponential backoff

# ========================================================================
# DATABASE CONSTANTS
# ========================================================================

DB_OPERATION_TIMEOUT = 5.0  # Per query/command timeout in seconds
DB_POOL_SIZE = 10  # Idle connections kept in the pool
DB_MAX_OVERFLOW = 90  # Pool size + overflow = 100 open connections max
DB_POOL_RECYCLE = 3600  # Max connection lifetime in seconds

BALANCE_STRING_MAX_LEN = 100
