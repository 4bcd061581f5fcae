"""
Ledger sync types.

Wire models for the eth_getLogs exchange and the in-memory units passed
between the fetch and resolve stages.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ledger.config.constants import RPC_JSONRPC_VERSION


class LogFilter(BaseModel):
    """eth_getLogs filter object."""

    model_config = ConfigDict(populate_by_name=True)

    topics: list[str]
    from_block: str = Field(..., alias="fromBlock")
    to_block: str = Field(..., alias="toBlock")
    address: str


class RPCRequest(BaseModel):
    """JSON-RPC 2.0 request envelope."""

    jsonrpc: str = RPC_JSONRPC_VERSION
    method: str
    id: int
    params: list[Any]


class RawLog(BaseModel):
    """A log entry as returned by the node; quantities are left as strings."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    address: str = ""
    block_hash: str = Field(default="", alias="blockHash")
    block_number: str = Field(default="", alias="blockNumber")
    data: str = ""
    log_index: str = Field(default="", alias="logIndex")
    removed: bool = False
    topics: list[str] = Field(default_factory=list)
    transaction_hash: str = Field(default="", alias="transactionHash")
    transaction_index: str = Field(default="", alias="transactionIndex")


class RPCError(BaseModel):
    """JSON-RPC error object."""

    model_config = ConfigDict(extra="ignore")

    code: int | None = None
    message: str = ""


class RPCLogResponse(BaseModel):
    """JSON-RPC response to eth_getLogs."""

    model_config = ConfigDict(extra="ignore")

    jsonrpc: str | None = None
    id: int | str | None = None
    result: list[RawLog] | None = None
    error: RPCError | None = None


@dataclass
class LogBatch:
    """Logs of one block range, queued between fetch and decode."""

    from_block: int
    to_block: int
    logs: list[RawLog] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.logs)


@dataclass(frozen=True)
class TransferEvent:
    """A decoded ERC-20 Transfer."""

    contract_address: str
    block_hash: str
    block_number: int
    transaction_hash: str
    transaction_index: int
    log_index: int
    from_address: str
    to_address: str
    amount: int

    @property
    def position(self) -> tuple[int, int]:
        """Ledger position (block, log index)."""
        return (self.block_number, self.log_index)


@dataclass
class BlockCursor:
    """Next block range a worker will fetch."""

    from_block: int
    block_step: int

    @property
    def to_block(self) -> int:
        """Inclusive end of the current range."""
        return self.from_block + self.block_step - 1

    def advance(self) -> None:
        """Move to the next range."""
        self.from_block += self.block_step


class WorkerState(StrEnum):
    """Token worker lifecycle states."""

    INITIALIZING = "initializing"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
