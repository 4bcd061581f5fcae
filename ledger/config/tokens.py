"""Per-token worker configuration."""

from eth_utils import is_hex_address
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from ledger.config.constants import (
    DEFAULT_BLOCK_STEP,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_RPC_TIMEOUT_SECONDS,
)


class TokenConfig(BaseModel):
    """Configuration of a single tracked ERC-20 token.

    One token worker is started per entry.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
    )

    token_name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        validation_alias=AliasChoices("token_name", "name"),
        description="Ledger key of the token (e.g. USDT)",
    )
    rpc_url: str = Field(
        ...,
        validation_alias=AliasChoices("rpc_url", "rpc"),
        description="JSON-RPC endpoint URL",
    )
    contract_address: str = Field(
        ...,
        validation_alias=AliasChoices("contract_address", "address"),
        description="Token contract emitting Transfer logs",
    )
    from_block: int = Field(
        default=0, ge=0, description="First block to scan on a fresh ledger"
    )
    block_step: int = Field(
        default=DEFAULT_BLOCK_STEP, ge=1, description="Blocks per eth_getLogs call"
    )
    poll_interval_seconds: float = Field(
        default=DEFAULT_POLL_INTERVAL_SECONDS,
        gt=0,
        validation_alias=AliasChoices("poll_interval_seconds", "interval"),
        description="Seconds between ticks",
    )
    rpc_timeout_seconds: float = Field(
        default=DEFAULT_RPC_TIMEOUT_SECONDS,
        gt=0,
        validation_alias=AliasChoices("rpc_timeout_seconds", "timeout"),
        description="HTTP timeout for one RPC call",
    )
    owner_address: str | None = Field(
        default=None,
        validation_alias=AliasChoices("owner_address", "owner"),
        description="Token owner, informational only",
    )
    chain: str | None = Field(default=None, description="Chain label for logs")

    @field_validator("contract_address", "owner_address")
    @classmethod
    def validate_eth_address(cls, v: str | None) -> str | None:
        """Validate Ethereum address format."""
        if v is None:
            return v
        if not is_hex_address(v):
            raise ValueError(
                f"Invalid Ethereum address: {v}. "
                "Must start with 0x and be 42 characters long."
            )
        return v.lower()

    @field_validator("rpc_url")
    @classmethod
    def validate_rpc_url(cls, v: str) -> str:
        """Validate RPC URL scheme."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("rpc_url must start with http:// or https://")
        return v

    @property
    def label(self) -> str:
        """Short name used in log tags."""
        if self.chain:
            return f"{self.chain}:{self.token_name}"
        return self.token_name
