"""
Log Fetcher.

Builds the eth_getLogs JSON-RPC call for a block range, sends it over a
shared aiohttp session and parses the reply into a LogBatch.
"""

import json
from typing import Any

import aiohttp
from loguru import logger
from pydantic import ValidationError

from ledger.config.constants import (
    RPC_METHOD_GET_LOGS,
    RPC_REQUEST_ID,
    TRANSFER_EVENT_TOPIC,
)
from ledger.config.tokens import TokenConfig
from ledger.utils.exceptions import (
    RequestEncodeError,
    ResponseDecodeError,
    RPCIdMismatchError,
    RPCResponseError,
    RPCTransportError,
)
from ledger.utils.hex_utils import uint64_to_hex
from ledger.utils.security import mask_url

from .types import LogBatch, LogFilter, RPCLogResponse, RPCRequest


def build_get_logs_request(
    from_block: int,
    block_step: int,
    contract_address: str,
    transfer_topic: str = TRANSFER_EVENT_TOPIC,
    request_id: int = RPC_REQUEST_ID,
) -> dict[str, Any]:
    """
    Build the eth_getLogs request body for one block range.

    Args:
        from_block: First block of the range
        block_step: Number of blocks in the range
        contract_address: Token contract
        transfer_topic: Event signature topic to filter on
        request_id: JSON-RPC id

    Returns:
        JSON-serializable request dict

    Raises:
        RequestEncodeError: If the range cannot be encoded
    """
    if block_step < 1:
        raise RequestEncodeError(f"block_step must be positive, got {block_step}")

    try:
        log_filter = LogFilter(
            topics=[transfer_topic],
            from_block=uint64_to_hex(from_block),
            to_block=uint64_to_hex(from_block + block_step - 1),
            address=contract_address,
        )
        request = RPCRequest(
            method=RPC_METHOD_GET_LOGS,
            id=request_id,
            params=[log_filter.model_dump(by_alias=True)],
        )
        return request.model_dump()
    except (ValueError, ValidationError) as e:
        raise RequestEncodeError(f"marshal request body error: {e}") from e


def parse_get_logs_response(
    payload: Any,
    request_id: int = RPC_REQUEST_ID,
) -> RPCLogResponse:
    """
    Validate a decoded JSON body as an eth_getLogs response.

    Args:
        payload: Decoded JSON
        request_id: Id the response must carry

    Returns:
        Parsed response (result may be empty)

    Raises:
        ResponseDecodeError: If the body has the wrong shape
        RPCIdMismatchError: If the id differs from the request id
        RPCResponseError: If the node returned an error object
    """
    try:
        response = RPCLogResponse.model_validate(payload)
    except ValidationError as e:
        raise ResponseDecodeError(f"decode response error: {e}") from e

    if response.id != request_id:
        raise RPCIdMismatchError(request_id, response.id)

    if response.error is not None:
        raise RPCResponseError(response.error.code, response.error.message)

    return response


class LogFetcher:
    """
    Fetches Transfer logs of one token contract.

    The HTTP session is injected and shared; the fetcher never closes it.
    """

    def __init__(
        self,
        config: TokenConfig,
        http_session: aiohttp.ClientSession,
    ) -> None:
        """
        Initialize fetcher.

        Args:
            config: Token configuration (RPC URL, contract, timeout)
            http_session: Shared aiohttp session
        """
        self.config = config
        self.http_session = http_session
        self.timeout = aiohttp.ClientTimeout(total=config.rpc_timeout_seconds)
        self._tag = f"[Fetcher:{config.label}]"

    async def fetch(self, from_block: int, block_step: int) -> LogBatch:
        """
        Fetch the Transfer logs of one block range.

        Args:
            from_block: First block of the range
            block_step: Number of blocks in the range

        Returns:
            LogBatch with zero or more raw logs

        Raises:
            FetchError: Any recoverable failure (encode, transport,
                decode, id mismatch, node error)
        """
        to_block = from_block + block_step - 1
        body = build_get_logs_request(
            from_block, block_step, self.config.contract_address
        )
        logger.debug(f"{self._tag} fetch blocks {from_block}-{to_block}")

        try:
            async with self.http_session.post(
                self.config.rpc_url,
                json=body,
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
            ) as response:
                if response.status != 200:
                    logger.debug(
                        f"{self._tag} HTTP {response.status} from "
                        f"{mask_url(self.config.rpc_url)}, decoding body anyway"
                    )
                raw = await response.read()
        except TimeoutError as e:
            raise RPCTransportError(
                f"call rpc timed out after {self.config.rpc_timeout_seconds}s"
            ) from e
        except aiohttp.ClientError as e:
            raise RPCTransportError(f"call rpc error: {e}") from e

        try:
            payload = json.loads(raw)
        except (ValueError, UnicodeDecodeError) as e:
            raise ResponseDecodeError(f"decode response error: {e}") from e

        parsed = parse_get_logs_response(payload)
        batch = LogBatch(
            from_block=from_block,
            to_block=to_block,
            logs=list(parsed.result or []),
        )
        logger.debug(
            f"{self._tag} blocks {from_block}-{to_block}: {len(batch)} logs"
        )
        return batch
