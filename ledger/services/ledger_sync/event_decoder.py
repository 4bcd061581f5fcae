"""
Event Decoder.

Turns a batch of raw logs into typed Transfer events. A batch is decoded
completely before anything is written, so a bad field drops the whole
batch and nothing of it reaches the ledger.
"""

from loguru import logger

from ledger.config.constants import TRANSFER_EVENT_TOPIC, TRANSFER_TOPIC_COUNT
from ledger.utils.exceptions import BatchDecodeError
from ledger.utils.hex_utils import (
    hex_to_uint64,
    parse_amount,
    topic_to_address,
)
from ledger.utils.security import mask_tx_hash

from .types import LogBatch, RawLog, TransferEvent


def is_transfer_log(log: RawLog, transfer_topic: str = TRANSFER_EVENT_TOPIC) -> bool:
    """Check topic count and event signature."""
    return (
        len(log.topics) == TRANSFER_TOPIC_COUNT
        and log.topics[0].lower() == transfer_topic.lower()
    )


def is_self_transfer(log: RawLog) -> bool:
    """Sender topic equals receiver topic."""
    return log.topics[1].lower() == log.topics[2].lower()


def decode_transfer(log: RawLog) -> TransferEvent:
    """
    Decode a single Transfer log.

    Args:
        log: Raw log already known to be a Transfer

    Returns:
        Decoded event

    Raises:
        ValueError: If any quantity fails to parse
    """
    return TransferEvent(
        contract_address=log.address.lower(),
        block_hash=log.block_hash,
        block_number=hex_to_uint64(log.block_number),
        transaction_hash=log.transaction_hash,
        transaction_index=hex_to_uint64(log.transaction_index),
        log_index=hex_to_uint64(log.log_index),
        from_address=topic_to_address(log.topics[1]),
        to_address=topic_to_address(log.topics[2]),
        amount=parse_amount(log.data),
    )


class EventDecoder:
    """Filters and decodes Transfer events for one token."""

    def __init__(
        self,
        token_label: str,
        transfer_topic: str = TRANSFER_EVENT_TOPIC,
    ) -> None:
        self.transfer_topic = transfer_topic
        self._tag = f"[Decoder:{token_label}]"

    def decode_batch(self, batch: LogBatch) -> list[TransferEvent]:
        """
        Decode every Transfer of a batch, in node order.

        Non-Transfer logs, self-transfers and removed logs are skipped.

        Args:
            batch: Logs of one block range

        Returns:
            Decoded events

        Raises:
            BatchDecodeError: If any accepted log has a malformed field
        """
        events: list[TransferEvent] = []
        skipped = 0

        for position, log in enumerate(batch.logs):
            if not is_transfer_log(log, self.transfer_topic):
                skipped += 1
                continue

            if is_self_transfer(log):
                skipped += 1
                continue

            if log.removed:
                logger.warning(
                    f"{self._tag} skipping removed log {mask_tx_hash(log.transaction_hash)} "
                    f"#{log.log_index}"
                )
                skipped += 1
                continue

            try:
                events.append(decode_transfer(log))
            except ValueError as e:
                raise BatchDecodeError(
                    f"log #{position} of blocks {batch.from_block}-{batch.to_block} "
                    f"(tx {log.transaction_hash}): {e}"
                ) from e

        if skipped:
            logger.debug(f"{self._tag} skipped {skipped} non-transfer logs")

        return events
