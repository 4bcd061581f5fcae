"""
Exception types for the ledger pipeline.

Errors are grouped by how a token worker reacts to them:

- FetchError and subclasses: transient, the tick's block range is skipped
- BatchDecodeError: the whole batch is dropped
- BalanceLookupError: the event and the rest of its batch are aborted
- StoreWriteError: logged per insert, processing continues
- StreamIntegrityError and subclasses: fatal for the token stream
- RecoveryError: the worker never starts
"""


class LedgerError(Exception):
    """Base class for all ledger errors."""
    pass


# Fetch errors (recoverable)

class FetchError(LedgerError):
    """Base class for recoverable log fetch failures."""
    pass


class RequestEncodeError(FetchError):
    """Raised when the JSON-RPC request body cannot be built."""
    pass


class RPCTransportError(FetchError):
    """Raised on timeout, refused connection or other transport failure."""
    pass


class ResponseDecodeError(FetchError):
    """Raised when the response body is not a valid JSON-RPC log response."""
    pass


class RPCIdMismatchError(FetchError):
    """Raised when the response id differs from the request id."""

    def __init__(self, expected: int, actual: object) -> None:
        super().__init__(f"jsonrpc id mismatch: expected {expected}, got {actual!r}")
        self.expected = expected
        self.actual = actual


class RPCResponseError(FetchError):
    """Raised when the node answers with a JSON-RPC error object."""

    def __init__(self, code: int | None, message: str) -> None:
        super().__init__(f"rpc error {code}: {message}")
        self.code = code
        self.message = message


# Decode errors

class BatchDecodeError(LedgerError):
    """Raised when any log field of a batch fails to parse."""
    pass


# Store errors

class StoreError(LedgerError):
    """Raised when a balance store call fails or times out."""
    pass


class StoreWriteError(StoreError):
    """Raised when inserting a balance record fails."""
    pass


class BalanceLookupError(LedgerError):
    """Raised when the current balance of an address cannot be read."""
    pass


class RecoveryError(LedgerError):
    """Raised when the resume block cannot be determined on start."""
    pass


# Fatal stream errors

class StreamIntegrityError(LedgerError):
    """Base class for data-integrity faults that stop a token stream."""
    pass


class NegativeBalanceError(StreamIntegrityError):
    """Raised when a transfer would drive a balance below zero."""

    def __init__(self, token_name: str, address: str, balance: int) -> None:
        super().__init__(
            f"negative balance for {address} on {token_name}: {balance}"
        )
        self.token_name = token_name
        self.address = address
        self.balance = balance


class StoreCorruptionError(StreamIntegrityError):
    """Raised when a stored balance is not a base-10 integer."""
    pass
