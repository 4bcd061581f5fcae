"""
ERC-20 balance ledger.

Polls an Ethereum-compatible JSON-RPC node for Transfer logs and keeps
an append-only per-address balance history for each configured token.
"""

__version__ = "0.1.0"
