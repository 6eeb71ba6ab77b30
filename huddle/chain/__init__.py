"""EVM chain access."""

from huddle.chain.client import ChainClient, checksum, namehash, new_keypair
from huddle.chain.errors import ChainError, ConfirmationTimeout, TransactionReverted

__all__ = [
    "ChainClient",
    "ChainError",
    "ConfirmationTimeout",
    "TransactionReverted",
    "checksum",
    "namehash",
    "new_keypair",
]
