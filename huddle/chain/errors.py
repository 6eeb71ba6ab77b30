"""Errors raised by the chain client."""


class ChainError(RuntimeError):
    """An RPC or signing failure."""


class TransactionReverted(ChainError):
    """The transaction was mined with status 0."""

    def __init__(self, tx_hash: str):
        super().__init__(f"Transaction {tx_hash} reverted")
        self.tx_hash = tx_hash


class ConfirmationTimeout(ChainError):
    """The transaction did not reach the required confirmations in time."""

    def __init__(self, tx_hash: str, timeout: float):
        super().__init__(f"Transaction {tx_hash} not confirmed within {timeout:.0f}s")
        self.tx_hash = tx_hash
        self.timeout = timeout
