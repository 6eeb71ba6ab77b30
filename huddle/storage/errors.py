"""Persistence errors."""


class StoreError(RuntimeError):
    """The backing store could not complete a read or write."""
