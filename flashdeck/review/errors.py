"""Exceptions raised by flashdeck storage adapters."""

from __future__ import annotations


class StoreUnavailable(Exception):
    """Raised when a store cannot be read from or written to."""

    pass
