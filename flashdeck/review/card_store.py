"""
Card collection persistence.

The collection is always loaded and saved whole. Stores raise
StoreUnavailable on failure and leave recovery to the caller.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from loguru import logger

from .card import Card
from .errors import StoreUnavailable
from .storage import KeyValueStore

CARDS_KEY = "flashcards_data"


@runtime_checkable
class CardStore(Protocol):
    """Protocol for card collection stores."""

    async def load(self) -> list[Card]:
        """Load the full collection (empty list if nothing is stored)."""
        ...

    async def save(self, cards: Sequence[Card]) -> None:
        """Replace the stored collection."""
        ...

    def close(self) -> None:
        """Release any underlying connection."""
        ...


class KeyValueCardStore:
    """
    Stores the collection as one JSON array in a KeyValueStore.

    SQLite calls block, so they run in a worker thread.
    """

    def __init__(self, kv: KeyValueStore, key: str = CARDS_KEY):
        self.kv = kv
        self.key = key

    async def load(self) -> list[Card]:
        records = await asyncio.to_thread(self.kv.get, self.key)
        if not records:
            return []
        if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
            raise StoreUnavailable(f"Card records under {self.key!r} are not a list of objects")

        try:
            cards = [Card.from_dict(record) for record in records]
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise StoreUnavailable(f"Corrupt card records under {self.key!r}") from exc

        logger.debug(f"Loaded {len(cards)} cards from {self.key!r}")
        return cards

    async def save(self, cards: Sequence[Card]) -> None:
        records = [card.to_dict() for card in cards]
        await asyncio.to_thread(self.kv.set, self.key, records)
        logger.debug(f"Saved {len(records)} cards to {self.key!r}")

    def close(self) -> None:
        self.kv.close()
