"""
Card: the unit of learnable content.

A card pairs user content (word, translation, meanings) with the SM-2
memory-strength parameters that drive scheduling. Cards travel to and from
storage as camelCase JSON records.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime

# =============================================================================
# Timestamp Helpers
# =============================================================================


def parse_timestamp(value: str | datetime) -> datetime:
    """
    Parse a stored timestamp into a naive local datetime.

    Args:
        value: ISO-8601 string (with or without offset) or datetime

    Returns:
        Naive datetime in local time
    """
    if isinstance(value, str):
        # fromisoformat only accepts the "Z" suffix from Python 3.11 on
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        value = datetime.fromisoformat(value)
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value


def format_timestamp(value: datetime) -> str:
    """Serialize a timestamp for storage."""
    return value.isoformat()


def generate_card_id() -> str:
    return str(uuid.uuid4())


# =============================================================================
# Card Data Class
# =============================================================================


@dataclass
class Card:
    """
    A flashcard with its SM-2 scheduling state.

    Attributes:
        id: Opaque unique identifier, never changed after creation
        word: Front-side content, also the duplicate-detection key
        translation: Back-side content
        meanings: Additional senses or usage notes
        repetition_count: Consecutive passing reviews since the last lapse
        ease_factor: Retention difficulty (higher = easier, min 1.3)
        interval: Days used to schedule the next review (0 = retry soon)
        next_review_date: Card is due once now reaches this timestamp
    """

    id: str
    word: str
    translation: str = ""
    meanings: list[str] = field(default_factory=list)

    repetition_count: int = 0
    ease_factor: float = 2.5
    interval: int = 0
    next_review_date: datetime = field(default_factory=datetime.now)

    @property
    def is_new(self) -> bool:
        """Never reviewed, or lapsed on the last review."""
        return self.repetition_count == 0

    @property
    def is_lapsed(self) -> bool:
        return self.interval == 0

    def is_due(self, now: datetime) -> bool:
        return self.next_review_date <= now

    def copy(self) -> Card:
        """Independent copy, safe to mutate without touching the original."""
        return replace(self, meanings=list(self.meanings))

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable storage record."""
        return {
            "id": self.id,
            "word": self.word,
            "translation": self.translation,
            "meanings": list(self.meanings),
            "repetitionCount": self.repetition_count,
            "easeFactor": self.ease_factor,
            "interval": self.interval,
            "nextReviewDate": format_timestamp(self.next_review_date),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Card:
        """
        Create a Card from a storage record.

        Missing SRS fields fall back to new-card defaults so that records
        written before a card was ever reviewed still load.

        Args:
            data: Dictionary from the card store

        Returns:
            Card instance
        """
        meanings = data.get("meanings") or []
        if isinstance(meanings, str):
            meanings = [meanings]

        next_review = data.get("nextReviewDate")

        return cls(
            id=str(data["id"]),
            word=data["word"],
            translation=data.get("translation", ""),
            meanings=list(meanings),
            repetition_count=int(data.get("repetitionCount", 0)),
            ease_factor=float(data.get("easeFactor", 2.5)),
            interval=int(data.get("interval", 0)),
            next_review_date=parse_timestamp(next_review) if next_review else datetime.now(),
        )
