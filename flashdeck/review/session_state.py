"""
Session state persistence for flashdeck review sessions.

Enables save/resume so an interrupted session continues where it stopped,
and records when a session was completed so a new one is not assembled
again the same day.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from loguru import logger

from .card import Card, format_timestamp, parse_timestamp
from .errors import StoreUnavailable
from .storage import KeyValueStore

SESSION_STORAGE_KEY = "flashcards_active_session_state"
SESSION_COMPLETED_KEY = "flashcards_session_completed_time"


@dataclass
class SessionSnapshot:
    """Serializable session state."""

    cards: list[Card] = field(default_factory=list)
    size: int = 0  # queue length at assembly
    index: int = 0
    direction: bool = True  # front-to-back

    @property
    def is_resumable(self) -> bool:
        return len(self.cards) > 0 and self.size > 0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "cards": [card.to_dict() for card in self.cards],
            "size": self.size,
            "index": self.index,
            "direction": self.direction,
        }

    @classmethod
    def from_dict(cls, data: dict) -> SessionSnapshot:
        """Create from dictionary."""
        direction = data.get("direction")
        return cls(
            cards=[Card.from_dict(record) for record in data.get("cards") or []],
            size=int(data.get("size") or 0),
            index=int(data.get("index") or 0),
            direction=True if direction is None else bool(direction),
        )


class SessionStateStore:
    """
    Manages session snapshot and completion guard persistence.

    Both live under their own keys in the shared KeyValueStore. Storage
    problems are logged and never propagate: a snapshot that cannot be read
    is treated as absent, a write that fails is dropped.
    """

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    # =========================================================================
    # Session Snapshot
    # =========================================================================

    def load_snapshot(self) -> SessionSnapshot | None:
        """Load the persisted session, if any."""
        try:
            data = self.kv.get(SESSION_STORAGE_KEY)
            if data is None:
                return None
            return SessionSnapshot.from_dict(data)
        except (StoreUnavailable, KeyError, TypeError, ValueError, AttributeError) as exc:
            logger.warning(f"Could not load session snapshot: {exc}")
            return None

    def save_snapshot(self, snapshot: SessionSnapshot) -> None:
        """Persist the active session; an active session lifts the completion guard."""
        try:
            self.kv.set(SESSION_STORAGE_KEY, snapshot.to_dict())
            self.kv.delete(SESSION_COMPLETED_KEY)
        except StoreUnavailable as exc:
            logger.error(f"Could not save session snapshot: {exc}")

    def clear_snapshot(self) -> None:
        try:
            self.kv.delete(SESSION_STORAGE_KEY)
        except StoreUnavailable as exc:
            logger.error(f"Could not clear session snapshot: {exc}")

    # =========================================================================
    # Completion Guard
    # =========================================================================

    def load_completion_guard(self) -> datetime | None:
        """Get the time the last session was completed, if recorded."""
        try:
            value = self.kv.get(SESSION_COMPLETED_KEY)
            if not value:
                return None
            return parse_timestamp(value)
        except (StoreUnavailable, TypeError, ValueError) as exc:
            logger.warning(f"Could not load completion guard: {exc}")
            return None

    def save_completion_guard(self, completed_at: datetime) -> None:
        try:
            self.kv.set(SESSION_COMPLETED_KEY, format_timestamp(completed_at))
        except StoreUnavailable as exc:
            logger.error(f"Could not save completion guard: {exc}")

    def clear_completion_guard(self) -> None:
        try:
            self.kv.delete(SESSION_COMPLETED_KEY)
        except StoreUnavailable as exc:
            logger.error(f"Could not clear completion guard: {exc}")

    def close(self) -> None:
        self.kv.close()
