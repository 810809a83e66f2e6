"""
Review engine: SM-2 scheduling and session management.

Components:
- Card: Flashcard content plus SM-2 state
- SM2Scheduler: Spaced repetition algorithm
- SessionManager: Collection owner, session assembly and lifecycle
- KeyValueStore: SQLite persistence for JSON blobs
- KeyValueCardStore: Card collection persistence
- SessionStateStore: Session snapshot and completion guard persistence
"""

from .card import Card
from .card_store import CardStore, KeyValueCardStore
from .clock import Clock, SystemClock
from .defaults import get_default_cards
from .errors import StoreUnavailable
from .scheduler import ReviewResult, SM2Config, SM2Scheduler
from .session_manager import (
    CurrentCard,
    SessionConfig,
    SessionManager,
    SessionPhase,
    SessionStatistics,
)
from .session_state import SessionSnapshot, SessionStateStore
from .storage import KeyValueStore

__all__ = [
    # Cards
    "Card",
    "get_default_cards",
    # Persistence
    "CardStore",
    "KeyValueCardStore",
    "KeyValueStore",
    "SessionSnapshot",
    "SessionStateStore",
    "StoreUnavailable",
    # Scheduling
    "ReviewResult",
    "SM2Config",
    "SM2Scheduler",
    # Sessions
    "Clock",
    "CurrentCard",
    "SessionConfig",
    "SessionManager",
    "SessionPhase",
    "SessionStatistics",
    "SystemClock",
]
