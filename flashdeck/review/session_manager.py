"""
Session Manager: owns the card collection and the review queue.

Responsibilities:
- Loading the collection with a deadline, falling back to the starter deck
- Assembling a bounded, priority-selected, shuffled review session
- Resuming an interrupted session from its snapshot
- Advancing the queue as cards are graded (lapses are requeued)
- Blocking a second session on the day one was completed
- Card create/update/delete with duplicate detection

Session lifecycle:
    NO_SESSION --assemble/resume--> ACTIVE --last card passed--> COMPLETED
    ACTIVE --last card deleted--> NO_SESSION
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum

from loguru import logger

from .card import Card, generate_card_id
from .card_store import CardStore
from .clock import Clock, SystemClock
from .defaults import get_default_cards
from .errors import StoreUnavailable
from .scheduler import ReviewResult, SM2Scheduler
from .session_state import SessionSnapshot, SessionStateStore

# =============================================================================
# Configuration & Views
# =============================================================================


@dataclass
class SessionConfig:
    """Configuration for session assembly."""

    new_cards_limit: int = 20
    review_cards_limit: int = 30  # Unused new-card quota is added on top
    review_horizon_days: int = 7  # Pad with cards due within this window
    load_timeout_ms: int = 3000

    @property
    def max_session_size(self) -> int:
        return self.new_cards_limit + self.review_cards_limit


class SessionPhase(Enum):
    """Where the review session is in its lifecycle."""

    NO_SESSION = "no_session"
    ACTIVE = "active"
    COMPLETED = "completed"  # Finished today, no reassembly until tomorrow


@dataclass(frozen=True)
class CurrentCard:
    """The card to show next and which side faces the user."""

    card: Card
    is_front_to_back: bool


@dataclass(frozen=True)
class SessionStatistics:
    """Progress counters for display."""

    total_cards: int
    due_today: int
    total_in_session: int
    completed_in_session: int


def review_priority(card: Card) -> tuple[bool, datetime]:
    """Sort key: lapsed cards first, then earliest due."""
    return (card.interval != 0, card.next_review_date)


def prioritize_reviews(cards: Iterable[Card]) -> list[Card]:
    """Stable-sort review candidates by urgency."""
    return sorted(cards, key=review_priority)


# =============================================================================
# Session Manager
# =============================================================================


class SessionManager:
    """
    Stateful owner of the card collection and the active review session.

    All mutation goes through this class. Every change to the collection is
    persisted in full through the card store; the session queue is
    snapshotted through the session-state store after every change.
    """

    def __init__(
        self,
        card_store: CardStore,
        session_store: SessionStateStore,
        scheduler: SM2Scheduler | None = None,
        config: SessionConfig | None = None,
        clock: Clock | None = None,
        rng: random.Random | None = None,
        default_cards: Callable[[datetime], list[Card]] = get_default_cards,
    ):
        """
        Initialize the session manager.

        Args:
            card_store: Persistence for the card collection
            session_store: Persistence for the session snapshot and completion guard
            scheduler: SM2Scheduler (creates default if None)
            config: Session assembly configuration
            clock: Time source (wall clock if None)
            rng: Random source for shuffling and card direction
            default_cards: Factory for the starter deck
        """
        self.card_store = card_store
        self.session_store = session_store
        self.scheduler = scheduler or SM2Scheduler()
        self.config = config or SessionConfig()
        self.clock = clock or SystemClock()
        self.rng = rng or random.Random()
        self._default_cards = default_cards

        self._cards: list[Card] = []
        self._session_cards: list[Card] = []
        self._current_index = 0
        self._initial_session_size = 0
        self._is_front_to_back = True
        self._phase = SessionPhase.NO_SESSION

        self.is_loading = False
        self.is_initialized = False
        self.storage_failed = False
        self._init_lock = asyncio.Lock()

    # =========================================================================
    # Read-only Views
    # =========================================================================

    @property
    def cards(self) -> list[Card]:
        return list(self._cards)

    @property
    def session_cards(self) -> list[Card]:
        return list(self._session_cards)

    @property
    def current_card_index(self) -> int:
        return self._current_index

    @property
    def initial_session_size(self) -> int:
        return self._initial_session_size

    @property
    def is_front_to_back(self) -> bool:
        return self._is_front_to_back

    @property
    def state(self) -> SessionPhase:
        return self._phase

    @property
    def current_card(self) -> CurrentCard | None:
        """The card at the cursor with its presentation direction."""
        if self._current_index >= len(self._session_cards):
            return None
        return CurrentCard(
            card=self._session_cards[self._current_index],
            is_front_to_back=self._is_front_to_back,
        )

    @property
    def due_cards(self) -> list[Card]:
        """Collection cards due right now."""
        now = self.clock.now()
        return [card for card in self._cards if card.is_due(now)]

    @property
    def statistics(self) -> SessionStatistics:
        if self._initial_session_size > 0:
            completed = max(0, self._initial_session_size - len(self._session_cards))
        else:
            completed = 0

        return SessionStatistics(
            total_cards=len(self._cards),
            due_today=len(self.due_cards),
            total_in_session=self._initial_session_size,
            completed_in_session=completed,
        )

    def get_card(self, card_id: str) -> Card | None:
        index = self._find_index(card_id)
        return None if index is None else self._cards[index]

    # =========================================================================
    # Startup
    # =========================================================================

    async def initialize(self) -> None:
        """
        Load the collection and restore or assemble a session.

        Runs once; later calls return immediately. If startup raises, the
        manager stays uninitialized so it can be retried.
        """
        async with self._init_lock:
            if self.is_initialized:
                return

            self.is_loading = True
            try:
                await self._load_cards()

                restored = self._restore_session()
                if not restored:
                    if not self._cards:
                        logger.info("Collection is empty, no session assembled")
                    elif self.should_assemble_new_session():
                        self._assemble_session()
                    else:
                        self._phase = SessionPhase.COMPLETED
                        logger.info("Session already completed today, not assembling a new one")

                self.is_initialized = True
            finally:
                self.is_loading = False

    async def _load_cards(self) -> None:
        """Load the collection, bounded by the configured deadline."""
        timeout = self.config.load_timeout_ms / 1000

        try:
            stored = await asyncio.wait_for(self.card_store.load(), timeout=timeout)
        except (asyncio.TimeoutError, StoreUnavailable) as exc:
            logger.warning(f"Card store unavailable, using default deck: {exc!r}")
            self._cards = self._default_cards(self.clock.now())
            self.storage_failed = True
            return

        if stored:
            self._cards = list(stored)
            logger.info(f"Loaded {len(self._cards)} cards")
        else:
            self._cards = self._default_cards(self.clock.now())
            logger.info(f"Card store empty, installed {len(self._cards)} default cards")
            await self._save_cards()

    def _restore_session(self) -> bool:
        """Resume a persisted session. Returns True if one was restored."""
        snapshot = self.session_store.load_snapshot()
        if snapshot is None or not snapshot.is_resumable:
            return False

        self._session_cards = list(snapshot.cards)
        self._initial_session_size = snapshot.size
        self._current_index = snapshot.index if snapshot.index < len(snapshot.cards) else 0
        self._is_front_to_back = snapshot.direction
        self._phase = SessionPhase.ACTIVE

        logger.info(
            f"Resumed session: {len(self._session_cards)} of "
            f"{self._initial_session_size} cards remaining"
        )
        return True

    # =========================================================================
    # Session Assembly
    # =========================================================================

    def should_assemble_new_session(self) -> bool:
        """
        Check the completion guard.

        A session completed earlier today blocks assembly. A completion from
        an earlier day is cleared and assembly is allowed.
        """
        completed_at = self.session_store.load_completion_guard()
        if completed_at is None:
            return True

        if completed_at.date() == self.clock.now().date():
            return False

        self.session_store.clear_completion_guard()
        return True

    def start_session(self) -> bool:
        """
        Assemble a new session if none is active and the guard allows it.

        Returns:
            True if a non-empty session was assembled
        """
        if self._session_cards:
            return False
        if not self._cards or not self.should_assemble_new_session():
            return False

        self._assemble_session()
        return bool(self._session_cards)

    def _assemble_session(self) -> None:
        """
        Build the session queue.

        Selection is priority-ordered (new quota first, unused quota handed
        to reviews, lapsed and overdue reviews ahead of upcoming ones), then
        the selection is shuffled for presentation.
        """
        now = self.clock.now()
        horizon = now + timedelta(days=self.config.review_horizon_days)

        # 1. New cards
        new_cards = [card for card in self._cards if card.repetition_count == 0]
        self.rng.shuffle(new_cards)
        limited_new = new_cards[: self.config.new_cards_limit]
        shortfall = self.config.new_cards_limit - len(limited_new)

        # 2. Review cards: due now, then due within the horizon
        review_cards = [card for card in self._cards if card.repetition_count > 0]
        due = [card for card in review_cards if card.next_review_date <= now]
        upcoming = [card for card in review_cards if now < card.next_review_date <= horizon]
        self.rng.shuffle(due)
        self.rng.shuffle(upcoming)

        review_limit = self.config.review_cards_limit + shortfall
        limited_review = prioritize_reviews(due + upcoming)[:review_limit]

        # 3. Presentation order is random
        session = [card.copy() for card in limited_new + limited_review]
        self.rng.shuffle(session)

        self._session_cards = session
        self._initial_session_size = len(session)
        self._current_index = 0
        self._is_front_to_back = self.rng.random() > 0.5
        self._phase = SessionPhase.ACTIVE if session else SessionPhase.NO_SESSION

        self._save_session_state()

        logger.info(
            f"Session assembled: {len(limited_new)} new + {len(limited_review)} review "
            f"= {len(session)} cards ({len(due)} due, {len(upcoming)} upcoming)"
        )

    # =========================================================================
    # Reviewing
    # =========================================================================

    async def process_review(self, card: Card, quality: int) -> ReviewResult:
        """
        Grade the current card and advance the session.

        Args:
            card: The card being answered
            quality: SM-2 grade (0-5)

        Returns:
            The new scheduling parameters
        """
        now = self.clock.now()
        index = self._find_index(card.id)
        current = self._cards[index] if index is not None else card

        result = self.scheduler.score(current, quality, now)

        if index is not None:
            self._cards[index] = replace(
                current,
                repetition_count=result.repetition_count,
                ease_factor=result.ease_factor,
                interval=result.interval,
                next_review_date=result.next_review_date,
            )
        else:
            logger.warning(f"Reviewed card {card.id} is not in the collection")

        logger.debug(
            f"Recorded review for {card.id}: quality={quality}, "
            f"next_review={result.next_review_date}, interval={result.interval}d"
        )

        self._advance_session(quality, now)
        await self._save_cards()

        return result

    def _advance_session(self, quality: int, now: datetime) -> None:
        if not self._session_cards:
            return

        if self._current_index >= len(self._session_cards):
            self._current_index = 0

        reviewed = self._session_cards.pop(self._current_index)
        if not self.scheduler.is_passing(quality):
            self._session_cards.append(reviewed)

        if not self._session_cards:
            self._complete_session(now)
            return

        if self._current_index >= len(self._session_cards):
            self._current_index = 0
        self._is_front_to_back = self.rng.random() > 0.5
        self._save_session_state()

    def _complete_session(self, now: datetime) -> None:
        self.session_store.clear_snapshot()
        self.session_store.save_completion_guard(now)

        logger.info(f"Session completed: {self._initial_session_size} cards reviewed")

        self._current_index = 0
        self._initial_session_size = 0
        self._phase = SessionPhase.COMPLETED

    # =========================================================================
    # Collection CRUD
    # =========================================================================

    async def add_card(
        self,
        word: str,
        translation: str = "",
        meanings: Sequence[str] | None = None,
    ) -> bool:
        """
        Add a new card to the collection.

        Args:
            word: Front-side content
            translation: Back-side content
            meanings: Additional senses

        Returns:
            False if a card with the same word (ignoring case and
            surrounding whitespace) already exists
        """
        normalized = word.strip().lower()
        if any(existing.word.strip().lower() == normalized for existing in self._cards):
            logger.info(f"Not adding duplicate card {word!r}")
            return False

        initial = self.scheduler.initial_state(self.clock.now())
        card = Card(
            id=generate_card_id(),
            word=word.strip(),
            translation=translation,
            meanings=list(meanings or []),
            repetition_count=initial.repetition_count,
            ease_factor=initial.ease_factor,
            interval=initial.interval,
            next_review_date=initial.next_review_date,
        )
        self._cards.append(card)

        await self._save_cards()
        return True

    async def delete_card(self, card_id: str) -> bool:
        """
        Remove a card from the collection and the live session.

        Emptying the session this way is not a completion: the completion
        guard is cleared, so a new session can be assembled.

        Returns:
            False if no card has this id
        """
        index = self._find_index(card_id)
        if index is None:
            return False

        del self._cards[index]

        remaining = [card for card in self._session_cards if card.id != card_id]
        was_in_session = len(remaining) < len(self._session_cards)
        self._session_cards = remaining

        if self._current_index >= len(self._session_cards):
            self._current_index = 0

        if self._session_cards:
            self._initial_session_size = len(self._session_cards)
            self._save_session_state()
        elif was_in_session:
            self._initial_session_size = 0
            self.session_store.clear_snapshot()
            self.session_store.clear_completion_guard()
            self._phase = SessionPhase.NO_SESSION
            logger.info("Session emptied by deletion")

        await self._save_cards()
        return True

    async def update_card(self, updated: Card) -> bool:
        """
        Replace a card's content. Scheduling parameters are kept as stored.

        Returns:
            False if no card has this id
        """
        index = self._find_index(updated.id)
        if index is None:
            return False

        self._cards[index] = replace(
            self._cards[index],
            word=updated.word,
            translation=updated.translation,
            meanings=list(updated.meanings),
        )

        for session_card in self._session_cards:
            if session_card.id == updated.id:
                session_card.word = updated.word
                session_card.translation = updated.translation
                session_card.meanings = list(updated.meanings)

        await self._save_cards()
        if self._session_cards:
            self._save_session_state()
        return True

    # =========================================================================
    # Persistence
    # =========================================================================

    async def _save_cards(self) -> None:
        """Persist the full collection unless storage has been disabled."""
        if self.storage_failed:
            logger.debug("Storage disabled, skipping card save")
            return

        try:
            await self.card_store.save(list(self._cards))
        except StoreUnavailable as exc:
            logger.error(f"Failed to save cards, disabling storage: {exc}")
            self.storage_failed = True

    def _save_session_state(self) -> None:
        self.session_store.save_snapshot(
            SessionSnapshot(
                cards=list(self._session_cards),
                size=self._initial_session_size,
                index=self._current_index,
                direction=self._is_front_to_back,
            )
        )

    def _find_index(self, card_id: str) -> int | None:
        for i, card in enumerate(self._cards):
            if card.id == card_id:
                return i
        return None

    # =========================================================================
    # Shutdown
    # =========================================================================

    def close(self) -> None:
        """Release the stores' database connections."""
        self.card_store.close()
        self.session_store.close()
        logger.debug("Session manager closed")
