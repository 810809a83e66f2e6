"""
SM-2 Spaced Repetition Scheduler.

Scores a single review and returns the card's next memory-strength
parameters. The scheduler is pure: it never touches storage and takes the
current time as an argument.

SM-2 Grade Scale:
0 - Complete blackout, wrong response
1 - Incorrect, but upon seeing answer remembered
2 - Incorrect, but answer seemed easy to recall
3 - Correct, but with significant difficulty
4 - Correct, with some hesitation
5 - Correct, with perfect recall
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from .card import Card

# =============================================================================
# SM-2 Algorithm
# =============================================================================


@dataclass
class SM2Config:
    """Configuration for SM-2 algorithm."""

    initial_ease_factor: float = 2.5
    minimum_ease_factor: float = 1.3
    first_interval: int = 1  # Days for first review
    second_interval: int = 6  # Days for second review
    short_interval_minutes: int = 10  # Retry delay after a lapse
    passing_grade: int = 3


@dataclass(frozen=True)
class ReviewResult:
    """Updated scheduling parameters for one reviewed card."""

    next_review_date: datetime
    ease_factor: float
    interval: int
    repetition_count: int


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves going up (not to even)."""
    return int(math.floor(value + 0.5))


class SM2Scheduler:
    """
    Implements the SM-2 spaced repetition algorithm.

    Each card carries:
    - Ease Factor (EF): How easy the card is (2.5 default, min 1.3)
    - Interval: Days until next review (0 after a lapse)
    - Repetitions: Consecutive correct recalls
    """

    def __init__(self, config: SM2Config | None = None):
        """
        Initialize SM-2 scheduler.

        Args:
            config: Custom configuration (uses defaults if None)
        """
        self.config = config or SM2Config()

    def is_passing(self, quality: int) -> bool:
        return quality >= self.config.passing_grade

    def score(self, card: Card, quality: int, now: datetime) -> ReviewResult:
        """
        Calculate the next review parameters for a graded card.

        Args:
            card: Card as it was before this review
            quality: User grade (0-5)
            now: Time of the review

        Returns:
            ReviewResult with new ease factor, interval, repetitions and due date
        """
        # EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02))
        ef_delta = 0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02)
        new_ef = max(self.config.minimum_ease_factor, card.ease_factor + ef_delta)

        if not self.is_passing(quality):
            # Failed - reset to beginning, retry within the same session
            return ReviewResult(
                next_review_date=now + timedelta(minutes=self.config.short_interval_minutes),
                ease_factor=new_ef,
                interval=0,
                repetition_count=0,
            )

        if card.repetition_count == 0:
            new_repetitions = 1
            new_interval = self.config.first_interval
        elif card.repetition_count == 1:
            new_repetitions = 2
            new_interval = self.config.second_interval
        else:
            new_repetitions = card.repetition_count + 1
            new_interval = round_half_up(card.interval * new_ef)

        return ReviewResult(
            next_review_date=now + timedelta(days=new_interval),
            ease_factor=new_ef,
            interval=new_interval,
            repetition_count=new_repetitions,
        )

    def initial_state(self, now: datetime) -> ReviewResult:
        """Scheduling parameters for a card that has never been reviewed."""
        return ReviewResult(
            next_review_date=now,
            ease_factor=self.config.initial_ease_factor,
            interval=0,
            repetition_count=0,
        )
