"""Core data model for the StepCards spaced repetition scheduler."""

import math
import uuid
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import SchedulerConfig


class Rating(IntEnum):
    """Represents the learner's recall rating for a flashcard.

    Attributes:
        AGAIN: The learner forgot the card (rating 1).
        HARD: The learner recalled the card with difficulty (rating 2).
        GOOD: The learner recalled the card well (rating 3).
        EASY: The learner recalled the card easily (rating 4).
    """

    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4


class CardState(str, Enum):
    """Scheduling state of a card. Values are the persisted tags."""

    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    RELEARNING = "relearning"


def ensure_utc(moment: datetime) -> datetime:
    """Returns `moment` as an aware UTC datetime. Naive values are taken as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def round_half_up(value: float) -> int:
    """Rounds to the nearest integer, with exact halves going up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


class Card(BaseModel):
    """Scheduling snapshot of one vocabulary item.

    Cards are immutable. The scheduler returns a new Card for every rating.

    Attributes:
        id: Unique identifier for the card.
        word: The word or phrase to be learned.
        translation: Translation shown on the back of the card.
        context: Optional snippet the word was captured from.
        state: Current scheduling state.
        ease: Multiplier applied to the interval on a GOOD review.
        interval: Days between reviews, 0 until the card first reaches REVIEW.
        step_index: Position in the active learning or relearning steps.
        due: Timestamp from which the card may be studied.
        reviews: Number of ratings ever applied.
        lapses: Number of times a REVIEW card was rated AGAIN.
        last_review: Timestamp of the most recent rating.
    """

    id: str = Field(..., description="Unique identifier for the card")
    word: str = Field(..., description="The word to learn")
    translation: str = Field(..., description="Translation of the word")
    context: Optional[str] = Field(default=None, description="Sentence the word was found in")
    state: CardState = Field(default=CardState.NEW, description="Scheduling state")
    ease: float = Field(default=2.5, description="Ease factor")
    interval: int = Field(default=0, ge=0, description="Review interval in days")
    step_index: int = Field(default=0, ge=0, description="Index into the active steps")
    due: datetime = Field(..., description="Next review timestamp")
    reviews: int = Field(default=0, ge=0, description="Number of ratings applied")
    lapses: int = Field(default=0, ge=0, description="Number of forgotten reviews")
    last_review: Optional[datetime] = Field(default=None, description="Last review timestamp")

    model_config = ConfigDict(frozen=True)

    @field_validator("due", "last_review")
    @classmethod
    def _normalise_timestamp(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return None
        return ensure_utc(value)

    @classmethod
    def create(
        cls,
        id: str,
        word: str,
        translation: str,
        context: Optional[str] = None,
        now: Optional[datetime] = None,
        config: Optional[SchedulerConfig] = None,
    ) -> "Card":
        """Creates a brand-new card that is immediately available for study.

        Args:
            id: Identifier of the vocabulary entry.
            word: The word to learn.
            translation: Its translation.
            context: Optional sentence the word was captured from.
            now: Creation time, defaults to the current UTC time.
            config: Scheduler constants supplying the starting ease.

        Returns:
            A Card in the NEW state, due at `now`.
        """
        config = config or SchedulerConfig()
        return cls(
            id=id,
            word=word,
            translation=translation,
            context=context,
            state=CardState.NEW,
            ease=config.starting_ease,
            interval=0,
            step_index=0,
            due=now or datetime.now(timezone.utc),
            reviews=0,
            lapses=0,
            last_review=None,
        )

    def is_due(self, now: datetime) -> bool:
        return self.due <= ensure_utc(now)


class ReviewLog(BaseModel):
    """Records a single rating applied to a card.

    Attributes:
        id: Unique identifier for the review log entry.
        card_id: The ID of the card that was reviewed.
        review_time: The timestamp when the rating was applied.
        rating: The learner's rating.
        state_before: Card state before the rating.
        state_after: Card state after the rating.
        ease: Card ease after the rating.
        interval: Card interval in days after the rating.
        due: Next due timestamp after the rating.
    """

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique identifier for the review log",
    )
    card_id: str = Field(..., description="ID of the reviewed card")
    review_time: datetime = Field(..., description="When the rating was applied")
    rating: Rating = Field(..., description="Learner's rating of recall")
    state_before: CardState = Field(..., description="State before the rating")
    state_after: CardState = Field(..., description="State after the rating")
    ease: float = Field(..., description="Ease after the rating")
    interval: int = Field(..., description="Interval in days after the rating")
    due: datetime = Field(..., description="Due timestamp after the rating")

    model_config = ConfigDict(frozen=True)

    @field_validator("review_time", "due")
    @classmethod
    def _normalise_timestamp(cls, value: datetime) -> datetime:
        return ensure_utc(value)
