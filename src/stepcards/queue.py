"""Builds the per-session study queue from a learner's card collection."""

import logging
import random
from datetime import datetime
from typing import Iterable, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .core import Card, CardState, ensure_utc
from .exceptions import SchedulingError
from .scheduler import validate_card

logger = logging.getLogger(__name__)

NEW_CARD_LIMIT = 20
REVIEW_CARD_LIMIT = 200


class QueueCounts(BaseModel):
    """Sizes of the three buckets actually returned in a StudyQueue."""

    new: int = 0
    learning: int = 0
    review: int = 0

    model_config = ConfigDict(frozen=True)


class StudyQueue(BaseModel):
    """Cards actionable right now, split into new, learning and review buckets.

    Callers are expected to drain learning first, then review, then new;
    `iter_cards` yields them in that order.
    """

    new_cards: List[Card] = Field(default_factory=list)
    learning_cards: List[Card] = Field(default_factory=list)
    review_cards: List[Card] = Field(default_factory=list)
    counts: QueueCounts = Field(default_factory=QueueCounts)

    @property
    def total(self) -> int:
        return len(self.new_cards) + len(self.learning_cards) + len(self.review_cards)

    def iter_cards(self) -> Iterator[Card]:
        yield from self.learning_cards
        yield from self.review_cards
        yield from self.new_cards


def build_study_queue(
    cards: Iterable[Card],
    now: datetime,
    rng: Optional[random.Random] = None,
    new_limit: int = NEW_CARD_LIMIT,
    review_limit: int = REVIEW_CARD_LIMIT,
) -> StudyQueue:
    """Partitions a card collection into the buckets for one study session.

    Args:
        cards: The learner's full collection. It is not modified.
        now: Reference time deciding which cards are due.
        rng: Random source used to shuffle new cards. Pass a seeded
             `random.Random` for reproducible order.
        new_limit: Maximum number of new cards returned.
        review_limit: Maximum number of review cards returned.

    Returns:
        A StudyQueue. Learning and review cards are sorted by due time, oldest
        first; new cards are shuffled. Learning cards are never capped.
        Cards that are not due, NEW cards that were already reviewed, and
        malformed cards are left out.
    """
    now = ensure_utc(now)
    rng = rng or random.Random()

    new_cards: List[Card] = []
    learning: List[Tuple[datetime, Card]] = []
    review: List[Tuple[datetime, Card]] = []
    skipped = 0

    for card in cards:
        try:
            state = validate_card(card)
        except SchedulingError as e:
            logger.debug("Skipping malformed card: %s", e)
            skipped += 1
            continue

        if state is CardState.NEW:
            if card.reviews == 0:
                new_cards.append(card)
            else:
                logger.debug("Skipping NEW card %r with %d reviews", card.id, card.reviews)
                skipped += 1
            continue

        due = ensure_utc(card.due)
        if due > now:
            continue

        if state is CardState.REVIEW:
            review.append((due, card))
        else:
            learning.append((due, card))

    learning.sort(key=lambda item: item[0])
    review.sort(key=lambda item: item[0])
    rng.shuffle(new_cards)

    new_cards = new_cards[:new_limit]
    learning_cards = [card for _, card in learning]
    review_cards = [card for _, card in review[:review_limit]]

    counts = QueueCounts(
        new=len(new_cards),
        learning=len(learning_cards),
        review=len(review_cards),
    )
    logger.debug(
        "Study queue: %d new, %d learning, %d review (%d skipped)",
        counts.new,
        counts.learning,
        counts.review,
        skipped,
    )
    return StudyQueue(
        new_cards=new_cards,
        learning_cards=learning_cards,
        review_cards=review_cards,
        counts=counts,
    )
