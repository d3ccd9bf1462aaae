"""Drives one study session over a card collection."""

import logging
import random
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple, Union

from .core import Card, Rating, ReviewLog
from .queue import StudyQueue, build_study_queue
from .scheduler import Scheduler

logger = logging.getLogger(__name__)


class StudySession:
    """Walks a learner through the study queue, one rating at a time.

    The session keeps its own copy of the collection. Each answer replaces the
    rated card in that copy; when the queue runs dry it is rebuilt from the
    updated collection so cards whose learning step has elapsed come back.
    """

    def __init__(
        self,
        cards: Iterable[Card],
        scheduler: Optional[Scheduler] = None,
        now: Optional[datetime] = None,
        rng: Optional[random.Random] = None,
    ):
        self.scheduler = scheduler or Scheduler()
        self.rng = rng or random.Random()
        self.cards: Dict[str, Card] = {card.id: card for card in cards}
        self.completed = 0
        self.stats: Dict[str, int] = {rating.name.lower(): 0 for rating in Rating}
        self._pending: List[Card] = []
        self.queue: StudyQueue = self._rebuild(now or datetime.now(timezone.utc))

    def _rebuild(self, now: datetime) -> StudyQueue:
        config = self.scheduler.config
        queue = build_study_queue(
            self.cards.values(),
            now,
            rng=self.rng,
            new_limit=config.new_cards_per_session,
            review_limit=config.reviews_per_session,
        )
        self._pending = list(queue.iter_cards())
        return queue

    @property
    def current(self) -> Optional[Card]:
        """The card to show next, or None when nothing is left."""
        return self._pending[0] if self._pending else None

    @property
    def remaining(self) -> int:
        return len(self._pending)

    @property
    def finished(self) -> bool:
        return not self._pending

    def labels(self, now: datetime) -> Dict[str, str]:
        """Preview labels for the four rating buttons of the current card."""
        if self.current is None:
            return {}
        return self.scheduler.preview_labels(self.current, now)

    def answer(self, rating: Union[Rating, int], now: datetime) -> Tuple[Card, ReviewLog]:
        """Rates the current card and moves on to the next one.

        Args:
            rating: The learner's rating (1-4).
            now: Time of the rating.

        Returns:
            The updated card and its review log. Persisting them is up to the caller.

        Raises:
            LookupError: If the session has no card left to rate.
            InvalidRating: If `rating` is not one of the four ratings.
        """
        card = self.current
        if card is None:
            raise LookupError("No card left to review in this session")

        updated, review_log = self.scheduler.review_card(card, rating, now)
        self.cards[updated.id] = updated
        self.stats[review_log.rating.name.lower()] += 1
        self.completed += 1
        self._pending.pop(0)

        if not self._pending:
            self.queue = self._rebuild(now)
            if self._pending:
                logger.info("Session queue rebuilt with %d cards", len(self._pending))
        return updated, review_log
