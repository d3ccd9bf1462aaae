"""Step-based SM-2 scheduling: state transitions and due-time previews."""

import logging
import math
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional, Tuple, Union

from .config import SchedulerConfig
from .core import Card, CardState, Rating, ReviewLog, ensure_utc, round_half_up
from .exceptions import InvalidCardState, InvalidRating, MalformedCard

logger = logging.getLogger(__name__)

Updates = Dict[str, Any]
Handler = Callable[[Card, datetime], Updates]


def validate_rating(rating: Union[Rating, int]) -> Rating:
    """Converts `rating` to a Rating, rejecting anything outside 1-4.

    Raises:
        InvalidRating: If the value is not one of the four ratings.
    """
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidRating(f"Rating must be an integer between 1 and 4, got {rating!r}")
    try:
        return Rating(rating)
    except ValueError as e:
        raise InvalidRating(f"Rating must be between 1 and 4, got {rating!r}") from e


def validate_card(card: Card) -> CardState:
    """Checks the fields the scheduler reads and returns the card's state.

    Cards built through the normal constructor always pass. The checks matter
    for cards assembled with `Card.model_construct` or copied with unchecked
    updates, for example after loading corrupted data.

    Raises:
        InvalidCardState: If the state is not one of the four known tags.
        MalformedCard: If ease, interval, step_index, the counters or due are missing or of the wrong type.
    """
    state = getattr(card, "state", None)
    if not isinstance(state, CardState):
        try:
            state = CardState(state)
        except ValueError as e:
            raise InvalidCardState(
                f"Card {getattr(card, 'id', '?')!r} has unknown state {state!r}"
            ) from e

    ease = getattr(card, "ease", None)
    if isinstance(ease, bool) or not isinstance(ease, (int, float)) or not math.isfinite(ease):
        raise MalformedCard(f"Card {getattr(card, 'id', '?')!r} has non-numeric ease {ease!r}")
    for name in ("interval", "step_index", "reviews", "lapses"):
        value = getattr(card, name, None)
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise MalformedCard(
                f"Card {getattr(card, 'id', '?')!r} has invalid {name} {value!r}"
            )
    if not isinstance(getattr(card, "due", None), datetime):
        raise MalformedCard(f"Card {getattr(card, 'id', '?')!r} has no due timestamp")
    return state


def format_interval(delta: timedelta) -> str:
    """Formats a time span as a short label such as "10m", "3h", "4d", "2mo" or "1.5y"."""
    seconds = delta.total_seconds()
    minutes = round_half_up(seconds / 60)
    days = round_half_up(seconds / 86400)

    if minutes < 60:
        return f"{minutes}m"
    if minutes < 1440:
        return f"{round_half_up(minutes / 60)}h"
    if days < 30:
        return f"{days}d"
    if days < 365:
        return f"{round_half_up(days / 30)}mo"
    return f"{round_half_up(days * 10 / 365) / 10:.1f}y"


class Scheduler:
    """Schedules cards with SM-2 ease factors and discrete learning steps.

    NEW and LEARNING cards walk through `learning_steps` (minutes) until they
    graduate to REVIEW. REVIEW cards grow their interval (days) by their ease.
    A forgotten REVIEW card lapses into RELEARNING, walks `relearning_steps`
    and returns to REVIEW with a shortened interval.

    The scheduler holds no mutable state, so one instance can be shared freely.
    """

    def __init__(self, config: Optional[SchedulerConfig] = None):
        """Initializes the Scheduler.

        Args:
            config: Optional scheduler constants. Defaults to `SchedulerConfig()`.
        """
        self.config = config or SchedulerConfig()

        learning = {
            Rating.AGAIN: self._learning_again,
            Rating.HARD: self._learning_hard,
            Rating.GOOD: self._learning_good,
            Rating.EASY: self._learning_easy,
        }
        self._handlers: Dict[Tuple[CardState, Rating], Handler] = {
            **{(CardState.NEW, rating): handler for rating, handler in learning.items()},
            **{(CardState.LEARNING, rating): handler for rating, handler in learning.items()},
            (CardState.REVIEW, Rating.AGAIN): self._review_again,
            (CardState.REVIEW, Rating.HARD): self._review_hard,
            (CardState.REVIEW, Rating.GOOD): self._review_good,
            (CardState.REVIEW, Rating.EASY): self._review_easy,
            (CardState.RELEARNING, Rating.AGAIN): self._relearning_again,
            (CardState.RELEARNING, Rating.HARD): self._relearning_hard,
            (CardState.RELEARNING, Rating.GOOD): self._relearning_good,
            (CardState.RELEARNING, Rating.EASY): self._relearning_easy,
        }

    def review_card(
        self, card: Card, rating: Union[Rating, int], now: datetime
    ) -> Tuple[Card, ReviewLog]:
        """Applies one rating to a card.

        Args:
            card: The current snapshot of the card. It is not modified.
            rating: The learner's rating (1-4).
            now: Time of the rating. Every timestamp in the result derives from it.

        Returns:
            A tuple of the updated Card and a ReviewLog for this rating.

        Raises:
            InvalidRating: If `rating` is not one of the four ratings.
            InvalidCardState: If the card's state tag is unknown.
            MalformedCard: If the card's numeric fields are unusable.
        """
        rating = validate_rating(rating)
        state = validate_card(card)
        now = ensure_utc(now)

        updates = self._handlers[(state, rating)](card, now)
        updates["ease"] = self._clamp_ease(updates.get("ease", card.ease))
        updates.setdefault("state", state)
        updates["reviews"] = card.reviews + 1
        updates["last_review"] = now

        updated_card = card.model_copy(update=updates)

        logger.debug(
            "Card %s: %s + %s -> %s (interval=%d, ease=%.2f, due=%s)",
            card.id,
            state.value,
            rating.name,
            updated_card.state.value,
            updated_card.interval,
            updated_card.ease,
            updated_card.due.isoformat(),
        )

        review_log = ReviewLog(
            card_id=card.id,
            review_time=now,
            rating=rating,
            state_before=state,
            state_after=updated_card.state,
            ease=updated_card.ease,
            interval=updated_card.interval,
            due=updated_card.due,
        )
        return updated_card, review_log

    def next_card(self, card: Card, rating: Union[Rating, int], now: datetime) -> Card:
        """Returns only the updated card from `review_card`."""
        return self.review_card(card, rating, now)[0]

    def preview(self, card: Card, now: datetime) -> Dict[Rating, str]:
        """Forecasts how far each rating would push the card's due time.

        Each rating is computed on its own deep copy of `card`, so the four
        forecasts cannot affect each other or the caller's card.

        Args:
            card: The card about to be rated.
            now: Reference time for the forecast.

        Returns:
            A mapping from each Rating to a label such as "10m" or "4d".
        """
        now = ensure_utc(now)
        forecasts = {}
        for rating in Rating:
            scheduled = self.next_card(card.model_copy(deep=True), rating, now)
            forecasts[rating] = format_interval(scheduled.due - now)
        return forecasts

    def preview_labels(self, card: Card, now: datetime) -> Dict[str, str]:
        """Same as `preview`, keyed by lowercase rating name ("again", "hard", ...)."""
        return {rating.name.lower(): label for rating, label in self.preview(card, now).items()}

    # NEW and LEARNING

    def _learning_again(self, card: Card, now: datetime) -> Updates:
        return {
            "state": CardState.LEARNING,
            "step_index": 0,
            "due": now + self._step(self.config.learning_steps, 0),
        }

    def _learning_hard(self, card: Card, now: datetime) -> Updates:
        index = min(card.step_index, len(self.config.learning_steps) - 1)
        return {
            "state": CardState.LEARNING,
            "step_index": index,
            "due": now + self._step(self.config.learning_steps, index),
        }

    def _learning_good(self, card: Card, now: datetime) -> Updates:
        steps = self.config.learning_steps
        if card.step_index >= len(steps) - 1:
            return self._graduate(self.config.graduating_interval, now)
        index = card.step_index + 1
        return {
            "state": CardState.LEARNING,
            "step_index": index,
            "due": now + self._step(steps, index),
        }

    def _learning_easy(self, card: Card, now: datetime) -> Updates:
        updates = self._graduate(self.config.easy_interval, now)
        updates["ease"] = min(card.ease + self.config.ease_delta_easy, self.config.ease_ceiling)
        return updates

    # REVIEW

    def _review_again(self, card: Card, now: datetime) -> Updates:
        return {
            "state": CardState.RELEARNING,
            "step_index": 0,
            "lapses": card.lapses + 1,
            "ease": max(card.ease + self.config.ease_delta_again, self.config.min_ease),
            "due": now + self._step(self.config.relearning_steps, 0),
        }

    def _review_hard(self, card: Card, now: datetime) -> Updates:
        interval = self._hard_interval(card.interval)
        return {
            "ease": max(card.ease + self.config.ease_delta_hard, self.config.min_ease),
            "interval": interval,
            "due": now + timedelta(days=interval),
        }

    def _review_good(self, card: Card, now: datetime) -> Updates:
        interval = self._good_interval(card.interval, card.ease)
        return {"interval": interval, "due": now + timedelta(days=interval)}

    def _review_easy(self, card: Card, now: datetime) -> Updates:
        ease = min(card.ease + self.config.ease_delta_easy, self.config.ease_ceiling)
        interval = self._cap(round_half_up(card.interval * ease * self.config.easy_bonus))
        # EASY never schedules sooner than GOOD would have.
        interval = max(interval, self._good_interval(card.interval, card.ease))
        return {"ease": ease, "interval": interval, "due": now + timedelta(days=interval)}

    # RELEARNING

    def _relearning_again(self, card: Card, now: datetime) -> Updates:
        return {
            "state": CardState.RELEARNING,
            "step_index": 0,
            "due": now + self._step(self.config.relearning_steps, 0),
        }

    def _relearning_hard(self, card: Card, now: datetime) -> Updates:
        index = min(card.step_index, len(self.config.relearning_steps) - 1)
        return {
            "state": CardState.RELEARNING,
            "step_index": index,
            "due": now + self._step(self.config.relearning_steps, index),
        }

    def _relearning_good(self, card: Card, now: datetime) -> Updates:
        steps = self.config.relearning_steps
        if card.step_index >= len(steps) - 1:
            interval = max(1, round_half_up(card.interval * self.config.relearn_good_factor))
            return self._graduate(interval, now)
        index = card.step_index + 1
        return {
            "state": CardState.RELEARNING,
            "step_index": index,
            "due": now + self._step(steps, index),
        }

    def _relearning_easy(self, card: Card, now: datetime) -> Updates:
        interval = max(1, round_half_up(card.interval * self.config.relearn_easy_factor))
        return self._graduate(interval, now)

    # helpers

    def _graduate(self, interval: int, now: datetime) -> Updates:
        interval = self._cap(interval)
        return {
            "state": CardState.REVIEW,
            "step_index": 0,
            "interval": interval,
            "due": now + timedelta(days=interval),
        }

    def _hard_interval(self, interval: int) -> int:
        grown = round_half_up(interval * self.config.hard_interval_multiplier)
        return self._cap(max(interval + 1, grown))

    def _good_interval(self, interval: int, ease: float) -> int:
        grown = self._cap(round_half_up(interval * ease))
        # GOOD never schedules sooner than HARD would have. With interval 1 and
        # ease below 1.5, interval * ease rounds to 1 day and this lifts it to 2.
        return max(grown, self._hard_interval(interval))

    def _cap(self, interval: int) -> int:
        return max(1, min(interval, self.config.max_interval))

    def _clamp_ease(self, ease: float) -> float:
        return min(max(ease, self.config.min_ease), self.config.ease_ceiling)

    @staticmethod
    def _step(steps: Tuple[float, ...], index: int) -> timedelta:
        return timedelta(minutes=steps[index])
