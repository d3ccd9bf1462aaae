"""Conversion between Cards and vocabulary records of the sync API.

The vocabulary API stores scheduling state next to each saved word in
camelCase ``srs*`` fields. Records without scheduling state describe words
that were captured but never studied.
"""

from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import SchedulerConfig
from .core import Card, CardState
from .exceptions import InvalidCardState, MalformedCard


class VocabularyRecord(BaseModel):
    """A saved vocabulary entry as returned by the vocabulary API."""

    id: str
    word: str
    translation: str
    context: Optional[str] = None
    srs_state: Optional[str] = Field(default=None, alias="srsState")
    srs_ease: Optional[float] = Field(default=None, alias="srsEase")
    srs_interval: Optional[int] = Field(default=None, alias="srsInterval")
    srs_step_index: Optional[int] = Field(default=None, alias="srsStepIndex")
    srs_due: Optional[datetime] = Field(default=None, alias="srsDue")
    srs_reviews: Optional[int] = Field(default=None, alias="srsReviews")
    srs_lapses: Optional[int] = Field(default=None, alias="srsLapses")
    srs_last_review: Optional[datetime] = Field(default=None, alias="srsLastReview")

    model_config = ConfigDict(populate_by_name=True)


class VocabularyUpdate(BaseModel):
    """Payload persisting a card's scheduling state back to the vocabulary API."""

    id: str
    srs_state: CardState = Field(..., alias="srsState")
    srs_ease: float = Field(..., alias="srsEase")
    srs_interval: int = Field(..., alias="srsInterval")
    srs_step_index: int = Field(..., alias="srsStepIndex")
    srs_due: datetime = Field(..., alias="srsDue")
    srs_reviews: int = Field(..., alias="srsReviews")
    srs_lapses: int = Field(..., alias="srsLapses")
    srs_last_review: Optional[datetime] = Field(default=None, alias="srsLastReview")

    model_config = ConfigDict(populate_by_name=True)


def card_from_record(
    record: Union[VocabularyRecord, Mapping[str, Any]],
    config: Optional[SchedulerConfig] = None,
    now: Optional[datetime] = None,
) -> Card:
    """Restores a Card from a vocabulary record.

    Records carrying both a state and a due time are restored, with missing
    counters defaulting to those of a new card. Anything else becomes a
    brand-new card due at `now`.

    Raises:
        InvalidCardState: If the record carries an unknown state tag.
        MalformedCard: If a scheduling field cannot be read.
    """
    config = config or SchedulerConfig()
    if not isinstance(record, VocabularyRecord):
        try:
            record = VocabularyRecord.model_validate(record)
        except ValidationError as e:
            raise MalformedCard(f"Unreadable vocabulary record: {e}") from e

    if not (record.srs_state and record.srs_due):
        return Card.create(
            id=record.id,
            word=record.word,
            translation=record.translation,
            context=record.context,
            now=now,
            config=config,
        )

    try:
        state = CardState(record.srs_state)
    except ValueError as e:
        raise InvalidCardState(
            f"Vocabulary {record.id!r} has unknown state {record.srs_state!r}"
        ) from e

    try:
        return Card(
            id=record.id,
            word=record.word,
            translation=record.translation,
            context=record.context,
            state=state,
            ease=record.srs_ease if record.srs_ease is not None else config.starting_ease,
            interval=record.srs_interval or 0,
            step_index=record.srs_step_index or 0,
            due=record.srs_due,
            reviews=record.srs_reviews or 0,
            lapses=record.srs_lapses or 0,
            last_review=record.srs_last_review,
        )
    except ValidationError as e:
        raise MalformedCard(f"Vocabulary {record.id!r} has invalid scheduling data: {e}") from e


def card_to_update(card: Card) -> Dict[str, Any]:
    """Builds the JSON update payload for a card's scheduling state."""
    update = VocabularyUpdate(
        id=card.id,
        srs_state=card.state,
        srs_ease=card.ease,
        srs_interval=card.interval,
        srs_step_index=card.step_index,
        srs_due=card.due,
        srs_reviews=card.reviews,
        srs_lapses=card.lapses,
        srs_last_review=card.last_review,
    )
    return update.model_dump(by_alias=True, mode="json")
