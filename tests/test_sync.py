"""Unit tests for vocabulary record conversion."""

from datetime import datetime, timezone

import pytest

from stepcards.config import SchedulerConfig
from stepcards.core import CardState, Rating
from stepcards.exceptions import InvalidCardState, MalformedCard
from stepcards.sync import VocabularyRecord, card_from_record, card_to_update


class TestCardFromRecord:
    def test_restores_persisted_state(self) -> None:
        record = {
            "id": "v1",
            "word": "gato",
            "translation": "cat",
            "context": "El gato duerme.",
            "status": "learning",
            "srsState": "review",
            "srsEase": 2.2,
            "srsInterval": 12,
            "srsStepIndex": 0,
            "srsDue": "2024-03-10T08:15:30.250000Z",
            "srsReviews": 6,
            "srsLapses": 1,
            "srsLastReview": "2024-02-27T08:15:30.250000Z",
        }
        card = card_from_record(record)

        assert card.state == CardState.REVIEW
        assert card.ease == 2.2
        assert card.interval == 12
        assert card.reviews == 6
        assert card.lapses == 1
        assert card.context == "El gato duerme."
        assert card.due == datetime(2024, 3, 10, 8, 15, 30, 250000, tzinfo=timezone.utc)

    def test_missing_counters_fall_back_to_new_card_values(self) -> None:
        record = {
            "id": "v2",
            "word": "perro",
            "translation": "dog",
            "srsState": "learning",
            "srsDue": "2024-03-10T08:00:00+00:00",
        }
        card = card_from_record(record, config=SchedulerConfig(starting_ease=2.3))

        assert card.state == CardState.LEARNING
        assert card.ease == 2.3
        assert card.interval == 0
        assert card.step_index == 0
        assert card.reviews == 0
        assert card.lapses == 0
        assert card.last_review is None

    def test_record_without_schedule_becomes_new_card(self, now) -> None:
        record = VocabularyRecord(id="v3", word="casa", translation="house")
        card = card_from_record(record, now=now)

        assert card.state == CardState.NEW
        assert card.due == now
        assert card.ease == 2.5

    def test_unknown_state_is_rejected(self) -> None:
        record = {
            "id": "v4",
            "word": "sol",
            "translation": "sun",
            "srsState": "suspended",
            "srsDue": "2024-03-10T08:00:00Z",
        }
        with pytest.raises(InvalidCardState):
            card_from_record(record)

    @pytest.mark.parametrize(
        "field, value",
        [("srsEase", "fast"), ("srsInterval", "ten"), ("srsInterval", -3), ("srsDue", "yesterday")],
    )
    def test_malformed_fields_are_rejected(self, field, value) -> None:
        record = {
            "id": "v5",
            "word": "luna",
            "translation": "moon",
            "srsState": "review",
            "srsDue": "2024-03-10T08:00:00Z",
        }
        record[field] = value
        with pytest.raises(MalformedCard):
            card_from_record(record)


class TestCardToUpdate:
    def test_payload_uses_api_field_names(self, scheduler, make_card, now) -> None:
        card = scheduler.next_card(make_card(id="v6"), Rating.GOOD, now)
        payload = card_to_update(card)

        assert payload["id"] == "v6"
        assert payload["srsState"] == "learning"
        assert payload["srsStepIndex"] == 1
        assert payload["srsReviews"] == 1
        assert isinstance(payload["srsDue"], str)

    def test_payload_round_trips(self, make_card, now) -> None:
        card = make_card(
            id="v7",
            state=CardState.RELEARNING,
            ease=1.85,
            interval=9,
            due=datetime(2024, 3, 1, 12, 0, 0, 987654, tzinfo=timezone.utc),
            reviews=11,
            lapses=2,
            last_review=now,
        )
        payload = card_to_update(card)
        payload.update(word=card.word, translation=card.translation)

        assert card_from_record(payload).model_dump() == card.model_dump()
