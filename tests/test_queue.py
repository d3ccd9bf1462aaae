"""Unit tests for the study queue builder."""

import random
from datetime import timedelta

import pytest

from stepcards.core import Card, CardState
from stepcards.queue import QueueCounts, build_study_queue


@pytest.fixture
def collection(make_card, now):
    return [
        make_card(id="new-1"),
        make_card(id="new-2"),
        make_card(id="new-reviewed", reviews=2),
        make_card(id="learn-late", state=CardState.LEARNING, reviews=1, due=now - timedelta(minutes=1)),
        make_card(id="learn-early", state=CardState.LEARNING, reviews=1, due=now - timedelta(minutes=30)),
        make_card(id="learn-future", state=CardState.LEARNING, reviews=1, due=now + timedelta(minutes=5)),
        make_card(id="relearn", state=CardState.RELEARNING, interval=3, reviews=6, due=now - timedelta(minutes=10)),
        make_card(id="review-due", state=CardState.REVIEW, interval=3, reviews=3, due=now - timedelta(days=1)),
        make_card(id="review-now", state=CardState.REVIEW, interval=3, reviews=3, due=now),
        make_card(id="review-future", state=CardState.REVIEW, interval=3, reviews=3, due=now + timedelta(days=2)),
    ]


def _ids(cards):
    return [card.id for card in cards]


class TestBuildStudyQueue:
    def test_empty_collection(self, now) -> None:
        queue = build_study_queue([], now, rng=random.Random(0))

        assert queue.new_cards == []
        assert queue.learning_cards == []
        assert queue.review_cards == []
        assert queue.counts == QueueCounts(new=0, learning=0, review=0)
        assert queue.total == 0

    def test_partitions_by_state_and_due(self, collection, now) -> None:
        queue = build_study_queue(collection, now, rng=random.Random(0))

        assert sorted(_ids(queue.new_cards)) == ["new-1", "new-2"]
        assert _ids(queue.learning_cards) == ["learn-early", "relearn", "learn-late"]
        assert _ids(queue.review_cards) == ["review-due", "review-now"]
        assert queue.counts == QueueCounts(new=2, learning=3, review=2)

    def test_does_not_modify_collection(self, collection, now) -> None:
        before = [card.model_dump() for card in collection]
        order = _ids(collection)

        build_study_queue(collection, now, rng=random.Random(0))

        assert _ids(collection) == order
        assert [card.model_dump() for card in collection] == before

    def test_ties_keep_collection_order(self, make_card, now) -> None:
        cards = [
            make_card(id=f"r{index}", state=CardState.REVIEW, interval=1, reviews=1, due=now)
            for index in range(5)
        ]
        queue = build_study_queue(cards, now, rng=random.Random(0))
        assert _ids(queue.review_cards) == ["r0", "r1", "r2", "r3", "r4"]

    def test_review_bucket_is_capped(self, make_card, now) -> None:
        rng = random.Random(42)
        cards = [
            make_card(
                id=f"r{index}",
                state=CardState.REVIEW,
                interval=5,
                reviews=2,
                due=now - timedelta(minutes=rng.randint(0, 100000)),
            )
            for index in range(500)
        ]
        queue = build_study_queue(cards, now, rng=random.Random(0))
        dues = [card.due for card in queue.review_cards]

        assert len(queue.review_cards) == 200
        assert queue.counts.review == 200
        assert dues == sorted(dues)
        assert dues[-1] <= min(card.due for card in cards if card not in queue.review_cards)

    def test_new_bucket_is_capped_but_learning_is_not(self, make_card, now) -> None:
        cards = [make_card(id=f"n{index}") for index in range(50)]
        cards += [
            make_card(id=f"l{index}", state=CardState.LEARNING, reviews=1, due=now)
            for index in range(300)
        ]
        queue = build_study_queue(cards, now, rng=random.Random(0))

        assert queue.counts == QueueCounts(new=20, learning=300, review=0)
        assert len(queue.new_cards) == 20
        assert len(queue.learning_cards) == 300

    def test_custom_limits(self, make_card, now) -> None:
        cards = [make_card(id=f"n{index}") for index in range(10)]
        queue = build_study_queue(cards, now, rng=random.Random(0), new_limit=3)
        assert queue.counts.new == 3

    def test_shuffle_is_reproducible_with_seed(self, make_card, now) -> None:
        cards = [make_card(id=f"n{index}") for index in range(15)]

        first = build_study_queue(cards, now, rng=random.Random(123))
        second = build_study_queue(cards, now, rng=random.Random(123))

        expected = list(cards)
        random.Random(123).shuffle(expected)

        assert _ids(first.new_cards) == _ids(second.new_cards)
        assert _ids(first.new_cards) == _ids(expected)
        assert sorted(_ids(first.new_cards)) == sorted(_ids(cards))

    def test_malformed_cards_are_skipped(self, make_card, now) -> None:
        broken_state = Card.model_construct(
            id="broken", word="w", translation="t", state="archived", due=now, reviews=0
        )
        missing_due = Card.model_construct(
            id="no-due", word="w", translation="t", state=CardState.REVIEW, due=None, reviews=2
        )
        odd_reviews = Card.model_construct(
            id="odd", word="w", translation="t", state=CardState.NEW, due=now, reviews=None
        )
        no_ease = make_card(
            id="no-ease", state=CardState.REVIEW, interval=3, reviews=3, due=now - timedelta(days=1)
        ).model_copy(update={"ease": None})
        text_interval = make_card(
            id="text-interval", state=CardState.LEARNING, reviews=1, due=now - timedelta(minutes=5)
        ).model_copy(update={"interval": "x"})
        text_step = make_card(
            id="text-step", state=CardState.RELEARNING, interval=3, reviews=4, due=now - timedelta(minutes=5)
        ).model_copy(update={"step_index": "1"})
        cards = [broken_state, missing_due, odd_reviews, no_ease, text_interval, text_step, make_card(id="ok")]

        queue = build_study_queue(cards, now, rng=random.Random(0))

        assert _ids(queue.new_cards) == ["ok"]
        assert queue.learning_cards == []
        assert queue.review_cards == []
        assert queue.total == 1

    def test_iter_cards_follows_consumption_order(self, collection, now) -> None:
        queue = build_study_queue(collection, now, rng=random.Random(0))
        ordered = _ids(queue.iter_cards())

        assert ordered[:3] == _ids(queue.learning_cards)
        assert ordered[3:5] == _ids(queue.review_cards)
        assert ordered[5:] == _ids(queue.new_cards)
        assert queue.total == 7
