"""Shared fixtures for the StepCards test suite."""

from datetime import datetime, timezone
from typing import Callable

import pytest

from stepcards.core import Card, CardState
from stepcards.scheduler import Scheduler

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

ENV_KEYS = [
    "STEPCARDS_DB_PATH",
    "STEPCARDS_LEARNING_STEPS",
    "STEPCARDS_RELEARNING_STEPS",
    "STEPCARDS_GRADUATING_INTERVAL",
    "STEPCARDS_EASY_INTERVAL",
    "STEPCARDS_STARTING_EASE",
    "STEPCARDS_MAX_INTERVAL",
    "STEPCARDS_NEW_PER_SESSION",
    "STEPCARDS_REVIEWS_PER_SESSION",
]


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def scheduler() -> Scheduler:
    return Scheduler()


@pytest.fixture
def make_card() -> Callable[..., Card]:
    """Returns a factory building cards with sensible defaults."""

    def _make_card(**overrides) -> Card:
        fields = {
            "id": "card-1",
            "word": "hola",
            "translation": "hello",
            "state": CardState.NEW,
            "due": NOW,
        }
        fields.update(overrides)
        return Card(**fields)

    return _make_card


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Removes StepCards variables from the environment and isolates the working directory."""
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    return monkeypatch
