"""StepCards: SM-2 spaced repetition with learning steps for vocabulary flashcards."""

__version__ = "0.1.0"

from .config import SchedulerConfig, Settings, load_settings
from .core import Card, CardState, Rating, ReviewLog
from .database import CardStore
from .exceptions import (
    CardNotFoundError,
    ConfigurationError,
    InvalidCardState,
    InvalidRating,
    MalformedCard,
    SchedulingError,
    StepCardsError,
)
from .queue import QueueCounts, StudyQueue, build_study_queue
from .scheduler import Scheduler, format_interval
from .session import StudySession
from .sync import card_from_record, card_to_update

__all__ = [
    "Card",
    "CardState",
    "Rating",
    "ReviewLog",
    "Scheduler",
    "SchedulerConfig",
    "Settings",
    "load_settings",
    "format_interval",
    "StudyQueue",
    "QueueCounts",
    "build_study_queue",
    "StudySession",
    "CardStore",
    "card_from_record",
    "card_to_update",
    "StepCardsError",
    "SchedulingError",
    "InvalidRating",
    "InvalidCardState",
    "MalformedCard",
    "ConfigurationError",
    "CardNotFoundError",
]
