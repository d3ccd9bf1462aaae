"""Scheduler constants and environment-driven settings for StepCards."""

import logging
import math
import os
from pathlib import Path
from typing import Optional, Tuple, Union

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "stepcards.duckdb"


class SchedulerConfig(BaseModel):
    """Tunable constants of the step-based SM-2 scheduler.

    Attributes:
        learning_steps: Minute delays used while a card is NEW or LEARNING.
        relearning_steps: Minute delays used while a card is RELEARNING.
        graduating_interval: Days given to a card that finishes its learning steps.
        easy_interval: Days given to a learning card rated EASY.
        starting_ease: Ease assigned to brand-new cards.
        min_ease: Lowest ease a card can reach.
        ease_ceiling: Highest ease a card can reach.
        ease_delta_again: Ease change when a review card is rated AGAIN.
        ease_delta_hard: Ease change when a review card is rated HARD.
        ease_delta_easy: Ease change on any EASY rating outside relearning.
        hard_interval_multiplier: Interval growth on a HARD review.
        easy_bonus: Extra interval growth on an EASY review.
        relearn_good_factor: Share of the old interval kept when relearning ends with GOOD.
        relearn_easy_factor: Share of the old interval kept when relearning ends with EASY.
        max_interval: Longest interval in days.
        new_cards_per_session: Cap on new cards in one study queue.
        reviews_per_session: Cap on review cards in one study queue.
    """

    learning_steps: Tuple[float, ...] = Field(default=(1, 10), description="Learning steps in minutes")
    relearning_steps: Tuple[float, ...] = Field(default=(10,), description="Relearning steps in minutes")
    graduating_interval: int = Field(default=1, ge=1, description="Days after graduating")
    easy_interval: int = Field(default=4, ge=1, description="Days after an EASY in learning")
    starting_ease: float = Field(default=2.5, description="Ease of a new card")
    min_ease: float = Field(default=1.3, gt=0, description="Ease floor")
    ease_ceiling: float = Field(default=3.0, description="Ease ceiling")
    ease_delta_again: float = Field(default=-0.2, le=0)
    ease_delta_hard: float = Field(default=-0.15, le=0)
    ease_delta_easy: float = Field(default=0.15, ge=0)
    hard_interval_multiplier: float = Field(default=1.2, gt=0)
    easy_bonus: float = Field(default=1.3, gt=0)
    relearn_good_factor: float = Field(default=0.5, gt=0)
    relearn_easy_factor: float = Field(default=0.7, gt=0)
    max_interval: int = Field(default=36500, ge=1, description="Interval cap in days")
    new_cards_per_session: int = Field(default=20, ge=0)
    reviews_per_session: int = Field(default=200, ge=0)

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    @field_validator("learning_steps", "relearning_steps")
    @classmethod
    def _check_steps(cls, steps: Tuple[float, ...]) -> Tuple[float, ...]:
        if not steps:
            raise ValueError("step sequence must not be empty")
        if any(not math.isfinite(step) or step <= 0 for step in steps):
            raise ValueError("steps must be positive, finite minute durations")
        return steps

    @model_validator(mode="after")
    def _check_ease_bounds(self) -> "SchedulerConfig":
        if not self.min_ease <= self.starting_ease <= self.ease_ceiling:
            raise ValueError(
                f"starting_ease {self.starting_ease} must lie within "
                f"[{self.min_ease}, {self.ease_ceiling}]"
            )
        if self.graduating_interval > self.max_interval or self.easy_interval > self.max_interval:
            raise ValueError("graduating and easy intervals must not exceed max_interval")
        return self


class Settings(BaseModel):
    """Runtime settings for the command-line front end."""

    db_path: str = Field(default=DEFAULT_DB_PATH, description="DuckDB file holding the cards")
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)

    model_config = ConfigDict(frozen=True)


_ENV_FIELDS = {
    "STEPCARDS_GRADUATING_INTERVAL": "graduating_interval",
    "STEPCARDS_EASY_INTERVAL": "easy_interval",
    "STEPCARDS_STARTING_EASE": "starting_ease",
    "STEPCARDS_MAX_INTERVAL": "max_interval",
    "STEPCARDS_NEW_PER_SESSION": "new_cards_per_session",
    "STEPCARDS_REVIEWS_PER_SESSION": "reviews_per_session",
}


def _parse_steps(name: str, raw: str) -> Tuple[float, ...]:
    try:
        return tuple(float(part) for part in raw.split(",") if part.strip())
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a comma-separated list of minutes: {raw!r}") from e


def load_settings(env_file: Optional[Union[str, Path]] = None) -> Settings:
    """Builds Settings from a .env file and the process environment.

    Args:
        env_file: Optional path to a .env file. When None, python-dotenv searches
                  from the working directory upwards.

    Returns:
        The loaded Settings.

    Raises:
        ConfigurationError: If a value cannot be parsed or the resulting
                            scheduler constants are inconsistent.
    """
    load_dotenv(env_file)

    overrides = {}
    for env_name, field_name in _ENV_FIELDS.items():
        raw = os.getenv(env_name)
        if raw is not None and raw.strip():
            overrides[field_name] = raw.strip()

    learning = os.getenv("STEPCARDS_LEARNING_STEPS")
    if learning:
        overrides["learning_steps"] = _parse_steps("STEPCARDS_LEARNING_STEPS", learning)
    relearning = os.getenv("STEPCARDS_RELEARNING_STEPS")
    if relearning:
        overrides["relearning_steps"] = _parse_steps("STEPCARDS_RELEARNING_STEPS", relearning)

    try:
        scheduler = SchedulerConfig(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid scheduler settings: {e}") from e

    db_path = os.getenv("STEPCARDS_DB_PATH") or DEFAULT_DB_PATH
    if overrides:
        logger.info("Scheduler overrides from environment: %s", sorted(overrides))
    return Settings(db_path=db_path, scheduler=scheduler)
