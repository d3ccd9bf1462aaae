"""DuckDB-backed storage for cards and review logs."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import duckdb

from .core import Card, CardState, Rating, ReviewLog, ensure_utc
from .exceptions import CardNotFoundError, InvalidCardState

logger = logging.getLogger(__name__)

_CARD_COLUMNS = """
    id, word, translation, context, state, ease_factor, interval_days,
    step_index, due, reviews, lapses, last_review
"""

_LOG_COLUMNS = """
    id, card_id, review_time, rating, state_before, state_after,
    ease_factor, interval_days, due
"""


def _to_db(moment: Optional[datetime]) -> Optional[datetime]:
    """Timestamps are stored as naive UTC so they come back unchanged."""
    if moment is None:
        return None
    return ensure_utc(moment).replace(tzinfo=None)


def _from_db(moment: Optional[datetime]) -> Optional[datetime]:
    if moment is None:
        return None
    return moment.replace(tzinfo=timezone.utc)


def _state(value: str, row_id: str) -> CardState:
    try:
        return CardState(value)
    except ValueError as e:
        raise InvalidCardState(f"Stored card {row_id!r} has unknown state {value!r}") from e


class CardStore:
    """Manages a DuckDB database holding cards and their review logs.

    This class is the persistence collaborator of the scheduler: it loads the
    collection before a session and saves each snapshot the scheduler returns.
    Writes for the same card are last-write-wins.
    """

    def __init__(self, db_path: Optional[str] = None):
        """Initializes the CardStore connection.

        Args:
            db_path: Optional path to a DuckDB file. If None, an in-memory database is used.
        """
        self.db_path = db_path or ":memory:"
        self.connection = duckdb.connect(self.db_path)
        self._create_tables()

    def _create_tables(self) -> None:
        self.connection.execute(
            """
            CREATE TABLE IF NOT EXISTS cards (
                id VARCHAR PRIMARY KEY,
                word VARCHAR NOT NULL,
                translation VARCHAR NOT NULL,
                context VARCHAR,
                state VARCHAR NOT NULL,
                ease_factor DOUBLE NOT NULL,
                interval_days INTEGER NOT NULL DEFAULT 0,
                step_index INTEGER NOT NULL DEFAULT 0,
                due TIMESTAMP NOT NULL,
                reviews INTEGER NOT NULL DEFAULT 0,
                lapses INTEGER NOT NULL DEFAULT 0,
                last_review TIMESTAMP
            )
        """
        )

        self.connection.execute(
            """
            CREATE TABLE IF NOT EXISTS review_logs (
                id VARCHAR PRIMARY KEY,
                card_id VARCHAR NOT NULL,
                review_time TIMESTAMP NOT NULL,
                rating INTEGER NOT NULL,
                state_before VARCHAR NOT NULL,
                state_after VARCHAR NOT NULL,
                ease_factor DOUBLE NOT NULL,
                interval_days INTEGER NOT NULL,
                due TIMESTAMP NOT NULL
            )
        """
        )

    def _row_to_card(self, row: Sequence[Any]) -> Card:
        return Card(
            id=row[0],
            word=row[1],
            translation=row[2],
            context=row[3],
            state=_state(row[4], row[0]),
            ease=row[5],
            interval=row[6],
            step_index=row[7],
            due=_from_db(row[8]),
            reviews=row[9],
            lapses=row[10],
            last_review=_from_db(row[11]),
        )

    def add_card(self, card: Card) -> None:
        """Adds a new card or replaces the stored snapshot with the same id.

        Args:
            card: The Card to store.
        """
        self.connection.execute(
            f"""
            INSERT OR REPLACE INTO cards ({_CARD_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
            (
                card.id,
                card.word,
                card.translation,
                card.context,
                card.state.value,
                card.ease,
                card.interval,
                card.step_index,
                _to_db(card.due),
                card.reviews,
                card.lapses,
                _to_db(card.last_review),
            ),
        )
        logger.debug("Stored card %s (%s, due %s)", card.id, card.state.value, card.due)

    def update_card(self, card: Card) -> None:
        """Persists a snapshot returned by the scheduler."""
        self.add_card(card)  # INSERT OR REPLACE handles updates

    def get_card(self, card_id: str) -> Optional[Card]:
        """Retrieves a single card by its ID.

        Returns:
            The Card if found, otherwise None.

        Raises:
            InvalidCardState: If the stored state tag is unknown.
        """
        row = self.connection.execute(
            f"SELECT {_CARD_COLUMNS} FROM cards WHERE id = ?", (card_id,)
        ).fetchone()
        return self._row_to_card(row) if row else None

    def require_card(self, card_id: str) -> Card:
        card = self.get_card(card_id)
        if card is None:
            raise CardNotFoundError(f"No card with id {card_id!r}")
        return card

    def get_all_cards(self) -> List[Card]:
        """Retrieves the whole collection, oldest due first."""
        rows = self.connection.execute(
            f"SELECT {_CARD_COLUMNS} FROM cards ORDER BY due, id"
        ).fetchall()
        return [self._row_to_card(row) for row in rows]

    def get_due_cards(self, now: datetime) -> List[Card]:
        """Retrieves all cards whose due time is at or before `now`.

        Args:
            now: The reference time.

        Returns:
            The due cards, oldest due first.
        """
        rows = self.connection.execute(
            f"SELECT {_CARD_COLUMNS} FROM cards WHERE due <= ? ORDER BY due, id",
            (_to_db(now),),
        ).fetchall()
        return [self._row_to_card(row) for row in rows]

    def delete_card(self, card_id: str) -> bool:
        """Deletes a card and its review history.

        Returns:
            True if a card was deleted.
        """
        existed = self.get_card(card_id) is not None
        self.connection.execute("DELETE FROM review_logs WHERE card_id = ?", (card_id,))
        self.connection.execute("DELETE FROM cards WHERE id = ?", (card_id,))
        if existed:
            logger.info("Deleted card %s", card_id)
        return existed

    def add_review_log(self, review_log: ReviewLog) -> None:
        """Adds a review log entry.

        Args:
            review_log: The ReviewLog returned alongside an updated card.
        """
        self.connection.execute(
            f"""
            INSERT INTO review_logs ({_LOG_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
            (
                review_log.id,
                review_log.card_id,
                _to_db(review_log.review_time),
                review_log.rating.value,
                review_log.state_before.value,
                review_log.state_after.value,
                review_log.ease,
                review_log.interval,
                _to_db(review_log.due),
            ),
        )

    def get_review_history(self, card_id: Optional[str] = None) -> List[ReviewLog]:
        """Retrieves review logs, newest first.

        Args:
            card_id: Optional. If provided, only logs of this card are returned.
        """
        if card_id:
            rows = self.connection.execute(
                f"""
                SELECT {_LOG_COLUMNS} FROM review_logs WHERE card_id = ?
                ORDER BY review_time DESC
            """,
                (card_id,),
            ).fetchall()
        else:
            rows = self.connection.execute(
                f"SELECT {_LOG_COLUMNS} FROM review_logs ORDER BY review_time DESC"
            ).fetchall()

        return [
            ReviewLog(
                id=row[0],
                card_id=row[1],
                review_time=_from_db(row[2]),
                rating=Rating(row[3]),
                state_before=_state(row[4], row[1]),
                state_after=_state(row[5], row[1]),
                ease=row[6],
                interval=row[7],
                due=_from_db(row[8]),
            )
            for row in rows
        ]

    def get_stats(self) -> Dict[str, Any]:
        """Retrieves statistics about the collection and review history.

        Returns:
            A dictionary containing:
            - "total_cards": Number of stored cards.
            - "by_state": Card count per state value.
            - "total_reviews": Number of review log entries.
            - "total_lapses": Sum of lapses over all cards.
            - "by_rating": Review count per lowercase rating name.
        """
        total_cards, total_lapses = self.connection.execute(
            "SELECT COUNT(*), COALESCE(SUM(lapses), 0) FROM cards"
        ).fetchone()

        by_state = {state.value: 0 for state in CardState}
        for state, count in self.connection.execute(
            "SELECT state, COUNT(*) FROM cards GROUP BY state"
        ).fetchall():
            by_state[state] = count

        by_rating = {rating.name.lower(): 0 for rating in Rating}
        for rating, count in self.connection.execute(
            "SELECT rating, COUNT(*) FROM review_logs GROUP BY rating"
        ).fetchall():
            by_rating[Rating(rating).name.lower()] = count

        return {
            "total_cards": total_cards,
            "by_state": by_state,
            "total_reviews": sum(by_rating.values()),
            "total_lapses": int(total_lapses),
            "by_rating": by_rating,
        }

    def close(self) -> None:
        """Closes the database connection."""
        self.connection.close()

    def __enter__(self) -> "CardStore":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
