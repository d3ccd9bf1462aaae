"""Command-line interface for StepCards."""

import argparse
import logging
import sys
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from .config import Settings, load_settings
from .core import Card, Rating
from .database import CardStore
from .exceptions import StepCardsError
from .scheduler import Scheduler
from .session import StudySession

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="StepCards: spaced repetition for vocabulary flashcards"
    )
    parser.add_argument("--db", help="DuckDB file holding the cards (default: $STEPCARDS_DB_PATH)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Add card command
    add_parser = subparsers.add_parser("add", help="Add a new card")
    add_parser.add_argument("word", help="Word to learn")
    add_parser.add_argument("translation", help="Translation of the word")
    add_parser.add_argument("--context", help="Sentence the word was found in")
    add_parser.add_argument("--id", dest="card_id", help="Card id (default: random UUID)")

    subparsers.add_parser("queue", help="Show the cards due in this session")
    subparsers.add_parser("review", help="Study due cards interactively")

    preview_parser = subparsers.add_parser("preview", help="Show next intervals for a card")
    preview_parser.add_argument("card_id", help="Id of the card")

    subparsers.add_parser("stats", help="Show collection statistics")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        settings = load_settings()
    except StepCardsError as e:
        print(f"Error: {e}")
        sys.exit(2)

    db = CardStore(args.db or settings.db_path)
    scheduler = Scheduler(settings.scheduler)

    try:
        if args.command == "add":
            add_card(db, settings, args.word, args.translation, args.context, args.card_id)
        elif args.command == "queue":
            show_queue(db, scheduler)
        elif args.command == "review":
            review_cards(db, scheduler)
        elif args.command == "preview":
            preview_card(db, scheduler, args.card_id)
        elif args.command == "stats":
            show_stats(db)
    except StepCardsError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        db.close()


def add_card(
    db: CardStore,
    settings: Settings,
    word: str,
    translation: str,
    context: Optional[str] = None,
    card_id: Optional[str] = None,
) -> Card:
    """Add a new card to the database."""
    card = Card.create(
        id=card_id or str(uuid.uuid4()),
        word=word.strip(),
        translation=translation.strip(),
        context=context,
        config=settings.scheduler,
    )
    db.add_card(card)
    print(f"Added card for word: {card.word}")
    print(f"Translation: {card.translation}")
    return card


def show_queue(db: CardStore, scheduler: Scheduler) -> None:
    """Print the study queue in the order it should be studied."""
    session = StudySession(db.get_all_cards(), scheduler, datetime.now(timezone.utc))
    counts = session.queue.counts
    print(f"Learning: {counts.learning}  Review: {counts.review}  New: {counts.new}")
    for card in session.queue.iter_cards():
        print(f"  [{card.state.value}] {card.word} ({card.id})")


def review_cards(db: CardStore, scheduler: Scheduler) -> None:
    """Review due cards interactively."""
    session = StudySession(db.get_all_cards(), scheduler, datetime.now(timezone.utc))

    if session.finished:
        print("No cards due for review!")
        return

    print(f"Found {session.remaining} cards to study")

    while not session.finished:
        card = session.current
        print(f"\n--- {card.word} ---")
        if card.context:
            print(f"Context: {card.context}")
        input("Press Enter to show the translation...")
        print(f"Translation: {card.translation}")

        now = datetime.now(timezone.utc)
        labels = session.labels(now)
        print(
            "  ".join(f"{rating.value}={rating.name.title()} ({labels[rating.name.lower()]})"
                      for rating in Rating)
        )

        # Get user rating
        while True:
            try:
                rating = int(input("Rate your recall (1-4): ").strip())
                if rating in [1, 2, 3, 4]:
                    break
                else:
                    print("Please enter a number between 1 and 4")
            except ValueError:
                print("Please enter a valid number")

        updated_card, review_log = session.answer(rating, datetime.now(timezone.utc))

        db.update_card(updated_card)
        db.add_review_log(review_log)
        print(f"Next review: {updated_card.due:%Y-%m-%d %H:%M} UTC")

    print(f"\nSession complete: {session.completed} cards reviewed")
    print("  ".join(f"{name}: {count}" for name, count in session.stats.items()))


def preview_card(db: CardStore, scheduler: Scheduler, card_id: str) -> None:
    """Print the forecast interval of each rating for one card."""
    card = db.require_card(card_id)
    for rating, label in scheduler.preview(card, datetime.now(timezone.utc)).items():
        print(f"{rating.name.title():<6} {label}")


def show_stats(db: CardStore) -> None:
    """Show collection statistics."""
    stats = db.get_stats()

    print("=== Collection Statistics ===")
    print(f"Total cards: {stats['total_cards']}")
    for state, count in stats["by_state"].items():
        print(f"  {state}: {count}")
    print(f"Total reviews: {stats['total_reviews']}")
    print(f"Total lapses: {stats['total_lapses']}")


if __name__ == "__main__":
    main()
