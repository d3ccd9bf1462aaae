#!/usr/bin/env python3
"""Basic usage example for StepCards."""

import random
from datetime import datetime, timedelta, timezone

from stepcards import Card, CardStore, Rating, Scheduler, StudySession


def main() -> None:
    """Demonstrate basic StepCards functionality."""
    print("StepCards Basic Usage Example")
    print("=" * 50)

    scheduler = Scheduler()
    now = datetime.now(timezone.utc)

    with CardStore() as db:
        print("\nCreating sample cards...")
        cards_data = [
            ("bonjour", "hello", "Bonjour, comment allez-vous?"),
            ("merci", "thank you", "Merci beaucoup!"),
            ("hola", "hello", "¡Hola! ¿Cómo estás?"),
        ]
        for index, (word, translation, context) in enumerate(cards_data):
            card = Card.create(
                id=f"card-{index}",
                word=word,
                translation=translation,
                context=context,
                now=now,
            )
            db.add_card(card)
            print(f"   Added: {word} -> {translation}")

        session = StudySession(db.get_all_cards(), scheduler, now, rng=random.Random(7))
        counts = session.queue.counts
        print(f"\nQueue: {counts.learning} learning, {counts.review} review, {counts.new} new")

        # Answer every card GOOD twice, ten minutes apart, so they graduate.
        for _ in range(2):
            while not session.finished:
                card = session.current
                print(f"\nReviewing: {card.word}  {session.labels(now)}")
                updated_card, review_log = session.answer(Rating.GOOD, now)
                db.update_card(updated_card)
                db.add_review_log(review_log)
                print(f"   -> {updated_card.state.value}, due {updated_card.due:%Y-%m-%d %H:%M}")
            now += timedelta(minutes=10)
            session = StudySession(db.get_all_cards(), scheduler, now, rng=random.Random(7))

        print("\nFinal statistics:")
        stats = db.get_stats()
        print(f"   Total cards: {stats['total_cards']}")
        print(f"   By state: {stats['by_state']}")
        print(f"   Total reviews: {stats['total_reviews']}")


if __name__ == "__main__":
    main()
