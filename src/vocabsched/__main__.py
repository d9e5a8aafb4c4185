"""Command line entry point: run review sessions in the terminal."""
import argparse
import json
import logging
import sys
import time
from typing import Optional, Sequence

from vocabsched.config import settings
from vocabsched.errors import PersistenceError, VocabSchedError
from vocabsched.logging_config import setup_logging
from vocabsched.models.base import SessionLocal, init_db
from vocabsched.monitoring import start_monitoring
from vocabsched.services.progress_store import SqlProgressStore
from vocabsched.services.progress_tracker import ProgressTracker
from vocabsched.services.schedule_manager import ScheduleManager
from vocabsched.services.spaced_repetition import SpacedRepetitionPolicy
from vocabsched.services.vocabulary_service import SqlVocabularyRepository

logger = logging.getLogger("vocabsched")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vocabsched", description="Spaced repetition vocabulary review")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create database tables")

    add_word = commands.add_parser("add-word", help="Add or update a vocabulary word")
    add_word.add_argument("word_id")
    add_word.add_argument("text")
    add_word.add_argument("translation")
    add_word.add_argument("language_pair", help="e.g. en-hu")
    add_word.add_argument("--rank", type=int, default=0, help="Frequency rank, lower is more common")
    add_word.add_argument("--example", default=None)

    review = commands.add_parser("review", help="Run an interactive review session")
    review.add_argument("learning_path")
    review.add_argument("--target", type=int, default=settings.scheduling.daily_target)

    stats = commands.add_parser("stats", help="Show progress statistics for a learning path")
    stats.add_argument("learning_path")

    upcoming = commands.add_parser("upcoming", help="Show reviews scheduled for the coming days")
    upcoming.add_argument("learning_path")
    upcoming.add_argument("--days", type=int, default=7)

    export = commands.add_parser("export", help="Dump progress records as JSON")
    export.add_argument("learning_path")

    return parser


def run_review(manager: ScheduleManager, tracker: ProgressTracker, learning_path: str, target: int) -> None:
    """Show each card, read the translation from stdin and report the answer."""
    started = manager.start_session(learning_path, target)
    print(f"{started.total_cards} cards today ({started.due_count} due, {started.new_count} new)")

    completed = False
    try:
        while True:
            card = manager.get_next_card()
            if card is None:
                completed = True
                break

            prompt = card.word.text if card.word is not None else card.word_id
            tracker.start_card_timer(card.word_id)
            answer = input(f"[{card.bucket_level}] {prompt} > ").strip()
            review_time = tracker.end_card_timer(card.word_id)

            expected = card.word.translation if card.word is not None else ""
            was_correct = answer.casefold() == expected.casefold()
            print("correct" if was_correct else f"wrong, it is: {expected}")

            while True:
                try:
                    result = manager.complete_card(card.word_id, was_correct, review_time, learning_path)
                    break
                except PersistenceError as e:
                    logger.error("Could not save answer: %s", e)
                    if input("Retry saving? [Y/n] ").strip().lower() == "n":
                        raise
                    time.sleep(1)

            if result.is_session_complete:
                completed = True
                break
    except (EOFError, KeyboardInterrupt):
        print()
        manager.abandon_session()

    summary = tracker.end_session(completed_normally=completed)
    print(
        f"Reviewed {summary.cards_reviewed} cards, "
        f"{summary.success_rate}% correct in {summary.duration_formatted}"
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging("Starting vocabsched ...", args.log_level)

    if settings.monitoring.enabled:
        start_monitoring(settings.monitoring.port)

    init_db()
    db = SessionLocal()
    try:
        store = SqlProgressStore(db)
        vocabulary = SqlVocabularyRepository(db)

        if args.command == "init-db":
            logger.info("Database initialized at %s", settings.database.url)
        elif args.command == "add-word":
            vocabulary.add_word(
                args.word_id,
                args.text,
                args.translation,
                args.language_pair,
                frequency_rank=args.rank,
                example=args.example,
            )
        elif args.command == "review":
            tracker = ProgressTracker()
            manager = ScheduleManager(store, vocabulary, SpacedRepetitionPolicy(), tracker)
            run_review(manager, tracker, args.learning_path, args.target)
        elif args.command == "stats":
            policy = SpacedRepetitionPolicy()
            stats = policy.statistics(store.get_all(args.learning_path))
            print(json.dumps(stats, indent=2))
        elif args.command == "upcoming":
            manager = ScheduleManager(store, vocabulary)
            for date_key, count in manager.get_upcoming_reviews(args.learning_path, args.days).items():
                print(f"{date_key}: {count}")
        elif args.command == "export":
            print(json.dumps(store.export_records(args.learning_path), indent=2, ensure_ascii=False))
    except VocabSchedError as e:
        logger.error("%s", e)
        return 1
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
