"""Tests for the terminal review driver."""
from typing import Callable, Iterator

import pytest

from conftest import PATH
from vocabsched.__main__ import build_parser, run_review
from vocabsched.models.session_models import SessionState
from vocabsched.services.progress_store import SqlProgressStore
from vocabsched.services.progress_tracker import ProgressTracker
from vocabsched.services.schedule_manager import ScheduleManager


def feed_input(monkeypatch: pytest.MonkeyPatch, answers: Iterator[str]) -> None:
    def fake_input(prompt: str = "") -> str:
        try:
            return next(answers)
        except StopIteration:
            raise EOFError
    monkeypatch.setattr("builtins.input", fake_input)


def test_parser_review_command() -> None:
    args = build_parser().parse_args(["review", PATH, "--target", "20"])

    assert args.command == "review"
    assert args.learning_path == PATH
    assert args.target == 20


def test_parser_requires_command() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_review_loop_retries_until_correct(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture,
    manager: ScheduleManager,
    tracker: ProgressTracker,
    store: SqlProgressStore,
    add_words: Callable,
) -> None:
    words = add_words(2)
    replies = iter([words[0].translation, "zzz-not-a-word", words[1].translation.upper()])
    feed_input(monkeypatch, replies)

    run_review(manager, tracker, PATH, 2)

    output = capsys.readouterr().out
    assert "2 cards today (0 due, 2 new)" in output
    assert f"wrong, it is: {words[1].translation}" in output
    assert "Reviewed 3 cards, 67% correct" in output
    assert manager.state == SessionState.COMPLETE
    assert store.get(words[1].id, PATH).failure_count == 1


def test_review_loop_abandons_on_eof(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture,
    manager: ScheduleManager,
    tracker: ProgressTracker,
    store: SqlProgressStore,
    add_words: Callable,
) -> None:
    words = add_words(3)
    feed_input(monkeypatch, iter([words[0].translation]))

    run_review(manager, tracker, PATH, 3)

    assert manager.state == SessionState.ABANDONED
    assert [record.word_id for record in store.get_all(PATH)] == [words[0].id]
    assert "Reviewed 1 cards" in capsys.readouterr().out
