"""Tests for the vocabulary repository."""
from typing import Callable

import pytest
from faker import Faker

from vocabsched.errors import ValidationError
from vocabsched.services.vocabulary_service import SqlVocabularyRepository

fake = Faker()


def test_add_and_get_word(vocabulary: SqlVocabularyRepository) -> None:
    text = fake.word()

    word = vocabulary.add_word("w001", text, "szia", "en-hu", frequency_rank=7, example="Hello there")

    loaded = vocabulary.get_by_id("w001")
    assert loaded is word
    assert loaded.text == text
    assert loaded.translation == "szia"
    assert loaded.frequency_rank == 7
    assert loaded.example == "Hello there"


def test_get_missing_word(vocabulary: SqlVocabularyRepository) -> None:
    assert vocabulary.get_by_id("missing") is None


def test_add_word_updates_existing(vocabulary: SqlVocabularyRepository) -> None:
    vocabulary.add_word("w001", "hello", "szia", "en-hu", frequency_rank=7)
    vocabulary.add_word("w001", "hello", "helló", "en-hu", frequency_rank=3)

    assert vocabulary.get_word_count() == 1
    assert vocabulary.get_by_id("w001").translation == "helló"
    assert vocabulary.get_by_id("w001").frequency_rank == 3


@pytest.mark.parametrize(
    "word_id, text, translation, language_pair",
    [
        ("", "hello", "szia", "en-hu"),
        ("w001", "", "szia", "en-hu"),
        ("w001", "hello", "szia", "english"),
    ],
)
def test_add_word_validation(
    vocabulary: SqlVocabularyRepository, word_id: str, text: str, translation: str, language_pair: str
) -> None:
    with pytest.raises(ValidationError):
        vocabulary.add_word(word_id, text, translation, language_pair)


def test_candidates_filtered_by_pair_and_ordered_by_rank(
    vocabulary: SqlVocabularyRepository, add_words: Callable
) -> None:
    add_words(5, prefix="hu", first_rank=10, language_pair="en-hu")
    add_words(3, prefix="bg", first_rank=1, language_pair="en-bg")
    vocabulary.add_word("hu-top", "the", "a", "en-hu", frequency_rank=1)

    candidates = vocabulary.get_candidates("en", "hu")

    assert [word.id for word in candidates] == ["hu-top", "hu000", "hu001", "hu002", "hu003", "hu004"]
    assert vocabulary.get_word_count("en-bg") == 3
    assert vocabulary.get_candidates("hu", "en") == []
