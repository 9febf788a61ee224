"""Tests for sentence splitting, hashing and the analysis cache."""

from novelcast.cache import AnalysisCache
from novelcast.textutils import content_hash, mentions, sentences


def test_sentences_keep_trailing_fragment() -> None:
    assert sentences("One.  Two!\nThree") == ["One.", "Two!", "Three"]
    assert sentences("") == []


def test_mentions_are_whole_word_and_case_sensitive() -> None:
    assert mentions("Ann", "Ann left.")
    assert not mentions("Ann", "Anna left.")
    assert not mentions("Will", "He will go.")


def test_content_hash_is_stable_hex() -> None:
    digest = content_hash("some text")
    assert digest == content_hash("some text")
    assert len(digest) == 8
    assert digest != content_hash("other text")


def test_cache_keys() -> None:
    assert AnalysisCache(strict=True).key("Ann", "text") == ("Ann", "text")
    assert AnalysisCache().key("Ann", "text") == ("Ann", content_hash("text"))


def test_cache_computes_once() -> None:
    cache = AnalysisCache()
    calls = []

    def compute() -> list[str]:
        calls.append(1)
        return ["x"]

    assert cache.sentences("Ann", "text", compute) == ["x"]
    assert cache.sentences("Ann", "text", compute) == ["x"]
    assert cache.dialogue("Ann", "text", compute) == ["x"]
    assert len(calls) == 2
    assert cache.stats()["hits"] == 1


def test_abbreviated_titles_do_not_end_sentences() -> None:
    assert sentences("Mr. Smith left. Mrs. Jones stayed. Dr. Who?") == [
        "Mr. Smith left.",
        "Mrs. Jones stayed.",
        "Dr. Who?",
    ]
    assert mentions("Mrs. Jones", sentences("Then Mrs. Jones stayed.")[0])
