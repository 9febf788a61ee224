"""Tests for candidate name extraction and validation."""

from novelcast.config import EngineConfig
from novelcast.extract import NameCandidateExtractor, clean_names, extract_candidates, validate_name
from novelcast.gender import Gender


def test_extracts_speakers_from_dialogue_attribution() -> None:
    text = '"I\'m fine," Mary said. Her brother John laughed.'

    found = NameCandidateExtractor().extract(text)

    assert set(found) == {"Mary", "John"}
    assert found["Mary"].appearances == 2
    assert found["John"].appearances == 1
    assert found["Mary"].gender is Gender.UNKNOWN
    assert found["Mary"].confidence == 0.0


def test_pattern_categories() -> None:
    text = (
        'Alice: "Run!"\n'
        "Tom's eyes widened.\n"
        "Mr. Smith nodded. Lady Catherine frowned.\n"
        "Xiao Lan bowed.\n"
    )

    found = extract_candidates(text)

    assert {"Alice", "Tom", "Mr. Smith", "Lady Catherine", "Xiao Lan"} <= set(found)


def test_leading_connective_is_dropped() -> None:
    found = extract_candidates("Then Mary said hello.")
    assert set(found) == {"Mary"}


def test_scan_reports_offsets_and_pattern() -> None:
    text = "Later, Bob said nothing."
    matches = NameCandidateExtractor().scan(text)
    assert len(matches) == 1
    assert matches[0].name == "Bob"
    assert matches[0].offset == text.index("Bob")
    assert matches[0].pattern == "speech_verb"


def test_validator_rejects_non_names() -> None:
    assert validate_name("He") is None
    assert validate_name("However") is None
    assert validate_name("Mary was") is None
    assert validate_name("Mary. Then") is None
    assert validate_name("mary") is None
    assert validate_name("A" + "b" * 40) is None
    assert validate_name("Mr.") is None
    assert validate_name(None) is None
    assert validate_name("") is None


def test_validator_accepts_name_shapes() -> None:
    assert validate_name("Mary") == "Mary"
    assert validate_name("John Ronald Smith") == "John Ronald Smith"
    assert validate_name("Mrs. Hudson") == "Mrs. Hudson"
    assert validate_name("Xiao Lan") == "Xiao Lan"
    assert validate_name("O'Brien") == "O'Brien"
    assert validate_name("Mary.") == "Mary"


def test_validator_is_idempotent() -> None:
    for raw in ["Mary", "John Smith", "Mr. Smith", "Xiao Lan", "O'Brien", "Then Mary", "Mary.", "  Anna  "]:
        once = validate_name(raw)
        assert once is not None
        assert validate_name(once) == once


def test_cleanup_drops_reassembled_fragments() -> None:
    names = ["Mary", "Mr. Smith", "One Two Three Four Five", "Hi, there"]
    assert clean_names(names) == ["Mary", "Mr. Smith"]


def test_per_pattern_and_total_caps() -> None:
    text = "Bob said hi. " * 500

    per_pattern = NameCandidateExtractor(EngineConfig(max_pattern_matches=10)).scan(text)
    total = NameCandidateExtractor(EngineConfig(max_matches=3)).scan(text)

    assert len(per_pattern) == 10
    assert len(total) == 3
    assert extract_candidates(text, EngineConfig(max_pattern_matches=10))["Bob"].appearances == 10


def test_text_is_truncated_before_scanning() -> None:
    text = "Bob said hi. " + "x" * 100 + " Alice said no."
    found = extract_candidates(text, EngineConfig(max_text_length=20))
    assert set(found) == {"Bob"}


def test_bad_input_yields_empty_results() -> None:
    extractor = NameCandidateExtractor()
    assert extractor.extract(None) == {}
    assert extractor.extract("") == {}
    assert extractor.scan(123) == []


def test_abbreviated_titles_stay_attached() -> None:
    found = extract_candidates('Dr. Watson said nothing. "Come," Mrs. Hudson said. Mr. Holmes\'s eyes narrowed.')
    assert {"Dr. Watson", "Mrs. Hudson", "Mr. Holmes"} <= set(found)
    assert not {"Watson", "Hudson", "Holmes"} & set(found)
