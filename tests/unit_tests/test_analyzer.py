"""Tests for gender evidence scoring."""

import pytest

from novelcast.analyzer import (
    GenderEvidenceAnalyzer,
    confidence_tier,
    decide,
    find_ambiguous_names,
)
from novelcast.extract import extract_candidates
from novelcast.gender import Gender
from novelcast.schema import CharacterRecord, EvidenceScore

ATTRIBUTION_TEXT = '"I\'m fine," Mary said. Her brother John laughed.'


def test_lone_character_with_two_male_pronouns() -> None:
    score = GenderEvidenceAnalyzer().analyze("Tom", "Tom said he would bring his sword.")

    assert score.male_score == 4
    assert score.female_score == 0
    assert score.evidence == "direct pronoun reference: 2 male pronouns"


def test_pronouns_resolved_to_another_character_do_not_count() -> None:
    text = "Tom met Jerry and he smiled."
    known = {"Tom": {}, "Jerry": {}}
    analyzer = GenderEvidenceAnalyzer()

    assert analyzer.analyze("Tom", text, known).is_zero
    assert analyzer.analyze("Jerry", text, known).male_score == 2


def test_spouse_possessive() -> None:
    score = GenderEvidenceAnalyzer().analyze("Tom", "Tom's wife smiled.")
    assert score.male_score == 3
    assert score.evidence == "possessive: Tom's wife"


def test_attribution_pronoun_is_credited_to_speaker() -> None:
    known = extract_candidates(ATTRIBUTION_TEXT)
    analyzer = GenderEvidenceAnalyzer()

    mary = analyzer.analyze("Mary", ATTRIBUTION_TEXT, known)
    john = analyzer.analyze("John", ATTRIBUTION_TEXT, known)

    assert mary.female_score == 3
    assert mary.male_score == 0
    assert mary.evidence == "dialogue attribution: pronoun 'Her' likely refers to Mary"
    assert john.is_zero
    assert decide(mary).gender is Gender.FEMALE
    assert decide(john).gender is Gender.UNKNOWN


def test_dialogue_pass_boosts_isolated_pronouns() -> None:
    text = '"Stop," said Tom, and he turned away.'
    analyzer = GenderEvidenceAnalyzer()

    assert analyzer.dialogue_pass("Tom", text).male_score == 3
    assert analyzer.analyze("Tom", text).male_score == 5


def test_relationship_requires_confident_partner() -> None:
    text = "Mary's husband John arrived."
    analyzer = GenderEvidenceAnalyzer()
    confident = {
        "Mary": CharacterRecord(name="Mary"),
        "John": CharacterRecord(name="John", gender=Gender.MALE, confidence=0.8),
    }
    unsure = {
        "Mary": CharacterRecord(name="Mary"),
        "John": CharacterRecord(name="John", gender=Gender.MALE, confidence=0.5),
    }

    gained = analyzer.relationship_pass("Mary", text, confident)
    assert gained.female_score == 4
    assert gained.male_score == 0
    assert gained.evidence == "relationship inference: husband with male John"

    assert analyzer.relationship_pass("Mary", text, unsure).is_zero


def test_relationship_in_partner_first_order() -> None:
    text = "John kissed Mary under the stars."
    known = {"John": {"gender": "male", "confidence": 0.9}, "Mary": {}}
    score = GenderEvidenceAnalyzer().relationship_pass("Mary", text, known)
    assert score.female_score == 3


def test_passes_are_summed_and_explanations_joined() -> None:
    text = "Mary's husband John arrived."
    known = {"Mary": {}, "John": {"gender": "male", "confidence": 0.8}}

    score = GenderEvidenceAnalyzer().analyze("Mary", text, known)

    assert score.female_score == 7
    assert score.evidence == "possessive: Mary's husband; relationship inference: husband with male John"


def test_empty_input_yields_zero_score() -> None:
    analyzer = GenderEvidenceAnalyzer()
    assert analyzer.analyze("", "Tom said he left.").is_zero
    assert analyzer.analyze("Tom", None).is_zero
    assert analyzer.analyze(None, "text").is_zero
    assert analyzer.metrics()["total_analyses"] == 0


def test_caches_are_reused_and_cleared() -> None:
    analyzer = GenderEvidenceAnalyzer()
    text = "Tom said he would bring his sword."

    analyzer.analyze("Tom", text)
    analyzer.analyze("Tom", text)
    metrics = analyzer.metrics()

    assert metrics["total_analyses"] == 2
    assert metrics["misses"] == 2
    assert metrics["hits"] == 2
    assert metrics["sentence_entries"] == 1

    analyzer.clear_caches()
    assert analyzer.metrics() == {
        "total_analyses": 0,
        "hits": 0,
        "misses": 0,
        "sentence_entries": 0,
        "dialogue_entries": 0,
    }


@pytest.mark.parametrize(
    ("male", "female", "gender", "confidence"),
    [
        (4, 0, Gender.MALE, 0.4),
        (0, 20, Gender.FEMALE, 1.0),
        (2, 0, Gender.UNKNOWN, 0.0),
        (3, 3, Gender.UNKNOWN, 0.0),
        (9, 4, Gender.MALE, 0.5),
    ],
)
def test_decide(male: float, female: float, gender: Gender, confidence: float) -> None:
    decision = decide(EvidenceScore(male, female, "why"))
    assert decision.gender is gender
    assert decision.confidence == pytest.approx(confidence)


def test_decide_splits_pass_explanations() -> None:
    decision = decide(EvidenceScore(0, 7, "possessive: Mary's husband; relationship inference: x"))
    assert decision.evidence == ["possessive: Mary's husband", "relationship inference: x"]


def test_confidence_tiers() -> None:
    assert confidence_tier(0.1) == "low"
    assert confidence_tier(0.4) == "medium"
    assert confidence_tier(0.75) == "high"


def test_ambiguous_names() -> None:
    found = find_ambiguous_names(["Mary", "Mary Smith", "Bob", "Jon", "John"])
    pairs = {(a.first, a.second): a.reason for a in found}

    assert pairs[("Mary", "Mary Smith")] == "partial"
    assert pairs[("John", "Jon")] == "similar"
    assert not any("Bob" in pair for pair in pairs)


def test_abbreviated_title_names_collect_evidence() -> None:
    text = "Mrs. Smith said she was tired. Mrs. Smith smiled and she left."
    known = extract_candidates(text)
    analyzer = GenderEvidenceAnalyzer()

    score = analyzer.analyze("Mrs. Smith", text, known)

    assert set(known) == {"Mrs. Smith"}
    assert analyzer.sentence_pass("Mrs. Smith", text).female_score == 4
    assert (score.male_score, score.female_score) == (0, 9)
    assert score.evidence == "direct pronoun reference: 1 female pronoun; title: Mrs"


def test_attribution_clause_spans_abbreviated_title() -> None:
    text = '"I am tired," Mrs. Smith said, and she sat down.'
    assert GenderEvidenceAnalyzer().dialogue_pass("Mrs. Smith", text).female_score == 3


def test_title_pass_alone_decides() -> None:
    analyzer = GenderEvidenceAnalyzer()

    score = analyzer.analyze("Lord Varys", "Lord Varys smiled.")
    decision = decide(score)

    assert analyzer.title_pass("Lady Catherine").female_score == 5
    assert analyzer.title_pass("Tom").is_zero
    assert (decision.gender, decision.confidence, decision.evidence) == (Gender.MALE, 0.5, ["title: Lord"])
