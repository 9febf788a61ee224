"""Weighted gender evidence for one character in a piece of text.

`GenderEvidenceAnalyzer.analyze` sums four passes into an
:class:`~novelcast.schema.EvidenceScore`:

* sentence pass: pronouns in sentences naming the target, resolved with
  :class:`~novelcast.resolver.PronounReferenceResolver` when other characters
  share the sentence, plus spouse/partner possessives (``"Tom's wife"``);
* dialogue pass: pronouns inside dialogue attribution clauses, weighted
  higher than incidental mentions;
* relationship pass: romantic verbs and family roles linking the target to a
  confidently gendered character;
* title pass: a gendered title or honorific in the name itself
  (``"Mrs. Smith"``, ``"Tanaka-kun"``).

:func:`decide` turns the raw scores into a gender and a confidence.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

import regex
from rapidfuzz import fuzz

from .cache import AnalysisCache
from .config import EngineConfig
from .gender import Gender
from .relationships import FAMILY_ROLES, ROMANTIC_VERBS, infer_from_partner_role, infer_gender
from .resolver import PronounMatch, PronounReferenceResolver, find_mentions, find_pronouns, modifies
from .schema import EvidenceScore, coerce_confidence, record_value
from .textutils import ABBREVIATED_TITLE, mentions, sentences
from .titles import title_gender

logger = logging.getLogger(__name__)

DIRECT_PRONOUN_WEIGHT = 2.0
POSSESSIVE_WEIGHT = 3.0
ATTRIBUTION_PRONOUN_WEIGHT = 3.0
ATTRIBUTION_RESOLVED_MULTIPLIER = 1.5
ROMANTIC_WEIGHT = 3.0
FAMILY_WEIGHT = 4.0
TITLE_WEIGHT = 5.0

# Partner nouns that reveal the possessor's gender.
POSSESSOR_MALE = frozenset({"wife", "girlfriend", "bride", "fiancee", "fiancée"})
POSSESSOR_FEMALE = frozenset({"husband", "boyfriend", "groom", "fiance", "fiancé"})

_Q = "[\"“”]"
_NQ = "[^\"“”\n]"
_CLAUSE = rf"(?:{ABBREVIATED_TITLE}|[^.!?\"“”\n])"
ATTRIBUTION_VERBS = "said|replied|asked|exclaimed|whispered|muttered"

# "<quote>", Mary said. <one following sentence without a quote>
TRAILING_ATTRIBUTION = regex.compile(
    rf"{_Q}{_NQ}+{_Q}\s*,?\s*"
    rf"(?P<clause>{_CLAUSE}{{0,80}}?\b(?:{ATTRIBUTION_VERBS})\b{_CLAUSE}*[.!?]?(?:[ \t]+{_CLAUSE}+[.!?])?)"
)
# Mary said, "<quote>"
LEADING_ATTRIBUTION = regex.compile(
    rf"(?P<clause>{_CLAUSE}{{1,80}}?\b(?:{ATTRIBUTION_VERBS})\b)\s*,?\s*{_Q}{_NQ}+{_Q}"
)


@dataclass(frozen=True, slots=True)
class GenderDecision:
    gender: Gender
    confidence: float
    evidence: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class NameAmbiguity:
    first: str
    second: str
    similarity: float
    reason: str


def decide(score: EvidenceScore, config: EngineConfig | None = None) -> GenderDecision:
    """Map raw scores to a gender and confidence.

    The winning side must reach its minimum score and strictly beat the other
    side; confidence is ``min(1, (winner - loser) / score_normalizer)``.
    Anything else is ``unknown`` with confidence 0.
    """
    cfg = config or EngineConfig()
    male, female = score.male_score, score.female_score
    if male >= cfg.min_male_score and male > female:
        gender, margin = Gender.MALE, male - female
    elif female >= cfg.min_female_score and female > male:
        gender, margin = Gender.FEMALE, female - male
    else:
        return GenderDecision(Gender.UNKNOWN, 0.0)
    confidence = round(min(1.0, margin / cfg.score_normalizer), 4)
    evidence = [part for part in (score.evidence or "").split("; ") if part]
    return GenderDecision(gender, confidence, evidence)


def confidence_tier(value: float, config: EngineConfig | None = None) -> str:
    cfg = config or EngineConfig()
    if value >= cfg.high_confidence:
        return "high"
    if value >= cfg.medium_confidence:
        return "medium"
    return "low"


def find_ambiguous_names(names: Iterable[str], threshold: float = 0.7) -> list[NameAmbiguity]:
    """Pairs of names that may denote the same character.

    A pair is reported when one name is a whole-word part of the other
    ("Mary" / "Mary Smith") or when their rapidfuzz ratio reaches
    ``threshold`` (0-1). Nothing is merged.
    """
    ordered = sorted({n for n in names if isinstance(n, str) and n})
    found: list[NameAmbiguity] = []
    for i, first in enumerate(ordered):
        for second in ordered[i + 1 :]:
            if mentions(first, second) or mentions(second, first):
                found.append(NameAmbiguity(first, second, 1.0, "partial"))
                continue
            similarity = fuzz.ratio(first.lower(), second.lower()) / 100.0
            if similarity >= threshold:
                found.append(NameAmbiguity(first, second, round(similarity, 3), "similar"))
    return found


@lru_cache(maxsize=2048)
def _possessive_pattern(name: str) -> regex.Pattern[str]:
    return regex.compile(rf"(?<!\w){regex.escape(name)}['’]s\s+(\w+)")


@lru_cache(maxsize=4096)
def _relationship_pattern(first: str, second: str, words: tuple[str, ...]) -> regex.Pattern[str]:
    alternatives = "|".join(words)
    return regex.compile(
        rf"(?<!\w){regex.escape(first)}(?!\w)[^.!?]*?\b((?i:{alternatives}))\b[^.!?]*?(?<!\w){regex.escape(second)}(?!\w)"
    )


def _describe_pronouns(prefix: str, male: int, female: int) -> str:
    parts = []
    if male:
        parts.append(f"{male} male pronoun{'s' if male != 1 else ''}")
    if female:
        parts.append(f"{female} female pronoun{'s' if female != 1 else ''}")
    return f"{prefix}: {', '.join(parts)}"


class GenderEvidenceAnalyzer:
    """Accumulate weighted male/female evidence for a named character."""

    def __init__(
        self,
        config: EngineConfig | None = None,
        resolver: PronounReferenceResolver | None = None,
        cache: AnalysisCache | None = None,
    ) -> None:
        self.cfg = config or EngineConfig()
        self.resolver = resolver or PronounReferenceResolver()
        self.cache = cache or AnalysisCache(strict=self.cfg.strict_cache_keys)
        self.total_analyses = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def analyze(self, target: Any, text: Any, known: Mapping[str, Any] | None = None) -> EvidenceScore:
        """Return summed scores for ``target`` over all passes.

        Args:
            target: Character name.
            text: Narrative text to search.
            known: Other characters by name (records or mappings with
                ``gender`` and ``confidence``). Their names drive pronoun
                disambiguation; confident ones enable relationship inference.

        Returns:
            Scores plus the distinct pass explanations joined with ``"; "``.
            Empty target or text yields a zero score.
        """
        if not isinstance(target, str) or not target.strip() or not isinstance(text, str) or not text:
            return EvidenceScore()
        target = target.strip()
        known = known or {}
        others = [name for name in known if isinstance(name, str) and name and name != target]

        self.total_analyses += 1
        total = EvidenceScore()
        explanations: list[str] = []
        for part in (
            self.sentence_pass(target, text, others),
            self.dialogue_pass(target, text, others),
            self.relationship_pass(target, text, known),
            self.title_pass(target),
        ):
            total.male_score += part.male_score
            total.female_score += part.female_score
            if part.evidence and part.evidence not in explanations:
                explanations.append(part.evidence)
        total.evidence = "; ".join(explanations) or None
        logger.debug(
            "Analyzed %s: male=%.1f female=%.1f", target, total.male_score, total.female_score
        )
        return total

    def sentence_pass(self, target: str, text: str, others: Iterable[str] = ()) -> EvidenceScore:
        """Pronoun and possessive evidence from sentences naming ``target``."""
        relevant = self.cache.sentences(target, text, lambda: [s for s in sentences(text) if mentions(target, s)])
        names = list(others)
        score = EvidenceScore()
        for sentence in relevant:
            score.add(self._score_pronouns(target, sentence, names, DIRECT_PRONOUN_WEIGHT, 1.0, "direct pronoun reference"))
            score.add(self._score_possessive(target, sentence))
        return score

    def dialogue_pass(self, target: str, text: str, others: Iterable[str] = ()) -> EvidenceScore:
        """Pronoun evidence from dialogue attribution clauses naming ``target``.

        Memoized per ``(target, text)``; the names of other characters are not
        part of the key.
        """
        names = list(others)
        return self.cache.dialogue(target, text, lambda: self._score_dialogue(target, text, names))

    def relationship_pass(self, target: str, text: str, known: Mapping[str, Any] | None = None) -> EvidenceScore:
        """Evidence from relationship phrasing with confidently gendered characters.

        ``"<target> ... <word> ... <other>"`` reads ``word`` as the other
        character's role; ``"<other> ... <word> ... <target>"`` reads it as the
        target's role. Each rule group counts once per other character.
        """
        score = EvidenceScore()
        for other, record in (known or {}).items():
            if not isinstance(other, str) or not other or other == target:
                continue
            partner = Gender.parse(record_value(record, "gender"))
            if partner is Gender.UNKNOWN:
                continue
            if coerce_confidence(record_value(record, "confidence")) < self.cfg.relationship_min_confidence:
                continue
            for words, weight in ((ROMANTIC_VERBS, ROMANTIC_WEIGHT), (FAMILY_ROLES, FAMILY_WEIGHT)):
                found = self._relationship(target, other, partner, words, text)
                if found is None:
                    continue
                word, implied = found
                self._credit(score, implied, weight)
                if score.evidence is None:
                    score.evidence = f"relationship inference: {word} with {partner.value} {other}"
        return score

    def title_pass(self, target: str) -> EvidenceScore:
        """Evidence from a gendered title or honorific inside ``target``."""
        gender, title = title_gender(target)
        score = EvidenceScore()
        if title is not None:
            self._credit(score, gender, TITLE_WEIGHT)
            score.evidence = f"title: {title}"
        return score

    def metrics(self) -> dict[str, int]:
        return {"total_analyses": self.total_analyses, **self.cache.stats()}

    def clear_caches(self) -> None:
        self.cache.clear()
        self.total_analyses = 0

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _score_pronouns(
        self,
        target: str,
        unit: str,
        names: list[str],
        isolated_weight: float,
        resolved_multiplier: float,
        label: str,
    ) -> EvidenceScore:
        found = find_mentions(unit, [target, *names])
        target_mention = next((m for m in found if m.name == target), None)
        if target_mention is None:
            return EvidenceScore()
        others = [m for m in found if m.name != target]

        counts = {Gender.MALE: 0, Gender.FEMALE: 0}
        first_resolved: PronounMatch | None = None
        for pronoun in find_pronouns(unit):
            if others:
                if self.resolver.resolve(unit, target_mention, others, pronoun) != target:
                    continue
                first_resolved = first_resolved or pronoun
            elif modifies(unit, pronoun, target_mention):
                continue
            counts[pronoun.gender] += 1

        male, female = counts[Gender.MALE], counts[Gender.FEMALE]
        if not male and not female:
            return EvidenceScore()
        if others:
            weight = DIRECT_PRONOUN_WEIGHT * resolved_multiplier
            evidence = f"{label}: pronoun '{first_resolved.text}' likely refers to {target}"
        else:
            weight = isolated_weight
            evidence = _describe_pronouns(label, male, female)
        return EvidenceScore(male * weight, female * weight, evidence)

    def _score_possessive(self, target: str, sentence: str) -> EvidenceScore:
        for m in _possessive_pattern(target).finditer(sentence):
            noun = m.group(1).lower()
            if noun in POSSESSOR_MALE:
                return EvidenceScore(POSSESSIVE_WEIGHT, 0.0, f"possessive: {target}'s {noun}")
            if noun in POSSESSOR_FEMALE:
                return EvidenceScore(0.0, POSSESSIVE_WEIGHT, f"possessive: {target}'s {noun}")
        return EvidenceScore()

    def _score_dialogue(self, target: str, text: str, names: list[str]) -> EvidenceScore:
        score = EvidenceScore()
        for clause in self._attribution_clauses(text):
            if not mentions(target, clause):
                continue
            score.add(
                self._score_pronouns(
                    target,
                    clause,
                    names,
                    ATTRIBUTION_PRONOUN_WEIGHT,
                    ATTRIBUTION_RESOLVED_MULTIPLIER,
                    "dialogue attribution",
                )
            )
        return score

    @staticmethod
    def _attribution_clauses(text: str) -> list[str]:
        spans: list[tuple[int, int]] = []
        for pattern in (TRAILING_ATTRIBUTION, LEADING_ATTRIBUTION):
            spans.extend(m.span("clause") for m in pattern.finditer(text))
        spans.sort()
        clauses: list[str] = []
        last_end = -1
        for start, end in spans:
            if start < last_end:
                continue
            clause = text[start:end].strip()
            if clause:
                clauses.append(clause)
            last_end = end
        return clauses

    def _relationship(
        self,
        target: str,
        other: str,
        partner: Gender,
        words: tuple[str, ...],
        text: str,
    ) -> tuple[str, Gender] | None:
        m = _relationship_pattern(target, other, words).search(text)
        if m is not None:
            word = m.group(1).lower()
            implied = infer_from_partner_role(word, partner)
            if implied is not Gender.UNKNOWN:
                return word, implied
        m = _relationship_pattern(other, target, words).search(text)
        if m is not None:
            word = m.group(1).lower()
            implied = infer_gender(word, partner)
            if implied is not Gender.UNKNOWN:
                return word, implied
        return None

    @staticmethod
    def _credit(score: EvidenceScore, gender: Gender, weight: float) -> None:
        if gender is Gender.MALE:
            score.male_score += weight
        elif gender is Gender.FEMALE:
            score.female_score += weight


__all__ = [
    "GenderDecision",
    "GenderEvidenceAnalyzer",
    "NameAmbiguity",
    "confidence_tier",
    "decide",
    "find_ambiguous_names",
]
