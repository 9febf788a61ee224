"""Discover candidate character names in narrative text.

`NameCandidateExtractor` runs an ordered list of surface patterns over the
text, validates every raw capture with :func:`validate_name` and counts the
surviving names. Scanning cost is bounded by the text-length and match caps on
:class:`~novelcast.config.EngineConfig`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

import regex

from .config import EngineConfig
from .schema import CandidateMatch, CharacterRecord
from .textutils import normalize_ws

logger = logging.getLogger(__name__)

NAME = r"\p{Lu}\p{Ll}+(?: \p{Lu}\p{Ll}+){0,2}"
# A name optionally led by an abbreviated title ("Mrs. Smith").
CANDIDATE = rf"(?:(?:Mrs|Mr|Ms|Dr)\.\s)?{NAME}"
SPEECH_VERBS = (
    "said|replied|asked|shouted|exclaimed|whispered|muttered|spoke|declared|answered|laughed|sighed|cried"
)
ATTRIBUTION_VERBS = "said|replied|asked|shouted|exclaimed|whispered|muttered"
BODY_AND_RELATION_NOUNS = (
    "face|eyes|voice|body|hand|arm|leg|hair|head|mouth|mind|heart|soul|gaze|attention"
    "|wife|husband|brother|sister|father|mother|son|daughter"
)
TITLES = r"Master|Lady|Lord|Sir|Madam|Miss|Mrs\.|Mr\.|Ms\.|Dr\."

PRONOUNS = frozenset(
    {"He", "She", "It", "They", "I", "You", "We", "His", "Her", "Hers", "Him", "Their", "Them", "My", "Your", "Our", "Its", "Me", "Us"}
)

NON_NAMES = frozenset(
    {
        "The", "Then", "This", "That", "These", "Those", "There", "Their", "They",
        "However", "Suddenly", "Finally", "Eventually", "Certainly", "Perhaps", "Maybe",
        "While", "When", "After", "Before", "During", "Within", "Without", "Also",
        "Thus", "Therefore", "Hence", "Besides", "Moreover", "Although", "Despite",
        "Since", "Because", "Nonetheless", "Nevertheless", "Regardless", "Consequently",
        "Accordingly", "Meanwhile", "Afterwards", "Beforehand", "In", "As", "But", "Or",
        "And", "So", "Yet", "For", "Nor", "If", "From", "At", "Old", "Well", "Sister",
        "What", "Why", "How", "Where", "Who", "Yes", "No", "Oh", "Ah", "Now", "Here",
        "Still", "Even", "Just", "Everyone", "Someone", "Nobody", "Chapter",
    }
)

BARE_TITLES = frozenset({"Master", "Lady", "Lord", "Sir", "Madam", "Miss", "Mr", "Mrs", "Ms", "Dr", "Mr.", "Mrs.", "Ms.", "Dr.", "Xiao"})

# Validator shapes
CAPITALIZED_RUN = regex.compile(r"^\p{Lu}\p{Ll}+(?: \p{Lu}\p{Ll}+){0,2}$")
TITLE_NAME = regex.compile(rf"^(?:{TITLES}|Mrs|Mr|Ms|Dr) \p{{Lu}}\p{{Ll}}+$")
HONORIFIC_NAME = regex.compile(r"^Xiao \p{Lu}\p{Ll}+$")
SHORT_TOKEN = regex.compile(r"^\p{Lu}[\p{L}'’\-]*(?: \p{Lu}[\p{L}'’\-]*)*$")
AUXILIARY = regex.compile(r"\s(?:is|was|are|were|have|has|had|do|does|did|can|could|will|would|should|shall|may|might|must)\s")
SENTENCE_PUNCT = regex.compile(r"[.!?]")
TITLE_ABBREVIATION = regex.compile(r"(?<!\w)(Mrs|Mr|Ms|Dr)\.")
EMBEDDED_MARKERS = (". ", "! ", "? ", ", ")


def _mask_titles(text: str) -> str:
    return TITLE_ABBREVIATION.sub(r"\1", text)


def validate_name(text: Any, max_length: int = 30) -> str | None:
    """Return the cleaned name for a raw capture, or ``None`` when it is not a name.

    Rejects pronouns, connective/common words, captured clauses (auxiliary
    verbs, sentence punctuation), over-long text and text not starting with a
    capital letter. A leading connective ("Then Mary") is dropped. Accepts one
    to three capitalized words, title + name, ``Xiao`` + name and short
    capitalized tokens. Idempotent on its own output.
    """
    if not isinstance(text, str):
        return None
    name = normalize_ws(text)
    if not name or len(name) > max_length:
        return None

    words = name.split(" ")
    while len(words) > 1 and (words[0] in NON_NAMES or words[0] in PRONOUNS):
        words = words[1:]
    name = " ".join(words)

    if name.endswith(".") and not TITLE_ABBREVIATION.fullmatch(name):
        name = name[:-1].rstrip()
    if not name or name in PRONOUNS or name in NON_NAMES or name in BARE_TITLES:
        return None
    if not name[0].isupper():
        return None
    if " " in name and AUXILIARY.search(f" {name} "):
        return None
    if SENTENCE_PUNCT.search(_mask_titles(name)):
        return None

    if CAPITALIZED_RUN.match(name) or TITLE_NAME.match(name) or HONORIFIC_NAME.match(name):
        return name
    if len(name) < 20 and SHORT_TOKEN.match(name):
        return name
    return None


def clean_names(names: Iterable[str]) -> list[str]:
    """Drop reassembled fragments: embedded punctuation or five or more words."""
    kept: list[str] = []
    for name in names:
        masked = _mask_titles(name)
        if any(marker in masked for marker in EMBEDDED_MARKERS):
            continue
        if len(name.split()) >= 5 or name in NON_NAMES:
            continue
        kept.append(name)
    return kept


@dataclass(frozen=True)
class _Pattern:
    label: str
    compiled: regex.Pattern[str]
    capture: Callable[[Any], tuple[str, int]]


def _group(index: int) -> Callable[[Any], tuple[str, int]]:
    return lambda m: (m.group(index), m.start(index))


def _title_and_name(m: Any) -> tuple[str, int]:
    return f"{m.group(1)} {m.group(2)}", m.start(1)


class NameCandidateExtractor:
    """Scan text for character names with ordered surface patterns."""

    PATTERNS: tuple[_Pattern, ...] = (
        _Pattern("speech_verb", regex.compile(rf"(?<!\w)({CANDIDATE})\s+(?:{SPEECH_VERBS})\b"), _group(1)),
        _Pattern(
            "quote_attribution",
            regex.compile(rf"[\"“]([^\"“”]{{1,500}})[\"”]\s*,?\s*({CANDIDATE})\s+(?:{ATTRIBUTION_VERBS})\b"),
            _group(2),
        ),
        _Pattern("colon_dialogue", regex.compile(rf"(?<!\w)({CANDIDATE})\s*:\s*[\"“]"), _group(1)),
        _Pattern("possessive", regex.compile(rf"(?<!\w)({CANDIDATE})['’]s\s+(?:{BODY_AND_RELATION_NOUNS})\b"), _group(1)),
        _Pattern("title", regex.compile(rf"(?<!\w)({TITLES})\s+(\p{{Lu}}\p{{Ll}}+)"), _title_and_name),
        _Pattern("honorific", regex.compile(r"(?<!\w)(Xiao\s\p{Lu}\p{Ll}+)"), _group(1)),
    )

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.cfg = config or EngineConfig()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def scan(self, text: Any) -> list[CandidateMatch]:
        """Return validated name occurrences in pattern order.

        Args:
            text: Raw narrative text. Non-string or empty input yields ``[]``.

        Returns:
            One :class:`CandidateMatch` per accepted raw capture. Offsets refer
            to the (possibly truncated) input text.
        """
        if not isinstance(text, str) or not text:
            return []
        text = text[: self.cfg.max_text_length]

        matches: list[CandidateMatch] = []
        total = 0
        for pattern in self.PATTERNS:
            per_pattern = 0
            for m in pattern.compiled.finditer(text):
                if total >= self.cfg.max_matches or per_pattern >= self.cfg.max_pattern_matches:
                    break
                total += 1
                per_pattern += 1
                raw, offset = pattern.capture(m)
                if len(raw) > self.cfg.max_name_length:
                    continue
                name = validate_name(raw, self.cfg.max_name_length)
                if name:
                    matches.append(CandidateMatch(name=name, offset=offset, pattern=pattern.label))
            if total >= self.cfg.max_matches:
                logger.debug("Match cap %d reached during %s", self.cfg.max_matches, pattern.label)
                break
        return matches

    def extract(self, text: Any) -> dict[str, CharacterRecord]:
        """Return ``name -> CharacterRecord`` (gender unknown) with appearance counts."""
        counts: dict[str, int] = {}
        for match in self.scan(text):
            counts[match.name] = counts.get(match.name, 0) + 1
        names = clean_names(counts)
        logger.debug("Extracted %d candidate names", len(names))
        return {name: CharacterRecord(name=name, appearances=counts[name]) for name in names}


def extract_candidates(text: Any, config: EngineConfig | None = None) -> dict[str, CharacterRecord]:
    """Functional wrapper for :meth:`NameCandidateExtractor.extract`."""
    return NameCandidateExtractor(config).extract(text)


__all__ = [
    "NON_NAMES",
    "NameCandidateExtractor",
    "PRONOUNS",
    "clean_names",
    "extract_candidates",
    "validate_name",
]
