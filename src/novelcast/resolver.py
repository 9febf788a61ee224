"""Decide which named character a pronoun refers to within one sentence."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import regex

from .gender import Gender, pronoun_gender
from .textutils import name_pattern

PRONOUN = regex.compile(r"\b(he|him|his|she|her|hers)\b", regex.IGNORECASE)
SPEECH_VERB_TAIL = regex.compile(r"\b(said|replied|asked|exclaimed)\s*,?\s*$", regex.IGNORECASE)
CLAUSE_BREAK = regex.compile(r"[;:]")
POSSESSIVE_DETERMINERS = frozenset({"his", "her"})


@dataclass(frozen=True, slots=True)
class Mention:
    name: str
    offset: int


@dataclass(frozen=True, slots=True)
class PronounMatch:
    text: str
    offset: int

    @property
    def end(self) -> int:
        return self.offset + len(self.text)

    @property
    def gender(self) -> Gender:
        return pronoun_gender(self.text)


def find_pronouns(text: str) -> list[PronounMatch]:
    return [PronounMatch(m.group(1), m.start(1)) for m in PRONOUN.finditer(text)]


def find_mentions(sentence: str, names: Iterable[str]) -> list[Mention]:
    """First occurrence of each name in ``sentence``, ordered by offset."""
    found: list[Mention] = []
    for name in names:
        if not name:
            continue
        m = name_pattern(name).search(sentence)
        if m is not None:
            found.append(Mention(name, m.start()))
    found.sort(key=lambda mention: (mention.offset, mention.name))
    return found


def modifies(sentence: str, pronoun: PronounMatch, mention: Mention) -> bool:
    """True when ``pronoun`` is a possessive determiner of the noun phrase ending at ``mention``.

    ``"her brother John"``: *her* modifies John's phrase and cannot refer to John.
    """
    if pronoun.text.lower() not in POSSESSIVE_DETERMINERS or mention.offset <= pronoun.end:
        return False
    words = sentence[pronoun.end : mention.offset].split()
    return 1 <= len(words) <= 2 and all(w.isalpha() and w.islower() for w in words)


class PronounReferenceResolver:
    """Pick the referent of a pronoun among the characters named in a sentence.

    Rules, in order:

    1. A possessive determiner never refers to the head of its own noun
       phrase ("her brother John" excludes John).
    2. When the clause text before the pronoun ends in a speech verb
       (said/replied/asked/exclaimed), the candidate closest before that verb
       is the speaker and wins.
    3. Otherwise the candidate with the smallest offset distance wins; ties go
       to the earlier candidate. Possessive shapes ("his sword") use this rule
       too.
    """

    def resolve(
        self,
        sentence: str,
        target: Mention,
        others: Sequence[Mention],
        pronoun: PronounMatch,
    ) -> str | None:
        candidates = [c for c in (target, *others) if not modifies(sentence, pronoun, c)]
        if not candidates:
            return None

        speaker = self._speaker_before(sentence, candidates, pronoun.offset)
        if speaker is not None:
            return speaker.name

        best = min(candidates, key=lambda c: (abs(c.offset - pronoun.offset), c.offset))
        return best.name

    @staticmethod
    def _speaker_before(sentence: str, candidates: Sequence[Mention], offset: int) -> Mention | None:
        preceding = sentence[:offset]
        clause_start = 0
        for m in CLAUSE_BREAK.finditer(preceding):
            clause_start = m.end()
        verb = SPEECH_VERB_TAIL.search(preceding, clause_start)
        if verb is None:
            return None
        before = [c for c in candidates if c.offset < verb.start()]
        if not before:
            return None
        return max(before, key=lambda c: c.offset)


__all__ = [
    "Mention",
    "PronounMatch",
    "PronounReferenceResolver",
    "find_mentions",
    "find_pronouns",
    "modifies",
]
