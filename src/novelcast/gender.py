"""Gender enum and the single-letter codes used at the persistence boundary."""

from __future__ import annotations

from enum import Enum


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    UNKNOWN = "unknown"

    @property
    def code(self) -> str:
        return _CODES[self]

    @classmethod
    def parse(cls, value: object) -> Gender:
        """Accept a full word or a single-letter code; anything else is unknown."""
        if isinstance(value, Gender):
            return value
        if not isinstance(value, str):
            return cls.UNKNOWN
        key = value.strip().lower()
        for gender, code in _CODES.items():
            if key in (gender.value, code):
                return gender
        return cls.UNKNOWN

    def opposite(self) -> Gender:
        if self is Gender.MALE:
            return Gender.FEMALE
        if self is Gender.FEMALE:
            return Gender.MALE
        return Gender.UNKNOWN


_CODES = {Gender.MALE: "m", Gender.FEMALE: "f", Gender.UNKNOWN: "u"}

MALE_PRONOUNS = frozenset({"he", "him", "his"})
FEMALE_PRONOUNS = frozenset({"she", "her", "hers"})

_PRONOUN_SETS = {
    Gender.MALE: "he/him/his",
    Gender.FEMALE: "she/her/hers",
    Gender.UNKNOWN: "unknown pronouns",
}


def compress_gender(value: object) -> str:
    """Full word (or enum) to persisted code: ``male -> m``, ``female -> f``, else ``u``."""
    if isinstance(value, str) and value.strip().lower() in ("male", "female"):
        return Gender(value.strip().lower()).code
    return Gender.UNKNOWN.code


def expand_gender(code: object) -> str:
    """Persisted code back to the full word; unrecognized codes expand to ``unknown``."""
    if isinstance(code, str) and code.strip().lower() in ("m", "f"):
        return Gender.parse(code).value
    return Gender.UNKNOWN.value


def pronoun_gender(word: str) -> Gender:
    lowered = word.lower()
    if lowered in MALE_PRONOUNS:
        return Gender.MALE
    if lowered in FEMALE_PRONOUNS:
        return Gender.FEMALE
    return Gender.UNKNOWN


def pronoun_set(gender: Gender) -> str:
    return _PRONOUN_SETS[Gender.parse(gender)]


__all__ = [
    "FEMALE_PRONOUNS",
    "Gender",
    "MALE_PRONOUNS",
    "compress_gender",
    "expand_gender",
    "pronoun_gender",
    "pronoun_set",
]
