from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from .gender import Gender, pronoun_set
from .schema import coerce_appearances, record_value

SUMMARY_HEADER = "CHARACTER INFORMATION (to help maintain proper pronouns and gender references):"


def create_character_summary(characters: Mapping[str, Any] | Iterable[Any], limit: int = 10) -> str:
    """Plain-text character list for prompt context.

    One line per character, most frequent first; characters seen more than
    once come before one-off mentions. At most ``limit`` lines. Returns an
    empty string when there are no characters.
    """
    if isinstance(characters, Mapping):
        entries = [(name, record) for name, record in characters.items()]
    else:
        entries = [(record_value(record, "name"), record) for record in characters]
    entries = [(name, record) for name, record in entries if isinstance(name, str) and name]
    if not entries or limit <= 0:
        return ""

    ranked = sorted(
        entries,
        key=lambda item: (
            coerce_appearances(record_value(item[1], "appearances")) <= 1,
            -coerce_appearances(record_value(item[1], "appearances")),
        ),
    )
    lines = [SUMMARY_HEADER]
    for name, record in ranked[:limit]:
        gender = Gender.parse(record_value(record, "gender"))
        appearances = coerce_appearances(record_value(record, "appearances"))
        lines.append(f"- {name}: {gender.value} ({pronoun_set(gender)}), appeared {appearances} times")
    return "\n".join(lines) + "\n"


__all__ = ["SUMMARY_HEADER", "create_character_summary"]
