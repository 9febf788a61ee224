"""Gendered titles and honorifics carried in a character's name.

``"Mrs. Smith"``, ``"Lord Varys"``, ``"Young Master Lin"`` and suffix forms
such as ``"Tanaka-kun"`` reveal the bearer's gender without any pronoun in
the text. Titles that both genders use (Dr., Sensei, Elder) are not listed.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

import regex

from .gender import Gender

MALE_TITLES: tuple[str, ...] = (
    # western
    "Mr", "Mister", "Sir", "Lord", "Master", "Prince", "King", "Duke", "Count",
    "Baron", "Emperor", "Brother", "Uncle", "Father", "Grandpa", "Grandfather",
    # chinese
    "Young Master", "Gongzi", "Shaoye", "Laoye", "Dage", "Gege", "Shixiong", "Shidi",
    # japanese
    "Onii-san", "Onii-sama", "Oji-san", "Otou-san", "Aniki", "-kun",
    # korean
    "Oppa", "Hyung", "Ahjussi",
)

FEMALE_TITLES: tuple[str, ...] = (
    # western
    "Mrs", "Ms", "Miss", "Lady", "Madam", "Madame", "Dame", "Mistress", "Princess",
    "Queen", "Duchess", "Countess", "Baroness", "Empress", "Sister", "Aunt",
    "Mother", "Grandma", "Grandmother",
    # chinese
    "Young Lady", "Young Miss", "Guniang", "Xiaojie", "Furen", "Jiejie", "Meimei",
    "Shijie", "Shimei", "Fairy Maiden",
    # japanese
    "Onee-san", "Onee-sama", "Oba-san", "Okaa-san", "Ojou-sama", "Hime", "-chan",
    # korean
    "Unni", "Nuna", "Ahjumma",
)

TITLE_GENDERS: Mapping[str, Gender] = MappingProxyType(
    {
        **{title.lower(): Gender.MALE for title in MALE_TITLES},
        **{title.lower(): Gender.FEMALE for title in FEMALE_TITLES},
    }
)


def _alternatives(titles: tuple[str, ...]) -> str:
    # Longest first so "Young Master" wins over "Master".
    return "|".join(regex.escape(t) for t in sorted(titles, key=len, reverse=True))


_WORD_TITLES = tuple(t for t in (*MALE_TITLES, *FEMALE_TITLES) if not t.startswith("-"))
_SUFFIX_TITLES = tuple(t for t in (*MALE_TITLES, *FEMALE_TITLES) if t.startswith("-"))

TITLE_WORD = regex.compile(rf"(?<![\w-])({_alternatives(_WORD_TITLES)})\.?(?![\w-])", regex.IGNORECASE)
TITLE_SUFFIX = regex.compile(rf"\w({_alternatives(_SUFFIX_TITLES)})(?![\w-])", regex.IGNORECASE)


def title_gender(name: str) -> tuple[Gender, str | None]:
    """Gender implied by a title in ``name`` and the title found.

    A title must be a whole word of a multi-word name ("Lady Catherine",
    "Lin Young Master") or a name suffix ("Tanaka-kun"). A bare one-word name
    that happens to be a title ("Hime") does not count. Returns
    ``(Gender.UNKNOWN, None)`` when nothing matches.
    """
    if not isinstance(name, str) or not name.strip():
        return Gender.UNKNOWN, None
    name = name.strip()
    m = TITLE_SUFFIX.search(name)
    if m is None and " " in name:
        m = TITLE_WORD.search(name)
    if m is None:
        return Gender.UNKNOWN, None
    title = m.group(1)
    return TITLE_GENDERS[title.lower()], title


__all__ = ["FEMALE_TITLES", "MALE_TITLES", "TITLE_GENDERS", "title_gender"]
