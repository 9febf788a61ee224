from __future__ import annotations

import zlib
from functools import lru_cache
from typing import List

import regex

# "Mr." and friends end a word, not a sentence.
ABBREVIATED_TITLE = r"(?<!\w)(?:Mrs|Mr|Ms|Dr)\."
SENTENCE = regex.compile(rf"(?:{ABBREVIATED_TITLE}|[^.!?])+(?:[.!?]+|$)")
WHITESPACE = regex.compile(r"\s+")


def sentences(text: str) -> List[str]:
    """Split ``text`` into sentences ending at ``.``, ``!`` or ``?``.

    A trailing fragment without terminal punctuation is kept as a sentence.
    """
    if not text:
        return []
    results: List[str] = []
    for part in SENTENCE.findall(text):
        normalized = normalize_ws(part)
        if normalized:
            results.append(normalized)
    return results


def normalize_ws(value: str) -> str:
    """Collapse whitespace in ``value`` and strip leading/trailing spaces."""
    return WHITESPACE.sub(" ", value).strip()


@lru_cache(maxsize=4096)
def name_pattern(name: str) -> regex.Pattern[str]:
    """Whole-word, case-sensitive matcher for a character name."""
    return regex.compile(rf"(?<!\w){regex.escape(name)}(?!\w)")


def mentions(name: str, text: str) -> bool:
    return bool(name) and name_pattern(name).search(text) is not None


def content_hash(text: str) -> str:
    """Fast, non-cryptographic digest of ``text`` (CRC-32, hex).

    Collisions are possible; callers that cannot accept them key by the
    full text instead (see ``EngineConfig.strict_cache_keys``).
    """
    return f"{zlib.crc32(text.encode('utf-8')) & 0xFFFFFFFF:08x}"


__all__ = ["ABBREVIATED_TITLE", "content_hash", "mentions", "name_pattern", "normalize_ws", "sentences"]
