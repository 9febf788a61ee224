"""In-memory memoization for the gender evidence analyzer."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from .textutils import content_hash

T = TypeVar("T")


@dataclass
class AnalysisCache:
    """Sentence and dialogue caches keyed by ``(target, text key)``.

    The text key is a CRC-32 of the full text unless ``strict`` is set, in
    which case the text itself is the key and collisions are impossible.
    Entries are never evicted; call :meth:`clear` between unrelated documents.

    Attributes:
        strict: Key by full text instead of a digest.
    """

    strict: bool = False
    hits: int = 0
    misses: int = 0
    _sentences: dict[tuple[str, str], Any] = field(default_factory=dict, repr=False)
    _dialogue: dict[tuple[str, str], Any] = field(default_factory=dict, repr=False)

    def key(self, target: str, text: str) -> tuple[str, str]:
        return (target, text if self.strict else content_hash(text))

    def sentences(self, target: str, text: str, compute: Callable[[], T]) -> T:
        return self._get(self._sentences, self.key(target, text), compute)

    def dialogue(self, target: str, text: str, compute: Callable[[], T]) -> T:
        return self._get(self._dialogue, self.key(target, text), compute)

    def _get(self, store: dict[tuple[str, str], Any], key: tuple[str, str], compute: Callable[[], T]) -> T:
        if key in store:
            self.hits += 1
            return store[key]
        self.misses += 1
        value = compute()
        store[key] = value
        return value

    def clear(self) -> None:
        self._sentences.clear()
        self._dialogue.clear()
        self.hits = 0
        self.misses = 0

    def stats(self) -> dict[str, int]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sentence_entries": len(self._sentences),
            "dialogue_entries": len(self._dialogue),
        }


__all__ = ["AnalysisCache"]
