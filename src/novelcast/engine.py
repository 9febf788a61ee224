"""Per-novel processing session.

A :class:`NovelSession` owns one novel's character map. Typical use::

    session = NovelSession("example.com__my-novel", JsonFileStore("store.json"))
    await session.load()
    session.process_text(chapter_text)
    await session.sync(chapter_number=3)
    prompt_context = session.summary()

Inference is synchronous; only ``load``, ``sync`` and
``is_chapter_processed`` talk to the store. Store failures are logged and
reported as ``False``; the in-memory map stays usable. Sessions are not safe
for concurrent ``process_text`` calls.
"""

from __future__ import annotations

import logging
from typing import Any

from .analyzer import GenderEvidenceAnalyzer, decide, find_ambiguous_names
from .config import EngineConfig
from .extract import NameCandidateExtractor
from .gender import Gender
from .logging_setup import log_call
from .registry import IdentityRegistry
from .schema import CharacterRecord, StoreRequest, coerce_evidence
from .store import CharacterStore, StoreError, send_request
from .summary import create_character_summary

logger = logging.getLogger(__name__)


class NovelSession:
    def __init__(
        self,
        novel_id: str,
        store: CharacterStore | None = None,
        *,
        config: EngineConfig | None = None,
        extractor: NameCandidateExtractor | None = None,
        analyzer: GenderEvidenceAnalyzer | None = None,
    ) -> None:
        self.novel_id = novel_id
        self.store = store
        self.cfg = config or EngineConfig()
        self.extractor = extractor or NameCandidateExtractor(self.cfg)
        self.analyzer = analyzer or GenderEvidenceAnalyzer(self.cfg)
        self.registry = IdentityRegistry(novel_id, self.cfg)
        self.characters: dict[str, CharacterRecord] = {}
        self.enhanced_chapters: set[int] | None = None
        self.style: dict[str, Any] | None = None

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @log_call()
    async def load(self) -> bool:
        """Merge stored characters into the session; ``False`` when the store failed."""
        if self.store is None:
            return False
        try:
            data = await send_request(
                self.store,
                StoreRequest(action="getNovelData", novel_id=self.novel_id),
                self.cfg.sync_timeout,
            )
            style = await send_request(
                self.store,
                StoreRequest(action="getNovelStyle", novel_id=self.novel_id),
                self.cfg.sync_timeout,
            )
        except StoreError as exc:
            logger.warning("Could not load %s: %s", self.novel_id, exc)
            return False
        stored = self.registry.load_payload(data)
        for name, record in stored.items():
            current = self.characters.get(name)
            if current is None:
                self.characters[name] = record
            else:
                current.appearances = max(current.appearances, record.appearances)
                self._apply(current, record.gender, record.confidence, record.evidence)
                current.identity = record.identity
        self.style = style.style
        self.enhanced_chapters = set(data.enhanced_chapters or [])
        logger.info("Loaded %d characters for %s", len(stored), self.novel_id)
        return True

    @log_call()
    async def sync(self, chapter_number: int | None = None) -> bool:
        """Persist the character map; ``False`` when the store failed."""
        if self.store is None:
            self.registry.assign_identities(self.characters)
            return False
        try:
            await self.registry.sync(self.store, self.characters, chapter_number)
        except StoreError as exc:
            logger.warning("Sync failed for %s: %s", self.novel_id, exc)
            return False
        if chapter_number is not None and self.enhanced_chapters is not None:
            self.enhanced_chapters.add(chapter_number)
        return True

    async def is_chapter_processed(self, chapter_number: int) -> bool:
        if self.enhanced_chapters is None and self.store is not None:
            try:
                response = await send_request(
                    self.store,
                    StoreRequest(action="getNovelData", novel_id=self.novel_id, check_chapter=chapter_number),
                    self.cfg.sync_timeout,
                )
            except StoreError as exc:
                logger.warning("Chapter lookup failed for %s: %s", self.novel_id, exc)
                return False
            self.enhanced_chapters = set(response.enhanced_chapters or [])
        return chapter_number in (self.enhanced_chapters or set())

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------

    def needs_analysis(self, record: CharacterRecord) -> bool:
        return record.gender is Gender.UNKNOWN or record.confidence < self.cfg.reanalysis_confidence

    def process_text(self, text: Any) -> dict[str, CharacterRecord]:
        """Extract names from ``text``, update appearances and re-analyze weak records.

        Returns the session's full character map.
        """
        if not isinstance(text, str) or not text.strip():
            return self.characters

        for name, candidate in self.extractor.extract(text).items():
            record = self.characters.get(name)
            if record is None:
                self.characters[name] = candidate
            else:
                record.appearances += candidate.appearances

        analyzed = 0
        for name, record in self.characters.items():
            if not self.needs_analysis(record):
                continue
            decision = decide(self.analyzer.analyze(name, text, self.characters), self.cfg)
            self._apply(record, decision.gender, decision.confidence, decision.evidence)
            analyzed += 1

        for pair in find_ambiguous_names(self.characters):
            logger.debug("Possible duplicate characters %r / %r (%s)", pair.first, pair.second, pair.reason)
        logger.debug("Processed text for %s: %d characters, %d analyzed", self.novel_id, len(self.characters), analyzed)
        return self.characters

    def _apply(self, record: CharacterRecord, gender: Gender, confidence: float, evidence: list[str]) -> None:
        if gender is Gender.UNKNOWN:
            return
        if record.gender is not Gender.UNKNOWN and confidence < record.confidence:
            return
        previous = record.evidence if record.gender is gender else []
        record.gender = gender
        record.confidence = confidence
        record.evidence = coerce_evidence([*evidence, *previous], self.cfg.max_evidence)

    # ------------------------------------------------------------------
    # Output for the LLM collaborator
    # ------------------------------------------------------------------

    def export(self) -> dict[str, dict[str, Any]]:
        return {
            name: {
                "gender": record.gender.value,
                "confidence": record.confidence,
                "evidence": list(record.evidence),
                "appearances": record.appearances,
            }
            for name, record in self.characters.items()
        }

    def summary(self, limit: int = 10) -> str:
        return create_character_summary(self.characters, limit=limit)


__all__ = ["NovelSession"]
