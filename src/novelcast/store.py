"""Persistence collaborators for per-novel character data.

Every store answers :class:`~novelcast.schema.StoreRequest` objects with a
:class:`~novelcast.schema.StoreResponse`. Supported actions:

``getNovelData``      compact and name-indexed characters, enhanced chapters
``updateNovelData``   merge compact records, record an enhanced chapter
``getNovelStyle``     opaque style dict for the novel
``updateNovelStyle``  replace the style dict
``purge``             drop novels not accessed for ``stale_days``

On disk (``JsonFileStore``) each novel id maps to::

    {"chars": {"0": {"name": "Mary", "gender": "f", "confidence": 0.8,
                     "appearances": 4, "evidence": ["..."]}},
     "chaps": [1, 2], "style": {...}, "lastAccess": 1718000000.0}

Older files that stored ``{"characters": {name: {...}}, "enhancedChapters":
[...]}`` or a bare name map are migrated on load.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import orjson
from pydantic import ValidationError

from .files import save_json
from .gender import Gender, expand_gender
from .schema import (
    CompactRecord,
    NovelEntry,
    StoreRequest,
    StoreResponse,
    coerce_appearances,
    coerce_confidence,
    coerce_evidence,
)

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86_400


class StoreError(RuntimeError):
    """Persistence call failed: timeout, transport error or error response."""


class CharacterStore(ABC):
    @abstractmethod
    async def request(self, request: StoreRequest) -> StoreResponse:
        """Handle one request; raise :class:`StoreError` on transport failure."""

    async def aclose(self) -> None:
        return None


async def send_request(store: CharacterStore, request: StoreRequest, timeout: float | None) -> StoreResponse:
    """Send ``request`` with a bounded wait; error responses raise :class:`StoreError`.

    There is no retry. The caller decides whether to continue with in-memory
    state.
    """
    try:
        response = await asyncio.wait_for(store.request(request), timeout)
    except asyncio.TimeoutError as exc:
        raise StoreError(f"{request.action} timed out after {timeout}s") from exc
    if not response.ok:
        raise StoreError(response.message or f"{request.action} failed with status {response.status!r}")
    return response


def merge_compact(existing: CompactRecord, incoming: CompactRecord, max_evidence: int = 5) -> CompactRecord:
    """Merge two records for the same name.

    Higher incoming confidence replaces gender, confidence and evidence; equal
    confidence unions evidence (existing first). Appearances take the maximum.
    """
    appearances = max(existing.appearances, incoming.appearances)
    if incoming.confidence > existing.confidence:
        gender, confidence = incoming.gender, incoming.confidence
        evidence = coerce_evidence(incoming.evidence, max_evidence)
    elif incoming.confidence == existing.confidence:
        gender = existing.gender if existing.gender != "u" else incoming.gender
        confidence = existing.confidence
        evidence = coerce_evidence([*(existing.evidence or []), *(incoming.evidence or [])], max_evidence)
    else:
        gender, confidence = existing.gender, existing.confidence
        evidence = coerce_evidence(existing.evidence, max_evidence)
    return CompactRecord(
        name=existing.name,
        gender=gender,
        confidence=confidence,
        appearances=appearances,
        evidence=evidence or None,
    )


def _compact_from_legacy(name: str, value: Any, max_evidence: int) -> CompactRecord:
    data = value if isinstance(value, dict) else {}
    return CompactRecord(
        name=name,
        gender=Gender.parse(data.get("gender")).code,
        confidence=coerce_confidence(data.get("confidence")),
        appearances=coerce_appearances(data.get("appearances")),
        evidence=coerce_evidence(data.get("evidence") or data.get("evidences"), max_evidence) or None,
    )


def _chapter_numbers(value: Any) -> list[int]:
    numbers: set[int] = set()
    for item in value if isinstance(value, list) else []:
        if isinstance(item, dict):
            item = item.get("chapterNumber")
        if isinstance(item, int) and not isinstance(item, bool):
            numbers.add(item)
    return sorted(numbers)


def _timestamp(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if number >= 0 else 0.0


def migrate_entry(raw: Any, max_evidence: int = 5) -> NovelEntry:
    """Normalize a stored novel entry, converting legacy shapes.

    Unreadable records are dropped; a non-dict entry becomes an empty novel.
    """
    if not isinstance(raw, dict):
        return NovelEntry()

    if "chars" in raw:
        chars: dict[int, CompactRecord] = {}
        source = raw.get("chars") if isinstance(raw.get("chars"), dict) else {}
        for key, value in source.items():
            try:
                identity = int(key)
            except (TypeError, ValueError):
                continue
            if identity < 0 or not isinstance(value, dict) or not isinstance(value.get("name"), str):
                continue
            chars[identity] = _compact_from_legacy(value["name"], value, max_evidence)
        return NovelEntry(
            chars=chars,
            chaps=_chapter_numbers(raw.get("chaps")),
            style=raw.get("style") if isinstance(raw.get("style"), dict) else None,
            last_access=_timestamp(raw.get("lastAccess")),
        )

    characters = raw.get("characters") if "characters" in raw else raw
    chars = {}
    if isinstance(characters, dict):
        for name, value in characters.items():
            if isinstance(name, str) and isinstance(value, dict) and ("gender" in value or "appearances" in value):
                chars[len(chars)] = _compact_from_legacy(name, value, max_evidence)
    logger.info("Migrated legacy novel entry with %d characters", len(chars))
    return NovelEntry(
        chars=chars,
        chaps=_chapter_numbers(raw.get("enhancedChapters")) if "characters" in raw else [],
        style=raw.get("style") if "characters" in raw and isinstance(raw.get("style"), dict) else None,
        last_access=time.time(),
    )


class MemoryStore(CharacterStore):
    """In-process store implementing every collaborator action."""

    def __init__(
        self,
        novels: dict[str, NovelEntry] | None = None,
        *,
        max_evidence: int = 5,
        stale_days: int = 30,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.novels: dict[str, NovelEntry] = dict(novels or {})
        self.max_evidence = max_evidence
        self.stale_days = stale_days
        self._clock = clock

    async def request(self, request: StoreRequest) -> StoreResponse:
        if request.action == "purge":
            return self._purge()
        if not request.novel_id:
            return StoreResponse(status="error", message="novelId is required")
        handlers = {
            "getNovelData": self._get_novel_data,
            "updateNovelData": self._update_novel_data,
            "getNovelStyle": self._get_style,
            "updateNovelStyle": self._update_style,
        }
        response = handlers[request.action](request)
        if request.action in ("updateNovelData", "updateNovelStyle"):
            self._persist()
        return response

    def _persist(self) -> None:
        return None

    def _touch(self, novel_id: str) -> NovelEntry | None:
        entry = self.novels.get(novel_id)
        if entry is not None:
            entry.last_access = self._clock()
        return entry

    def _ensure(self, novel_id: str) -> NovelEntry:
        entry = self._touch(novel_id)
        if entry is None:
            entry = self.novels[novel_id] = NovelEntry(last_access=self._clock())
        return entry

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _get_novel_data(self, request: StoreRequest) -> StoreResponse:
        entry = self._touch(request.novel_id) or NovelEntry()
        character_map = {
            record.name: {
                "gender": expand_gender(record.gender),
                "confidence": record.confidence,
                "appearances": record.appearances,
                "evidence": list(record.evidence or []),
                "identity": identity,
            }
            for identity, record in sorted(entry.chars.items())
        }
        response = StoreResponse(
            character_map=character_map,
            raw_character_data=dict(entry.chars),
            enhanced_chapters=list(entry.chaps),
        )
        if request.check_chapter is not None:
            response.is_chapter_enhanced = request.check_chapter in entry.chaps
        return response

    def _update_novel_data(self, request: StoreRequest) -> StoreResponse:
        entry = self._ensure(request.novel_id)
        by_name = {record.name: identity for identity, record in entry.chars.items()}
        for identity, incoming in sorted((request.chars or {}).items()):
            existing_id = by_name.get(incoming.name)
            if existing_id is not None:
                entry.chars[existing_id] = merge_compact(entry.chars[existing_id], incoming, self.max_evidence)
                continue
            if identity in entry.chars:
                identity = max(entry.chars) + 1
            entry.chars[identity] = incoming.model_copy(
                update={"evidence": coerce_evidence(incoming.evidence, self.max_evidence) or None}
            )
            by_name[incoming.name] = identity
        if request.chapter_number is not None and request.chapter_number not in entry.chaps:
            entry.chaps = sorted([*entry.chaps, request.chapter_number])
        logger.debug("Stored %d characters for %s", len(entry.chars), request.novel_id)
        return StoreResponse(raw_character_data=dict(entry.chars), enhanced_chapters=list(entry.chaps))

    def _get_style(self, request: StoreRequest) -> StoreResponse:
        entry = self._touch(request.novel_id)
        return StoreResponse(style=entry.style if entry else None)

    def _update_style(self, request: StoreRequest) -> StoreResponse:
        entry = self._ensure(request.novel_id)
        entry.style = request.style
        return StoreResponse(style=entry.style)

    def _purge(self) -> StoreResponse:
        cutoff = self._clock() - self.stale_days * SECONDS_PER_DAY
        stale = sorted(novel_id for novel_id, entry in self.novels.items() if entry.last_access < cutoff)
        for novel_id in stale:
            del self.novels[novel_id]
            logger.info("Purged stale novel %s", novel_id)
        if stale:
            self._persist()
        return StoreResponse(purged=stale)


class JsonFileStore(MemoryStore):
    """:class:`MemoryStore` backed by one JSON file, saved after each change."""

    def __init__(self, path: str | Path, **kwargs: Any) -> None:
        self.path = Path(path)
        super().__init__(self._load(self.path, kwargs.get("max_evidence", 5)), **kwargs)

    @staticmethod
    def _load(path: Path, max_evidence: int) -> dict[str, NovelEntry]:
        if not path.exists():
            return {}
        try:
            raw = orjson.loads(path.read_bytes())
        except orjson.JSONDecodeError as exc:
            raise StoreError(f"Unreadable store file {path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise StoreError(f"Store file {path} must contain a JSON object")
        return {str(novel_id): migrate_entry(entry, max_evidence) for novel_id, entry in raw.items()}

    def _persist(self) -> None:
        payload = {
            novel_id: entry.model_dump(mode="json", by_alias=True, exclude_none=True)
            for novel_id, entry in self.novels.items()
        }
        save_json(self.path, payload)


class HttpStore(CharacterStore):
    """POST requests as JSON to a remote collaborator."""

    def __init__(
        self,
        url: str | None = None,
        api_key: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url or os.getenv("NOVELCAST_STORE_URL")
        self.api_key = api_key if api_key is not None else os.getenv("NOVELCAST_STORE_API_KEY")
        self.timeout = timeout
        self._transport = transport

    async def request(self, request: StoreRequest) -> StoreResponse:
        if not self.url:
            raise StoreError("No store URL configured (set NOVELCAST_STORE_URL)")

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                body = orjson.dumps(request.to_wire(), option=orjson.OPT_NON_STR_KEYS)
                response = await client.post(self.url, content=body, headers=headers)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise StoreError(f"{request.action} failed: {exc}") from exc

        try:
            return StoreResponse.model_validate(orjson.loads(response.content))
        except (orjson.JSONDecodeError, ValidationError) as exc:
            raise StoreError(f"{request.action} returned an invalid payload: {exc}") from exc


__all__ = [
    "CharacterStore",
    "HttpStore",
    "JsonFileStore",
    "MemoryStore",
    "StoreError",
    "merge_compact",
    "migrate_entry",
    "send_request",
]
