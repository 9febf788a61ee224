"""Stable numeric identities for character names within one novel scope.

The registry hands out identities from a monotonic counter initialised from
the highest persisted identity, so an identity is never reused while the
registry lives, even when its record later disappears from the store.
Records are compacted for persistence at sync points: gender becomes a
single-letter code, numeric fields are normalized and evidence is capped.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .config import EngineConfig
from .gender import Gender, compress_gender
from .schema import (
    CharacterRecord,
    CompactRecord,
    StoreRequest,
    StoreResponse,
    coerce_appearances,
    coerce_confidence,
    coerce_evidence,
    record_value,
)
from .store import CharacterStore, send_request

logger = logging.getLogger(__name__)


class IdentityRegistry:
    """Name -> identity map for one novel."""

    def __init__(self, novel_id: str, config: EngineConfig | None = None) -> None:
        self.novel_id = novel_id
        self.cfg = config or EngineConfig()
        self._ids: dict[str, int] = {}
        self._names: dict[int, str] = {}
        self._next_identity = 0

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, name: object) -> bool:
        return name in self._ids

    @property
    def next_identity(self) -> int:
        return self._next_identity

    def identities(self) -> dict[str, int]:
        return dict(self._ids)

    def identity_of(self, name: str) -> int | None:
        return self._ids.get(name)

    def is_valid_name(self, name: Any) -> bool:
        return (
            isinstance(name, str)
            and self.cfg.min_stored_name_length <= len(name.strip()) <= self.cfg.max_stored_name_length
        )

    def assign(self, name: str) -> int:
        """Existing identity for ``name`` or the next counter value."""
        identity = self._ids.get(name)
        if identity is None:
            identity = self._next_identity
            self._bind(name, identity)
        return identity

    def _bind(self, name: str, identity: int) -> None:
        self._ids[name] = identity
        self._names[identity] = name
        self._next_identity = max(self._next_identity, identity + 1)

    def _adopt(self, name: str, identity: Any) -> int:
        """Take over a persisted identity unless it conflicts with a live one."""
        if name in self._ids:
            return self._ids[name]
        if isinstance(identity, int) and not isinstance(identity, bool) and identity >= 0:
            if identity not in self._names:
                self._bind(name, identity)
                return identity
            logger.warning(
                "Identity %d for %r already belongs to %r in %s; assigning a new one",
                identity,
                name,
                self._names[identity],
                self.novel_id,
            )
        return self.assign(name)

    # ------------------------------------------------------------------
    # Compaction
    # ------------------------------------------------------------------

    def compact(self, name: str, record: Any) -> CompactRecord:
        return CompactRecord(
            name=name,
            gender=compress_gender(Gender.parse(record_value(record, "gender"))),
            confidence=coerce_confidence(record_value(record, "confidence")),
            appearances=coerce_appearances(record_value(record, "appearances")),
            evidence=coerce_evidence(record_value(record, "evidence"), self.cfg.max_evidence) or None,
        )

    def assign_identities(self, character_map: Mapping[str, Any]) -> dict[int, CompactRecord]:
        """Assign or reuse identities and return compact records keyed by identity.

        Names outside the valid length range are skipped. ``CharacterRecord``
        values get their ``identity`` field set.
        """
        compact: dict[int, CompactRecord] = {}
        for name, record in character_map.items():
            if not self.is_valid_name(name):
                logger.debug("Skipping invalid character name %r", name)
                continue
            identity = self.assign(name)
            if isinstance(record, CharacterRecord) and record.identity != identity:
                record.identity = identity
            compact[identity] = self.compact(name, record)
        return compact

    def load_payload(self, response: StoreResponse) -> dict[str, CharacterRecord]:
        """Rebuild records and identities from a ``getNovelData`` response.

        Compact (identity-indexed) data wins; otherwise the name-indexed map
        is used and identities are assigned in its order. Absent data yields
        an empty map.
        """
        records: dict[str, CharacterRecord] = {}
        if response.raw_character_data:
            for identity, data in sorted(response.raw_character_data.items()):
                if self.is_valid_name(data.name):
                    records[data.name] = self._expand(data.name, data, self._adopt(data.name, identity))
        elif response.character_map:
            for name, data in response.character_map.items():
                if self.is_valid_name(name):
                    records[name] = self._expand(name, data, self._adopt(name, record_value(data, "identity")))
        return records

    def _expand(self, name: str, data: Any, identity: int) -> CharacterRecord:
        return CharacterRecord(
            name=name,
            gender=Gender.parse(record_value(data, "gender")),
            confidence=coerce_confidence(record_value(data, "confidence")),
            appearances=coerce_appearances(record_value(data, "appearances")),
            evidence=coerce_evidence(record_value(data, "evidence"), self.cfg.max_evidence),
            identity=identity,
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def load(self, store: CharacterStore, timeout: float | None = None) -> dict[str, CharacterRecord]:
        """Fetch the novel from ``store``; raises ``StoreError`` on failure."""
        response = await send_request(
            store,
            StoreRequest(action="getNovelData", novel_id=self.novel_id),
            self.cfg.sync_timeout if timeout is None else timeout,
        )
        return self.load_payload(response)

    async def sync(
        self,
        store: CharacterStore,
        character_map: Mapping[str, Any],
        chapter_number: int | None = None,
        timeout: float | None = None,
    ) -> dict[int, CompactRecord]:
        """Assign identities, send compact records and return what was sent."""
        compact = self.assign_identities(character_map)
        await send_request(
            store,
            StoreRequest(
                action="updateNovelData",
                novel_id=self.novel_id,
                chars=compact,
                chapter_number=chapter_number,
            ),
            self.cfg.sync_timeout if timeout is None else timeout,
        )
        logger.debug("Synced %d characters for %s", len(compact), self.novel_id)
        return compact


__all__ = ["IdentityRegistry"]
