"""Record shapes shared by the engine, the registry and the store.

In-memory records use the full :class:`~novelcast.gender.Gender` enum; the
persisted (compact) records carry single-letter gender codes and are keyed by
numeric identity. Wire models use the collaborator's camelCase names as
aliases and accept snake_case on input.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .gender import Gender


class CharacterRecord(BaseModel):
    name: str
    gender: Gender = Gender.UNKNOWN
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    appearances: int = Field(default=1, ge=1)
    evidence: List[str] = Field(default_factory=list)
    identity: Optional[int] = Field(default=None, ge=0)

    model_config = ConfigDict(validate_assignment=True)


class CompactRecord(BaseModel):
    """Persisted form of a character, stored under its identity.

    Field values read back from a store are normalized rather than rejected:
    unknown genders become ``u``, bad confidences 0 and bad appearance counts 1.
    """

    name: str
    gender: Literal["m", "f", "u"] = "u"
    confidence: float = 0.0
    appearances: int = 1
    evidence: Optional[List[str]] = Field(
        default=None,
        validation_alias=AliasChoices("evidence", "evidences"),
    )

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("gender", mode="before")
    @classmethod
    def _gender_code(cls, value: Any) -> str:
        return Gender.parse(value).code

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, value: Any) -> float:
        return coerce_confidence(value)

    @field_validator("appearances", mode="before")
    @classmethod
    def _appearances(cls, value: Any) -> int:
        return coerce_appearances(value)

    @field_validator("evidence", mode="before")
    @classmethod
    def _evidence(cls, value: Any) -> Optional[List[str]]:
        if value is None:
            return None
        return coerce_evidence(value) or None


class NovelEntry(BaseModel):
    """Everything the store keeps for one novel scope."""

    chars: Dict[int, CompactRecord] = Field(default_factory=dict)
    chaps: List[int] = Field(default_factory=list)
    style: Optional[Dict[str, Any]] = None
    last_access: float = Field(default=0.0, alias="lastAccess")

    model_config = ConfigDict(populate_by_name=True)


StoreAction = Literal["getNovelData", "updateNovelData", "getNovelStyle", "updateNovelStyle", "purge"]


class StoreRequest(BaseModel):
    action: StoreAction
    novel_id: Optional[str] = Field(default=None, alias="novelId")
    chars: Optional[Dict[int, CompactRecord]] = None
    chapter_number: Optional[int] = Field(default=None, alias="chapterNumber")
    check_chapter: Optional[int] = Field(default=None, alias="checkChapter")
    style: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class StoreResponse(BaseModel):
    status: str = "ok"
    message: Optional[str] = None
    character_map: Optional[Dict[str, Dict[str, Any]]] = Field(default=None, alias="characterMap")
    raw_character_data: Optional[Dict[int, CompactRecord]] = Field(default=None, alias="rawCharacterData")
    style: Optional[Dict[str, Any]] = None
    is_chapter_enhanced: Optional[bool] = Field(default=None, alias="isChapterEnhanced")
    enhanced_chapters: Optional[List[int]] = Field(default=None, alias="enhancedChapters")
    purged: Optional[List[str]] = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("raw_character_data", mode="before")
    @classmethod
    def _readable_records(cls, value: Any) -> Any:
        """Drop entries without a numeric identity or a string name; keep the rest."""
        if not isinstance(value, dict):
            return value
        kept: Dict[int, Any] = {}
        for key, record in value.items():
            try:
                identity = int(key)
            except (TypeError, ValueError):
                continue
            name = record_value(record, "name")
            if identity >= 0 and isinstance(name, str):
                kept[identity] = record
        return kept

    @field_validator("character_map", mode="before")
    @classmethod
    def _mapping_values(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        return {name: data for name, data in value.items() if isinstance(name, str) and isinstance(data, dict)}

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


@dataclass(frozen=True, slots=True)
class CandidateMatch:
    """A validated name occurrence found during extraction."""

    name: str
    offset: int
    pattern: str


@dataclass(slots=True)
class EvidenceScore:
    """Additive male/female weights plus the first justification seen."""

    male_score: float = 0.0
    female_score: float = 0.0
    evidence: Optional[str] = None

    def add(self, other: EvidenceScore) -> EvidenceScore:
        self.male_score += other.male_score
        self.female_score += other.female_score
        if self.evidence is None:
            self.evidence = other.evidence
        return self

    @property
    def is_zero(self) -> bool:
        return self.male_score == 0 and self.female_score == 0


def record_value(record: Any, key: str, default: Any = None) -> Any:
    """Read ``key`` from a pydantic record or a plain mapping."""
    if isinstance(record, BaseModel):
        return getattr(record, key, default)
    if isinstance(record, dict):
        return record.get(key, default)
    return default


def coerce_confidence(value: Any) -> float:
    """Finite numbers are clamped to [0, 1]; anything else becomes 0."""
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number):
        return 0.0
    return min(1.0, max(0.0, number))


def coerce_appearances(value: Any) -> int:
    """Positive integers pass through; anything else becomes 1."""
    if isinstance(value, bool) or isinstance(value, float) and not value.is_integer():
        return 1
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return 1
    return number if number >= 1 else 1


def coerce_evidence(value: Any, limit: int = 5) -> List[str]:
    """Non-empty evidence strings, first ``limit`` kept, duplicates dropped."""
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    kept: List[str] = []
    for item in value:
        if isinstance(item, str) and item.strip() and item not in kept:
            kept.append(item)
        if len(kept) >= limit:
            break
    return kept


__all__ = [
    "CandidateMatch",
    "CharacterRecord",
    "CompactRecord",
    "EvidenceScore",
    "NovelEntry",
    "StoreAction",
    "StoreRequest",
    "StoreResponse",
    "coerce_appearances",
    "coerce_evidence",
    "coerce_confidence",
    "record_value",
]
