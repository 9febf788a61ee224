"""Character identity and gender inference for serialized fiction."""

from .analyzer import GenderEvidenceAnalyzer, decide
from .config import EngineConfig
from .engine import NovelSession
from .extract import NameCandidateExtractor, validate_name
from .gender import Gender, compress_gender, expand_gender
from .registry import IdentityRegistry
from .resolver import PronounReferenceResolver
from .schema import CharacterRecord, CompactRecord, EvidenceScore
from .store import HttpStore, JsonFileStore, MemoryStore, StoreError
from .summary import create_character_summary

__all__ = [
    "CharacterRecord",
    "CompactRecord",
    "EngineConfig",
    "EvidenceScore",
    "Gender",
    "GenderEvidenceAnalyzer",
    "HttpStore",
    "IdentityRegistry",
    "JsonFileStore",
    "MemoryStore",
    "NameCandidateExtractor",
    "NovelSession",
    "PronounReferenceResolver",
    "StoreError",
    "compress_gender",
    "create_character_summary",
    "decide",
    "expand_gender",
    "validate_name",
]
