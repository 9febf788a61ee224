"""Engine configuration.

All tunables the engine consumes as constants live on :class:`EngineConfig`.
Values may be overridden from the environment with ``NOVELCAST_<FIELD>``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Any

ENV_PREFIX = "NOVELCAST_"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class EngineConfig:
    """Limits, thresholds and weights for extraction, analysis and sync.

    Attributes:
        max_text_length: Characters of input scanned by the extractor.
        max_matches: Total raw pattern matches accepted per extraction.
        max_pattern_matches: Raw matches accepted per pattern.
        max_name_length: Longest raw candidate the validator accepts.
        min_stored_name_length: Shortest name the registry persists.
        max_stored_name_length: Longest name the registry persists.
        min_male_score: Score the male side must reach to win.
        min_female_score: Score the female side must reach to win.
        score_normalizer: Score difference mapped to confidence 1.0.
        medium_confidence: Lower bound of the medium tier.
        high_confidence: Lower bound of the high tier.
        reanalysis_confidence: Records below this are analyzed again.
        relationship_min_confidence: Partner confidence needed for relationship inference.
        max_evidence: Evidence strings kept per record.
        sync_timeout: Seconds to wait on the persistence collaborator.
        strict_cache_keys: Key analysis caches by full text instead of a hash.
        stale_novel_days: Age after which stored novels are purged.
    """

    max_text_length: int = 100_000
    max_matches: int = 1_000
    max_pattern_matches: int = 200
    max_name_length: int = 30
    min_stored_name_length: int = 2
    max_stored_name_length: int = 50
    min_male_score: float = 3.0
    min_female_score: float = 3.0
    score_normalizer: float = 10.0
    medium_confidence: float = 0.4
    high_confidence: float = 0.75
    reanalysis_confidence: float = 0.7
    relationship_min_confidence: float = 0.7
    max_evidence: int = 5
    sync_timeout: float = 10.0
    strict_cache_keys: bool = False
    stale_novel_days: int = 30

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX, **overrides: Any) -> EngineConfig:
        """Build a config from defaults, environment variables and ``overrides``."""
        values: dict[str, Any] = {}
        base = cls()
        for f in fields(cls):
            env_name = f"{prefix}{f.name.upper()}"
            raw = os.getenv(env_name)
            if raw is None or raw.strip() == "":
                continue
            values[f.name] = _coerce(env_name, raw.strip(), getattr(base, f.name))
        values.update(overrides)
        return replace(base, **values)


def _coerce(env_name: str, raw: str, default: Any) -> Any:
    if isinstance(default, bool):
        lowered = raw.lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise ValueError(f"{env_name} must be a boolean, got {raw!r}")
    try:
        if isinstance(default, int):
            return int(raw)
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{env_name} must be numeric, got {raw!r}") from exc


__all__ = ["ENV_PREFIX", "EngineConfig"]
