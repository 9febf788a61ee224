"""Tests for record merging and legacy store migration."""

import orjson
import pytest

from novelcast.schema import CompactRecord
from novelcast.store import JsonFileStore, StoreError, merge_compact, migrate_entry


def _rec(**kwargs) -> CompactRecord:
    return CompactRecord(name="Mary", **kwargs)


def test_higher_confidence_replaces() -> None:
    merged = merge_compact(
        _rec(gender="u", confidence=0.2, appearances=7, evidence=["old"]),
        _rec(gender="f", confidence=0.9, appearances=3, evidence=["new"]),
    )
    assert (merged.gender, merged.confidence, merged.appearances, merged.evidence) == ("f", 0.9, 7, ["new"])


def test_lower_confidence_keeps_existing() -> None:
    merged = merge_compact(
        _rec(gender="f", confidence=0.8, appearances=2, evidence=["kept"]),
        _rec(gender="m", confidence=0.3, appearances=5),
    )
    assert (merged.gender, merged.confidence, merged.appearances, merged.evidence) == ("f", 0.8, 5, ["kept"])


def test_equal_confidence_unions_evidence() -> None:
    merged = merge_compact(
        _rec(gender="f", confidence=0.5, evidence=["a", "b"]),
        _rec(gender="f", confidence=0.5, evidence=["b", "c", "d", "e", "f"]),
    )
    assert merged.evidence == ["a", "b", "c", "d", "e"]


def test_equal_confidence_prefers_known_gender() -> None:
    merged = merge_compact(_rec(gender="u"), _rec(gender="m"))
    assert merged.gender == "m"


def test_migrate_current_shape() -> None:
    entry = migrate_entry(
        {
            "chars": {"3": {"name": "Mary", "gender": "f", "confidence": 0.8, "evidences": ["x"]}, "bad": {}},
            "chaps": [2, 1, 2],
            "lastAccess": 123,
        }
    )
    assert list(entry.chars) == [3]
    assert entry.chars[3].evidence == ["x"]
    assert entry.chaps == [1, 2]
    assert entry.last_access == 123.0


def test_migrate_legacy_characters_shape() -> None:
    entry = migrate_entry(
        {
            "characters": {
                "Mary": {"gender": "female", "confidence": 0.8, "appearances": 4},
                "John": {"gender": "male"},
            },
            "enhancedChapters": [{"chapterNumber": 3}, 1],
        }
    )
    assert {i: (c.name, c.gender) for i, c in entry.chars.items()} == {0: ("Mary", "f"), 1: ("John", "m")}
    assert entry.chars[0].appearances == 4
    assert entry.chaps == [1, 3]


def test_migrate_bare_name_map() -> None:
    entry = migrate_entry({"Mary": {"gender": "f"}, "junk": 5, "noise": {"color": "red"}})
    assert [c.name for c in entry.chars.values()] == ["Mary"]
    assert migrate_entry("nonsense").chars == {}


def test_json_store_loads_legacy_file(tmp_path) -> None:
    path = tmp_path / "store.json"
    path.write_bytes(orjson.dumps({"novel": {"characters": {"Mary": {"gender": "female"}}}}))

    store = JsonFileStore(path)

    assert store.novels["novel"].chars[0].gender == "f"


def test_json_store_rejects_invalid_files(tmp_path) -> None:
    path = tmp_path / "store.json"
    path.write_text("{not json")
    with pytest.raises(StoreError, match="Unreadable"):
        JsonFileStore(path)

    path.write_text("[1, 2]")
    with pytest.raises(StoreError, match="JSON object"):
        JsonFileStore(path)


def test_compact_record_normalizes_on_read() -> None:
    record = CompactRecord.model_validate(
        {"name": "Ann", "gender": "robot", "confidence": 7, "appearances": -2, "evidences": ["a", "a", 3]}
    )
    assert (record.gender, record.confidence, record.appearances, record.evidence) == ("u", 1.0, 1, ["a"])
