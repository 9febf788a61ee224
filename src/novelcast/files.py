from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, List

import orjson


def load_chapters(paths: Iterable[str]) -> List[dict[str, str]]:
    """Load chapter files into ``{"id", "title", "text"}`` dicts.

    ``.txt`` files are one chapter each; JSON files hold a list of chapter
    objects or ``{"chapters": [...]}``.
    """
    chapters: List[dict[str, str]] = []
    counter = 0

    for path_str in paths:
        path = Path(path_str)
        if not path.exists():
            raise FileNotFoundError(f"Chapter file not found: {path_str}")

        if path.suffix.lower() == ".txt":
            counter += 1
            chapters.append({"id": f"ch_{counter:04d}", "title": path.stem, "text": path.read_text(encoding="utf-8")})
            continue

        try:
            raw = orjson.loads(path.read_bytes())
        except orjson.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in {path_str!s}: {exc}") from exc
        if isinstance(raw, dict):
            records = raw.get("chapters", [])
        elif isinstance(raw, list):
            records = raw
        else:
            raise ValueError(f"Unsupported chapter format in {path_str!s}")

        if not isinstance(records, list):
            raise ValueError(f"Expected a list of chapters in {path_str!s}")

        for record in records:
            if not isinstance(record, dict):
                continue

            counter += 1
            chapter_id = record.get("id") or record.get("chapter_id") or f"ch_{counter:04d}"
            chapters.append({
                "id": str(chapter_id),
                "title": str(record.get("title") or record.get("name") or f"Chapter {counter}"),
                "text": str(record.get("text", "")),
            })

    return chapters


def load_json(path: str | Path) -> Any:
    return orjson.loads(Path(path).read_bytes())


def save_json(path: str | Path, obj: Any) -> None:
    """Serialize ``obj`` to ``path`` using orjson with indentation."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(orjson.dumps(obj, option=orjson.OPT_INDENT_2 | orjson.OPT_NON_STR_KEYS))
