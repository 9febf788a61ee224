from __future__ import annotations

import asyncio
import glob
from pathlib import Path
from typing import Any, Iterable, List, Sequence

import click
import orjson
from tqdm import tqdm

from .analyzer import confidence_tier
from .config import EngineConfig
from .engine import NovelSession
from .files import load_chapters, load_json, save_json
from .logging_setup import setup_logging
from .schema import StoreRequest, StoreResponse
from .store import JsonFileStore, StoreError, send_request

DEFAULT_SCAN_OUT = "characters.json"


def _expand_paths(paths: Iterable[str]) -> List[str]:
    expanded: List[str] = []
    for pattern in paths:
        matches = sorted(glob.glob(pattern))
        if matches:
            expanded.extend(matches)
        else:
            expanded.append(pattern)
    return expanded


def _load_config() -> EngineConfig:
    try:
        return EngineConfig.from_env()
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc


def _read_chapters(paths: Sequence[str]) -> List[dict[str, str]]:
    try:
        chapters = load_chapters(_expand_paths(paths))
    except (FileNotFoundError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc
    if not chapters:
        raise click.ClickException("No chapters were found.")
    return chapters


def _open_store(path: Path, config: EngineConfig) -> JsonFileStore:
    try:
        return JsonFileStore(path, max_evidence=config.max_evidence, stale_days=config.stale_novel_days)
    except StoreError as exc:
        raise click.ClickException(str(exc)) from exc


def _seed_known(session: NovelSession, path: Path | None) -> None:
    if path is None:
        return
    try:
        raw = load_json(path)
    except orjson.JSONDecodeError as exc:
        raise click.ClickException(f"Invalid known-characters file {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise click.ClickException("Known-characters file must map names to records.")
    records = {name: value for name, value in raw.items() if isinstance(value, dict)}
    session.characters.update(session.registry.load_payload(StoreResponse(character_map=records)))


def _echo_table(session: NovelSession) -> None:
    rows = sorted(session.characters.values(), key=lambda r: (-r.appearances, r.name))
    if not rows:
        click.echo("No characters found.")
        return
    width = max(len("Name"), *(len(r.name) for r in rows))
    header = f"{'Name'.ljust(width)}  Gender   Conf  Tier    Seen"
    click.echo(header)
    click.echo("-" * len(header))
    for r in rows:
        tier = confidence_tier(r.confidence, session.cfg)
        click.echo(f"{r.name.ljust(width)}  {r.gender.value:<7}  {r.confidence:4.2f}  {tier:<6}  {r.appearances:>4}")


@click.group()
def main() -> None:
    """Character identity and gender inference CLI."""
    setup_logging()


@main.command()
@click.argument("chapters_paths", nargs=-1, required=True)
@click.option("--known", "known_path", type=click.Path(path_type=Path, exists=True), help="JSON map of already known characters.")
@click.option("--out", "output_path", default=DEFAULT_SCAN_OUT, show_default=True, help="Where to write the character map JSON.")
def scan(chapters_paths: Sequence[str], known_path: Path | None, output_path: str) -> None:
    """Extract characters and infer genders without touching a store."""

    config = _load_config()
    chapters = _read_chapters(chapters_paths)
    session = NovelSession("scan", config=config)
    _seed_known(session, known_path)

    for chapter in tqdm(chapters, desc="Scanning chapters", unit="chapter"):
        session.process_text(chapter["text"])

    _echo_table(session)
    save_json(output_path, session.export())


async def _sync_chapters(
    session: NovelSession,
    chapters: Sequence[dict[str, str]],
    first_chapter: int,
    force: bool,
) -> dict[str, Any]:
    stats = {"processed": 0, "skipped": 0, "failed_syncs": 0}
    loaded = await session.load()
    if not loaded:
        click.echo(f"Warning: could not load stored data for {session.novel_id}; starting fresh.", err=True)
    for index, chapter in enumerate(tqdm(chapters, desc="Processing chapters", unit="chapter")):
        number = first_chapter + index
        if not force and await session.is_chapter_processed(number):
            stats["skipped"] += 1
            continue
        session.process_text(chapter["text"])
        stats["processed"] += 1
        if not await session.sync(number):
            stats["failed_syncs"] += 1
    return stats


@main.command()
@click.argument("chapters_paths", nargs=-1, required=True)
@click.option("--store", "store_path", type=click.Path(path_type=Path), required=True, help="JSON store file.")
@click.option("--novel", "novel_id", required=True, help="Novel scope identifier.")
@click.option("--first-chapter", default=1, show_default=True, type=int, help="Chapter number of the first file.")
@click.option("--force", is_flag=True, help="Re-process chapters that were already enhanced.")
def sync(chapters_paths: Sequence[str], store_path: Path, novel_id: str, first_chapter: int, force: bool) -> None:
    """Process chapters in order and persist characters after each one."""

    config = _load_config()
    chapters = _read_chapters(chapters_paths)
    session = NovelSession(novel_id, _open_store(store_path, config), config=config)
    stats = asyncio.run(_sync_chapters(session, chapters, first_chapter, force))

    _echo_table(session)
    click.echo(
        f"Processed {stats['processed']} chapters, skipped {stats['skipped']}, "
        f"{stats['failed_syncs']} failed syncs; {len(session.characters)} characters in {novel_id}."
    )


@main.command()
@click.option("--store", "store_path", type=click.Path(path_type=Path, exists=True), required=True, help="JSON store file.")
@click.option("--novel", "novel_id", required=True, help="Novel scope identifier.")
@click.option("--limit", default=10, show_default=True, type=int, help="Maximum characters listed.")
def summary(store_path: Path, novel_id: str, limit: int) -> None:
    """Print the character summary used as LLM prompt context."""

    config = _load_config()
    session = NovelSession(novel_id, _open_store(store_path, config), config=config)
    if not asyncio.run(session.load()):
        raise click.ClickException(f"Could not load {novel_id} from {store_path}.")
    text = session.summary(limit=limit)
    if not text:
        raise click.ClickException(f"No characters stored for {novel_id}.")
    click.echo(text, nl=False)


@main.command()
@click.option("--store", "store_path", type=click.Path(path_type=Path, exists=True), required=True, help="JSON store file.")
@click.option("--days", default=None, type=int, help="Maximum age in days (defaults to NOVELCAST_STALE_NOVEL_DAYS or 30).")
def purge(store_path: Path, days: int | None) -> None:
    """Remove novels that were not accessed recently."""

    config = _load_config()
    store = _open_store(store_path, config)
    if days is not None:
        store.stale_days = days
    try:
        response = asyncio.run(send_request(store, StoreRequest(action="purge"), config.sync_timeout))
    except StoreError as exc:
        raise click.ClickException(str(exc)) from exc
    purged = response.purged or []
    click.echo(f"Purged {len(purged)} novels." + (f" ({', '.join(purged)})" if purged else ""))


if __name__ == "__main__":
    main()
