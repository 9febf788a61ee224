"""End-to-end session tests: extraction, inference and persistence."""

import asyncio

import pytest

from novelcast.config import EngineConfig
from novelcast.engine import NovelSession
from novelcast.gender import Gender
from novelcast.schema import CharacterRecord, StoreRequest, StoreResponse
from novelcast.store import CharacterStore, MemoryStore, StoreError

pytestmark = pytest.mark.anyio

CHAPTER = "Tom said he would bring his sword. Tom said he was ready."


class BrokenStore(CharacterStore):
    async def request(self, request: StoreRequest) -> StoreResponse:
        raise StoreError("connection refused")


class SlowStore(CharacterStore):
    async def request(self, request: StoreRequest) -> StoreResponse:
        await asyncio.sleep(1)
        return StoreResponse()


async def test_process_text_infers_gender() -> None:
    session = NovelSession("book")

    characters = session.process_text(CHAPTER)

    tom = characters["Tom"]
    assert tom.gender is Gender.MALE
    assert tom.confidence == 0.6
    assert tom.appearances == 2
    assert tom.evidence


async def test_reprocessing_accumulates_appearances() -> None:
    session = NovelSession("book")
    session.process_text(CHAPTER)
    session.process_text(CHAPTER)

    tom = session.characters["Tom"]
    assert tom.appearances == 4
    assert tom.gender is Gender.MALE
    assert len(tom.evidence) == len(set(tom.evidence))


async def test_confident_records_are_not_reanalyzed() -> None:
    session = NovelSession("book")
    session.characters["Tom"] = CharacterRecord(name="Tom", gender=Gender.FEMALE, confidence=0.9)

    session.process_text(CHAPTER)

    tom = session.characters["Tom"]
    assert (tom.gender, tom.confidence, tom.appearances) == (Gender.FEMALE, 0.9, 3)


async def test_sync_and_reload() -> None:
    store = MemoryStore()
    first = NovelSession("book", store)
    assert await first.load()
    first.process_text(CHAPTER)
    assert await first.sync(chapter_number=1)

    second = NovelSession("book", store)
    assert await second.load()

    tom = second.characters["Tom"]
    assert tom.identity == 0
    assert (tom.gender, tom.confidence, tom.appearances) == (Gender.MALE, 0.6, 2)
    assert await second.is_chapter_processed(1)
    assert not await second.is_chapter_processed(2)


async def test_chapter_lookup_without_load() -> None:
    store = MemoryStore()
    writer = NovelSession("book", store)
    writer.process_text(CHAPTER)
    await writer.sync(chapter_number=5)

    assert await NovelSession("book", store).is_chapter_processed(5)


async def test_store_failures_keep_memory_state() -> None:
    session = NovelSession("book", BrokenStore())
    session.process_text(CHAPTER)

    assert not await session.load()
    assert not await session.sync(chapter_number=1)
    assert session.characters["Tom"].gender is Gender.MALE


async def test_sync_timeout_is_a_failure() -> None:
    session = NovelSession("book", SlowStore(), config=EngineConfig(sync_timeout=0.01))
    session.process_text(CHAPTER)

    assert not await session.sync(chapter_number=1)
    assert "Tom" in session.characters


async def test_session_without_store() -> None:
    session = NovelSession("book")
    session.process_text(CHAPTER)

    assert not await session.load()
    assert not await session.sync()
    assert session.characters["Tom"].identity == 0


async def test_summary_and_export() -> None:
    session = NovelSession("book")
    session.process_text(CHAPTER)

    assert "- Tom: male (he/him/his), appeared 2 times" in session.summary()
    assert session.export()["Tom"]["gender"] == "male"


async def test_empty_text_is_ignored() -> None:
    session = NovelSession("book")
    assert session.process_text("") == {}
    assert session.process_text(None) == {}
