"""Tests for the message stores."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from core.feed.store import InMemoryMessageStore, JsonFileMessageStore, MessageStoreClosedError, MessageStoreError
from models.message_models import Message, MessageValidationError, NewMessage

if TYPE_CHECKING:
    from pathlib import Path


async def test_subscribe_delivers_current_snapshot_immediately() -> None:
    store = InMemoryMessageStore()
    await store.append(NewMessage(sender_name="Amina", transcription="Hello", language="en"))
    snapshots: list[list[Message]] = []

    store.subscribe(snapshots.append)

    assert len(snapshots) == 1
    assert snapshots[0][0].transcription == "Hello"


async def test_append_assigns_id_and_timestamp_and_publishes() -> None:
    store = InMemoryMessageStore()
    snapshots: list[list[Message]] = []
    store.subscribe(snapshots.append)

    first_id: str = await store.append(NewMessage(sender_name="Amina", transcription="Hello", language="EN"))
    second_id: str = await store.append(NewMessage(sender_name="Tendai", transcription="Mhoro", language="sh"))

    assert first_id != second_id
    assert len(snapshots) == 3
    latest: list[Message] = snapshots[-1]
    assert [m.id for m in latest] == [second_id, first_id]
    assert latest[1].language == "en"
    assert latest[0].created_at >= latest[1].created_at


@pytest.mark.parametrize(
    ("sender_name", "transcription", "language"),
    [("", "Hello", "en"), ("Amina", "  ", "en"), ("Amina", "Hello", "")],
)
async def test_append_rejects_missing_fields(sender_name: str, transcription: str, language: str) -> None:
    store = InMemoryMessageStore()

    with pytest.raises(MessageValidationError):
        await store.append(NewMessage(sender_name=sender_name, transcription=transcription, language=language))


async def test_snapshots_are_copies() -> None:
    store = InMemoryMessageStore()
    snapshots: list[list[Message]] = []
    store.subscribe(snapshots.append)
    await store.append(NewMessage(sender_name="Amina", transcription="Hello", language="en"))

    snapshots[-1][0].translated_text = "Sannu"

    assert store.snapshot()[0].translated_text is None


async def test_failing_subscriber_does_not_block_others() -> None:
    store = InMemoryMessageStore()
    received: list[int] = []

    def broken(messages: list[Message]) -> None:
        _ = messages
        msg = "subscriber failure"
        raise RuntimeError(msg)

    store.subscribe(broken)
    store.subscribe(lambda messages: received.append(len(messages)))
    await store.append(NewMessage(sender_name="Amina", transcription="Hello", language="en"))

    assert received == [0, 1]


async def test_unsubscribe_stops_delivery() -> None:
    store = InMemoryMessageStore()
    received: list[int] = []
    unsubscribe = store.subscribe(lambda messages: received.append(len(messages)))

    unsubscribe()
    await store.append(NewMessage(sender_name="Amina", transcription="Hello", language="en"))

    assert received == [0]


async def test_closed_store_rejects_append() -> None:
    store = InMemoryMessageStore()
    await store.close()

    with pytest.raises(MessageStoreClosedError):
        await store.append(NewMessage(sender_name="Amina", transcription="Hello", language="en"))


async def test_json_store_persists_and_reloads(tmp_path: Path) -> None:
    path: Path = tmp_path / "feed.json"
    store = JsonFileMessageStore(path)
    message_id: str = await store.append(NewMessage(sender_name="Amina", transcription="Hello", language="en"))

    documents = json.loads(path.read_text(encoding="utf-8"))
    assert documents[0]["id"] == message_id
    assert documents[0]["senderName"] == "Amina"
    assert "createdAt" in documents[0]

    reloaded = JsonFileMessageStore(path)
    assert [m.id for m in reloaded.snapshot()] == [message_id]
    assert reloaded.snapshot()[0].created_at == store.snapshot()[0].created_at


def test_json_store_missing_file_starts_empty(tmp_path: Path) -> None:
    store = JsonFileMessageStore(tmp_path / "missing.json")

    assert store.snapshot() == []


def test_json_store_rejects_malformed_file(tmp_path: Path) -> None:
    path: Path = tmp_path / "feed.json"
    path.write_text('{"not": "a list"}', encoding="utf-8")

    with pytest.raises(MessageStoreError):
        JsonFileMessageStore(path)


def test_json_store_rejects_wrong_suffix(tmp_path: Path) -> None:
    path: Path = tmp_path / "feed.txt"
    path.write_text("[]", encoding="utf-8")

    with pytest.raises(MessageStoreError):
        JsonFileMessageStore(path)
