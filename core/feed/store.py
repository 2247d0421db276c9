"""Message stores.

A store holds the shared conversation, assigns ids and server timestamps to new messages and pushes
the full, newest-first snapshot to its subscribers whenever the conversation changes.
"""

from __future__ import annotations

import json
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any, TypeAlias

from models.message_models import Message, NewMessage
from utils.file_utils import FileUtils, FileUtilsError
from utils.logger_utils import LoggerUtils
from utils.string_utils import StringUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Callable, Iterable
    from pathlib import Path


__all__: list[str] = [
    "InMemoryMessageStore",
    "JsonFileMessageStore",
    "MessageStore",
    "MessageStoreClosedError",
    "MessageStoreError",
    "SnapshotCallback",
    "Unsubscribe",
    "sort_newest_first",
]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

SnapshotCallback: TypeAlias = "Callable[[list[Message]], None]"
Unsubscribe: TypeAlias = "Callable[[], None]"


def sort_newest_first(messages: Iterable[Message]) -> list[Message]:
    """Order messages by ``created_at`` descending, ties broken by ``id`` descending."""
    return sorted(messages, key=lambda m: (m.created_at, m.id), reverse=True)


class MessageStore(ABC):
    """Interface of the shared conversation store."""

    @abstractmethod
    def subscribe(self, callback: SnapshotCallback) -> Unsubscribe:
        """Register ``callback`` for ordered snapshots.

        The current snapshot is delivered immediately, then again after every change.

        Returns:
            Unsubscribe: Callable that removes the subscription.
        """

    @abstractmethod
    async def append(self, new_message: NewMessage) -> str:
        """Validate and append a message.

        Returns:
            str: The id assigned to the new message.

        Raises:
            MessageValidationError: If a required field is empty.
            MessageStoreError: If the store cannot accept the message.
        """

    @abstractmethod
    async def close(self) -> None:
        """Release resources and drop every subscriber."""


class InMemoryMessageStore(MessageStore):
    """Process-local store.

    Subscribers receive copies of the stored messages, so mutating a snapshot never changes the store.
    """

    def __init__(self, messages: Iterable[Message] = ()) -> None:
        self._messages: dict[str, Message] = {m.id: m for m in messages}
        self._last_created_at: datetime = max(
            (m.created_at for m in self._messages.values()), default=datetime.min.replace(tzinfo=UTC)
        )
        self._subscribers: list[SnapshotCallback] = []
        self._closed: bool = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    def snapshot(self) -> list[Message]:
        return [replace(m) for m in sort_newest_first(self._messages.values())]

    def subscribe(self, callback: SnapshotCallback) -> Unsubscribe:
        if self._closed:
            msg = "Cannot subscribe to a closed message store"
            raise MessageStoreClosedError(msg)

        self._subscribers.append(callback)
        logger.debug("Subscriber added (%d total)", len(self._subscribers))
        self._deliver(callback, self.snapshot())

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)
                logger.debug("Subscriber removed (%d left)", len(self._subscribers))

        return unsubscribe

    async def append(self, new_message: NewMessage) -> str:
        if self._closed:
            msg = "Cannot append to a closed message store"
            raise MessageStoreClosedError(msg)

        new_message.validate()
        message = Message(
            id=str(uuid.uuid4()),
            sender_name=new_message.sender_name.strip(),
            transcription=new_message.transcription,
            language=StringUtils.normalize_lang(new_message.language),
            created_at=self._next_timestamp(),
        )
        self._messages[message.id] = message
        try:
            self._persist()
        except MessageStoreError:
            del self._messages[message.id]
            raise
        logger.info("Message '%s' appended by %s [%s]", message.id, message.display_sender, message.language)
        self._publish()
        return message.id

    def _next_timestamp(self) -> datetime:
        """Server timestamp, strictly increasing so appends keep their order."""
        now: datetime = datetime.now(tz=UTC)
        if now <= self._last_created_at:
            now = self._last_created_at + timedelta(microseconds=1)
        self._last_created_at = now
        return now

    def _persist(self) -> None:
        """Hook for stores that keep the conversation outside the process."""

    def _publish(self) -> None:
        snapshot: list[Message] = self.snapshot()
        for callback in list(self._subscribers):
            self._deliver(callback, [replace(m) for m in snapshot])

    @staticmethod
    def _deliver(callback: SnapshotCallback, snapshot: list[Message]) -> None:
        try:
            callback(snapshot)
        except Exception:
            logger.exception("Snapshot subscriber raised an exception")

    async def close(self) -> None:
        self._closed = True
        self._subscribers.clear()
        logger.debug("'%s' closed", self.__class__.__name__)


class JsonFileMessageStore(InMemoryMessageStore):
    """In-memory store seeded from, and written back to, a JSON file of camelCase documents."""

    SUFFIX: str = ".json"

    def __init__(self, path: str | Path) -> None:
        self.path: Path = FileUtils.resolve_path(path)
        super().__init__(self._load(self.path))

    @classmethod
    def _load(cls, path: Path) -> list[Message]:
        """Read the stored conversation. A missing file is an empty conversation.

        Raises:
            MessageStoreError: If the file is not a JSON list of message documents.
        """
        if not path.exists():
            logger.info("Message file '%s' not found, starting with an empty feed", path)
            return []
        try:
            FileUtils.validate_file_path(path, cls.SUFFIX)
            raw: Any = json.loads(path.read_text(encoding="utf-8") or "[]")
        except FileUtilsError as err:
            msg = f"Invalid message file: {err}"
            raise MessageStoreError(msg) from err
        except (OSError, json.JSONDecodeError) as err:
            msg = f"Failed to read message file '{path}': {err}"
            raise MessageStoreError(msg) from err

        if not isinstance(raw, list):
            msg = f"Message file '{path}' must contain a JSON list"
            raise MessageStoreError(msg)
        try:
            messages: list[Message] = [Message.from_dict(doc) for doc in raw]
        except (KeyError, TypeError, ValueError) as err:
            msg = f"Malformed message document in '{path}': {err}"
            raise MessageStoreError(msg) from err
        logger.info("Loaded %d messages from '%s'", len(messages), path)
        return messages

    def _persist(self) -> None:
        documents: list[dict[str, Any]] = [m.to_dict() for m in sort_newest_first(self._messages.values())]
        try:
            FileUtils.write_text_atomic(self.path, json.dumps(documents, ensure_ascii=False, indent=2))
        except OSError as err:
            msg = f"Failed to write message file '{self.path}': {err}"
            raise MessageStoreError(msg) from err
        logger.debug("Persisted %d messages to '%s'", len(documents), self.path)


class MessageStoreError(Exception):
    """The message store could not complete an operation."""


class MessageStoreClosedError(MessageStoreError):
    """The message store has been closed."""
