"""In-memory view of the conversation as shown to the local user.

The feed owns the ordered messages together with the display-side translation state: the selected
target language and the generation counter that identifies the current selection.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING, NamedTuple, TypeAlias

from core.feed.store import sort_newest_first
from utils.logger_utils import LoggerUtils
from utils.string_utils import StringUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Callable, Iterable, Mapping

    from models.message_models import Message


__all__: list[str] = ["FeedListener", "FeedRow", "MessageFeed"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

FeedListener: TypeAlias = "Callable[[list[Message]], None]"


class FeedRow(NamedTuple):
    message: Message
    display_text: str
    is_translated: bool


class MessageFeed:
    """Ordered list of messages (newest first) with translation state.

    Attributes:
        generation (int): Incremented every time the target language changes. Translation results
            computed under an older generation are discarded by ``merge_translations``.
    """

    def __init__(self, target_language: str) -> None:
        self._messages: list[Message] = []
        self._target_language: str = StringUtils.normalize_lang(target_language)
        self.generation: int = 0
        self._listeners: list[FeedListener] = []

    @property
    def target_language(self) -> str:
        return self._target_language

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def get(self, message_id: str) -> Message | None:
        for message in self._messages:
            if message.id == message_id:
                return message
        return None

    def set_target_language(self, language: str) -> bool:
        """Select a new target language.

        Returns:
            bool: True if the selection changed and the generation was advanced.
        """
        language = StringUtils.normalize_lang(language)
        if language == self._target_language:
            return False
        self._target_language = language
        self.generation += 1
        logger.info("Target language set to '%s' (generation %d)", language, self.generation)
        self._notify()
        return True

    def apply_snapshot(self, messages: Iterable[Message]) -> list[str]:
        """Replace the list with a store snapshot.

        Translations already computed for messages that survive are carried over as long as the
        transcription and language are unchanged.

        Returns:
            list[str]: Ids that were not in the feed before, newest first.
        """
        previous: dict[str, Message] = {m.id: m for m in self._messages}
        updated: list[Message] = []
        unseen: set[str] = set()

        for incoming in messages:
            message: Message = replace(incoming, sender_name=incoming.display_sender)
            old: Message | None = previous.get(message.id)
            if old is None:
                unseen.add(message.id)
            elif (
                message.translated_text is None
                and old.transcription == message.transcription
                and old.language == message.language
            ):
                message.translated_text = old.translated_text
                message.translated_lang = old.translated_lang
            updated.append(message)

        self._messages = sort_newest_first(updated)
        new_ids: list[str] = [m.id for m in self._messages if m.id in unseen]
        logger.debug("Snapshot applied: %d messages, %d new", len(self._messages), len(new_ids))
        self._notify()
        return new_ids

    def merge_translations(self, updates: Mapping[str, str], target_language: str, generation: int) -> int:
        """Apply ``{id: translated_text}`` computed for ``target_language`` under ``generation``.

        Nothing is applied when ``generation`` is no longer current. Unknown ids (messages that
        disappeared meanwhile) are ignored.

        Returns:
            int: Number of messages updated.
        """
        if generation != self.generation:
            logger.debug("Discarding %d stale results (generation %d != %d)", len(updates), generation, self.generation)
            return 0

        applied: int = 0
        for message in self._messages:
            translated: str | None = updates.get(message.id)
            if translated is None:
                continue
            message.translated_text = translated
            message.translated_lang = target_language
            applied += 1

        if applied:
            logger.debug("Merged %d translations into the feed (%s)", applied, target_language)
            self._notify()
        return applied

    def add_listener(self, callback: FeedListener) -> None:
        if callback not in self._listeners:
            self._listeners.append(callback)

    def remove_listener(self, callback: FeedListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self) -> None:
        snapshot: list[Message] = self.messages
        for callback in list(self._listeners):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Feed listener raised an exception")

    def render(self, target_language: str | None = None) -> list[FeedRow]:
        """Return the display rows for ``target_language`` (default: the current selection)."""
        language: str = StringUtils.normalize_lang(target_language) if target_language else self._target_language
        return [
            FeedRow(message=m, display_text=m.display_text(language), is_translated=m.is_translated_for(language))
            for m in self._messages
        ]
