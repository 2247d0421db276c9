"""VoiceFeed application facade.

This module provides the VoiceFeed class, which wires the shared translation services, the message
store, the displayed feed and the refresh loop together, and exposes the operations of the chat
screen: submitting a transcription, selecting the target language and reading the feed.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from core.feed.message_feed import FeedRow, MessageFeed
from core.feed.store import InMemoryMessageStore, MessageStoreError
from core.refresh.loop import RefreshLoop
from core.shared_data import SharedData
from models.message_models import MessageValidationError, NewMessage
from utils.logger_utils import LoggerUtils
from utils.string_utils import StringUtils

if TYPE_CHECKING:
    from config.loader import Config
    from core.feed.store import MessageStore, Unsubscribe
    from models.message_models import Message


__all__: list[str] = ["VoiceFeed"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

THIRD_PARTY_LOGGERS: tuple[str, ...] = ("openai", "httpx", "deepl")


class VoiceFeed:
    """Multilingual voice-message feed.

    Attributes:
        config (Config): Application configuration.
        shared_data (SharedData): Translation cache, in-flight manager and translation manager.
        store (MessageStore): Shared conversation store.
        feed (MessageFeed): Locally displayed, translated view of the conversation.
        refresh_loop (RefreshLoop): Keeps the feed translated into the target language.
    """

    def __init__(self, config: Config, store: MessageStore | None = None) -> None:
        """Initialise the application objects. Nothing runs until ``start``.

        Args:
            config (Config): The configuration object.
            store (MessageStore | None): Conversation store. Defaults to an in-memory store.
        """
        logger.debug("Initialising %s", self.__class__.__name__)
        self._setup_third_party_loggers(logging.WARNING)

        self.config: Config = config
        self.shared_data: SharedData = SharedData(config)
        self.store: MessageStore = store if store is not None else InMemoryMessageStore()
        self.feed: MessageFeed = MessageFeed(config.TRANSLATION.DEFAULT_TARGET_LANGUAGE)
        self.refresh_loop: RefreshLoop = RefreshLoop(config, self.feed, self.shared_data.trans_manager)
        self._unsubscribe: Unsubscribe | None = None
        self._started: bool = False
        self._closed: bool = False

    def _setup_third_party_loggers(self, log_level: int) -> None:
        """Send the logs of the client libraries to the VoiceFeed handlers."""
        root: logging.Logger = LoggerUtils.get_logger()
        for name in THIRD_PARTY_LOGGERS:
            third_party: logging.Logger = logging.getLogger(name)
            third_party.setLevel(log_level)
            for handler in root.handlers:
                if handler not in third_party.handlers:
                    third_party.addHandler(handler)
            third_party.propagate = False

    async def start(self) -> None:
        """Initialise the engines, subscribe to the store and start the refresh loop."""
        if self._started:
            logger.warning("VoiceFeed is already started")
            return
        logger.info("VoiceFeed start-up")
        await self.shared_data.async_init()
        self._unsubscribe = self.store.subscribe(self._on_snapshot)
        await self.refresh_loop.start()
        self._started = True

    def _on_snapshot(self, messages: list[Message]) -> None:
        new_ids: list[str] = self.feed.apply_snapshot(messages)
        if new_ids:
            logger.debug("%d new messages received", len(new_ids))
        self.refresh_loop.notify_messages_changed()

    async def submit_transcription(self, sender_name: str, transcription: str, language: str) -> str | None:
        """Append a transcribed utterance to the conversation.

        Returns:
            str | None: Id of the new message, or None if the message was rejected.
        """
        new_message = NewMessage(
            sender_name=StringUtils.ensure_str(sender_name),
            transcription=StringUtils.ensure_str(transcription),
            language=StringUtils.normalize_lang(language),
        )
        try:
            message_id: str = await self.store.append(new_message)
        except MessageValidationError as err:
            logger.error("Transcription rejected: %s", err)
            return None
        except MessageStoreError as err:
            logger.error("Failed to save transcription: %s", err)
            return None
        return message_id

    def set_target_language(self, language: str) -> bool:
        """Select the language the feed is displayed in.

        Unsupported codes are accepted with a warning; engines decide what they can translate.

        Returns:
            bool: True if the selection changed.
        """
        language = StringUtils.normalize_lang(language)
        if language not in self.config.TRANSLATION.SUPPORTED_LANGUAGES:
            logger.warning("Target language '%s' is not in the supported languages list", language)
        return self.refresh_loop.set_target_language(language)

    @property
    def target_language(self) -> str:
        return self.feed.target_language

    @property
    def messages(self) -> list[Message]:
        return self.feed.messages

    def render(self) -> list[FeedRow]:
        return self.feed.render()

    async def refresh(self) -> int:
        """Run a refresh pass now and wait for it. Used by the command line."""
        return await self.refresh_loop.run_pass()

    async def close(self) -> None:
        """Stop the loop, unsubscribe and release the store and the engines."""
        if self._closed:
            return
        self._closed = True
        logger.info("VoiceFeed shutdown started")
        await self.refresh_loop.close()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self.store.close()
        await self.shared_data.async_close()
        logger.info("VoiceFeed shutdown completed")
