"""Batched translation refresh loop.

Keeps the feed translated into the selected target language. A pass collects the messages that need
a translation, splits them into batches and translates one batch at a time, merging each batch into
the feed as soon as it completes.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from models.translation_models import TranslationOutcome
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from config.loader import Config
    from core.feed.message_feed import MessageFeed
    from core.trans.manager import TransManager
    from models.message_models import Message


__all__: list[str] = ["RefreshLoop"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

SHUTDOWN_TIMEOUT_SEC: float = 2.0


class RefreshLoop:
    """Translates feed messages into the current target language.

    Passes never overlap. A trigger that arrives while a pass is running only marks the loop dirty;
    once the running pass is over exactly one follow-up pass runs and picks up whatever changed.
    Results computed for an outdated target language are dropped at merge time.

    Attributes:
        batch_size (int): Maximum number of concurrent translation requests.
        cancel_superseded (bool): Stop a pass before its next batch once the target has changed.
    """

    def __init__(self, config: Config, feed: MessageFeed, trans_manager: TransManager) -> None:
        self.feed: MessageFeed = feed
        self.trans_manager: TransManager = trans_manager
        self.batch_size: int = max(1, config.TRANSLATION.BATCH_SIZE)
        self.cancel_superseded: bool = config.TRANSLATION.CANCEL_SUPERSEDED

        self._pass_lock: asyncio.Lock = asyncio.Lock()
        self._wakeup: asyncio.Event = asyncio.Event()
        self._dirty: bool = False
        self._closing: bool = False
        self._task: asyncio.Task[None] | None = None
        self.passes_completed: int = 0

    @property
    def is_running(self) -> bool:
        """Whether a pass is in progress."""
        return self._pass_lock.locked()

    def set_target_language(self, language: str) -> bool:
        """Select a new target language and schedule a pass. No-op when unchanged.

        Returns:
            bool: True if the target language changed.
        """
        changed: bool = self.feed.set_target_language(language)
        if changed:
            self.trigger()
        return changed

    def notify_messages_changed(self) -> None:
        """Schedule a pass for messages that arrived since the last one."""
        self.trigger()

    def trigger(self) -> None:
        if self.is_running:
            self._dirty = True
            logger.debug("Pass in progress, follow-up pass queued")
            return
        self._wakeup.set()

    async def start(self) -> None:
        """Run passes in a background task whenever the loop is triggered."""
        if self._task is not None and not self._task.done():
            logger.warning("RefreshLoop is already running")
            return
        self._closing = False
        self._task = asyncio.create_task(self._run(), name="refresh_loop_task")
        self._wakeup.set()
        logger.info("RefreshLoop started")

    async def _run(self) -> None:
        while not self._closing:
            await self._wakeup.wait()
            self._wakeup.clear()
            if self._closing:
                break
            await self.run_pass()

    async def close(self) -> None:
        """Stop the background task, letting an in-progress pass finish briefly."""
        self._closing = True
        self._wakeup.set()
        if self._task is None:
            return

        finished, pending = await asyncio.wait({self._task}, timeout=SHUTDOWN_TIMEOUT_SEC)
        for task in pending:
            logger.warning("Task '%s' did not finish in time, cancelling", task.get_name())
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        for task in finished:
            if not task.cancelled() and (exc := task.exception()) is not None:
                logger.error("Task '%s' ended with an exception: %s", task.get_name(), exc)
        self._task = None
        logger.info("RefreshLoop closed")

    async def run_pass(self) -> int:
        """Run a pass, followed by one more for every trigger that arrived during it.

        If another pass is already running, the call queues a follow-up on it and waits until the
        running pass, follow-up included, has finished.

        Returns:
            int: Number of translations merged into the feed by this call.
        """
        if self._pass_lock.locked():
            self._dirty = True
            async with self._pass_lock:
                return 0

        merged: int = 0
        async with self._pass_lock:
            while True:
                self._dirty = False
                merged += await self._translate_pass()
                self.passes_completed += 1
                if not self._dirty or self._closing:
                    break
                logger.debug("Running follow-up pass")
        return merged

    async def _translate_pass(self) -> int:
        generation: int = self.feed.generation
        target: str = self.feed.target_language
        messages: list[Message] = self.feed.messages

        identity: dict[str, str] = {
            m.id: m.transcription
            for m in messages
            if m.transcription and m.language == target and m.translated_lang != target
        }
        if identity:
            self.feed.merge_translations(identity, target, generation)

        candidates: list[Message] = [m for m in messages if m.needs_translation(target)]
        if not candidates:
            logger.debug("Nothing to translate into '%s'", target)
            return 0

        logger.info("Translating %d messages into '%s' (generation %d)", len(candidates), target, generation)
        merged: int = 0
        for start in range(0, len(candidates), self.batch_size):
            if generation != self.feed.generation:
                if self.cancel_superseded:
                    logger.info("Target language changed, abandoning pass for '%s'", target)
                    break
                logger.debug("Pass for '%s' superseded, results will be discarded", target)

            batch: list[Message] = candidates[start : start + self.batch_size]
            outcomes: list[TranslationOutcome | BaseException] = await asyncio.gather(
                *(self._translate_message(m, target) for m in batch), return_exceptions=True
            )

            updates: dict[str, str] = {}
            for message, outcome in zip(batch, outcomes, strict=True):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                if isinstance(outcome, BaseException):
                    logger.error("Translation of message '%s' raised an exception: %s", message.id, outcome)
                    continue
                if outcome.succeeded and outcome.translated_text is not None:
                    updates[outcome.message_id] = outcome.translated_text
                else:
                    logger.warning("Message '%s' left untranslated, showing the original text", message.id)

            merged += self.feed.merge_translations(updates, target, generation)

        return merged

    async def _translate_message(self, message: Message, target: str) -> TranslationOutcome:
        translated: str | None = await self.trans_manager.translate(message.transcription, message.language, target)
        return TranslationOutcome(message_id=message.id, target_lang=target, translated_text=translated)
