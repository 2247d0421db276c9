"""Data models for feed messages.

Defines the Message dataclass rendered in the conversation feed and the NewMessage payload
accepted by the message store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from dataclasses_json import DataClassJsonMixin, LetterCase, dataclass_json
from dataclasses_json import config as json_config

from utils.string_utils import StringUtils

__all__: list[str] = ["Message", "MessageValidationError", "NewMessage"]


def _encode_datetime(value: datetime) -> str:
    return value.isoformat()


def _decode_datetime(value: str | float | datetime | None) -> datetime:
    if isinstance(value, datetime):
        return value
    if value is None or value == "":
        return datetime.now(tz=UTC)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=UTC)
    parsed: datetime = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


class MessageValidationError(ValueError):
    """A message payload is missing a required value."""


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class Message(DataClassJsonMixin):
    """One recorded-and-transcribed utterance.

    Attributes:
        id (str): Opaque identifier assigned by the store.
        sender_name (str): Display name of the author.
        transcription (str): Original-language text.
        language (str): Source language code of ``transcription``.
        created_at (datetime): Server-side creation time; the feed is ordered newest first.
        translated_text (str | None): Translation of ``transcription`` into ``translated_lang``.
        translated_lang (str | None): Target language ``translated_text`` was computed for.
    """

    id: str
    sender_name: str = ""
    transcription: str = ""
    language: str = ""
    created_at: datetime = field(
        default_factory=lambda: datetime.now(tz=UTC),
        metadata=json_config(encoder=_encode_datetime, decoder=_decode_datetime),
    )
    translated_text: str | None = None
    translated_lang: str | None = None

    def is_translated_for(self, target_language: str) -> bool:
        """Whether a translation into ``target_language`` is present and not stale.

        Identity (same language) does not count as a translation.
        """
        return (
            self.language != target_language
            and self.translated_text is not None
            and self.translated_lang == target_language
        )

    def needs_translation(self, target_language: str) -> bool:
        """Whether the message belongs to the candidate set for ``target_language``."""
        if not self.transcription:
            return False
        if self.language == target_language:
            return False
        return not self.is_translated_for(target_language)

    def display_text(self, target_language: str) -> str:
        """Best available text for ``target_language``.

        Empty transcriptions show as an empty string, same-language messages show the
        transcription, and a stale or missing translation falls back to the transcription.
        """
        if not self.transcription:
            return ""
        if self.language == target_language:
            return self.transcription
        if self.is_translated_for(target_language):
            return StringUtils.ensure_str(self.translated_text)
        return self.transcription

    @property
    def display_sender(self) -> str:
        return StringUtils.display_sender(self.sender_name)


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class NewMessage(DataClassJsonMixin):
    """Append payload for the message store; the store assigns ``id`` and ``created_at``."""

    sender_name: str
    transcription: str
    language: str

    def validate(self) -> None:
        """Check the required fields.

        Raises:
            MessageValidationError: If the sender name or transcription is empty.
        """
        if not self.sender_name.strip() or not self.transcription.strip():
            msg = "Sender name and transcription are required"
            raise MessageValidationError(msg)
        if not self.language.strip():
            msg = "Language is required"
            raise MessageValidationError(msg)
