"""Models for translation-related data.

Defines the wire payloads of the HTTP translation service and the per-message outcome
produced by a refresh pass.
"""

from __future__ import annotations

from dataclasses import dataclass

from dataclasses_json import DataClassJsonMixin, LetterCase, dataclass_json

__all__: list[str] = ["TranslationOutcome", "TranslationRequest", "TranslationResponse"]


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class TranslationRequest(DataClassJsonMixin):
    """Request body sent to the translation endpoint.

    Serialized as ``{"transcript", "sourceLanguage", "targetLanguage"}``.
    """

    transcript: str
    source_language: str
    target_language: str


@dataclass_json(letter_case=LetterCase.CAMEL)
@dataclass
class TranslationResponse(DataClassJsonMixin):
    """Response body of the translation endpoint: ``{"translatedText"}``."""

    translated_text: str = ""


@dataclass
class TranslationOutcome:
    """Result of translating one message during a refresh pass.

    Attributes:
        message_id (str): Id of the translated message.
        target_lang (str): Target language the pass was started for.
        translated_text (str | None): Translation, or None when the translation failed.
    """

    message_id: str
    target_lang: str
    translated_text: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.translated_text is not None
