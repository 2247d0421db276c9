"""This module defines the abstract base class for translation engines and related exceptions.
It includes the Result data class for translation results and the translation error hierarchy.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from config.loader import Config

__all__: list[str] = [
    "EngineAttributes",
    "NotSupportedLanguagesError",
    "Result",
    "TransInterface",
    "TranslateExceptionError",
    "TranslationQuotaExceededError",
    "TranslationRateLimitError",
    "TranslationTimeoutError",
]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


@dataclass
class EngineAttributes:
    """Engine-specific capabilities and behavior flags.

    Attributes:
        name (str): Name of the translation engine, used in log output.
        supports_quota_api (bool): Whether the engine reports a character quota.
    """

    name: str
    supports_quota_api: bool = False


@dataclass
class Result:
    """Data class for translation results.

    Attributes:
        text (str | None): Translated text. None if translation fails.
        detected_source_lang (str | None): Source language reported by the engine, if any.
        metadata (dict[str, str] | None): Engine-specific metadata.
    """

    text: str | None = None
    detected_source_lang: str | None = None
    metadata: dict[str, str] | None = None

    def __str__(self) -> str:
        if self.text is None:
            return ""
        return self.text


class TranslateExceptionError(Exception):
    """An error occurred during the translation process."""


class NotSupportedLanguagesError(TranslateExceptionError):
    """An unsupported language code was specified."""


class TranslationQuotaExceededError(TranslateExceptionError):
    """The translatable character quota has been exceeded."""


class TranslationRateLimitError(TranslateExceptionError):
    """The translation request was rate-limited by the API."""


class TranslationTimeoutError(TranslateExceptionError):
    """The translation service did not answer in time."""


class TransInterface(ABC):
    """Abstract base class for translation engines.

    Subclasses register themselves under ``fetch_engine_name()`` when they are defined, so the
    translation manager can instantiate them from the engine names listed in the configuration.

    Attributes:
        registered (ClassVar[dict[str, type[TransInterface]]]): Registered engine classes by name.
    """

    registered: ClassVar[dict[str, type[TransInterface]]] = {}

    def __init_subclass__(cls, **kwargs) -> None:
        super().__init_subclass__(**kwargs)
        if not hasattr(cls, "fetch_engine_name") or not callable(cls.fetch_engine_name):
            msg = "Subclasses of TransInterface must implement the static method fetch_engine_name()."
            raise TypeError(msg)

        name = cls.fetch_engine_name()
        if not isinstance(name, str) or name == "":
            return  # Nameless engines (test doubles, null engines) are not registered.

        if name in cls.registered:
            msg: str = f"A translation engine with the name '{name}' is already registered."
            raise ValueError(msg)

        cls.registered[name] = cls

    def __init__(self) -> None:
        self._engine_attributes: EngineAttributes | None = None

    @property
    def engine_attributes(self) -> EngineAttributes:
        if self._engine_attributes is None:
            msg = "Engine attributes have not been set."
            raise RuntimeError(msg)
        return self._engine_attributes

    @engine_attributes.setter
    def engine_attributes(self, attributes: EngineAttributes) -> None:
        if self._engine_attributes is not None:
            msg = "Engine attributes can only be set once during initialization."
            raise RuntimeError(msg)
        self._engine_attributes = attributes

    @property
    def engine_name(self) -> str:
        return self.engine_attributes.name

    def is_rate_limit_error(self, err: Exception) -> bool:
        """Check if the given exception indicates rate limiting."""
        return isinstance(err, TranslationRateLimitError)

    def is_transient_error(self, err: Exception) -> bool:
        """Check if the given exception is worth retrying.

        Quota, unsupported-language and rate-limit errors are permanent for the current request.
        """
        return not isinstance(
            err, (NotSupportedLanguagesError, TranslationQuotaExceededError, TranslationRateLimitError)
        )

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Check if the translation engine can currently accept requests."""
        raise NotImplementedError

    @staticmethod
    @abstractmethod
    def fetch_engine_name() -> str:
        """Fetch the distinguished name of the translation engine.

        Called during class registration in __init_subclass__, so it must work on the class.
        """
        raise NotImplementedError

    @abstractmethod
    def initialize(self, config: Config) -> None:
        """Initialize the translation engine with the given configuration.

        Raises:
            RuntimeError: If the client cannot be created.
            TranslateExceptionError: If the engine cannot be used (e.g. missing credentials).
        """
        raise NotImplementedError

    @abstractmethod
    async def translation(self, content: str, tgt_lang: str, src_lang: str | None = None) -> Result:
        """Translate input text to the target language.

        Args:
            content (str): Text to be translated.
            tgt_lang (str): Target language code.
            src_lang (str | None): Source language code. If None, the engine may auto-detect.

        Returns:
            Result: Translation result with translated text.

        Raises:
            NotSupportedLanguagesError: If the specified language is not supported.
            TranslationQuotaExceededError: If the character quota has been exceeded.
            TranslationRateLimitError: If the request is rate-limited by the API.
            TranslateExceptionError: If translation fails.
        """
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        """Release the engine's client resources."""
        raise NotImplementedError

    def get_authentication_key(self) -> str:
        """Retrieve the authentication key from the environment.

        The variable is named after the engine, e.g. ``DEEPL_API_OAUTH`` for the "deepl" engine.
        Engines whose vendor SDK uses a conventional variable override this method.

        Returns:
            str: The key, or an empty string if the variable is not set.
        """
        return os.getenv(f"{self.fetch_engine_name().upper()}_API_OAUTH", "")
