"""OpenAI chat-completions translation engine.

Asks a chat model to act as a translator between two named languages and returns the trimmed
reply as the translation.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    AuthenticationError,
    OpenAIError,
    RateLimitError,
)

from core.trans.engines.const_languages import language_name
from core.trans.interface import (
    EngineAttributes,
    Result,
    TransInterface,
    TranslateExceptionError,
    TranslationQuotaExceededError,
    TranslationRateLimitError,
    TranslationTimeoutError,
)
from utils.logger_utils import LoggerUtils
from utils.string_utils import StringUtils

if TYPE_CHECKING:
    import logging

    from openai.types.chat import ChatCompletion, ChatCompletionMessageParam

    from config.loader import Config

__all__: list[str] = ["OpenAITranslation"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

SYSTEM_PROMPT: str = (
    "You are a professional translator. Translate the following text from {source} to {target}. "
    "Only respond with the translated text, no additional commentary."
)
USER_PROMPT: str = 'Original language: {source}\nTarget language: {target}\n\nText to translate: "{text}"'


class OpenAITranslation(TransInterface):
    def __init__(self) -> None:
        super().__init__()
        self.__inst: AsyncOpenAI | None = None
        self.__available: bool = False
        self._model: str = "gpt-4"
        self._temperature: float = 0.3
        self._max_tokens: int = 1000

    @property
    def _inst(self) -> AsyncOpenAI:
        if self.__inst is None:
            msg = "The OpenAI client is not initialised"
            raise TranslateExceptionError(msg)
        return self.__inst

    @property
    def is_available(self) -> bool:
        return self.__available

    @staticmethod
    def fetch_engine_name() -> str:
        return "openai"

    def get_authentication_key(self) -> str:
        return os.getenv("OPENAI_API_KEY", "")

    def initialize(self, config: Config) -> None:
        """Create the async OpenAI client.

        Retries and timeouts are owned by the translation manager, so the SDK's own retry loop is disabled.

        Raises:
            TranslateExceptionError: If no API key is configured.
            RuntimeError: If the client cannot be created.
        """
        logger.debug("'%s' Initialization start", self.__class__.__name__)
        self.engine_attributes = EngineAttributes(name=self.fetch_engine_name())
        self._model = config.OPENAI.MODEL
        self._temperature = config.OPENAI.TEMPERATURE
        self._max_tokens = config.OPENAI.MAX_TOKENS

        api_key: str = self.get_authentication_key()
        if not api_key:
            msg = "OPENAI_API_KEY is not set"
            raise TranslateExceptionError(msg)
        try:
            self.__inst = AsyncOpenAI(api_key=api_key, max_retries=0)
        except OpenAIError as err:
            msg = "An error occurred while creating the OpenAI client instance"
            raise RuntimeError(msg) from err
        self.__available = True

    def build_messages(self, content: str, tgt_lang: str, src_lang: str | None) -> list[ChatCompletionMessageParam]:
        source: str = language_name(src_lang) if src_lang else "the detected language"
        target: str = language_name(tgt_lang)
        return [
            {"role": "system", "content": SYSTEM_PROMPT.format(source=source, target=target)},
            {"role": "user", "content": USER_PROMPT.format(source=source, target=target, text=content)},
        ]

    async def translation(self, content: str, tgt_lang: str, src_lang: str | None = None) -> Result:
        logger.debug("'content': '%s', 'src_lang': '%s', 'tgt_lang': '%s'", content, src_lang, tgt_lang)
        try:
            response: ChatCompletion = await self._inst.chat.completions.create(
                model=self._model,
                messages=self.build_messages(content, tgt_lang, src_lang),
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except RateLimitError as err:
            if getattr(err, "code", None) == "insufficient_quota":
                self.__available = False
                raise TranslationQuotaExceededError(str(err)) from None
            msg = "OpenAI rate limit reached"
            raise TranslationRateLimitError(msg) from err
        except APITimeoutError as err:
            msg = "The OpenAI request timed out"
            raise TranslationTimeoutError(msg) from err
        except APIConnectionError as err:
            msg = "An error occurred when connecting to the OpenAI server"
            raise TranslateExceptionError(msg) from err
        except AuthenticationError:
            self.__available = False
            msg = "Authorisation failed. Please check OPENAI_API_KEY"
            raise TranslateExceptionError(msg) from None
        except APIStatusError as err:
            msg = f"OpenAI returned an error response (status {err.status_code})"
            raise TranslateExceptionError(msg) from err
        except OpenAIError as err:
            msg = "An anomaly occurred during the translation process at OpenAI"
            raise TranslateExceptionError(msg) from err

        return self._build_result(response)

    def _build_result(self, response: ChatCompletion) -> Result:
        """Extract the first choice's text.

        Raises:
            TranslateExceptionError: If the response carries no choices.
        """
        if not response.choices:
            msg = "OpenAI returned no choices"
            raise TranslateExceptionError(msg)
        text: str = StringUtils.ensure_str(response.choices[0].message.content).strip()
        logger.info("translation completed (model: %s)", self._model)
        return Result(text=text, metadata={"engine": self.fetch_engine_name(), "model": self._model})

    async def close(self) -> None:
        self.__available = False
        if self.__inst is not None:
            await self.__inst.close()
            self.__inst = None
        logger.debug("'%s' process termination", self.__class__.__name__)
