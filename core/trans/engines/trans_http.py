"""HTTP translation service engine.

Posts ``{"transcript", "sourceLanguage", "targetLanguage"}`` to the configured endpoint and reads
``{"translatedText"}`` from the JSON response.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING, Any

from core.trans.interface import (
    EngineAttributes,
    NotSupportedLanguagesError,
    Result,
    TransInterface,
    TranslateExceptionError,
    TranslationRateLimitError,
    TranslationTimeoutError,
)
from handlers.async_comm import AsyncCommError, AsyncCommTimeoutError, AsyncHttp
from models.translation_models import TranslationRequest, TranslationResponse
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from config.loader import Config

__all__: list[str] = ["HttpTranslation"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class HttpTranslation(TransInterface):
    def __init__(self) -> None:
        super().__init__()
        self._http: AsyncHttp | None = None
        self._url: str = ""
        self._timeout: float = 10.0

    @property
    def is_available(self) -> bool:
        return self._http is not None and bool(self._url)

    @staticmethod
    def fetch_engine_name() -> str:
        return "http"

    def initialize(self, config: Config) -> None:
        """Prepare the HTTP client for the configured endpoint.

        Raises:
            TranslateExceptionError: If ``HTTP_TRANSLATOR.URL`` is empty.
        """
        self.engine_attributes = EngineAttributes(name=self.fetch_engine_name())
        self._url = config.HTTP_TRANSLATOR.URL
        self._timeout = config.TRANSLATION.TIMEOUT
        if not self._url:
            msg = "HTTP_TRANSLATOR.URL is not configured"
            raise TranslateExceptionError(msg)

        headers: dict[str, str] = {"Content-Type": "application/json"}
        if api_key := self.get_authentication_key():
            headers["Authorization"] = f"Bearer {api_key}"
        self._http = AsyncHttp(headers=headers)

    @property
    def _client(self) -> AsyncHttp:
        if self._http is None:
            msg = "The HTTP translation client is not initialised"
            raise TranslateExceptionError(msg)
        return self._http

    async def translation(self, content: str, tgt_lang: str, src_lang: str | None = None) -> Result:
        if not src_lang:
            msg = "The HTTP translation service requires a source language"
            raise NotSupportedLanguagesError(msg)

        request = TranslationRequest(transcript=content, source_language=src_lang, target_language=tgt_lang)
        try:
            payload: Any = await self._client.post(url=self._url, data=request.to_dict(), total_timeout=self._timeout)
        except AsyncCommTimeoutError as err:
            raise TranslationTimeoutError(str(err)) from err
        except AsyncCommError as err:
            if err.status == HTTPStatus.TOO_MANY_REQUESTS:
                msg = "Translation service rate limit reached"
                raise TranslationRateLimitError(msg) from err
            if err.status == HTTPStatus.BAD_REQUEST:
                msg = f"Translation service rejected the request ({src_lang} > {tgt_lang})"
                raise NotSupportedLanguagesError(msg) from err
            raise TranslateExceptionError(str(err)) from err

        return self._build_result(payload)

    def _build_result(self, payload: Any) -> Result:
        """Validate the response payload.

        Raises:
            TranslateExceptionError: If the payload is not an object with a string ``translatedText``.
        """
        if not isinstance(payload, dict) or not isinstance(payload.get("translatedText"), str):
            msg = f"Malformed translation response: {payload!r}"
            raise TranslateExceptionError(msg)
        response: TranslationResponse = TranslationResponse.from_dict(payload)
        logger.info("translation completed via '%s'", self._url)
        return Result(text=response.translated_text, metadata={"engine": self.fetch_engine_name()})

    async def close(self) -> None:
        if self._http is not None:
            await self._http.close()
            self._http = None
        logger.debug("'%s' process termination", self.__class__.__name__)
