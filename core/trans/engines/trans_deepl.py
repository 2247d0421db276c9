from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, ClassVar

from deepl import DeepLClient, Language, TextResult, http_client
from deepl.exceptions import (
    AuthorizationException,
    ConnectionException,
    DeepLException,
    QuotaExceededException,
    TooManyRequestsException,
)

from core.trans.interface import (
    EngineAttributes,
    NotSupportedLanguagesError,
    Result,
    TransInterface,
    TranslateExceptionError,
    TranslationQuotaExceededError,
    TranslationRateLimitError,
)
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from config.loader import Config


__all__: list[str] = ["DeeplTranslation"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class DeeplTranslation(TransInterface):
    _source_codes: ClassVar[dict[str, str]] = {}  # feed code -> DeepL source code
    _target_codes: ClassVar[dict[str, str]] = {}  # feed code -> DeepL target code

    def __init__(self) -> None:
        super().__init__()
        self.__inst: DeepLClient | None = None
        self.__available: bool = False
        self._generate_langcode_mappings()

    def _generate_langcode_mappings(self) -> None:
        """Map base language codes (``en``) to the codes DeepL expects (``EN`` / ``EN-US``).

        The mapping is built from the uppercase string constants of ``deepl.Language``.
        """
        language_constants: dict[str, str] = {
            name: value for name, value in vars(Language).items() if isinstance(value, str) and name.isupper()
        }
        for code in language_constants.values():
            base_code: str = code.split("-")[0].lower()
            DeeplTranslation._source_codes[base_code] = base_code.upper()
            DeeplTranslation._target_codes.setdefault(base_code, code.upper())

        logger.debug("Language code mapping generated for DeepL.")

    @property
    def _inst(self) -> DeepLClient:
        if self.__inst is None:
            msg = "The DeepL instance is not initialised"
            raise TranslateExceptionError(msg)
        return self.__inst

    @property
    def is_available(self) -> bool:
        return self.__available

    @staticmethod
    def fetch_engine_name() -> str:
        return "deepl"

    def initialize(self, config: Config) -> None:
        """Create the DeepL client from the ``DEEPL_API_OAUTH`` key.

        DeepL authenticates lazily, so an invalid key only surfaces on the first translation.

        Raises:
            TranslateExceptionError: If no key is configured.
            RuntimeError: If the client cannot be created.
        """
        self.engine_attributes = EngineAttributes(name=self.fetch_engine_name(), supports_quota_api=True)
        self._configure_http_client(config.TRANSLATION.TIMEOUT)
        auth_key: str = self.get_authentication_key()
        if not auth_key:
            msg = "DEEPL_API_OAUTH is not set"
            raise TranslateExceptionError(msg)
        try:
            self.__inst = DeepLClient(auth_key)
        except (AttributeError, ValueError) as err:
            msg = "An error occurred while creating the DeepL client instance"
            raise RuntimeError(msg) from err
        self.__available = True

    @staticmethod
    def _configure_http_client(timeout: float) -> None:
        """Align the client's own request limits with the manager's call timeout.

        A call abandoned by the manager keeps its worker thread until the HTTP request returns, so the
        request itself is bounded by the same timeout and is not retried inside the client.
        """
        http_client.max_network_retries = 0
        if timeout > 0:
            http_client.min_connection_timeout = timeout

    async def translation(self, content: str, tgt_lang: str, src_lang: str | None = None) -> Result:
        logger.debug("'content': '%s', 'src_lang': '%s', 'tgt_lang': '%s'", content, src_lang, tgt_lang)
        try:
            _src_lang: str | None = DeeplTranslation._source_codes[src_lang] if src_lang else None
            _tgt_lang: str = DeeplTranslation._target_codes[tgt_lang]
        except KeyError:
            msg: str = (
                f"Languages not supported by DeepL. Source language: '{src_lang}'. Target language: '{tgt_lang}'."
            )
            raise NotSupportedLanguagesError(msg) from None

        try:
            results: TextResult | list[TextResult] = await asyncio.to_thread(
                self._inst.translate_text,
                content,
                source_lang=_src_lang,
                target_lang=_tgt_lang,
            )
        except QuotaExceededException as err:
            self.__available = False
            raise TranslationQuotaExceededError(str(err)) from None
        except AuthorizationException:
            self.__available = False
            msg = "Authorisation failed. Please check your authentication key"
            raise TranslateExceptionError(msg) from None
        except TooManyRequestsException as err:
            msg = "DeepL rate limit reached"
            raise TranslationRateLimitError(msg) from err
        except ConnectionException as err:
            msg = "An error occurred when connecting to the DeepL server"
            raise TranslateExceptionError(msg) from err
        except DeepLException as err:
            msg = "An anomaly occurred during the translation process at DeepL"
            raise TranslateExceptionError(msg) from err

        logger.info("translation completed (%s > %s)", _src_lang, _tgt_lang)
        result: TextResult = results[0] if isinstance(results, list) else results
        return Result(
            text=result.text,
            detected_source_lang=result.detected_source_lang.lower(),
            metadata={"engine": self.fetch_engine_name()},
        )

    async def close(self) -> None:
        self.__available = False
        self.__inst = None
        logger.debug("'%s' process termination", self.__class__.__name__)
