"""Translation engine management and interfaces.

This package provides translation through pluggable engine implementations (OpenAI, an HTTP
translation service, DeepL), with caching, in-flight de-duplication and adaptive rate limiting.
"""

from core.trans.interface import (
    NotSupportedLanguagesError,
    Result,
    TransInterface,
    TranslateExceptionError,
    TranslationQuotaExceededError,
    TranslationRateLimitError,
    TranslationTimeoutError,
)
from core.trans.manager import TransManager

__all__: list[str] = [
    "NotSupportedLanguagesError",
    "Result",
    "TransInterface",
    "TransManager",
    "TranslateExceptionError",
    "TranslationQuotaExceededError",
    "TranslationRateLimitError",
    "TranslationTimeoutError",
]
