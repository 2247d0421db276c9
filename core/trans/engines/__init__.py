"""Translation engine implementations.

Importing this package registers every engine with ``TransInterface.registered``:

- OpenAITranslation ("openai"): chat-completions translation with a translator prompt.
- HttpTranslation ("http"): JSON translation endpoint reached over aiohttp.
- DeeplTranslation ("deepl"): DeepL API for the language pairs it supports.
"""

from core.trans.engines.const_languages import LANGUAGE_NAMES, language_name
from core.trans.engines.trans_deepl import DeeplTranslation
from core.trans.engines.trans_http import HttpTranslation
from core.trans.engines.trans_openai import OpenAITranslation

__all__: list[str] = [
    "LANGUAGE_NAMES",
    "DeeplTranslation",
    "HttpTranslation",
    "OpenAITranslation",
    "language_name",
]
