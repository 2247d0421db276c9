"""Configuration data models for VoiceFeed.

Each dataclass mirrors one section of ``voicefeed.ini``. Field defaults double as the value used
when a key is absent from the file, and their types drive the loader's value coercion.
"""

from __future__ import annotations

from dataclasses import dataclass, field

__all__: list[str] = [
    "Config",
    "General",
    "HttpTranslator",
    "OpenAI",
    "Store",
    "Translation",
]


@dataclass
class General:
    DEBUG: bool = False
    VERSION: str = ""
    SCRIPT_NAME: str = ""
    LOG_FILE: str = ""


@dataclass
class Translation:
    ENGINE: list[str] = field(default_factory=lambda: ["openai"])
    DEFAULT_TARGET_LANGUAGE: str = "en"
    SUPPORTED_LANGUAGES: list[str] = field(default_factory=lambda: ["en", "ha", "sh"])
    BATCH_SIZE: int = 3
    TIMEOUT: float = 10.0
    RETRY_COUNT: int = 0
    CACHE_MAX_ENTRIES: int = 0  # 0 keeps every entry for the lifetime of the process
    CANCEL_SUPERSEDED: bool = False


@dataclass
class OpenAI:
    MODEL: str = "gpt-4"
    TEMPERATURE: float = 0.3
    MAX_TOKENS: int = 1000


@dataclass
class HttpTranslator:
    URL: str = ""


@dataclass
class Store:
    PATH: str = ""


@dataclass
class Config:
    GENERAL: General = field(default_factory=General)
    TRANSLATION: Translation = field(default_factory=Translation)
    OPENAI: OpenAI = field(default_factory=OpenAI)
    HTTP_TRANSLATOR: HttpTranslator = field(default_factory=HttpTranslator)
    STORE: Store = field(default_factory=Store)
