from __future__ import annotations

from types import SimpleNamespace
from typing import TYPE_CHECKING, Any, cast
from unittest.mock import AsyncMock

import httpx
import pytest
from openai import APITimeoutError, RateLimitError

from core.trans.engines import trans_openai as trans_openai_module
from core.trans.interface import (
    TranslateExceptionError,
    TranslationQuotaExceededError,
    TranslationRateLimitError,
    TranslationTimeoutError,
)

if TYPE_CHECKING:
    from config.loader import Config
    from core.trans.interface import Result

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


class DummyAsyncOpenAI:
    instances: list[DummyAsyncOpenAI] = []

    def __init__(self, *, api_key: str, max_retries: int) -> None:
        self.api_key: str = api_key
        self.max_retries: int = max_retries
        self.create: AsyncMock = AsyncMock(return_value=_completion(" Sannu "))
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self.create))
        self.close: AsyncMock = AsyncMock()
        type(self).instances.append(self)


def _completion(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _rate_limit_error(code: str) -> RateLimitError:
    response = httpx.Response(429, request=REQUEST)
    return RateLimitError("rate limited", response=response, body={"code": code, "message": "rate limited"})


@pytest.fixture(autouse=True)
def setup_openai_module(monkeypatch: pytest.MonkeyPatch) -> None:
    DummyAsyncOpenAI.instances = []
    monkeypatch.setattr(trans_openai_module, "AsyncOpenAI", DummyAsyncOpenAI)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")


@pytest.fixture
def config() -> Config:
    return cast("Config", SimpleNamespace(OPENAI=SimpleNamespace(MODEL="gpt-4", TEMPERATURE=0.3, MAX_TOKENS=1000)))


@pytest.fixture
def engine(config: Config) -> trans_openai_module.OpenAITranslation:
    engine = trans_openai_module.OpenAITranslation()
    engine.initialize(config)
    return engine


def _client(engine: trans_openai_module.OpenAITranslation) -> DummyAsyncOpenAI:
    return cast("DummyAsyncOpenAI", engine._inst)


def test_initialize_creates_client_without_sdk_retries(engine: trans_openai_module.OpenAITranslation) -> None:
    client: DummyAsyncOpenAI = _client(engine)

    assert client.api_key == "sk-test"
    assert client.max_retries == 0
    assert engine.engine_name == "openai"
    assert engine.is_available is True


def test_initialize_without_key_raises(monkeypatch: pytest.MonkeyPatch, config: Config) -> None:
    monkeypatch.delenv("OPENAI_API_KEY")
    engine = trans_openai_module.OpenAITranslation()

    with pytest.raises(TranslateExceptionError, match="OPENAI_API_KEY"):
        engine.initialize(config)
    assert engine.is_available is False


def test_build_messages_uses_language_names(engine: trans_openai_module.OpenAITranslation) -> None:
    messages: list[Any] = cast("list[Any]", engine.build_messages("Hello", "ha", "en"))

    assert messages[0]["role"] == "system"
    assert "from English to Hausa" in messages[0]["content"]
    assert "Only respond with the translated text" in messages[0]["content"]
    assert messages[1]["content"] == 'Original language: English\nTarget language: Hausa\n\nText to translate: "Hello"'


def test_build_messages_passes_unknown_codes_through(engine: trans_openai_module.OpenAITranslation) -> None:
    messages: list[Any] = cast("list[Any]", engine.build_messages("Hello", "yo", "en"))

    assert "from English to yo" in messages[0]["content"]


async def test_translation_returns_trimmed_reply(engine: trans_openai_module.OpenAITranslation) -> None:
    result: Result = await engine.translation("Hello", tgt_lang="ha", src_lang="en")

    assert result.text == "Sannu"
    assert result.metadata == {"engine": "openai", "model": "gpt-4"}
    kwargs: dict[str, Any] = _client(engine).create.await_args.kwargs
    assert kwargs["model"] == "gpt-4"
    assert kwargs["temperature"] == 0.3
    assert kwargs["max_tokens"] == 1000


async def test_translation_empty_reply_returns_empty_text(engine: trans_openai_module.OpenAITranslation) -> None:
    _client(engine).create.return_value = _completion(None)

    result: Result = await engine.translation("Hello", tgt_lang="ha", src_lang="en")

    assert result.text == ""


async def test_translation_without_choices_raises(engine: trans_openai_module.OpenAITranslation) -> None:
    _client(engine).create.return_value = SimpleNamespace(choices=[])

    with pytest.raises(TranslateExceptionError, match="no choices"):
        await engine.translation("Hello", tgt_lang="ha", src_lang="en")


async def test_translation_maps_rate_limit(engine: trans_openai_module.OpenAITranslation) -> None:
    _client(engine).create.side_effect = _rate_limit_error("rate_limit_exceeded")

    with pytest.raises(TranslationRateLimitError):
        await engine.translation("Hello", tgt_lang="ha", src_lang="en")
    assert engine.is_available is True


async def test_translation_maps_insufficient_quota(engine: trans_openai_module.OpenAITranslation) -> None:
    _client(engine).create.side_effect = _rate_limit_error("insufficient_quota")

    with pytest.raises(TranslationQuotaExceededError):
        await engine.translation("Hello", tgt_lang="ha", src_lang="en")
    assert engine.is_available is False


async def test_translation_maps_timeout(engine: trans_openai_module.OpenAITranslation) -> None:
    _client(engine).create.side_effect = APITimeoutError(request=REQUEST)

    with pytest.raises(TranslationTimeoutError):
        await engine.translation("Hello", tgt_lang="ha", src_lang="en")


async def test_close_closes_client(engine: trans_openai_module.OpenAITranslation) -> None:
    client: DummyAsyncOpenAI = _client(engine)

    await engine.close()

    client.close.assert_awaited_once()
    assert engine.is_available is False
