from __future__ import annotations

from types import SimpleNamespace
from typing import TYPE_CHECKING, cast
from unittest.mock import AsyncMock

import pytest

from core.trans.engines.trans_http import HttpTranslation
from core.trans.interface import (
    NotSupportedLanguagesError,
    TranslateExceptionError,
    TranslationRateLimitError,
    TranslationTimeoutError,
)
from handlers.async_comm import AsyncCommError, AsyncCommTimeoutError, AsyncHttp

if TYPE_CHECKING:
    from config.loader import Config
    from core.trans.interface import Result

URL = "http://localhost:3000/api/translate"


def _config(url: str = URL) -> Config:
    return cast(
        "Config",
        SimpleNamespace(HTTP_TRANSLATOR=SimpleNamespace(URL=url), TRANSLATION=SimpleNamespace(TIMEOUT=4.0)),
    )


@pytest.fixture
def engine(monkeypatch: pytest.MonkeyPatch) -> HttpTranslation:
    monkeypatch.delenv("HTTP_API_OAUTH", raising=False)
    engine = HttpTranslation()
    engine.initialize(_config())
    return engine


def _mock_post(monkeypatch: pytest.MonkeyPatch, **kwargs) -> AsyncMock:
    post = AsyncMock(**kwargs)
    monkeypatch.setattr(AsyncHttp, "post", post)
    return post


def test_initialize_requires_url() -> None:
    engine = HttpTranslation()

    with pytest.raises(TranslateExceptionError, match="URL"):
        engine.initialize(_config(url=""))
    assert engine.is_available is False


def test_initialize_adds_bearer_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HTTP_API_OAUTH", "secret")
    engine = HttpTranslation()

    engine.initialize(_config())

    assert engine._client._headers["Authorization"] == "Bearer secret"


async def test_translation_posts_request_and_reads_reply(
    engine: HttpTranslation, monkeypatch: pytest.MonkeyPatch
) -> None:
    post: AsyncMock = _mock_post(monkeypatch, return_value={"translatedText": "Sannu"})

    result: Result = await engine.translation("Hello", tgt_lang="ha", src_lang="en")

    assert result.text == "Sannu"
    post.assert_awaited_once_with(
        url=URL,
        data={"transcript": "Hello", "sourceLanguage": "en", "targetLanguage": "ha"},
        total_timeout=4.0,
    )


async def test_translation_requires_source_language(engine: HttpTranslation) -> None:
    with pytest.raises(NotSupportedLanguagesError):
        await engine.translation("Hello", tgt_lang="ha")


@pytest.mark.parametrize("payload", [None, [], {"text": "Sannu"}, {"translatedText": 1}])
async def test_translation_rejects_malformed_payload(
    engine: HttpTranslation, monkeypatch: pytest.MonkeyPatch, payload: object
) -> None:
    _mock_post(monkeypatch, return_value=payload)

    with pytest.raises(TranslateExceptionError, match="Malformed"):
        await engine.translation("Hello", tgt_lang="ha", src_lang="en")


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (AsyncCommTimeoutError("timeout"), TranslationTimeoutError),
        (AsyncCommError("busy", status=429), TranslationRateLimitError),
        (AsyncCommError("bad", status=400), NotSupportedLanguagesError),
        (AsyncCommError("down", status=500), TranslateExceptionError),
        (AsyncCommError("refused"), TranslateExceptionError),
    ],
)
async def test_translation_maps_communication_errors(
    engine: HttpTranslation,
    monkeypatch: pytest.MonkeyPatch,
    error: Exception,
    expected: type[Exception],
) -> None:
    _mock_post(monkeypatch, side_effect=error)

    with pytest.raises(expected):
        await engine.translation("Hello", tgt_lang="ha", src_lang="en")


async def test_close_releases_client(engine: HttpTranslation) -> None:
    await engine.close()

    assert engine.is_available is False
    with pytest.raises(TranslateExceptionError):
        _ = engine._client
