"""Unit tests for core.trans.manager module."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import TYPE_CHECKING, ClassVar, cast

import pytest

from core.cache.inflight_manager import InFlightManager
from core.cache.manager import TranslationCache
from core.trans import manager as manager_module
from core.trans.interface import (
    EngineAttributes,
    NotSupportedLanguagesError,
    Result,
    TransInterface,
    TranslateExceptionError,
    TranslationQuotaExceededError,
    TranslationRateLimitError,
)
from core.trans.manager import TransManager

if TYPE_CHECKING:
    from config.loader import Config


class DummyEngine(TransInterface):
    """Minimal translation engine for TransManager tests."""

    translation_result: ClassVar[Result] = Result(text="translated")
    translation_errors: ClassVar[list[Exception]] = []
    delay: ClassVar[float] = 0.0
    available: ClassVar[bool] = True
    calls: ClassVar[list[tuple[str, str, str | None]]] = []
    close_called: ClassVar[bool] = False

    @property
    def is_available(self) -> bool:
        return type(self).available

    @staticmethod
    def fetch_engine_name() -> str:
        return ""

    def initialize(self, config) -> None:
        _ = config
        self.engine_attributes = EngineAttributes(name="dummy")

    async def translation(self, content: str, tgt_lang: str, src_lang: str | None = None) -> Result:
        type(self).calls.append((content, tgt_lang, src_lang))
        if type(self).delay:
            await asyncio.sleep(type(self).delay)
        if type(self).translation_errors:
            raise type(self).translation_errors.pop(0)
        return type(self).translation_result

    async def close(self) -> None:
        type(self).close_called = True


class BrokenEngine(DummyEngine):
    def initialize(self, config) -> None:
        _ = config
        msg = "missing key"
        raise TranslateExceptionError(msg)


@pytest.fixture(autouse=True)
def reset_engine_state(monkeypatch: pytest.MonkeyPatch) -> None:
    DummyEngine.translation_result = Result(text="translated")
    DummyEngine.translation_errors = []
    DummyEngine.delay = 0.0
    DummyEngine.available = True
    DummyEngine.calls = []
    DummyEngine.close_called = False

    monkeypatch.setattr(TransInterface, "registered", {"dummy": DummyEngine, "broken": BrokenEngine})
    monkeypatch.setattr(manager_module, "RETRY_BASE_DELAY_SEC", 0.0)


def _config(engine: list[str] | None = None, *, timeout: float = 1.0, retry_count: int = 0) -> Config:
    return cast(
        "Config",
        SimpleNamespace(
            TRANSLATION=SimpleNamespace(
                ENGINE=engine if engine is not None else ["dummy"],
                TIMEOUT=timeout,
                RETRY_COUNT=retry_count,
            )
        ),
    )


async def _manager(config: Config | None = None, *, inflight: bool = False) -> TransManager:
    inflight_manager: InFlightManager | None = None
    if inflight:
        inflight_manager = InFlightManager()
        await inflight_manager.component_load()
    manager = TransManager(config or _config(), TranslationCache(), inflight_manager)
    await manager.initialize()
    return manager


async def test_initialize_skips_engines_that_fail_setup() -> None:
    manager: TransManager = await _manager(_config(["broken", "unknown", "dummy"]))

    assert manager.fetch_engine_names() == ["dummy"]
    assert isinstance(manager.current_engine_instance, DummyEngine)


async def test_active_engine_raises_when_empty() -> None:
    manager: TransManager = await _manager(_config([]))

    with pytest.raises(TranslateExceptionError):
        _ = manager.current_engine_instance


async def test_translate_calls_engine_and_caches_result() -> None:
    manager: TransManager = await _manager()

    result: str | None = await manager.translate("Hello", "en", "ha")

    assert result == "translated"
    assert DummyEngine.calls == [("Hello", "ha", "en")]
    assert manager.cache.lookup("Hello", "en", "ha") == "translated"


async def test_translate_cache_hit_skips_engine() -> None:
    manager: TransManager = await _manager()
    manager.cache.store("Hello", "en", "ha", "Sannu")

    result: str | None = await manager.translate("Hello", "en", "ha")

    assert result == "Sannu"
    assert DummyEngine.calls == []


async def test_translate_identity_and_empty_text_skip_cache_and_engine() -> None:
    manager: TransManager = await _manager()

    assert await manager.translate("Hello", "en", "en") == "Hello"
    assert await manager.translate("", "en", "ha") == ""
    assert DummyEngine.calls == []
    assert len(manager.cache) == 0
    assert manager.cache.statistics().misses == 0


async def test_translate_empty_engine_reply_falls_back_to_source_text() -> None:
    DummyEngine.translation_result = Result(text="")
    manager: TransManager = await _manager()

    assert await manager.translate("Hello", "en", "ha") == "Hello"


async def test_translate_failure_returns_none_and_does_not_cache() -> None:
    DummyEngine.translation_errors = [TranslateExceptionError("boom")]
    manager: TransManager = await _manager()

    assert await manager.translate("Hello", "en", "ha") is None
    assert ("Hello", "en", "ha") not in manager.cache


async def test_translate_without_engine_returns_none() -> None:
    manager: TransManager = await _manager(_config([]))

    assert await manager.translate("Hello", "en", "ha") is None


async def test_transient_error_is_retried_up_to_retry_count() -> None:
    DummyEngine.translation_errors = [TranslateExceptionError("connection reset")]
    manager: TransManager = await _manager(_config(retry_count=1))

    assert await manager.translate("Hello", "en", "ha") == "translated"
    assert len(DummyEngine.calls) == 2
    assert manager.engine_calls == 2


async def test_permanent_error_is_not_retried() -> None:
    DummyEngine.translation_errors = [NotSupportedLanguagesError("xx")]
    manager: TransManager = await _manager(_config(retry_count=3))

    assert await manager.translate("Hello", "en", "xx") is None
    assert len(DummyEngine.calls) == 1


async def test_engine_call_is_bounded_by_timeout() -> None:
    DummyEngine.delay = 0.5
    manager: TransManager = await _manager(_config(timeout=0.01))

    assert await manager.translate("Hello", "en", "ha") is None
    assert len(DummyEngine.calls) == 1


async def test_rate_limit_error_blocks_following_requests() -> None:
    DummyEngine.translation_errors = [TranslationRateLimitError("slow down")]
    manager: TransManager = await _manager()

    assert await manager.translate("Hello", "en", "ha") is None
    assert await manager.translate("Bye", "en", "ha") is None
    assert len(DummyEngine.calls) == 1


async def test_quota_exceeded_disables_engine() -> None:
    DummyEngine.translation_errors = [TranslationQuotaExceededError("quota")]
    manager: TransManager = await _manager()
    DummyEngine.available = False

    assert await manager.translate("Hello", "en", "ha") is None
    assert manager.fetch_engine_names() == []


async def test_concurrent_identical_requests_share_one_engine_call() -> None:
    DummyEngine.delay = 0.05
    manager: TransManager = await _manager(inflight=True)

    results: list[str | None] = await asyncio.gather(
        manager.translate("Hello", "en", "ha"),
        manager.translate("Hello", "en", "ha"),
    )

    assert results == ["translated", "translated"]
    assert len(DummyEngine.calls) == 1


async def test_shutdown_engines_closes_instances() -> None:
    manager: TransManager = await _manager()

    await manager.shutdown_engines()

    assert DummyEngine.close_called is True
    assert manager.fetch_engine_names() == []


@pytest.mark.parametrize(
    ("timeout", "retry_count", "expected"),
    [
        (0.0, 3, None),
        (10.0, 0, 11.0),
        (10.0, 1, 21.5),
        (10.0, 2, 32.5),
    ],
)
async def test_inflight_wait_timeout_covers_every_attempt(
    monkeypatch: pytest.MonkeyPatch, timeout: float, retry_count: int, expected: float | None
) -> None:
    monkeypatch.setattr(manager_module, "RETRY_BASE_DELAY_SEC", 0.5)
    manager: TransManager = await _manager(_config(timeout=timeout, retry_count=retry_count))

    assert manager.inflight_wait_timeout() == expected


async def test_follower_waits_while_leader_retries() -> None:
    DummyEngine.delay = 0.1
    DummyEngine.translation_errors = [TranslateExceptionError("connection reset")]
    manager: TransManager = await _manager(_config(timeout=0.15, retry_count=1), inflight=True)

    results: list[str | None] = await asyncio.gather(
        manager.translate("Hello", "en", "ha"),
        manager.translate("Hello", "en", "ha"),
    )

    assert results == ["translated", "translated"]
    assert len(DummyEngine.calls) == 2


async def test_unexpected_leader_error_releases_followers() -> None:
    DummyEngine.delay = 0.05
    DummyEngine.translation_errors = [ValueError("bad payload")]
    manager: TransManager = await _manager(_config(timeout=0), inflight=True)

    leader, follower = await asyncio.gather(
        manager.translate("Hello", "en", "ha"),
        manager.translate("Hello", "en", "ha"),
        return_exceptions=True,
    )

    assert isinstance(leader, ValueError)
    assert follower is None
    assert manager.inflight_manager is not None
    assert manager.inflight_manager.pending_count() == 0
