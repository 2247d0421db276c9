"""Shared services for the feed components.

``SharedData`` owns the translation cache, the in-flight manager and the translation manager, so the
refresh loop and the facade reach the same instances without module-level state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from core.cache.inflight_manager import InFlightManager
from core.cache.manager import TranslationCache
from core.trans.manager import TransManager

if TYPE_CHECKING:
    from config.loader import Config


__all__: list[str] = ["SharedData"]


@dataclass
class SharedData:
    _config: Config = field()
    _cache: TranslationCache = field(init=False)
    _inflight_manager: InFlightManager = field(init=False)
    _trans_manager: TransManager = field(init=False)

    def __post_init__(self) -> None:
        self._cache = TranslationCache.from_config(self.config)
        self._inflight_manager = InFlightManager()
        self._trans_manager = TransManager(self.config, self._cache, self._inflight_manager)

    async def async_init(self) -> None:
        await self._inflight_manager.component_load()
        await self._trans_manager.initialize()

    async def async_close(self) -> None:
        await self._trans_manager.shutdown_engines()
        await self._inflight_manager.component_teardown()

    @property
    def config(self) -> Config:
        return self._config

    @property
    def cache(self) -> TranslationCache:
        return self._cache

    @property
    def inflight_manager(self) -> InFlightManager:
        return self._inflight_manager

    @property
    def trans_manager(self) -> TransManager:
        return self._trans_manager
