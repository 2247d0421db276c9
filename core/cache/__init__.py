"""Translation cache package.

Provides the in-memory translation cache and in-flight request coordination.
"""

from __future__ import annotations

from core.cache.inflight_manager import InFlightManager
from core.cache.manager import TranslationCache

__all__: list[str] = ["InFlightManager", "TranslationCache"]
