"""Batched translation refresh loop."""

from core.refresh.loop import RefreshLoop

__all__: list[str] = ["RefreshLoop"]
