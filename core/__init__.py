"""Core components of VoiceFeed.

This package contains the application facade, the shared translation services, the message feed and
store, the translation refresh loop and the translation engines.
"""

from core.app import VoiceFeed
from core.shared_data import SharedData
from core.version import VERSION

__all__: list[str] = [
    "VERSION",
    "SharedData",
    "VoiceFeed",
]
