"""Conversation feed: the shared message store and the locally displayed feed."""

from core.feed.message_feed import FeedRow, MessageFeed
from core.feed.store import (
    InMemoryMessageStore,
    JsonFileMessageStore,
    MessageStore,
    MessageStoreClosedError,
    MessageStoreError,
)

__all__: list[str] = [
    "FeedRow",
    "InMemoryMessageStore",
    "JsonFileMessageStore",
    "MessageFeed",
    "MessageStore",
    "MessageStoreClosedError",
    "MessageStoreError",
]
