"""数据模型."""

from putio_operator.models.events import (
    ConditionReason,
    ConditionType,
    EventKind,
    EventType,
)
from putio_operator.models.feed import (
    AuthSecretReference,
    Condition,
    Feed,
    FeedMetadata,
    FeedSpec,
    FeedStatus,
)
from putio_operator.models.remote import RemoteFeed

__all__ = [
    "AuthSecretReference",
    "Condition",
    "ConditionReason",
    "ConditionType",
    "EventKind",
    "EventType",
    "Feed",
    "FeedMetadata",
    "FeedSpec",
    "FeedStatus",
    "RemoteFeed",
]
