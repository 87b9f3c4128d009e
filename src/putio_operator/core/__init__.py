"""调和核心."""

from putio_operator.core.putio import PutioClient, PutioConfig
from putio_operator.core.reconciler import FeedReconciler
from putio_operator.core.store import FeedStore

__all__ = [
    "FeedReconciler",
    "FeedStore",
    "PutioClient",
    "PutioConfig",
]
