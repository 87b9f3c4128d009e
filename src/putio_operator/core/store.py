"""期望状态存储抽象."""

from abc import ABC, abstractmethod

from putio_operator.models.events import EventKind
from putio_operator.models.feed import Feed, FeedStatus


class FeedStore(ABC):
    """访问 Feed 资源、Secret 与事件."""

    @abstractmethod
    async def get_feed(self, namespace: str, name: str) -> Feed:
        """读取 Feed，不存在时抛出 StoreNotFoundError."""
        ...

    @abstractmethod
    async def update_finalizers(self, feed: Feed) -> Feed:
        """保存 ``feed.metadata.finalizers`` 并返回最新对象."""
        ...

    @abstractmethod
    async def update_status(self, feed: Feed, status: FeedStatus) -> Feed:
        """写入 status 子资源并返回最新对象."""
        ...

    @abstractmethod
    async def read_secret(self, namespace: str, name: str, key: str) -> str:
        """读取 Secret 中的一个值（已解码）."""
        ...

    @abstractmethod
    async def record_event(self, feed: Feed, kind: EventKind, message: str) -> None:
        """在 Feed 上记录审计事件."""
        ...
