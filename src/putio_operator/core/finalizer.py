"""围绕 put.io 删除的 finalizer 处理."""

from putio_operator.core.context import ReconcileContext
from putio_operator.core.errors import MissingRemoteIdentifierError
from putio_operator.core.putio import PutioClient, PutioNotFoundError
from putio_operator.core.store import FeedStore
from putio_operator.models.feed import Feed


class FinalizerManager:
    """在 put.io 订阅删除之前保留 Feed."""

    def __init__(self, store: FeedStore, finalizer: str) -> None:
        self.store = store
        self.finalizer = finalizer

    async def ensure(self, ctx: ReconcileContext, feed: Feed) -> tuple[Feed, bool]:
        """缺少 finalizer 时添加，返回 Feed 以及是否新增."""
        if feed.has_finalizer(self.finalizer):
            return feed, False
        ctx.logger.info("添加 finalizer %s", self.finalizer)
        feed.add_finalizer(self.finalizer)
        return await self.store.update_finalizers(feed), True

    async def delete_remote(
        self, ctx: ReconcileContext, feed: Feed, client: PutioClient
    ) -> None:
        """删除 put.io 订阅，不存在视为已删除."""
        feed_id = feed.status.id
        if feed_id is None:
            msg = "cannot delete Feed without its put.io ID"
            raise MissingRemoteIdentifierError(msg)

        ctx.logger.info("删除 put.io 订阅 %d", feed_id)
        try:
            await client.delete(feed_id)
        except PutioNotFoundError:
            ctx.logger.info("put.io 订阅 %d 已不存在", feed_id)

    async def release(self, ctx: ReconcileContext, feed: Feed) -> Feed:
        """确认远端删除后移除 finalizer."""
        ctx.logger.info("移除 finalizer %s", self.finalizer)
        feed.remove_finalizer(self.finalizer)
        return await self.store.update_finalizers(feed)
