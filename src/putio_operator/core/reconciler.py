"""Feed 调和流程."""

from collections.abc import Awaitable, Callable

from putio_operator.core.context import ReconcileContext
from putio_operator.core.errors import (
    AuthSecretError,
    PauseStateSyncError,
    ReconcileError,
    StoreError,
    StoreNotFoundError,
)
from putio_operator.core.fingerprint import is_already_processed, make_remote_feed
from putio_operator.core.finalizer import FinalizerManager
from putio_operator.core.pause import PauseStateController
from putio_operator.core.putio import PutioClient, PutioError, PutioNotFoundError
from putio_operator.core.status import StatusProjector, pause_sync_pending
from putio_operator.core.store import FeedStore
from putio_operator.models.events import EventKind
from putio_operator.models.feed import Feed, split_key
from putio_operator.models.remote import RemoteFeed

# (token, 剩余秒数) -> 客户端
ClientFactory = Callable[[str, float | None], PutioClient]


class FeedReconciler:
    """驱动 put.io RSS 订阅向 Feed 资源收敛."""

    def __init__(
        self,
        store: FeedStore,
        client_factory: ClientFactory,
        identity: str,
        finalizer: str,
    ) -> None:
        self.store = store
        self.client_factory = client_factory
        self.identity = identity
        self.finalizers = FinalizerManager(store, finalizer)
        self.projector = StatusProjector(store)

    async def reconcile(self, key: str, ctx: ReconcileContext | None = None) -> None:
        """对 ``namespace/name`` 执行一次调和，失败时抛出异常."""
        ctx = ctx or ReconcileContext.for_key(key)
        namespace, name = split_key(key)

        try:
            feed = await self.store.get_feed(namespace, name)
        except StoreNotFoundError:
            ctx.logger.info("Feed 不存在，无需处理")
            return

        await self._event(ctx, feed, EventKind.RECONCILIATION_STARTED, "starting reconciliation")

        token = await self._resolve_token(ctx, feed)
        client = self.client_factory(token, ctx.remaining)
        try:
            if feed.is_being_deleted:
                await self._reconcile_deletion(ctx, feed, client)
                return

            feed = await self._ensure_finalizer(ctx, feed)
            await self._synchronize(ctx, feed, client)
        finally:
            await client.close()

        ctx.logger.info("Feed 调和完成")

    async def _resolve_token(self, ctx: ReconcileContext, feed: Feed) -> str:
        ref = feed.spec.auth_secret_ref
        ctx.logger.info("使用 Secret %s 初始化 put.io 客户端", ref.name)
        try:
            return await self.store.read_secret(feed.metadata.namespace, ref.name, ref.key)
        except StoreError as e:
            await self._event(ctx, feed, EventKind.UNABLE_TO_GET_AUTH_SECRET, str(e))
            msg = f"cannot get secret {ref.name!r}: {e}"
            raise AuthSecretError(msg) from e

    async def _ensure_finalizer(self, ctx: ReconcileContext, feed: Feed) -> Feed:
        try:
            feed, added = await self.finalizers.ensure(ctx, feed)
        except StoreError as e:
            await self._event(ctx, feed, EventKind.UNABLE_TO_ADD_FINALIZER, str(e))
            raise
        if added:
            await self._event(ctx, feed, EventKind.ADDED_FINALIZER, "instance finalizer added")
        return feed

    async def _reconcile_deletion(
        self, ctx: ReconcileContext, feed: Feed, client: PutioClient
    ) -> None:
        if not feed.has_finalizer(self.finalizers.finalizer):
            ctx.logger.info("Feed 正在删除且没有 finalizer，无需处理")
            return

        try:
            await self.finalizers.delete_remote(ctx, feed, client)
        except (ReconcileError, PutioError) as e:
            await self._event(ctx, feed, EventKind.UNABLE_TO_DELETE_AT_PUTIO, str(e))
            raise
        await self._event(ctx, feed, EventKind.DELETED_AT_PUTIO, "feed successfully deleted")

        try:
            await self.finalizers.release(ctx, feed)
        except StoreError as e:
            await self._event(ctx, feed, EventKind.UNABLE_TO_DELETE_FINALIZER, str(e))
            raise

    async def _synchronize(
        self, ctx: ReconcileContext, feed: Feed, client: PutioClient
    ) -> Feed:
        remote = await self._lookup(ctx, feed, client)
        desired = make_remote_feed(feed, self.identity)

        try:
            if remote is None:
                ctx.logger.info("创建 put.io 订阅 %r", desired.title)
                remote = await client.create(desired)
                if remote.id is None:
                    msg = "put.io: created feed has no ID"
                    raise PutioError(msg)
                await self._event(
                    ctx, feed, EventKind.CREATED_AT_PUTIO, f"feed {remote.id} created"
                )
                feed = await self._write_status(
                    ctx, feed, self.projector.record_identifier(ctx, feed, remote)
                )
                mutated = True
            elif not is_already_processed(remote, feed):
                ctx.logger.info("更新 put.io 订阅 %d 到 generation %d", remote.id, feed.generation)
                await client.update(desired, remote.id)
                await self._event(
                    ctx, feed, EventKind.UPDATED_AT_PUTIO, f"feed {remote.id} updated"
                )
                mutated = True
            else:
                ctx.logger.info("put.io 订阅 %d 已是 generation %d", remote.id, feed.generation)
                await self._event(
                    ctx, feed, EventKind.ALREADY_UP_TO_DATE, "no change on spec, nothing to do"
                )
                mutated = False
        except PutioError as e:
            await self._event(ctx, feed, EventKind.UNABLE_TO_CREATE_OR_UPDATE_AT_PUTIO, str(e))
            raise

        feed_id = remote.id
        if mutated or self._pause_out_of_sync(ctx, feed, remote):
            await self._sync_pause(ctx, feed, feed_id, client)
            try:
                remote = await client.get(feed_id)
            except PutioError as e:
                await self._event(
                    ctx, feed, EventKind.UNABLE_TO_CREATE_OR_UPDATE_AT_PUTIO, str(e)
                )
                raise

        return await self._write_status(ctx, feed, self.projector.apply(ctx, feed, remote))

    def _pause_out_of_sync(
        self, ctx: ReconcileContext, feed: Feed, remote: RemoteFeed
    ) -> bool:
        # 未保存下来的暂停失败也要能通过远端实际状态发现
        if pause_sync_pending(feed.status):
            return True
        desired = bool(feed.spec.paused)
        if remote.paused != desired:
            ctx.logger.warning(
                "put.io 订阅 %d 暂停状态为 %s，期望 %s", remote.id, remote.paused, desired
            )
            return True
        return False

    async def _lookup(
        self, ctx: ReconcileContext, feed: Feed, client: PutioClient
    ) -> RemoteFeed | None:
        feed_id = feed.status.id
        if feed_id is None:
            return None

        ctx.logger.info("按 status 中的 ID %d 查找 put.io 订阅", feed_id)
        try:
            return await client.get(feed_id)
        except PutioNotFoundError:
            ctx.logger.warning("put.io 订阅 %d 不存在，重新创建", feed_id)
            return None
        except PutioError as e:
            await self._event(ctx, feed, EventKind.UNABLE_TO_CREATE_OR_UPDATE_AT_PUTIO, str(e))
            raise

    async def _sync_pause(
        self, ctx: ReconcileContext, feed: Feed, feed_id: int, client: PutioClient
    ) -> None:
        try:
            await PauseStateController(client).sync(ctx, feed_id, bool(feed.spec.paused))
        except PauseStateSyncError as e:
            await self._event(ctx, feed, EventKind.UNABLE_TO_SYNC_PAUSE_STATE, str(e))
            try:
                await self.projector.record_pause_failure(ctx, feed, feed_id, str(e))
            except StoreError:
                ctx.logger.exception("无法在 status 中记录暂停失败")
            raise
        await self._event(
            ctx,
            feed,
            EventKind.PAUSE_STATE_SYNCED,
            "feed paused" if feed.spec.paused else "feed resumed",
        )

    async def _write_status(
        self, ctx: ReconcileContext, feed: Feed, write: Awaitable[Feed]
    ) -> Feed:
        try:
            updated = await write
        except StoreError as e:
            await self._event(ctx, feed, EventKind.UNABLE_TO_UPDATE_STATUS, str(e))
            raise
        await self._event(
            ctx, updated, EventKind.STATUS_UPDATED, "feed status updated successfully"
        )
        return updated

    async def _event(
        self, ctx: ReconcileContext, feed: Feed, kind: EventKind, message: str
    ) -> None:
        # 事件写入失败不影响调和
        try:
            await self.store.record_event(feed, kind, message)
        except Exception:
            ctx.logger.warning("无法记录 %s 事件", kind.reason, exc_info=True)
