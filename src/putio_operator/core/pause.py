"""暂停状态同步.

put.io 的暂停是单独的操作，因此在订阅字段创建或更新之后再执行.
"""

from putio_operator.core.context import ReconcileContext
from putio_operator.core.errors import PauseStateSyncError
from putio_operator.core.putio import PutioClient, PutioError


class PauseStateController:
    """让 put.io 的暂停状态与期望一致."""

    def __init__(self, client: PutioClient) -> None:
        self.client = client

    async def sync(self, ctx: ReconcileContext, feed_id: int, paused: bool) -> None:
        """只调用一次 pause 或 resume."""
        action = "pause" if paused else "resume"
        ctx.logger.info("对 put.io 订阅 %d 执行 %s", feed_id, action)
        try:
            if paused:
                await self.client.pause(feed_id)
            else:
                await self.client.resume(feed_id)
        except PutioError as e:
            msg = f"unable to {action} put.io feed {feed_id}: {e}"
            raise PauseStateSyncError(msg, feed_id) from e
