"""把 put.io 状态投影到 Feed status."""

from datetime import UTC, datetime

from putio_operator.core.context import ReconcileContext
from putio_operator.core.store import FeedStore
from putio_operator.models.events import ConditionReason, ConditionType
from putio_operator.models.feed import Condition, Feed, FeedStatus
from putio_operator.models.remote import RemoteFeed

DEPLOYED_MESSAGE = "deployed"


def set_condition(
    conditions: list[Condition],
    condition_type: ConditionType,
    reason: ConditionReason,
    message: str,
    now: datetime | None = None,
) -> list[Condition]:
    """按类型插入或更新条件.

    只有 status 值变化时才更新 lastTransitionTime.
    """
    now = now or datetime.now(UTC)
    result: list[Condition] = []
    found = False
    for condition in conditions:
        if condition.type != condition_type.value:
            result.append(condition)
            continue
        found = True
        transition = condition.last_transition_time
        if condition.status != reason.status:
            transition = now
        result.append(
            Condition(
                type=condition_type.value,
                status=reason.status,
                reason=reason.value,
                message=message,
                last_transition_time=transition,
            )
        )

    if not found:
        result.append(
            Condition(
                type=condition_type.value,
                status=reason.status,
                reason=reason.value,
                message=message,
                last_transition_time=now,
            )
        )
    return result


def project_status(
    current: FeedStatus,
    remote: RemoteFeed,
    generation: int,
    now: datetime | None = None,
) -> FeedStatus:
    """计算反映 put.io 订阅的 status."""
    if remote.last_error:
        reason, message = ConditionReason.FAILED_TO_DEPLOY, remote.last_error
    else:
        reason, message = ConditionReason.DEPLOYED, DEPLOYED_MESSAGE

    return FeedStatus(
        id=remote.id if remote.id is not None else current.id,
        last_error=remote.last_error,
        failed_item_count=remote.failed_item_count,
        last_fetch=remote.last_fetch,
        paused_at=remote.paused_at,
        created_at=remote.created_at,
        updated_at=remote.updated_at,
        observed_generation=generation,
        conditions=set_condition(
            current.conditions, ConditionType.AVAILABLE, reason, message, now
        ),
    )


def pause_failed_status(
    current: FeedStatus,
    feed_id: int,
    message: str,
    now: datetime | None = None,
) -> FeedStatus:
    """记录写操作成功后暂停/恢复失败的 status."""
    status = current.model_copy(deep=True)
    status.id = feed_id
    status.conditions = set_condition(
        status.conditions,
        ConditionType.AVAILABLE,
        ConditionReason.PAUSE_STATE_SYNC_FAILED,
        message,
        now,
    )
    return status


def pause_sync_pending(status: FeedStatus) -> bool:
    """上一次调和是否遗留了未同步的暂停状态."""
    condition = status.get_condition(ConditionType.AVAILABLE.value)
    return (
        condition is not None
        and condition.reason == ConditionReason.PAUSE_STATE_SYNC_FAILED.value
    )


class StatusProjector:
    """把观测到的 put.io 状态写回 Feed."""

    def __init__(self, store: FeedStore) -> None:
        self.store = store

    async def apply(self, ctx: ReconcileContext, feed: Feed, remote: RemoteFeed) -> Feed:
        status = project_status(feed.status, remote, feed.generation)
        available = status.get_condition(ConditionType.AVAILABLE.value)
        ctx.logger.info(
            "更新 Feed status (id=%s, available=%s)",
            status.id,
            available.status if available else None,
        )
        return await self.store.update_status(feed, status)

    async def record_identifier(
        self, ctx: ReconcileContext, feed: Feed, remote: RemoteFeed
    ) -> Feed:
        """创建后立即保存 put.io ID."""
        status = feed.status.model_copy(deep=True)
        status.id = remote.id
        ctx.logger.info("记录 put.io 订阅 ID %s", remote.id)
        return await self.store.update_status(feed, status)

    async def record_pause_failure(
        self, ctx: ReconcileContext, feed: Feed, feed_id: int, message: str
    ) -> Feed:
        status = pause_failed_status(feed.status, feed_id, message)
        return await self.store.update_status(feed, status)
