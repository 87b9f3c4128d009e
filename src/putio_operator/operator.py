"""kopf 入口：监听 Feed 资源并执行调和.

事件投递、同一对象串行处理、并发上限与重试都交给 kopf，
这里只负责把调和结果映射为 kopf 的重试语义.
"""

import asyncio
import logging
from typing import Any

import kopf
from pydantic import ValidationError

from putio_operator import __version__
from putio_operator.config import Settings, get_settings
from putio_operator.core.context import ReconcileContext
from putio_operator.core.errors import ReconcileError
from putio_operator.core.kubernetes import KubernetesFeedStore, load_kube_config
from putio_operator.core.putio import PutioClient, PutioConfig, PutioError
from putio_operator.core.reconciler import FeedReconciler
from putio_operator.models.feed import API_GROUP, API_VERSION, PLURAL

logger = logging.getLogger(__name__)

_settings = get_settings()
_reconciler: FeedReconciler | None = None


def create_reconciler(settings: Settings) -> FeedReconciler:
    """组装调和器及其存储."""

    def client_factory(token: str, remaining: float | None = None) -> PutioClient:
        # 单个请求不超过本次调和剩余的时间
        timeout = settings.http_timeout_seconds
        if remaining is not None:
            timeout = min(timeout, remaining)
        return PutioClient(
            PutioConfig(base_url=settings.putio_api_url, token=token, timeout=timeout)
        )

    return FeedReconciler(
        store=KubernetesFeedStore(event_source=settings.event_source),
        client_factory=client_factory,
        identity=settings.controller_identity,
        finalizer=settings.finalizer,
    )


def retry_delay(retry: int, settings: Settings) -> float:
    """第 retry 次重试前的等待时间（指数退避，有上限）."""
    return min(settings.backoff_base_seconds * 2**retry, settings.backoff_max_seconds)


async def reconcile_feed(
    reconciler: FeedReconciler, key: str, retry: int, settings: Settings
) -> None:
    """执行一次调和，把失败转换为 kopf 的临时或永久错误."""
    timeout = settings.reconcile_timeout_seconds
    ctx = ReconcileContext.for_key(key, timeout=timeout)
    delay = retry_delay(retry, settings)
    try:
        async with asyncio.timeout(timeout):
            await reconciler.reconcile(key, ctx)
    except TimeoutError as e:
        ctx.logger.error("调和超时，%.1f 秒后重试", delay)
        raise kopf.TemporaryError(f"reconcile timed out after {timeout}s", delay=delay) from e
    except ValidationError as e:
        ctx.logger.error("Feed 资源无效，等待下一次变更: %s", e)
        raise kopf.PermanentError(f"invalid Feed resource: {e}") from e
    except ReconcileError as e:
        if not e.retryable:
            ctx.logger.error("调和失败，等待下一次变更: %s", e)
            raise kopf.PermanentError(str(e)) from e
        ctx.logger.error("调和失败，%.1f 秒后重试: %s", delay, e)
        raise kopf.TemporaryError(str(e), delay=delay) from e
    except PutioError as e:
        ctx.logger.error("put.io 调用失败，%.1f 秒后重试: %s", delay, e)
        raise kopf.TemporaryError(str(e), delay=delay) from e
    ctx.logger.debug("调和耗时 %.2f 秒", ctx.elapsed)


def get_reconciler() -> FeedReconciler:
    if _reconciler is None:
        raise kopf.TemporaryError("operator is not started yet", delay=1)
    return _reconciler


@kopf.on.startup()
async def configure(settings: kopf.OperatorSettings, **_: Any) -> None:
    """配置 kopf 并创建调和器."""
    global _reconciler

    app_settings = get_settings()
    logging.getLogger("putio_operator").setLevel(app_settings.log_level)

    # 审计事件由调和器自己写入
    settings.posting.enabled = False
    settings.networking.request_timeout = app_settings.http_timeout_seconds
    settings.batching.worker_limit = app_settings.max_workers
    # Feed 的 status 归调和器所有，kopf 的进度只写注解
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(
        prefix=app_settings.annotation_prefix
    )
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage(
        prefix=app_settings.annotation_prefix,
        key="last-handled-configuration",
    )

    load_kube_config()
    _reconciler = create_reconciler(app_settings)
    logger.info("putio-operator %s 启动完成", __version__)


@kopf.on.cleanup()
async def cleanup(**_: Any) -> None:
    """关闭时释放调和器."""
    global _reconciler
    _reconciler = None
    logger.info("putio-operator 已关闭")


@kopf.on.resume(
    API_GROUP,
    API_VERSION,
    PLURAL,
    backoff=_settings.backoff_base_seconds,
    timeout=_settings.handler_timeout_seconds,
)
@kopf.on.create(
    API_GROUP,
    API_VERSION,
    PLURAL,
    backoff=_settings.backoff_base_seconds,
    timeout=_settings.handler_timeout_seconds,
)
@kopf.on.update(
    API_GROUP,
    API_VERSION,
    PLURAL,
    backoff=_settings.backoff_base_seconds,
    timeout=_settings.handler_timeout_seconds,
)
async def sync_feed(namespace: str, name: str, retry: int, **_: Any) -> None:
    """Feed 创建、spec 变更或 operator 重启时调和."""
    await reconcile_feed(get_reconciler(), f"{namespace}/{name}", retry, _settings)


@kopf.on.delete(
    API_GROUP,
    API_VERSION,
    PLURAL,
    backoff=_settings.backoff_base_seconds,
    timeout=_settings.handler_timeout_seconds,
)
async def delete_feed(namespace: str, name: str, retry: int, **_: Any) -> None:
    """Feed 删除时先删除 put.io 订阅再释放 finalizer."""
    await reconcile_feed(get_reconciler(), f"{namespace}/{name}", retry, _settings)


@kopf.on.probe(id="reconciler")
def reconciler_ready(**_: Any) -> bool:
    return _reconciler is not None


def run() -> None:
    """运行 operator."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    if settings.watch_namespace:
        kopf.run(namespaces=[settings.watch_namespace], standalone=True)
    else:
        kopf.run(clusterwide=True, standalone=True)


if __name__ == "__main__":
    run()
