"""基于 Kubernetes API 的 Feed 存储."""

import asyncio
import base64
from datetime import UTC, datetime

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException

from putio_operator.core.errors import StoreConflictError, StoreError, StoreNotFoundError
from putio_operator.core.store import FeedStore
from putio_operator.models.events import EventKind
from putio_operator.models.feed import API_GROUP, API_VERSION, PLURAL, Feed, FeedStatus


def load_kube_config() -> None:
    """优先加载集群内配置，失败时回退到本地 kubeconfig."""
    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()


def _store_error(e: ApiException, what: str) -> StoreError:
    msg = f"{what}: {e.status} {e.reason}"
    if e.status == 404:
        return StoreNotFoundError(msg)
    if e.status == 409:
        return StoreConflictError(msg)
    return StoreError(msg)


class KubernetesFeedStore(FeedStore):
    """基于 Kubernetes API 的 Feed 存储.

    ``kubernetes`` 客户端是阻塞的，所有调用都放到线程中执行.
    """

    def __init__(
        self,
        api_client: client.ApiClient | None = None,
        event_source: str = "feed-reconciler",
    ) -> None:
        self.custom = client.CustomObjectsApi(api_client)
        self.core = client.CoreV1Api(api_client)
        self.event_source = event_source

    async def get_feed(self, namespace: str, name: str) -> Feed:
        try:
            body = await asyncio.to_thread(
                self.custom.get_namespaced_custom_object,
                API_GROUP,
                API_VERSION,
                namespace,
                PLURAL,
                name,
            )
        except ApiException as e:
            raise _store_error(e, f"cannot get feed {namespace}/{name}") from e
        return Feed.model_validate(body)

    async def update_finalizers(self, feed: Feed) -> Feed:
        patch = {
            "metadata": {
                "finalizers": feed.metadata.finalizers,
                "resourceVersion": feed.metadata.resource_version,
            }
        }
        try:
            body = await asyncio.to_thread(
                self.custom.patch_namespaced_custom_object,
                API_GROUP,
                API_VERSION,
                feed.metadata.namespace,
                PLURAL,
                feed.metadata.name,
                patch,
            )
        except ApiException as e:
            raise _store_error(e, f"cannot update finalizers of {feed.key}") from e
        return Feed.model_validate(body)

    async def update_status(self, feed: Feed, status: FeedStatus) -> Feed:
        patch = {"status": status.to_patch()}
        try:
            body = await asyncio.to_thread(
                self.custom.patch_namespaced_custom_object_status,
                API_GROUP,
                API_VERSION,
                feed.metadata.namespace,
                PLURAL,
                feed.metadata.name,
                patch,
            )
        except ApiException as e:
            raise _store_error(e, f"cannot update status of {feed.key}") from e
        return Feed.model_validate(body)

    async def read_secret(self, namespace: str, name: str, key: str) -> str:
        try:
            secret = await asyncio.to_thread(self.core.read_namespaced_secret, name, namespace)
        except ApiException as e:
            raise _store_error(e, f"cannot get secret {namespace}/{name}") from e

        data = secret.data or {}
        if key not in data:
            msg = f"key {key!r} not found in secret {namespace}/{name}"
            raise StoreNotFoundError(msg)
        return base64.b64decode(data[key]).decode("utf-8").strip()

    async def record_event(self, feed: Feed, kind: EventKind, message: str) -> None:
        now = datetime.now(UTC)
        ref = feed.object_reference()
        event = client.CoreV1Event(
            metadata=client.V1ObjectMeta(
                generate_name=f"{feed.metadata.name}.",
                namespace=feed.metadata.namespace,
            ),
            involved_object=client.V1ObjectReference(
                api_version=ref["apiVersion"],
                kind=ref["kind"],
                name=ref["name"],
                namespace=ref["namespace"],
                uid=ref["uid"],
                resource_version=ref["resourceVersion"],
            ),
            reason=kind.reason,
            message=message[:1024],
            type=kind.event_type.value,
            source=client.V1EventSource(component=self.event_source),
            first_timestamp=now,
            last_timestamp=now,
            count=1,
        )
        try:
            await asyncio.to_thread(
                self.core.create_namespaced_event, feed.metadata.namespace, event
            )
        except ApiException as e:
            raise _store_error(e, f"cannot record event on {feed.key}") from e
