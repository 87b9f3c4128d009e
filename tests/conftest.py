"""测试夹具：内存版 put.io 与 Kubernetes."""

import copy
import itertools
import re
from collections.abc import AsyncGenerator
from typing import Any
from urllib.parse import parse_qs

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from putio_operator.core.errors import StoreError, StoreNotFoundError
from putio_operator.core.putio import PutioClient, PutioConfig
from putio_operator.core.reconciler import FeedReconciler
from putio_operator.core.store import FeedStore
from putio_operator.main import app
from putio_operator.models.events import EventKind
from putio_operator.models.feed import Feed, FeedStatus

BASE_URL = "https://api.put.io/v2"
IDENTITY = "Kubernetes/putio-operator"
FINALIZER = "feed.skynewz.dev/finalizer"
TOKEN = "s3cr3t"

_FEED_PATH = re.compile(r"^/v2/rss/(\d+)(?:/(delete|pause|resume))?$")


class FakePutio:
    """通过 httpx.MockTransport 提供的内存版 put.io RSS API."""

    def __init__(self) -> None:
        self.feeds: dict[int, dict[str, Any]] = {}
        self.calls: list[tuple[str, int | None]] = []
        self.forms: list[dict[str, str]] = []
        self.auth_headers: list[str | None] = []
        self._failures: dict[str, httpx.Response] = {}
        self._ids = itertools.count(1000)

    def fail(self, action: str, status_code: int = 500, json: Any = None) -> None:
        """让 ``action`` 的每次调用都返回指定响应."""
        body = json if json is not None else {"error_type": "Internal", "status": "ERROR"}
        self._failures[action] = httpx.Response(status_code, json=body)

    def heal(self, action: str) -> None:
        self._failures.pop(action, None)

    def add_feed(self, **fields: Any) -> dict[str, Any]:
        feed_id = fields.pop("id", None) or next(self._ids)
        feed = {
            "id": feed_id,
            "title": "",
            "rss_source_url": "",
            "parent_dir_id": 0,
            "delete_old_files": False,
            "dont_process_whole_feed": False,
            "keyword": "",
            "unwanted_keywords": "",
            "paused": False,
            "extract": False,
            "failed_item_count": 0,
            "last_error": "",
            "last_fetch": None,
            "created_at": "2022-06-13T00:01:52",
            "paused_at": None,
            "start_at": None,
            "updated_at": "2022-06-13T00:01:52",
        }
        feed.update(fields)
        self.feeds[feed_id] = feed
        return feed

    def count(self, *actions: str) -> int:
        return sum(1 for action, _ in self.calls if action in actions)

    def mutations(self) -> list[str]:
        return [a for a, _ in self.calls if a not in ("get", "list")]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.auth_headers.append(request.headers.get("Authorization"))
        path = request.url.path

        if request.method == "GET" and path == "/v2/rss/list":
            return self._answer("list", None, lambda: {"feeds": list(self.feeds.values())})

        if request.method == "POST" and path == "/v2/rss/create":
            form = self._form(request)
            return self._answer("create", None, lambda: {"feed": self._create(form)})

        match = _FEED_PATH.match(path)
        if match is None:
            return httpx.Response(400, json={"error_type": "BadRequest"})

        feed_id = int(match.group(1))
        sub = match.group(2)
        if request.method == "GET" and sub is None:
            return self._answer("get", feed_id, lambda: {"feed": self._feed(feed_id)})
        if sub is None:
            form = self._form(request)
            return self._answer("update", feed_id, lambda: self._update(feed_id, form))
        if sub == "delete":
            return self._answer("delete", feed_id, lambda: self._delete(feed_id))
        return self._answer(sub, feed_id, lambda: self._pause(feed_id, sub == "pause"))

    def _answer(self, action: str, feed_id: int | None, build: Any) -> httpx.Response:
        self.calls.append((action, feed_id))
        if action in self._failures:
            return self._failures[action]
        try:
            return httpx.Response(200, json=build())
        except KeyError:
            return httpx.Response(
                404,
                json={
                    "error_type": "NotFound",
                    "error_message": "RSS feed not found",
                    "status": "ERROR",
                    "status_code": 404,
                },
            )

    def _form(self, request: httpx.Request) -> dict[str, str]:
        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        self.forms.append(form)
        return form

    def _feed(self, feed_id: int) -> dict[str, Any]:
        return self.feeds[feed_id]

    def _create(self, form: dict[str, str]) -> dict[str, Any]:
        return self.add_feed(**_decode_form(form))

    def _update(self, feed_id: int, form: dict[str, str]) -> dict[str, Any]:
        self.feeds[feed_id].update(_decode_form(form))
        return {"status": "OK"}

    def _delete(self, feed_id: int) -> dict[str, Any]:
        del self.feeds[feed_id]
        return {"status": "OK"}

    def _pause(self, feed_id: int, paused: bool) -> dict[str, Any]:
        feed = self.feeds[feed_id]
        feed["paused"] = paused
        feed["paused_at"] = "2022-09-11T19:46:39.123456789" if paused else None
        return {"status": "OK"}


def _decode_form(form: dict[str, str]) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for key, value in form.items():
        if value in ("true", "false"):
            fields[key] = value == "true"
        elif key == "parent_dir_id":
            fields[key] = int(value)
        else:
            fields[key] = value
    return fields


class FakeFeedStore(FeedStore):
    """内存版 Feed 存储."""

    def __init__(self) -> None:
        self.objects: dict[str, dict[str, Any]] = {}
        self.secrets: dict[tuple[str, str], dict[str, str]] = {}
        self.events: list[tuple[str, EventKind, str]] = []
        self.status_writes: list[dict[str, Any]] = []
        self.finalizer_writes = 0
        self.fail_status_writes = False
        self._resource_version = itertools.count(1)

    def put(self, body: dict[str, Any]) -> Feed:
        body = copy.deepcopy(body)
        body["metadata"]["resourceVersion"] = str(next(self._resource_version))
        feed = Feed.model_validate(body)
        self.objects[feed.key] = body
        return feed

    def feed(self, key: str) -> Feed:
        return Feed.model_validate(self.objects[key])

    def event_kinds(self) -> list[EventKind]:
        return [kind for _, kind, _ in self.events]

    async def get_feed(self, namespace: str, name: str) -> Feed:
        key = f"{namespace}/{name}"
        if key not in self.objects:
            msg = f"feed {key} not found"
            raise StoreNotFoundError(msg)
        return self.feed(key)

    async def update_finalizers(self, feed: Feed) -> Feed:
        body = self.objects[feed.key]
        body["metadata"]["finalizers"] = list(feed.metadata.finalizers)
        body["metadata"]["resourceVersion"] = str(next(self._resource_version))
        self.finalizer_writes += 1
        if feed.is_being_deleted and not feed.metadata.finalizers:
            del self.objects[feed.key]
            return feed
        return self.feed(feed.key)

    async def update_status(self, feed: Feed, status: FeedStatus) -> Feed:
        if self.fail_status_writes:
            msg = "status write refused"
            raise StoreError(msg)
        body = self.objects[feed.key]
        body["status"] = status.to_patch()
        body["metadata"]["resourceVersion"] = str(next(self._resource_version))
        self.status_writes.append(copy.deepcopy(body["status"]))
        return self.feed(feed.key)

    async def read_secret(self, namespace: str, name: str, key: str) -> str:
        data = self.secrets.get((namespace, name))
        if data is None or key not in data:
            msg = f"secret {namespace}/{name} has no key {key!r}"
            raise StoreNotFoundError(msg)
        return data[key]

    async def record_event(self, feed: Feed, kind: EventKind, message: str) -> None:
        self.events.append((feed.key, kind, message))


def feed_body(
    name: str = "test-feed",
    namespace: str = "default",
    generation: int = 1,
    **spec: Any,
) -> dict[str, Any]:
    """构造 Feed 资源."""
    body_spec = {
        "title": name,
        "rss_source_url": "https://www.google.com",
        "parent_dir_id": 0,
        "delete_old_files": False,
        "dont_process_whole_feed": False,
        "keyword": "foo",
        "unwanted_keywords": "",
        "paused": False,
        "authSecretRef": {"name": "putio-token-test", "key": "token"},
    }
    body_spec.update(spec)
    return {
        "apiVersion": "putio.skynewz.dev/v1alpha1",
        "kind": "Feed",
        "metadata": {
            "name": name,
            "namespace": namespace,
            "uid": f"uid-{name}",
            "generation": generation,
            "finalizers": [],
        },
        "spec": body_spec,
    }


@pytest.fixture
def fake_putio() -> FakePutio:
    return FakePutio()


@pytest.fixture
def store() -> FakeFeedStore:
    store = FakeFeedStore()
    store.secrets[("default", "putio-token-test")] = {"token": TOKEN}
    return store


@pytest.fixture
def client_factory(fake_putio: FakePutio):
    def factory(token: str, timeout: float | None = None) -> PutioClient:
        return PutioClient(
            PutioConfig(base_url=BASE_URL, token=token),
            transport=httpx.MockTransport(fake_putio.handler),
        )

    return factory


@pytest.fixture
def reconciler(store: FakeFeedStore, client_factory) -> FeedReconciler:
    return FeedReconciler(
        store=store,
        client_factory=client_factory,
        identity=IDENTITY,
        finalizer=FINALIZER,
    )


@pytest_asyncio.fixture
async def putio_client(client_factory) -> AsyncGenerator[PutioClient, None]:
    client = client_factory(TOKEN)
    yield client
    await client.close()


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """webhook 应用的 HTTP 客户端."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
