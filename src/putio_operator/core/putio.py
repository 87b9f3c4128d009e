"""put.io RSS API 客户端."""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from putio_operator.models.remote import RemoteFeed

logger = logging.getLogger(__name__)

NOT_FOUND = "NotFound"


@dataclass
class PutioConfig:
    """put.io 连接配置."""

    base_url: str
    token: str
    timeout: float = 30.0


class PutioError(Exception):
    """put.io API 错误."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error_type: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_type = error_type


class PutioNotFoundError(PutioError):
    """put.io 上不存在该资源."""


class InvalidStatusReceivedError(PutioError):
    """写操作返回了非 OK 的 status."""

    def __init__(self, status: str | None) -> None:
        super().__init__(f"invalid {status!r} status received")
        self.status = status


class PutioClient:
    """put.io RSS 订阅客户端."""

    def __init__(
        self,
        config: PutioConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._client = httpx.AsyncClient(
            base_url=config.base_url.rstrip("/"),
            timeout=config.timeout,
            headers={
                "Authorization": f"Bearer {config.token}",
                "Accept": "application/json",
            },
            transport=transport,
        )

    async def close(self) -> None:
        """关闭客户端."""
        await self._client.aclose()

    async def list(self) -> list[RemoteFeed]:
        """列出所有订阅."""
        data = await self._request("GET", "/rss/list")
        return [RemoteFeed.model_validate(f) for f in data.get("feeds") or []]

    async def get(self, feed_id: int) -> RemoteFeed:
        """获取单个订阅."""
        data = await self._request("GET", f"/rss/{feed_id}")
        return RemoteFeed.model_validate(data["feed"])

    async def create(self, feed: RemoteFeed) -> RemoteFeed:
        """创建订阅，返回带新 ID 的订阅."""
        data = await self._request(
            "POST", "/rss/create", data=feed.to_form(include_paused=True)
        )
        return RemoteFeed.model_validate(data["feed"])

    async def update(self, feed: RemoteFeed, feed_id: int) -> None:
        """更新订阅，不包含暂停状态."""
        data = await self._request("POST", f"/rss/{feed_id}", data=feed.to_form())
        _check_status(data)

    async def delete(self, feed_id: int) -> None:
        """删除订阅."""
        await self._request("POST", f"/rss/{feed_id}/delete")

    async def pause(self, feed_id: int) -> None:
        """暂停订阅."""
        data = await self._request("POST", f"/rss/{feed_id}/pause")
        _check_status(data)

    async def resume(self, feed_id: int) -> None:
        """恢复订阅."""
        data = await self._request("POST", f"/rss/{feed_id}/resume")
        _check_status(data)

    async def _request(
        self,
        method: str,
        path: str,
        data: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        logger.debug("put.io 请求: %s %s", method, path)
        try:
            # data 由 httpx 编码为表单
            response = await self._client.request(method, path, data=data)
        except httpx.HTTPError as e:
            msg = f"put.io: {method} {path} failed: {e}"
            raise PutioError(msg) from e

        if response.is_error:
            raise _error_from_response(response)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            msg = f"put.io: invalid JSON from {method} {path}"
            raise PutioError(msg, status_code=response.status_code) from e


def _check_status(data: dict[str, Any]) -> None:
    status = data.get("status")
    if status != "OK":
        raise InvalidStatusReceivedError(status)


def _error_from_response(response: httpx.Response) -> PutioError:
    """把 put.io 错误响应映射为异常."""
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    error_type = body.get("error_type")
    message = body.get("error_message") or response.reason_phrase or "unknown error"
    msg = f"put.io: {message} ({response.status_code})"

    if error_type == NOT_FOUND or response.status_code == httpx.codes.NOT_FOUND:
        return PutioNotFoundError(
            msg, status_code=response.status_code, error_type=error_type
        )
    return PutioError(msg, status_code=response.status_code, error_type=error_type)
