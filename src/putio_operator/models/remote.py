"""put.io RSS 订阅模型."""

import re
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

# put.io 时间戳不带时区，小数部分最多到纳秒
_FRACTION = re.compile(r"\.(\d+)")


def parse_putio_time(value: Any) -> datetime | None:
    """解析 put.io 时间戳，统一返回带 UTC 时区的时间."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), str(value))
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


class RemoteFeed(BaseModel):
    """put.io 上保存的 RSS 订阅."""

    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    title: str = ""
    rss_source_url: str = ""
    parent_dir_id: int | None = None
    delete_old_files: bool = False
    dont_process_whole_feed: bool = False
    keyword: str = ""
    unwanted_keywords: str = ""
    paused: bool = False

    extract: bool = False
    failed_item_count: int = 0
    last_error: str = ""
    last_fetch: datetime | None = None
    created_at: datetime | None = None
    paused_at: datetime | None = None
    start_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator(
        "last_fetch", "created_at", "paused_at", "start_at", "updated_at", mode="before"
    )
    @classmethod
    def _parse_time(cls, value: Any) -> datetime | None:
        return parse_putio_time(value)

    @field_validator("last_error", "keyword", "unwanted_keywords", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    def to_form(self, include_paused: bool = False) -> dict[str, str]:
        """把可修改字段编码为 put.io 表单参数."""
        form = {
            "title": self.title,
            "rss_source_url": self.rss_source_url,
            "keyword": self.keyword,
            "unwanted_keywords": self.unwanted_keywords,
            "delete_old_files": _bool_to_string(self.delete_old_files),
            "dont_process_whole_feed": _bool_to_string(self.dont_process_whole_feed),
        }
        if include_paused:
            form["paused"] = _bool_to_string(self.paused)
        if self.parent_dir_id is not None:
            form["parent_dir_id"] = str(self.parent_dir_id)
        return form


def _bool_to_string(value: bool) -> str:
    return "true" if value else "false"
