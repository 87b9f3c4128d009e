"""写在 put.io 订阅标题中的版本指纹.

put.io 没有可存放自定义元数据的字段，operator 把最后一次应用的 generation
编进标题：``<title>|<generation>|managed by <identity>``.
"""

import re

from putio_operator.models.feed import Feed
from putio_operator.models.remote import RemoteFeed

SEPARATOR = "|"

# int() 还会接受空白、正负号和下划线
_INTEGER = re.compile(r"-?[0-9]+")


def encode_title(title: str, generation: int, identity: str) -> str:
    """生成带 generation 的托管标题."""
    return f"{title}{SEPARATOR}{generation}{SEPARATOR}managed by {identity}"


def parse_generation(title: str) -> int | None:
    """从托管标题中解析 generation，非托管标题返回 None."""
    parts = title.split(SEPARATOR)
    if len(parts) != 3 or not _INTEGER.fullmatch(parts[1]):
        return None
    return int(parts[1])


def is_already_processed(remote: RemoteFeed, feed: Feed) -> bool:
    """put.io 订阅是否已对应当前 generation."""
    return parse_generation(remote.title) == feed.generation


def make_remote_feed(feed: Feed, identity: str) -> RemoteFeed:
    """把期望的 spec 转换为 put.io 字段."""
    spec = feed.spec
    return RemoteFeed(
        title=encode_title(spec.title, feed.generation, identity),
        rss_source_url=spec.rss_source_url,
        parent_dir_id=spec.parent_dir_id,
        delete_old_files=bool(spec.delete_old_files),
        dont_process_whole_feed=bool(spec.dont_process_whole_feed),
        keyword=spec.keyword,
        unwanted_keywords=spec.unwanted_keywords,
        paused=bool(spec.paused),
    )
