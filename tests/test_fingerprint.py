"""版本指纹测试."""

import pytest

from putio_operator.core.fingerprint import (
    encode_title,
    is_already_processed,
    make_remote_feed,
    parse_generation,
)
from putio_operator.models.feed import Feed
from putio_operator.models.remote import RemoteFeed

from .conftest import IDENTITY, feed_body


def make_feed(generation: int = 1, **spec) -> Feed:
    return Feed.model_validate(feed_body(generation=generation, **spec))


def test_encode_title() -> None:
    assert encode_title("foo", 1234, IDENTITY) == "foo|1234|managed by Kubernetes/putio-operator"


@pytest.mark.parametrize(
    ("title", "expected"),
    [
        ("foo|1234|managed by X", 1234),
        ("foo|0|managed by X", 0),
        ("foo", None),
        ("foo (managed by Kubernetes/putio-operator)", None),
        ("foo|bar|managed by X", None),
        ("foo|12|managed|by X", None),
        ("foo| 12|managed by X", None),
        ("foo|1_2|managed by X", None),
        ("", None),
    ],
)
def test_parse_generation(title: str, expected: int | None) -> None:
    assert parse_generation(title) == expected


class TestIsAlreadyProcessed:
    """只有 generation 完全相等才算已处理."""

    def test_same_generation(self) -> None:
        remote = RemoteFeed(title="foo|1234|managed by Kubernetes/putio-operator")
        assert is_already_processed(remote, make_feed(generation=1234)) is True

    def test_older_generation(self) -> None:
        remote = RemoteFeed(title="foo|1234|managed by Kubernetes/putio-operator")
        assert is_already_processed(remote, make_feed(generation=4321)) is False

    def test_newer_generation(self) -> None:
        remote = RemoteFeed(title="foo|4321|managed by Kubernetes/putio-operator")
        assert is_already_processed(remote, make_feed(generation=1234)) is False

    def test_unmanaged_title(self) -> None:
        remote = RemoteFeed(title="foo")
        assert is_already_processed(remote, make_feed(generation=0)) is False


def test_make_remote_feed() -> None:
    feed = make_feed(
        generation=0,
        title="foo",
        parent_dir_id=1234,
        delete_old_files=True,
        dont_process_whole_feed=True,
        keyword="foo",
        unwanted_keywords="bar",
        paused=True,
    )

    remote = make_remote_feed(feed, IDENTITY)

    assert remote.id is None
    assert remote.title == "foo|0|managed by Kubernetes/putio-operator"
    assert remote.rss_source_url == "https://www.google.com"
    assert remote.parent_dir_id == 1234
    assert remote.delete_old_files is True
    assert remote.dont_process_whole_feed is True
    assert remote.keyword == "foo"
    assert remote.unwanted_keywords == "bar"
    assert remote.paused is True


def test_make_remote_feed_without_defaults() -> None:
    body = feed_body()
    for name in ("parent_dir_id", "delete_old_files", "dont_process_whole_feed", "paused"):
        del body["spec"][name]

    remote = make_remote_feed(Feed.model_validate(body), IDENTITY)

    assert remote.parent_dir_id is None
    assert remote.delete_old_files is False
    assert remote.paused is False
