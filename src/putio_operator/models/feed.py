"""Feed 自定义资源模型."""

from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import (
    AnyUrl,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    UrlConstraints,
    ValidationError,
    field_validator,
)

API_GROUP = "putio.skynewz.dev"
API_VERSION = "v1alpha1"
PLURAL = "feeds"
KIND = "Feed"

INVALID_URL = "invalid URL provided"

_ABSOLUTE_URL = TypeAdapter(Annotated[AnyUrl, UrlConstraints(host_required=True)])


class AuthSecretReference(BaseModel):
    """保存 put.io token 的 Secret 引用."""

    name: str = Field(min_length=1, description="Secret 名称，与 Feed 同命名空间")
    key: str = Field(min_length=1, description="token 在 Secret 中的键")


class FeedSpec(BaseModel):
    """put.io RSS 订阅的期望状态."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(min_length=1, pattern=r"\S", description="put.io 上显示的标题")
    rss_source_url: str = Field(description="RSS 源地址")
    parent_dir_id: int | None = Field(
        default=None, ge=0, strict=True, description="下载目录 ID，0 为根目录"
    )
    delete_old_files: bool | None = Field(
        default=None, description="空间不足时删除旧文件"
    )
    dont_process_whole_feed: bool | None = Field(
        default=None, description="忽略创建时已存在的条目"
    )
    keyword: str = Field(min_length=1, pattern=r"\S", description="逗号分隔的匹配关键词")
    unwanted_keywords: str = Field(default="", description="逗号分隔的排除关键词")
    paused: bool | None = Field(default=None, description="保持暂停")
    auth_secret_ref: AuthSecretReference = Field(alias="authSecretRef")

    @field_validator("rss_source_url", mode="before")
    @classmethod
    def _check_url(cls, value: Any) -> Any:
        # 必须是带 scheme 和 host 的绝对地址，原样保留不做规范化
        if not isinstance(value, str):
            raise ValueError(INVALID_URL)
        try:
            _ABSOLUTE_URL.validate_python(value)
        except ValidationError as e:
            raise ValueError(INVALID_URL) from e
        return value


class Condition(BaseModel):
    """状态条件."""

    model_config = ConfigDict(populate_by_name=True)

    type: str
    status: Literal["True", "False", "Unknown"]
    reason: str
    message: str = ""
    last_transition_time: datetime = Field(alias="lastTransitionTime")


class FeedStatus(BaseModel):
    """观测到的状态，由 operator 维护."""

    model_config = ConfigDict(populate_by_name=True)

    id: int | None = None
    last_error: str = ""
    failed_item_count: int = 0
    last_fetch: datetime | None = None
    paused_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    observed_generation: int | None = Field(default=None, alias="observedGeneration")
    conditions: list[Condition] = Field(default_factory=list)

    def get_condition(self, condition_type: str) -> Condition | None:
        """按类型查找条件."""
        for condition in self.conditions:
            if condition.type == condition_type:
                return condition
        return None

    def to_patch(self) -> dict[str, Any]:
        """序列化为 merge patch，None 会清空对应字段."""
        return self.model_dump(mode="json", by_alias=True)


class FeedMetadata(BaseModel):
    """operator 用到的元数据子集."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    namespace: str = "default"
    uid: str | None = None
    generation: int = 0
    resource_version: str | None = Field(default=None, alias="resourceVersion")
    deletion_timestamp: datetime | None = Field(default=None, alias="deletionTimestamp")
    finalizers: list[str] = Field(default_factory=list)


class Feed(BaseModel):
    """Feed 资源：期望的 spec 加观测到的 status."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    api_version: str = Field(default=f"{API_GROUP}/{API_VERSION}", alias="apiVersion")
    kind: str = KIND
    metadata: FeedMetadata
    spec: FeedSpec
    status: FeedStatus = Field(default_factory=FeedStatus)

    @property
    def key(self) -> str:
        return f"{self.metadata.namespace}/{self.metadata.name}"

    @property
    def generation(self) -> int:
        return self.metadata.generation

    @property
    def is_being_deleted(self) -> bool:
        return self.metadata.deletion_timestamp is not None

    def has_finalizer(self, finalizer: str) -> bool:
        return finalizer in self.metadata.finalizers

    def add_finalizer(self, finalizer: str) -> None:
        if finalizer not in self.metadata.finalizers:
            self.metadata.finalizers.append(finalizer)

    def remove_finalizer(self, finalizer: str) -> None:
        self.metadata.finalizers = [
            f for f in self.metadata.finalizers if f != finalizer
        ]

    def object_reference(self) -> dict[str, Any]:
        """事件的 involvedObject 引用."""
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "name": self.metadata.name,
            "namespace": self.metadata.namespace,
            "uid": self.metadata.uid,
            "resourceVersion": self.metadata.resource_version,
        }


def split_key(key: str) -> tuple[str, str]:
    """拆分 ``namespace/name`` 形式的键."""
    namespace, _, name = key.rpartition("/")
    return namespace or "default", name
