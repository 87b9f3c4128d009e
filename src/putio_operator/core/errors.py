"""调和错误."""


class ReconcileError(Exception):
    """一次调和失败的基类."""

    retryable = True


class AuthSecretError(ReconcileError):
    """无法从引用的 Secret 读取 put.io token."""


class MissingRemoteIdentifierError(ReconcileError):
    """请求删除，但从未记录 put.io 订阅 ID."""

    retryable = False


class PauseStateSyncError(ReconcileError):
    """订阅已创建或更新，但暂停/恢复失败."""

    def __init__(self, message: str, feed_id: int) -> None:
        super().__init__(message)
        self.feed_id = feed_id


class StoreError(ReconcileError):
    """期望状态存储错误."""


class StoreNotFoundError(StoreError):
    """对象不存在."""


class StoreConflictError(StoreError):
    """对象在读取后已被修改."""
