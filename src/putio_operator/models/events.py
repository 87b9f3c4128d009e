"""审计事件类型与条件原因."""

from enum import Enum


class EventType(str, Enum):
    """Kubernetes 事件级别."""

    NORMAL = "Normal"
    WARNING = "Warning"


class EventKind(Enum):
    """在 Feed 资源上以事件形式报告的阶段变化."""

    RECONCILIATION_STARTED = "ReconciliationStarted"
    UNABLE_TO_GET_AUTH_SECRET = "UnableToGetAuthSecret"
    ADDED_FINALIZER = "AddedFinalizer"
    UNABLE_TO_ADD_FINALIZER = "UnableToAddFinalizer"
    DELETED_AT_PUTIO = "SuccessfullyDeletedAtPutio"
    UNABLE_TO_DELETE_AT_PUTIO = "UnableToDeleteAtPutio"
    UNABLE_TO_DELETE_FINALIZER = "UnableToDeleteFinalizer"
    CREATED_AT_PUTIO = "CreatedAtPutio"
    UPDATED_AT_PUTIO = "UpdatedAtPutio"
    ALREADY_UP_TO_DATE = "AlreadyUpToDate"
    UNABLE_TO_CREATE_OR_UPDATE_AT_PUTIO = "UnableToCreateOrUpdateAtPutio"
    PAUSE_STATE_SYNCED = "PauseStateSynced"
    UNABLE_TO_SYNC_PAUSE_STATE = "UnableToSyncPauseState"
    STATUS_UPDATED = "FeedStatusSuccessfullyUpdated"
    UNABLE_TO_UPDATE_STATUS = "UnableToUpdateFeedStatus"

    @property
    def reason(self) -> str:
        return self.value

    @property
    def event_type(self) -> EventType:
        if self in _WARNINGS:
            return EventType.WARNING
        return EventType.NORMAL


_WARNINGS = frozenset(
    {
        EventKind.UNABLE_TO_GET_AUTH_SECRET,
        EventKind.UNABLE_TO_ADD_FINALIZER,
        EventKind.UNABLE_TO_DELETE_AT_PUTIO,
        EventKind.UNABLE_TO_DELETE_FINALIZER,
        EventKind.UNABLE_TO_CREATE_OR_UPDATE_AT_PUTIO,
        EventKind.UNABLE_TO_SYNC_PAUSE_STATE,
        EventKind.UNABLE_TO_UPDATE_STATUS,
    }
)


class ConditionType(str, Enum):
    """状态条件类型."""

    AVAILABLE = "Available"


class ConditionReason(str, Enum):
    """可用性条件的原因."""

    DEPLOYED = "Deployed"
    FAILED_TO_DEPLOY = "FailedToDeploy"
    PAUSE_STATE_SYNC_FAILED = "PauseStateSyncFailed"

    @property
    def status(self) -> str:
        return _CONDITION_STATUS[self]


_CONDITION_STATUS = {
    ConditionReason.DEPLOYED: "True",
    ConditionReason.FAILED_TO_DEPLOY: "False",
    ConditionReason.PAUSE_STATE_SYNC_FAILED: "False",
}
