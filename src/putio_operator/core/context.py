"""单次调和的执行上下文."""

import logging
import time
from dataclasses import dataclass, field
from typing import Any


class KeyLoggerAdapter(logging.LoggerAdapter):
    """在每条日志前加上对象键."""

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        return f"[{self.extra['key']}] {msg}", kwargs


@dataclass
class ReconcileContext:
    """传给每个调和步骤的日志器与截止时间."""

    key: str
    logger: logging.LoggerAdapter
    deadline: float | None = None
    started_at: float = field(default_factory=time.monotonic)

    @classmethod
    def for_key(
        cls,
        key: str,
        timeout: float | None = None,
        logger: logging.Logger | None = None,
    ) -> "ReconcileContext":
        base = logger or logging.getLogger("putio_operator.reconcile")
        deadline = time.monotonic() + timeout if timeout is not None else None
        return cls(key=key, logger=KeyLoggerAdapter(base, {"key": key}), deadline=deadline)

    @property
    def remaining(self) -> float | None:
        """距截止时间剩余的秒数，无截止时间时为 None."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at
