"""Feed spec 的准入默认值与校验."""

import copy
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError
from pydantic_core import ErrorDetails

from putio_operator.models.feed import FeedSpec

DEFAULT_PARENT_DIR_ID = 0

_BOOL_DEFAULTS = ("delete_old_files", "dont_process_whole_feed", "paused")


@dataclass
class ValidationResult:
    """spec 校验结果."""

    errors: list[ErrorDetails] = field(default_factory=list)

    @property
    def allowed(self) -> bool:
        return not self.errors

    @property
    def paths(self) -> list[str]:
        return [_path(e) for e in self.errors]

    @property
    def message(self) -> str:
        return "; ".join(f"{_path(e)}: {e['msg']}" for e in self.errors)


def _path(error: ErrorDetails) -> str:
    return ".".join(["spec", *(str(part) for part in error["loc"])])


def default_desired_feed(spec: dict[str, Any]) -> dict[str, Any]:
    """返回补全可选字段后的 spec 副本."""
    result = copy.deepcopy(spec)
    if result.get("parent_dir_id") is None:
        result["parent_dir_id"] = DEFAULT_PARENT_DIR_ID
    for name in _BOOL_DEFAULTS:
        if result.get(name) is None:
            result[name] = False
    return result


def validate_desired_feed(spec: dict[str, Any]) -> ValidationResult:
    """用 FeedSpec 模型校验（已补全默认值的）spec."""
    try:
        FeedSpec.model_validate(spec)
    except ValidationError as e:
        return ValidationResult(errors=e.errors(include_url=False))
    return ValidationResult()
