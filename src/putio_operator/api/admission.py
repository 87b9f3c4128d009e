"""Feed 资源的准入 webhook API."""

import base64
import json
import logging
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from putio_operator.admission import default_desired_feed, validate_desired_feed

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admission"])


class AdmissionRequest(BaseModel):
    """AdmissionReview 中的 ``request`` 部分."""

    model_config = ConfigDict(extra="ignore")

    uid: str
    operation: str = "CREATE"
    name: str | None = None
    namespace: str | None = None
    object: dict[str, Any] | None = None


class AdmissionReview(BaseModel):
    """admission.k8s.io/v1 AdmissionReview."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    api_version: str = Field(default="admission.k8s.io/v1", alias="apiVersion")
    kind: str = "AdmissionReview"
    request: AdmissionRequest


def _review_response(review: AdmissionReview, response: dict[str, Any]) -> dict:
    return {
        "apiVersion": review.api_version,
        "kind": "AdmissionReview",
        "response": {"uid": review.request.uid, **response},
    }


@router.post("/mutate-putio-skynewz-dev-v1alpha1-feed")
async def mutate_feed(review: AdmissionReview) -> dict:
    """Feed 创建或更新时补全默认值."""
    obj = review.request.object or {}
    spec = obj.get("spec") or {}
    logger.info("补全默认值: %s", review.request.name)

    defaulted = default_desired_feed(spec)
    if defaulted == spec:
        return _review_response(review, {"allowed": True})

    patch = [{"op": "add" if "spec" not in obj else "replace", "path": "/spec", "value": defaulted}]
    return _review_response(
        review,
        {
            "allowed": True,
            "patchType": "JSONPatch",
            "patch": base64.b64encode(json.dumps(patch).encode()).decode(),
        },
    )


@router.post("/validate-putio-skynewz-dev-v1alpha1-feed")
async def validate_feed(review: AdmissionReview) -> dict:
    """拒绝无效的 Feed spec，删除总是放行."""
    request = review.request
    logger.info("校验 %s: %s", request.operation.lower(), request.name)

    if request.operation == "DELETE":
        return _review_response(review, {"allowed": True})

    spec = (request.object or {}).get("spec") or {}
    result = validate_desired_feed(spec)
    if result.allowed:
        return _review_response(review, {"allowed": True})

    return _review_response(
        review,
        {
            "allowed": False,
            "status": {"code": 422, "reason": "Invalid", "message": result.message},
        },
    )
