# utils.py - Request helpers shared by the resource handlers
import json
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar

from bson import ObjectId
from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from .errors import BadRequest

ModelT = TypeVar("ModelT", bound=BaseModel)

MISSING_ERROR_TYPES = {"missing", "string_too_short"}


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _reject_constant(name: str):
    raise BadRequest("Invalid request body")


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise BadRequest("Invalid request body")
    return value


async def parse_request_body(request: Request) -> Dict[str, Any]:
    """Buffer the whole body and decode it as a JSON object.

    NaN, Infinity and overflowing literals are refused; they cannot be sent
    back out as JSON.
    """
    raw_body = await request.body()
    try:
        body = json.loads(raw_body, parse_constant=_reject_constant, parse_float=_finite_float)
    except ValueError:
        raise BadRequest("Invalid request body")

    if not isinstance(body, dict):
        raise BadRequest("Invalid request body")
    return body


def validate_body(model: Type[ModelT], body: Dict[str, Any], missing_message: str = "Missing required fields") -> ModelT:
    try:
        return model.model_validate(body)
    except ValidationError as e:
        error = e.errors()[0]
        if error["type"] in MISSING_ERROR_TYPES:
            raise BadRequest(missing_message)
        reason = error.get("ctx", {}).get("error")
        raise BadRequest(str(reason) if reason else error["msg"])


def parse_object_id(value: Optional[str], message: str = "Invalid ID") -> ObjectId:
    if not value or not ObjectId.is_valid(value):
        raise BadRequest(message)
    return ObjectId(value)


def pagination_params(request: Request, default_limit: int = 10) -> Tuple[int, int]:
    """Read ``page`` and ``limit``; the limit has no upper bound"""
    try:
        page = int(request.query_params.get("page", 1))
        limit = int(request.query_params.get("limit", default_limit))
    except ValueError:
        raise BadRequest("Invalid pagination parameters")

    if page < 1 or limit < 1:
        raise BadRequest("Invalid pagination parameters")
    return page, limit


async def paginate(
    collection,
    page: int,
    limit: int,
    filter: Optional[Dict[str, Any]] = None,
    projection: Optional[Dict[str, Any]] = None,
) -> Tuple[List[Dict[str, Any]], int, int]:
    """Return (items, total, total_pages) for one page of a collection"""
    filter = filter or {}
    skip = (page - 1) * limit
    cursor = collection.find(filter, projection, skip=skip, limit=limit)
    items = await cursor.to_list(length=None)
    total = await collection.count_documents(filter)
    return items, total, math.ceil(total / limit)


def serialize(payload: Any) -> Any:
    return jsonable_encoder(payload, custom_encoder={ObjectId: str})


def json_response(payload: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=serialize(payload))
