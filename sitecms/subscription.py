# subscription.py - Subscription plans and subscription status endpoints
from enum import Enum
from functools import partial
from typing import Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from loguru import logger

from .database import Collections, MongoGateway, get_gateway
from .errors import BadRequest, MethodNotAllowed, NotFound, guarded
from .schemas import PlanPayload
from .security import require_api_key, require_email
from .utils import (
    json_response, paginate, pagination_params, parse_object_id,
    parse_request_body, utcnow, validate_body
)

router = APIRouter(prefix="/api", tags=["Subscription"])

CORS_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
HANDLED_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH"]

class PlanOperation(Enum):
    LIST_PLANS = "list_plans"
    CREATE_PLAN = "create_plan"
    UPDATE_PLAN = "update_plan"
    DELETE_PLAN = "delete_plan"
    CHECK_STATUS = "check_status"
    EXPIRE = "expire"

PLAN_METHODS = {
    "GET": PlanOperation.LIST_PLANS,
    "POST": PlanOperation.CREATE_PLAN,
    "PUT": PlanOperation.UPDATE_PLAN,
    "DELETE": PlanOperation.DELETE_PLAN,
}

TYPED_OPERATIONS = {
    ("check", "GET"): PlanOperation.CHECK_STATUS,
    ("expire", "PUT"): PlanOperation.EXPIRE,
}

def resolve_operation(method: str, type: Optional[str]) -> PlanOperation:
    if not type:
        operation = PLAN_METHODS.get(method)
    else:
        operation = TYPED_OPERATIONS.get((type, method))
    if operation is None:
        raise MethodNotAllowed()
    return operation

def require_plan_id(plan_id: Optional[str]) -> ObjectId:
    if not plan_id:
        raise BadRequest("Plan ID is required")
    return parse_object_id(plan_id)

def is_subscription_active(subscription: Optional[dict], now) -> bool:
    """Active only while the stored status is active and endDate lies ahead.

    A lapsed ``active`` record is reported as inactive; nothing is written back.
    """
    if not subscription or subscription.get("status") != "active":
        return False
    end_date = subscription.get("endDate")
    return end_date is not None and end_date > now

# --- Plans ---

async def list_plans(db, page: int, limit: int) -> JSONResponse:
    plans, total, total_pages = await paginate(db[Collections.PLANS], page, limit)
    return json_response({"plans": plans, "total": total, "page": page, "totalPages": total_pages})

async def create_plan(db, payload: PlanPayload) -> JSONResponse:
    now = utcnow()
    plan = payload.model_dump(exclude_none=True)
    plan.update({"createdAt": now, "updatedAt": now})

    result = await db[Collections.PLANS].insert_one(plan)
    logger.info(f"Subscription plan created: {result.inserted_id}")
    return json_response({"message": "Plan created successfully", "id": result.inserted_id}, status_code=201)

async def update_plan(db, plan_id, payload: PlanPayload) -> JSONResponse:
    changes = payload.model_dump(exclude_none=True)
    changes["updatedAt"] = utcnow()

    result = await db[Collections.PLANS].update_one({"_id": plan_id}, {"$set": changes})
    if result.matched_count == 0:
        raise NotFound("Plan not found")
    return json_response({"message": "Plan updated successfully"})

async def delete_plan(db, plan_id) -> JSONResponse:
    result = await db[Collections.PLANS].delete_one({"_id": plan_id})
    if result.deleted_count == 0:
        raise NotFound("Plan not found")

    # Separate write: a failure here leaves users pointing at the deleted plan
    cascade = await db[Collections.USERS].update_many(
        {"subscription.planId": plan_id},
        {"$set": {
            "subscription.status": "cancelled",
            "subscription.cancelledAt": utcnow()
        }}
    )
    logger.info(f"Plan {plan_id} deleted, {cascade.modified_count} subscriptions cancelled")
    return json_response({"message": "Plan deleted successfully"})

# --- Subscription status ---

async def check_subscription(db, email: str) -> JSONResponse:
    user = await db[Collections.USERS].find_one({"email": email})
    if not user:
        raise NotFound("User not found")

    subscription = user.get("subscription") or {}
    return json_response({
        "isSubscribed": is_subscription_active(subscription, utcnow()),
        "endDate": subscription.get("endDate")
    })

async def expire_subscription(db, email: str) -> JSONResponse:
    now = utcnow()
    result = await db[Collections.USERS].update_one(
        {"email": email},
        {"$set": {
            "subscription.status": "expired",
            "subscription.endDate": now,
            "updatedAt": now
        }}
    )
    if result.matched_count == 0:
        raise NotFound("User not found")
    return json_response({"message": "Subscription expired successfully"})

@router.api_route("/subscription", methods=HANDLED_METHODS)
async def subscription_handler(
    request: Request,
    type: Optional[str] = None,
    id: Optional[str] = None,
    email: Optional[str] = None,
    gateway: MongoGateway = Depends(get_gateway),
):
    """
    Plans CRUD without ``type``; ``type=check`` and ``type=expire`` act on a user's subscription
    """
    if request.method != "GET":
        require_api_key(request)

    operation = resolve_operation(request.method, type)

    if operation is PlanOperation.LIST_PLANS:
        page, limit = pagination_params(request)
        action = partial(list_plans, page=page, limit=limit)
    elif operation is PlanOperation.CREATE_PLAN:
        payload = validate_body(PlanPayload, await parse_request_body(request))
        action = partial(create_plan, payload=payload)
    elif operation is PlanOperation.UPDATE_PLAN:
        plan_id = require_plan_id(id)
        payload = validate_body(PlanPayload, await parse_request_body(request))
        action = partial(update_plan, plan_id=plan_id, payload=payload)
    elif operation is PlanOperation.DELETE_PLAN:
        action = partial(delete_plan, plan_id=require_plan_id(id))
    elif operation is PlanOperation.CHECK_STATUS:
        action = partial(check_subscription, email=require_email(email))
    else:
        action = partial(expire_subscription, email=require_email(email))

    return await guarded(gateway, "Subscription API", action)
