# users.py - Site users: sign-in, listing, profile and subscription activation
import re
from datetime import timedelta
from enum import Enum
from functools import partial
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from loguru import logger

from .database import Collections, MongoGateway, get_gateway
from .errors import MethodNotAllowed, NotFound, guarded
from .schemas import ProfileUpdate, SubscriptionActivation, UserSignIn
from .security import require_api_key, require_email
from .utils import (
    json_response, paginate, pagination_params, parse_object_id,
    parse_request_body, utcnow, validate_body
)

router = APIRouter(prefix="/api", tags=["Users"])

CORS_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
HANDLED_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH"]

USERS_PAGE_SIZE = 20

# Never sent to the admin listing
LIST_PROJECTION = {
    "password": 0,
    "tokens": 0,
    "subscription.planId": 0,
}


class UserOperation(Enum):
    SIGN_IN = "sign_in"
    LIST = "list"
    DELETE = "delete"
    UPDATE_PROFILE = "update_profile"
    ACTIVATE_SUBSCRIPTION = "activate_subscription"


def resolve_operation(method: str, type: Optional[str]) -> UserOperation:
    if method == "POST":
        return UserOperation.SIGN_IN
    if method == "GET":
        return UserOperation.LIST
    if method == "DELETE":
        return UserOperation.DELETE
    if method == "PUT":
        if type == "update":
            return UserOperation.UPDATE_PROFILE
        return UserOperation.ACTIVATE_SUBSCRIPTION
    raise MethodNotAllowed()


def new_user_document(payload: UserSignIn) -> Dict[str, Any]:
    now = utcnow()
    return {
        "email": payload.email,
        "name": payload.name,
        "picture": payload.picture or "",
        "subscription": {
            "status": "inactive",
            "startDate": None,
            "endDate": None,
            "planId": None
        },
        "createdAt": now,
        "updatedAt": now
    }


async def sign_in(db, payload: UserSignIn) -> JSONResponse:
    """Find-or-create by email; an existing user is returned untouched"""
    users = db[Collections.USERS]
    existing_user = await users.find_one({"email": payload.email})
    if existing_user:
        return json_response({
            "name": existing_user.get("name"),
            "email": existing_user.get("email"),
            "picture": existing_user.get("picture"),
            "subscription": existing_user.get("subscription")
        })

    user = new_user_document(payload)
    result = await users.insert_one(dict(user))
    logger.info(f"User created: {result.inserted_id}")
    return json_response({"message": "User created successfully", "user": user}, status_code=201)


async def list_users(db, page: int, limit: int, search: Optional[str]) -> JSONResponse:
    filter: Dict[str, Any] = {}
    if search:
        pattern = {"$regex": re.escape(search), "$options": "i"}
        filter["$or"] = [{"email": pattern}, {"name": pattern}]

    users, total, total_pages = await paginate(
        db[Collections.USERS], page, limit, filter=filter, projection=LIST_PROJECTION
    )
    return json_response({"users": users, "total": total, "page": page, "totalPages": total_pages})


async def delete_user(db, email: str) -> JSONResponse:
    result = await db[Collections.USERS].delete_one({"email": email})
    if result.deleted_count == 0:
        raise NotFound("User not found")
    logger.info(f"User deleted: {email}")
    return json_response({"message": "User deleted successfully"})


async def update_profile(db, email: str, payload: ProfileUpdate) -> JSONResponse:
    result = await db[Collections.USERS].update_one(
        {"email": email},
        {"$set": {
            "name": payload.name,
            "picture": payload.picture or "",
            "updatedAt": utcnow()
        }}
    )
    if result.matched_count == 0:
        raise NotFound("User not found")
    return json_response({"message": "User profile updated successfully"})


async def activate_subscription(db, email: str, payload: SubscriptionActivation) -> JSONResponse:
    plan = await db[Collections.PLANS].find_one({"_id": parse_object_id(payload.plan_id)})
    if not plan:
        raise NotFound("Subscription plan not found")

    start_date = utcnow()
    end_date = start_date + timedelta(days=plan["days"])

    result = await db[Collections.USERS].update_one(
        {"email": email},
        {"$set": {
            "subscription.status": "active",
            "subscription.startDate": start_date,
            "subscription.endDate": end_date,
            "subscription.planId": plan["_id"],
            "subscription.planDetails": {
                "title": plan.get("title"),
                "price": plan.get("price"),
                "days": plan["days"],
                "discount": plan.get("discount") or 0
            },
            "updatedAt": start_date
        }}
    )
    if result.matched_count == 0:
        raise NotFound("User not found")

    logger.info(f"Subscription activated for {email} until {end_date.isoformat()}")
    return json_response({"message": "Subscription activated successfully", "endDate": end_date})


@router.api_route("/users", methods=HANDLED_METHODS)
async def users_handler(
    request: Request,
    type: Optional[str] = None,
    email: Optional[str] = None,
    search: Optional[str] = None,
    gateway: MongoGateway = Depends(get_gateway),
):
    """
    Users keyed by email. Listing is admin-only, so GET is gated as well
    """
    require_api_key(request)

    operation = resolve_operation(request.method, type)

    if operation is UserOperation.SIGN_IN:
        payload = validate_body(UserSignIn, await parse_request_body(request), "Email and Name are required.")
        action = partial(sign_in, payload=payload)
    elif operation is UserOperation.LIST:
        page, limit = pagination_params(request, default_limit=USERS_PAGE_SIZE)
        action = partial(list_users, page=page, limit=limit, search=search)
    else:
        user_email = require_email(email, "Email parameter is required")
        if operation is UserOperation.DELETE:
            action = partial(delete_user, email=user_email)
        elif operation is UserOperation.UPDATE_PROFILE:
            payload = validate_body(ProfileUpdate, await parse_request_body(request), "Name is required for update")
            action = partial(update_profile, email=user_email, payload=payload)
        else:
            payload = validate_body(SubscriptionActivation, await parse_request_body(request), "Plan ID is required")
            action = partial(activate_subscription, email=user_email, payload=payload)

    return await guarded(gateway, "Users API", action)
