# welcome.py - Welcome banner shown on the landing page
from functools import partial

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from .config import settings
from .database import Collections, MongoGateway, get_gateway
from .errors import MethodNotAllowed, guarded
from .schemas import WelcomeNoteUpdate
from .security import require_api_key
from .utils import json_response, parse_request_body, validate_body

router = APIRouter(prefix="/api", tags=["Welcome"])

CORS_METHODS = "GET, POST, PUT, OPTIONS"
HANDLED_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH"]


async def get_welcome_note(db) -> JSONResponse:
    note = await db[Collections.WELCOME].find_one({})
    return json_response(note or {
        "title": settings.WELCOME_TITLE,
        "message": settings.WELCOME_MESSAGE
    })


async def save_welcome_note(db, payload: WelcomeNoteUpdate) -> JSONResponse:
    result = await db[Collections.WELCOME].update_one(
        {},
        {"$set": {"title": payload.title, "message": payload.message}},
        upsert=True
    )
    return json_response({
        "message": "Welcome note updated successfully",
        "updated": "created" if result.upserted_id else "modified"
    })


@router.api_route("/welcome", methods=HANDLED_METHODS)
async def welcome_handler(request: Request, gateway: MongoGateway = Depends(get_gateway)):
    if request.method == "GET":
        return await guarded(gateway, "Welcome API", get_welcome_note)

    require_api_key(request)
    if request.method not in ("POST", "PUT"):
        raise MethodNotAllowed()

    payload = validate_body(WelcomeNoteUpdate, await parse_request_body(request))
    return await guarded(gateway, "Welcome API", partial(save_welcome_note, payload=payload))
