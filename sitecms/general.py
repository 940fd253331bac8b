# general.py - Site content endpoints (media links, documents, branding, page flags)
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional, Tuple, Type

from bson import ObjectId
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from loguru import logger
from motor.motor_asyncio import AsyncIOMotorDatabase

from .config import settings
from .database import Collections, MongoGateway, get_gateway
from .errors import BadRequest, MethodNotAllowed, NotFound, guarded
from .schemas import (
    DocumentCreate, DocumentUpdate, LogoUpdate, PageControlUpdate,
    Payload, SiteNameUpdate, VideoCreate, VideoUpdate
)
from .security import require_api_key
from .storage import StorageClient, delete_public_asset
from .utils import (
    json_response, paginate, pagination_params, parse_object_id,
    parse_request_body, utcnow, validate_body
)

router = APIRouter(prefix="/api", tags=["General"])

CORS_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
HANDLED_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH"]


class ContentType(str, Enum):
    YOUTUBE = "youtube"
    PDF = "pdf"
    LOGO = "logo"
    SITENAME = "sitename"
    PAGECONTROL = "pagecontrol"


@dataclass
class ContentRequest:
    request: Request
    db: AsyncIOMotorDatabase
    object_id: Optional[ObjectId]
    storage: Optional[StorageClient]


@dataclass(frozen=True)
class MediaCollection:
    """Messages and schemas for one paginated media collection"""

    name: str
    list_key: str
    create_model: Type[Payload]
    update_model: Type[Payload]
    created_message: str
    not_found_message: str
    updated_message: str
    deleted_message: str


VIDEOS = MediaCollection(
    name=Collections.YOUTUBE,
    list_key="videos",
    create_model=VideoCreate,
    update_model=VideoUpdate,
    created_message="YouTube video added",
    not_found_message="Not found",
    updated_message="Updated successfully",
    deleted_message="Deleted successfully",
)

DOCUMENTS = MediaCollection(
    name=Collections.PDF,
    list_key="pdfs",
    create_model=DocumentCreate,
    update_model=DocumentUpdate,
    created_message="PDF added",
    not_found_message="PDF not found",
    updated_message="PDF updated",
    deleted_message="PDF deleted successfully",
)


def get_storage(request: Request) -> Optional[StorageClient]:
    """FastAPI dependency; None when object storage is not configured"""
    return getattr(request.app.state, "storage", None)


# --- Media links and documents ---

async def list_media(media: MediaCollection, ctx: ContentRequest) -> JSONResponse:
    page, limit = pagination_params(ctx.request)
    items, total, total_pages = await paginate(ctx.db[media.name], page, limit)
    return json_response({media.list_key: items, "total": total, "page": page, "totalPages": total_pages})


async def create_media(media: MediaCollection, ctx: ContentRequest) -> JSONResponse:
    body = await parse_request_body(ctx.request)
    payload = validate_body(media.create_model, body)

    document = payload.model_dump(by_alias=True, exclude_none=True)
    document["createdAt"] = utcnow()
    result = await ctx.db[media.name].insert_one(document)
    logger.info(f"{media.name} document created: {result.inserted_id}")
    return json_response({"message": media.created_message, "id": result.inserted_id}, status_code=201)


async def update_media(media: MediaCollection, ctx: ContentRequest) -> JSONResponse:
    body = await parse_request_body(ctx.request)
    payload = validate_body(media.update_model, body)

    changes = payload.model_dump(by_alias=True, exclude_unset=True)
    if not changes:
        raise BadRequest("No fields to update")
    changes["updatedAt"] = utcnow()

    result = await ctx.db[media.name].update_one({"_id": ctx.object_id}, {"$set": changes})
    if result.matched_count == 0:
        raise NotFound(media.not_found_message)
    return json_response({"message": media.updated_message})


async def delete_media(media: MediaCollection, ctx: ContentRequest) -> JSONResponse:
    result = await ctx.db[media.name].delete_one({"_id": ctx.object_id})
    if result.deleted_count == 0:
        raise NotFound(media.not_found_message)
    return json_response({"message": media.deleted_message})


async def delete_document(ctx: ContentRequest) -> JSONResponse:
    """Delete a PDF record, cleaning up its stored file on a best-effort basis"""
    collection = ctx.db[DOCUMENTS.name]
    document = await collection.find_one({"_id": ctx.object_id})
    if not document:
        raise NotFound(DOCUMENTS.not_found_message)

    await delete_public_asset(ctx.storage, document.get("originalLink"))

    result = await collection.delete_one({"_id": ctx.object_id})
    if result.deleted_count == 0:
        raise NotFound("Failed to delete from DB")
    return json_response({"message": DOCUMENTS.deleted_message})


# --- Singletons ---

async def get_logo(ctx: ContentRequest) -> JSONResponse:
    logo = await ctx.db[Collections.LOGO].find_one({})
    return json_response(logo or {"url": ""})


async def set_logo(ctx: ContentRequest) -> JSONResponse:
    payload = validate_body(LogoUpdate, await parse_request_body(ctx.request), "URL required")
    await ctx.db[Collections.LOGO].update_one({}, {"$set": {"url": payload.url}}, upsert=True)
    return json_response({"message": "Logo updated"})


async def get_site_name(ctx: ContentRequest) -> JSONResponse:
    site_name = await ctx.db[Collections.SITE_NAME].find_one({})
    return json_response(site_name or {"name": settings.SITE_NAME})


async def set_site_name(ctx: ContentRequest) -> JSONResponse:
    payload = validate_body(SiteNameUpdate, await parse_request_body(ctx.request), "Name required")
    await ctx.db[Collections.SITE_NAME].update_one({}, {"$set": {"name": payload.name}}, upsert=True)
    return json_response({"message": "Site name updated"})


# --- Page visibility ---

async def list_pages(ctx: ContentRequest) -> JSONResponse:
    pages = await ctx.db[Collections.PAGE_CONTROL].find().to_list(length=None)
    return json_response(pages)


async def set_page_enabled(ctx: ContentRequest) -> JSONResponse:
    body = await parse_request_body(ctx.request)
    payload = validate_body(PageControlUpdate, body, "Enabled status required")

    result = await ctx.db[Collections.PAGE_CONTROL].update_one(
        {"_id": ctx.object_id},
        {"$set": {"enabled": payload.enabled}}
    )
    if result.matched_count == 0:
        raise NotFound("Page not found")
    return json_response({"message": "Page updated"})


Operation = Callable[[ContentRequest], Awaitable[JSONResponse]]


def _media(handler, media: MediaCollection) -> Operation:
    async def operation(ctx: ContentRequest) -> JSONResponse:
        return await handler(media, ctx)
    return operation


# (content type, method) -> (operation, needs id)
OPERATIONS: Dict[Tuple[ContentType, str], Tuple[Operation, bool]] = {
    (ContentType.YOUTUBE, "GET"): (_media(list_media, VIDEOS), False),
    (ContentType.YOUTUBE, "POST"): (_media(create_media, VIDEOS), False),
    (ContentType.YOUTUBE, "PUT"): (_media(update_media, VIDEOS), True),
    (ContentType.YOUTUBE, "DELETE"): (_media(delete_media, VIDEOS), True),
    (ContentType.PDF, "GET"): (_media(list_media, DOCUMENTS), False),
    (ContentType.PDF, "POST"): (_media(create_media, DOCUMENTS), False),
    (ContentType.PDF, "PUT"): (_media(update_media, DOCUMENTS), True),
    (ContentType.PDF, "DELETE"): (delete_document, True),
    (ContentType.LOGO, "GET"): (get_logo, False),
    (ContentType.LOGO, "PUT"): (set_logo, False),
    (ContentType.SITENAME, "GET"): (get_site_name, False),
    (ContentType.SITENAME, "PUT"): (set_site_name, False),
    (ContentType.PAGECONTROL, "GET"): (list_pages, False),
    (ContentType.PAGECONTROL, "PUT"): (set_page_enabled, True),
}


def resolve_operation(content_type: str, method: str, object_id: Optional[ObjectId]) -> Operation:
    try:
        key = (ContentType(content_type), method)
    except ValueError:
        raise MethodNotAllowed()

    if key not in OPERATIONS:
        raise MethodNotAllowed()

    operation, needs_id = OPERATIONS[key]
    if needs_id and object_id is None:
        raise MethodNotAllowed()
    return operation


@router.api_route("/general", methods=HANDLED_METHODS)
async def general_handler(
    request: Request,
    type: Optional[str] = None,
    id: Optional[str] = None,
    gateway: MongoGateway = Depends(get_gateway),
    storage: Optional[StorageClient] = Depends(get_storage),
):
    """
    Site content: ``type`` selects the collection, the HTTP method the action
    """
    if request.method != "GET":
        require_api_key(request)

    if not type:
        raise BadRequest("Type is required")
    object_id = parse_object_id(id) if id else None

    operation = resolve_operation(type, request.method, object_id)

    async def run(db: AsyncIOMotorDatabase) -> JSONResponse:
        ctx = ContentRequest(request=request, db=db, object_id=object_id, storage=storage)
        return await operation(ctx)

    return await guarded(gateway, "General API", run)
