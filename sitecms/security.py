# security.py - API key, CORS and input checks
import re
import secrets
from typing import Dict, Optional

from fastapi import Request
from loguru import logger

from .config import settings
from .errors import BadRequest, Unauthorized

BEARER_PREFIX = "Bearer "
EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")

CORS_ALLOW_HEADERS = "Content-Type, Authorization"


def authenticate(request: Request) -> bool:
    """Bearer token must equal the configured API key"""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith(BEARER_PREFIX):
        return False

    if not settings.API_KEY:
        return False

    token = auth_header.split(" ")[1]
    return secrets.compare_digest(token.encode("utf-8"), settings.API_KEY.encode("utf-8"))


def require_api_key(request: Request) -> None:
    if not authenticate(request):
        logger.warning(f"Unauthorized {request.method} {request.url.path} - IP: {get_client_ip(request)}")
        raise Unauthorized()


def cors_headers(origin: Optional[str], methods: str) -> Dict[str, str]:
    """Headers for one resource; the origin is reflected only when allow-listed"""
    headers = {
        "Access-Control-Allow-Methods": methods,
        "Access-Control-Allow-Headers": CORS_ALLOW_HEADERS,
        "Access-Control-Allow-Credentials": "true",
    }
    if origin and origin in settings.allowed_origins:
        headers["Access-Control-Allow-Origin"] = origin
        headers["Vary"] = "Origin"
    return headers


def is_valid_email(email: Optional[str]) -> bool:
    if not isinstance(email, str):
        return False
    return EMAIL_PATTERN.fullmatch(email) is not None


def get_client_ip(request: Request) -> str:
    """Client IP, proxy headers first"""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"


def require_email(email: Optional[str], missing_message: str = "Email is required") -> str:
    if not email:
        raise BadRequest(missing_message)
    if not is_valid_email(email):
        raise BadRequest("Invalid email format")
    return email
