# storage.py - Supabase object storage cleanup
from typing import List, Optional, Tuple
from urllib.parse import unquote, urlparse

import httpx
from loguru import logger

from .config import Settings

# /storage/v1/object/public/<bucket>/<path...>
PUBLIC_PATH_PREFIX = ["storage", "v1", "object", "public"]


def parse_public_url(url: str) -> Tuple[str, str]:
    """Split a public asset URL into (bucket, object path)"""
    parts = urlparse(url).path.split("/")[1:]
    prefix_length = len(PUBLIC_PATH_PREFIX)
    if len(parts) < prefix_length + 2 or parts[:prefix_length] != PUBLIC_PATH_PREFIX:
        raise ValueError(f"Invalid storage URL format: {url}")

    bucket = parts[prefix_length]
    file_path = unquote("/".join(parts[prefix_length + 1:]))
    if not bucket or not file_path:
        raise ValueError(f"Invalid storage URL format: {url}")
    return bucket, file_path


class StorageClient:
    """Minimal client for the storage REST API"""

    def __init__(self, project_url: str, service_key: str, http_client: httpx.AsyncClient):
        self.project_url = project_url.rstrip("/")
        self.service_key = service_key
        self.http_client = http_client

    @classmethod
    def from_settings(cls, settings: Settings, http_client: httpx.AsyncClient) -> Optional["StorageClient"]:
        if not settings.storage_configured:
            logger.warning("Object storage is not configured, stored assets will not be deleted")
            return None
        return cls(settings.SUPABASE_PROJECT_URL, settings.SUPABASE_SERVICE_KEY, http_client)

    async def remove(self, bucket: str, paths: List[str]) -> None:
        response = await self.http_client.request(
            "DELETE",
            f"{self.project_url}/storage/v1/object/{bucket}",
            json={"prefixes": paths},
            headers={
                "Authorization": f"Bearer {self.service_key}",
                "apikey": self.service_key,
            },
        )
        response.raise_for_status()


async def delete_public_asset(storage: Optional[StorageClient], url: Optional[str]) -> bool:
    """Best-effort delete of the asset behind a public URL.

    Never raises: parse and storage API failures are logged and reported as
    ``False`` so the caller can carry on with its own delete.
    """
    if storage is None or not url:
        return False

    try:
        bucket, file_path = parse_public_url(url)
    except ValueError as e:
        logger.error(f"Storage URL parsing error: {e}")
        return False

    try:
        await storage.remove(bucket, [file_path])
    except Exception as e:
        logger.error(f"Storage deletion error for {bucket}/{file_path}: {e!r}")
        return False

    logger.info(f"Stored asset deleted: {bucket}/{file_path}")
    return True
