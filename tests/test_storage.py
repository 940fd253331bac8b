import json

import httpx
import pytest

from sitecms.config import Settings
from sitecms.storage import StorageClient, delete_public_asset, parse_public_url

PROJECT_URL = "https://project.supabase.co"

def storage_with(handler):
    return StorageClient(PROJECT_URL, "service-key", httpx.AsyncClient(transport=httpx.MockTransport(handler)))

class TestParsePublicUrl:
    """Public URL to (bucket, path)"""

    def test_nested_path(self):
        url = f"{PROJECT_URL}/storage/v1/object/public/manuals/engines/v8.pdf"
        assert parse_public_url(url) == ("manuals", "engines/v8.pdf")

    def test_encoded_path(self):
        url = f"{PROJECT_URL}/storage/v1/object/public/manuals/brake%20guide.pdf"
        assert parse_public_url(url) == ("manuals", "brake guide.pdf")

    @pytest.mark.parametrize("url", [
        "https://cdn.example.com/files/manual.pdf",
        f"{PROJECT_URL}/storage/v1/object/public/manuals",
        f"{PROJECT_URL}/storage/v1/object/sign/manuals/v8.pdf",
        f"{PROJECT_URL}/storage/v1/object/public//v8.pdf",
        "",
    ])
    def test_unexpected_layout(self, url):
        with pytest.raises(ValueError):
            parse_public_url(url)

class TestStorageClient:

    def test_not_configured(self):
        settings = Settings(MONGO_URI="mongodb://localhost:27017", SUPABASE_PROJECT_URL=None, SUPABASE_SERVICE_KEY=None)
        assert StorageClient.from_settings(settings, httpx.AsyncClient()) is None

    def test_configured(self):
        settings = Settings(
            MONGO_URI="mongodb://localhost:27017",
            SUPABASE_PROJECT_URL=f"{PROJECT_URL}/",
            SUPABASE_SERVICE_KEY="service-key"
        )
        storage = StorageClient.from_settings(settings, httpx.AsyncClient())
        assert storage.project_url == PROJECT_URL

    @pytest.mark.asyncio
    async def test_remove_request(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json=[{"name": "engines/v8.pdf"}])

        await storage_with(handler).remove("manuals", ["engines/v8.pdf"])

        request = requests[0]
        assert request.method == "DELETE"
        assert str(request.url) == f"{PROJECT_URL}/storage/v1/object/manuals"
        assert request.headers["Authorization"] == "Bearer service-key"
        assert request.headers["apikey"] == "service-key"
        assert json.loads(request.content) == {"prefixes": ["engines/v8.pdf"]}

class TestDeletePublicAsset:
    """Best-effort asset cleanup"""

    @pytest.mark.asyncio
    async def test_deleted(self):
        storage = storage_with(lambda request: httpx.Response(200, json=[]))
        url = f"{PROJECT_URL}/storage/v1/object/public/manuals/v8.pdf"
        assert await delete_public_asset(storage, url) is True

    @pytest.mark.asyncio
    async def test_storage_error_reported_not_raised(self):
        storage = storage_with(lambda request: httpx.Response(500))
        url = f"{PROJECT_URL}/storage/v1/object/public/manuals/v8.pdf"
        assert await delete_public_asset(storage, url) is False

    @pytest.mark.asyncio
    async def test_network_error_reported_not_raised(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        url = f"{PROJECT_URL}/storage/v1/object/public/manuals/v8.pdf"
        assert await delete_public_asset(storage_with(handler), url) is False

    @pytest.mark.asyncio
    async def test_bad_url_skips_storage(self):
        calls = []
        storage = storage_with(lambda request: calls.append(request) or httpx.Response(200))
        assert await delete_public_asset(storage, "https://cdn.example.com/v8.pdf") is False
        assert calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", [None, ""])
    async def test_nothing_to_delete(self, url):
        storage = storage_with(lambda request: httpx.Response(200))
        assert await delete_public_asset(storage, url) is False

    @pytest.mark.asyncio
    async def test_without_storage(self):
        assert await delete_public_asset(None, f"{PROJECT_URL}/storage/v1/object/public/manuals/v8.pdf") is False

    @pytest.mark.asyncio
    async def test_malformed_project_url_reported_not_raised(self):
        storage = StorageClient(
            "https://project.supabase.co:notaport",
            "service-key",
            httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
        )
        url = f"{PROJECT_URL}/storage/v1/object/public/manuals/v8.pdf"
        assert await delete_public_asset(storage, url) is False

    @pytest.mark.asyncio
    async def test_client_failure_reported_not_raised(self):
        def handler(request):
            raise RuntimeError("transport exploded")

        url = f"{PROJECT_URL}/storage/v1/object/public/manuals/v8.pdf"
        assert await delete_public_asset(storage_with(handler), url) is False
