import asyncio
import os

import pytest

os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017")
os.environ["API_KEY"] = "test-api-key"
os.environ["ALLOWED_ORIGINS"] = "https://admin.example.com, https://www.example.com"
os.environ["ENVIRONMENT"] = "development"

from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from sitecms.database import Collections, MongoGateway, get_gateway
from sitecms.general import get_storage
from sitecms.main import app

API_KEY = "test-api-key"

@pytest.fixture
def mongo_client():
    """In-memory stand-in for the motor client"""
    return AsyncMongoMockClient()

@pytest.fixture
def gateway(mongo_client):
    return MongoGateway(
        "mongodb://localhost:27017",
        "test_cms",
        client_factory=lambda connection_string, **options: mongo_client
    )

@pytest.fixture
def db(gateway):
    return gateway.get_database()

@pytest.fixture
def run():
    """Run a coroutine against the mock database from a synchronous test"""
    return asyncio.run

@pytest.fixture
def client(gateway):
    """Test client wired to the in-memory gateway, without object storage"""
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_storage] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()

@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {API_KEY}"}

class FailingCollection:
    """Collection whose every operation raises the given error"""

    def __init__(self, error):
        self.error = error

    def __getattr__(self, name):
        async def operation(*args, **kwargs):
            raise self.error
        return operation

class FailingClient:
    def __init__(self, error):
        self.error = error
        self.closed = False

    def __getitem__(self, database_name):
        return FailingDatabase(self.error)

    def close(self):
        self.closed = True

class FailingDatabase:
    def __init__(self, error):
        self.error = error

    def __getitem__(self, collection_name):
        return FailingCollection(self.error)

@pytest.fixture
def failing_gateway(client):
    """Swap in a gateway whose database raises ``error`` on every operation"""
    def build(error):
        failing_client = FailingClient(error)
        failing = MongoGateway(
            "mongodb://localhost:27017",
            "test_cms",
            client_factory=lambda connection_string, **options: failing_client
        )
        app.dependency_overrides[get_gateway] = lambda: failing
        return failing
    return build

@pytest.fixture
def count_documents(db, run):
    """Total number of documents across every CMS collection"""
    names = [value for key, value in vars(Collections).items() if key.isupper()]

    async def total():
        return sum([await db[name].count_documents({}) for name in names])

    return lambda: run(total())
