import jwt
import pytest
from fastapi.testclient import TestClient

from minispace.app import create_app
from minispace.auth import DevAuthProvider
from minispace.config import MinispaceConfig
from minispace.documents import MemoryDocumentStore


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_id_token(**payload: object) -> str:
    """Build a JWT carrying ``payload``, signed with a throwaway key."""
    return jwt.encode(dict(payload), "test-signing-key-" + "x" * 32, algorithm="HS256")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> MinispaceConfig:
    return MinispaceConfig(cookie_secure=False)


@pytest.fixture
def documents() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture
def app(config, documents, clock):
    return create_app(
        config,
        auth_provider=DevAuthProvider(),
        document_store=documents,
        clock=clock,
    )


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def id_token():
    return make_id_token
