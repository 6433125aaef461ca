import asyncio
import json
import socket
from typing import Callable, List, Optional
from urllib.parse import parse_qs

import httpx
import pytest

from spotify_oauth import Credential, CredentialStore
from utils.storage import MemoryStorage


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TokenEndpoint:
    """Scripted token endpoint behind an httpx.MockTransport"""

    def __init__(self, responses: Optional[List[httpx.Response]] = None, delay: float = 0.0) -> None:
        self.responses = list(responses or [])
        self.delay = delay
        self.requests: List[dict] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        form = {key: values[0] for key, values in parse_qs(request.content.decode()).items()}
        self.requests.append(form)
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.responses:
            raise AssertionError("unexpected token request")
        return self.responses.pop(0)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


def token_response(access_token: str = "new-access", expires_in: int = 3600, refresh_token: Optional[str] = None) -> httpx.Response:
    payload = {"access_token": access_token, "token_type": "Bearer", "expires_in": expires_in}
    if refresh_token is not None:
        payload["refresh_token"] = refresh_token
    return httpx.Response(200, json=payload)


def error_response(status: int = 400, error: str = "invalid_grant") -> httpx.Response:
    return httpx.Response(status, content=json.dumps({"error": error}).encode(), headers={"content-type": "application/json"})


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(memory_storage: MemoryStorage) -> CredentialStore:
    return CredentialStore(memory_storage)


@pytest.fixture
def make_credential(clock: FakeClock) -> Callable[..., Credential]:
    def _make(expires_in: float = 3600, access_token: str = "old-access", refresh_token: Optional[str] = "refresh-1") -> Credential:
        return Credential(access_token=access_token, refresh_token=refresh_token, expires_at=clock.now + expires_in)

    return _make


@pytest.fixture
def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]

