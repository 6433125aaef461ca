import asyncio

import pytest

from spotify_oauth import Credential, TokenManager

from conftest import TokenEndpoint, error_response, token_response


class StubAuthenticator:
    redirect_uri = "http://127.0.0.1:8888/callback"

    def __init__(self, credential=None):
        self.credential = credential
        self.client_ids = []
        self.cancelled = 0

    async def authenticate(self, client_id):
        self.client_ids.append(client_id)
        return self.credential

    async def cancel(self):
        self.cancelled += 1


def make_manager(store, clock, client, authenticator=None):
    return TokenManager(
        store=store,
        authenticator=authenticator or StubAuthenticator(),
        client_id="client-123",
        http_client=client,
        clock=clock,
    )


@pytest.mark.asyncio
async def test_fresh_token_is_returned_without_network(store, clock, make_credential):
    store.save(make_credential(expires_in=600))
    endpoint = TokenEndpoint()

    async with endpoint.client() as client:
        manager = make_manager(store, clock, client)
        assert await manager.get_valid_access_token() == "old-access"

    assert endpoint.requests == []
    assert manager.refresh_count == 0


@pytest.mark.asyncio
async def test_token_inside_margin_is_refreshed(store, memory_storage, clock, make_credential):
    store.save(make_credential(expires_in=120))
    endpoint = TokenEndpoint([token_response("new-access", 3600)])

    async with endpoint.client() as client:
        manager = make_manager(store, clock, client)
        assert await manager.get_valid_access_token() == "new-access"

    assert endpoint.requests == [{"grant_type": "refresh_token", "refresh_token": "refresh-1", "client_id": "client-123"}]
    assert manager.credential == Credential("new-access", "refresh-1", clock.now + 3600)
    # Renewal is persisted before the token is handed out
    assert memory_storage.get("spotify_tokens") == {
        "access_token": "new-access",
        "refresh_token": "refresh-1",
        "expires_at": clock.now + 3600,
    }


@pytest.mark.asyncio
async def test_rotated_refresh_token_is_stored(store, clock, make_credential):
    store.save(make_credential(expires_in=-10))
    endpoint = TokenEndpoint([token_response("new-access", 3600, refresh_token="refresh-2")])

    async with endpoint.client() as client:
        manager = make_manager(store, clock, client)
        await manager.get_valid_access_token()

    assert store.load().refresh_token == "refresh-2"


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_refresh(store, clock, make_credential):
    store.save(make_credential(expires_in=60))
    endpoint = TokenEndpoint([token_response("new-access", 3600)], delay=0.05)

    async with endpoint.client() as client:
        manager = make_manager(store, clock, client)
        tokens = await asyncio.gather(*(manager.get_valid_access_token() for _ in range(10)))

    assert tokens == ["new-access"] * 10
    assert len(endpoint.requests) == 1
    assert manager.refresh_count == 1


@pytest.mark.asyncio
async def test_failed_refresh_clears_credential(store, memory_storage, clock, make_credential):
    store.save(make_credential(expires_in=-10))
    endpoint = TokenEndpoint([error_response(400, "invalid_grant")])

    async with endpoint.client() as client:
        manager = make_manager(store, clock, client)
        assert await manager.get_valid_access_token() is None

    assert manager.credential is None
    assert memory_storage.get("spotify_tokens") is None
    assert not manager.is_authenticated()


@pytest.mark.asyncio
async def test_expired_token_without_refresh_token(store, clock, make_credential):
    store.save(make_credential(expires_in=-10, refresh_token=None))
    endpoint = TokenEndpoint()

    async with endpoint.client() as client:
        manager = make_manager(store, clock, client)
        assert await manager.get_valid_access_token() is None

    assert endpoint.requests == []
    assert not manager.is_authenticated()


@pytest.mark.asyncio
async def test_no_credential_means_no_token(store, clock):
    async with TokenEndpoint().client() as client:
        manager = make_manager(store, clock, client)
        assert await manager.get_valid_access_token() is None
        assert not manager.is_authenticated()


@pytest.mark.asyncio
async def test_token_refreshes_once_clock_reaches_margin(store, clock, make_credential):
    store.save(make_credential(expires_in=3600))
    endpoint = TokenEndpoint([token_response("new-access", 3600)])

    async with endpoint.client() as client:
        manager = make_manager(store, clock, client)
        assert await manager.get_valid_access_token() == "old-access"

        clock.advance(3600 - 299)
        assert await manager.get_valid_access_token() == "new-access"

    assert len(endpoint.requests) == 1


@pytest.mark.asyncio
async def test_rejection_of_stale_token_reuses_current_one(store, clock, make_credential):
    store.save(make_credential(access_token="current"))
    endpoint = TokenEndpoint()

    async with endpoint.client() as client:
        manager = make_manager(store, clock, client)
        assert await manager.refresh_after_rejection("already-replaced") == "current"

    assert endpoint.requests == []


@pytest.mark.asyncio
async def test_rejection_forces_refresh_of_unexpired_token(store, clock, make_credential):
    store.save(make_credential(access_token="revoked", expires_in=3600))
    endpoint = TokenEndpoint([token_response("new-access", 3600)])

    async with endpoint.client() as client:
        manager = make_manager(store, clock, client)
        manager.load()
        assert await manager.refresh_after_rejection("revoked") == "new-access"

    assert manager.refresh_count == 1


@pytest.mark.asyncio
async def test_rejection_without_refresh_token_clears(store, clock, make_credential):
    store.save(make_credential(access_token="revoked", refresh_token=None))

    async with TokenEndpoint().client() as client:
        manager = make_manager(store, clock, client)
        manager.load()
        assert await manager.refresh_after_rejection("revoked") is None

    assert store.load() is None


@pytest.mark.asyncio
async def test_authenticate_stores_new_credential(store, clock, make_credential):
    authenticator = StubAuthenticator(make_credential(access_token="logged-in"))

    async with TokenEndpoint().client() as client:
        manager = make_manager(store, clock, client, authenticator)
        assert await manager.authenticate() is True

    assert authenticator.client_ids == ["client-123"]
    assert store.load().access_token == "logged-in"
    assert manager.is_authenticated()


@pytest.mark.asyncio
async def test_failed_authentication_keeps_previous_state(store, clock, make_credential):
    store.save(make_credential(access_token="previous"))

    async with TokenEndpoint().client() as client:
        manager = make_manager(store, clock, client, StubAuthenticator(None))
        assert await manager.authenticate() is False

    assert store.load().access_token == "previous"


@pytest.mark.asyncio
async def test_clear_forgets_everything(store, clock, make_credential):
    store.save(make_credential())

    async with TokenEndpoint().client() as client:
        manager = make_manager(store, clock, client)
        manager.load()
        manager.clear()

        assert manager.credential is None
        assert store.load() is None
        assert await manager.get_valid_access_token() is None


@pytest.mark.asyncio
async def test_context_manager_loads_and_flushes(memory_storage, store, clock, make_credential):
    store.save(make_credential(access_token="kept"))
    authenticator = StubAuthenticator()

    async with TokenEndpoint().client() as client:
        async with make_manager(store, clock, client, authenticator) as manager:
            assert manager.credential.access_token == "kept"
            memory_storage.delete("spotify_tokens")

        assert not client.is_closed

    assert authenticator.cancelled == 1
    assert store.load().access_token == "kept"


@pytest.mark.asyncio
async def test_owned_http_client_is_closed(store, clock):
    manager = TokenManager(store=store, authenticator=StubAuthenticator(), client_id="client-123", clock=clock)
    client = manager._client()
    await manager.close()

    assert client.is_closed


def test_status_reports_without_secrets(store, clock, make_credential):
    manager = TokenManager(store=store, authenticator=StubAuthenticator(), client_id="client-123", clock=clock)
    assert manager.get_status()["has_tokens"] is False

    store.save(make_credential(expires_in=2 * 3600 + 5 * 60))
    manager.load()
    status = manager.get_status()

    assert status["has_tokens"] is True
    assert status["is_expired"] is False
    assert status["has_refresh_token"] is True
    assert status["time_until_expiry"] == "2h 5m"
    assert status["expires_in_seconds"] == 2 * 3600 + 5 * 60
    assert "old-access" not in str(status)
    assert "refresh-1" not in str(status)

    clock.advance(3 * 3600)
    status = manager.get_status()
    assert status["is_expired"] is True
    assert status["time_until_expiry"].endswith("ago")
    # Expired but renewable still counts as authenticated
    assert manager.is_authenticated()
