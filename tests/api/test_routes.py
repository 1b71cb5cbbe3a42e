import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from snippet_vault.api.server import create_app
from snippet_vault.api.service import move_snippet_service, vault_error_status
from snippet_vault.config import VaultSettings
from snippet_vault.errors import (
    DuplicateAcrossTiers,
    InvalidArgument,
    InvalidSchema,
    NotFound,
    PartialTransferFailure,
    StorageUnavailable,
)
from snippet_vault.snippet import SnippetRepository
from snippet_vault.storage import MemoryStorageBackend
from snippet_vault.tier import Tier


def _make_settings() -> VaultSettings:
    return VaultSettings(
        storage_backend="memory",
        data_dir="/tmp/unused",
        redis_url="redis://127.0.0.1:6379/0",
        redis_prefix="snippet_vault",
        local_quota_bytes=10_485_760,
        sync_quota_bytes=102_400,
        search_threshold=0.4,
        log_level="WARNING",
    )


@pytest.fixture
def client():
    app = create_app(_make_settings(), backend=MemoryStorageBackend(), mount_mcp=False)
    with TestClient(app) as test_client:
        yield test_client


def _add(client, text, tier="local"):
    response = client.post("/snippets", json={"text": text, "tier": tier})
    assert response.status_code == 201
    return response.json()


def test_create_and_list_snippets(client):
    first = _add(client, "first note")
    second = _add(client, "second note")
    _add(client, "synced note", tier="sync")

    response = client.get("/snippets", params={"tier": "local"})

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 2
    assert [item["id"] for item in body["results"]] == [second["id"], first["id"]]
    assert body["results"][0]["url"] == "manual"
    assert body["results"][0]["tier"] == "local"


def test_search_ranks_across_tiers(client):
    _add(client, "buy milk")
    _add(client, "buy bread", tier="sync")
    _add(client, "sell car")

    response = client.get("/snippets/search", params={"query": "buy"})

    assert response.status_code == 200
    results = response.json()["results"]
    assert [item["text"] for item in results] == ["buy bread", "buy milk"]
    assert results[0]["tier"] == "sync"


def test_blank_search_query_lists_tier_by_recency(client):
    older = _add(client, "older note", tier="sync")
    newer = _add(client, "newer note", tier="sync")
    _add(client, "local note")

    response = client.get("/snippets/search", params={"query": "   ", "tier": "sync"})

    assert response.status_code == 200
    results = response.json()["results"]
    assert [item["id"] for item in results] == [newer["id"], older["id"]]
    assert all(item["score"] is None for item in results)


def test_move_delete_and_clear(client):
    created = _add(client, "movable")

    moved = client.post(f"/snippets/local/{created['id']}/move")
    assert moved.status_code == 200
    assert moved.json()["tier"] == "sync"

    assert client.delete(f"/snippets/local/{created['id']}").status_code == 404
    assert client.delete(f"/snippets/sync/{created['id']}").status_code == 204

    _add(client, "to be cleared", tier="sync")
    assert client.delete("/snippets/sync").status_code == 204
    assert client.get("/snippets", params={"tier": "sync"}).json()["count"] == 0


def test_unknown_tier_is_rejected(client):
    assert client.get("/snippets", params={"tier": "cloud"}).status_code == 422


def test_storage_usage(client):
    _add(client, "counted")

    response = client.get("/storage/local")

    assert response.status_code == 200
    body = response.json()
    assert body["bytes_used"] > 0
    assert body["quota_bytes"] == 10_485_760


def test_vault_errors_map_to_http_status():
    assert vault_error_status(NotFound(Tier.LOCAL, "x")) == 404
    assert vault_error_status(DuplicateAcrossTiers(Tier.SYNC, "x")) == 409
    assert vault_error_status(InvalidArgument("bad")) == 400
    assert vault_error_status(StorageUnavailable("down")) == 503
    assert vault_error_status(InvalidSchema("broken")) == 500


@pytest.mark.asyncio
async def test_partial_move_reloads_repository_before_reporting():
    backend = MemoryStorageBackend()
    repository = SnippetRepository(backend)
    await repository.open()
    snippet = repository.create_snippet("in flight", "manual")
    await repository.append(Tier.LOCAL, snippet)
    backend.fail_next("set", Tier.SYNC)

    with pytest.raises(HTTPException) as exc_info:
        await move_snippet_service(Tier.LOCAL, snippet.id, repository)

    assert exc_info.value.status_code == 500
    assert isinstance(exc_info.value.__cause__, PartialTransferFailure)
    assert repository.snippets(Tier.LOCAL) == await repository.load(Tier.LOCAL)
    assert repository.counts() == {Tier.LOCAL: 0, Tier.SYNC: 0}
