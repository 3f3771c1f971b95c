import json
from datetime import datetime, timedelta
from types import SimpleNamespace

import httpx
import pytest
from botocore.exceptions import ClientError

from api.main import build_fallback
from database import factory, object_store as object_store_module
from database.exceptions import NotFoundError, StorageError
from database.kv_storage import CLOUDFLARE_API_URL, EdgeKvStorage, KvNamespace, SEEDED_SUFFIXES
from database.object_store import ObjectStore, _bool_env
from database.s3_storage import (
    ObjectStoreStorage,
    format_timestamp,
    parse_last_refresh_doc,
    parse_timestamp,
)
from database.sql_storage import SqlStorage
from models import RefreshSource, utc_now
from provider.client import ProviderClient
from scoring import LockRegistry, RefreshCoordinator

EVENT_ID = 401580351


@pytest.fixture
def kv(fake_kv):
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(fake_kv.handler), base_url=CLOUDFLARE_API_URL
    )
    return KvNamespace("acct", "ns", "token", client=client)


@pytest.fixture
def edge_storage(kv, object_store):
    return EdgeKvStorage(kv, object_store)


@pytest.fixture
def s3_storage(object_store):
    return ObjectStoreStorage(object_store)


# ================================================================
# Timestamps
# ================================================================

def test_timestamp_round_trip():
    ts = datetime(2024, 4, 12, 18, 0, 5, 123000)
    assert format_timestamp(ts) == "2024-04-12T18:00:05.123000Z"
    assert parse_timestamp(format_timestamp(ts)) == ts
    assert parse_timestamp("2024-04-12T13:00:00-05:00") == datetime(2024, 4, 12, 18, 0)


def test_parse_last_refresh_doc():
    assert parse_last_refresh_doc(None) is None
    assert parse_last_refresh_doc({"source": "Espn"}) is None
    assert parse_last_refresh_doc({"ts": "2024-04-12T18:00:00Z"}) == datetime(2024, 4, 12, 18)
    with pytest.raises(StorageError):
        parse_last_refresh_doc({"ts": "yesterday"})


# ================================================================
# ObjectStore
# ================================================================

@pytest.mark.asyncio
async def test_object_store_json(object_store, s3_client):
    assert await object_store.get_json("missing.json") is None

    await object_store.put_json("a.json", {"x": 1})
    assert json.loads(s3_client.objects["a.json"]) == {"x": 1}
    assert await object_store.get_json("a.json") == {"x": 1}

    await object_store.delete("a.json")
    assert await object_store.get_json("a.json") is None
    assert await object_store.health_check() is True


@pytest.mark.asyncio
async def test_object_store_other_client_errors_raise(object_store, s3_client):
    def denied(Bucket, Key):
        raise ClientError({"Error": {"Code": "AccessDenied", "Message": "no"}}, "GetObject")

    s3_client.get_object = denied
    with pytest.raises(StorageError, match="AccessDenied"):
        await object_store.get_json("a.json")


@pytest.mark.asyncio
async def test_object_store_rejects_corrupt_json(object_store, s3_client):
    s3_client.objects["bad.json"] = b"{nope"
    with pytest.raises(StorageError):
        await object_store.get_json("bad.json")


def test_object_store_requires_bucket(s3_client):
    with pytest.raises(StorageError):
        ObjectStore(s3_client, "")


def test_bool_env_variants(monkeypatch):
    monkeypatch.delenv("S3_FORCE_PATH_STYLE", raising=False)
    assert _bool_env("S3_FORCE_PATH_STYLE", default=True) is True

    monkeypatch.setenv("S3_FORCE_PATH_STYLE", "off")
    assert _bool_env("S3_FORCE_PATH_STYLE") is False

    monkeypatch.setenv("S3_FORCE_PATH_STYLE", "YeS")
    assert _bool_env("S3_FORCE_PATH_STYLE") is True


def test_s3_client_from_env(monkeypatch):
    captured = {}

    def fake_config(*, signature_version, s3):
        captured["config"] = {"signature_version": signature_version, "s3": s3}
        return SimpleNamespace(signature_version=signature_version, s3=s3)

    def boto3_client(name, **kwargs):
        captured["service"] = name
        captured["client_kwargs"] = kwargs
        return object()

    monkeypatch.setattr(object_store_module, "Config", fake_config)
    monkeypatch.setattr(object_store_module, "boto3", SimpleNamespace(client=boto3_client))
    monkeypatch.setenv("S3_REGION", "auto")
    monkeypatch.setenv("S3_ACCESS_KEY", "access")
    monkeypatch.setenv("S3_SECRET_KEY", "secret")
    monkeypatch.setenv("S3_ENDPOINT", "https://acct.r2.cloudflarestorage.com")
    monkeypatch.setenv("S3_FORCE_PATH_STYLE", "true")

    object_store_module.s3_client_from_env()

    assert captured["service"] == "s3"
    kwargs = captured["client_kwargs"]
    assert kwargs["region_name"] == "auto"
    assert kwargs["aws_access_key_id"] == "access"
    assert kwargs["aws_secret_access_key"] == "secret"
    assert kwargs["endpoint_url"] == "https://acct.r2.cloudflarestorage.com"
    assert captured["config"] == {"signature_version": "s3v4", "s3": {"addressing_style": "path"}}


# ================================================================
# ObjectStoreStorage
# ================================================================

@pytest.mark.asyncio
async def test_s3_storage_round_trip(s3_storage, s3_client, event_details, roster, score_rows):
    await s3_storage.seed_event(EVENT_ID, event_details, roster)
    assert await s3_storage.get_last_refresh(EVENT_ID) is None

    await s3_storage.store_scores(EVENT_ID, score_rows)

    snapshot = await s3_storage.get_scores(EVENT_ID, RefreshSource.DB)
    assert snapshot.score_struct == score_rows
    assert snapshot.last_refresh_source == RefreshSource.DB
    assert await s3_storage.get_last_refresh(EVENT_ID) == snapshot.last_refresh
    assert set(s3_client.objects) == {
        "events/401580351/event.json",
        "events/401580351/golfers.json",
        "events/401580351/scores.json",
        "events/401580351/last_refresh.json",
    }
    marker = json.loads(s3_client.objects["events/401580351/last_refresh.json"])
    assert marker["source"] == "Espn"
    assert marker["ts"].endswith("Z")


@pytest.mark.asyncio
async def test_s3_storage_metadata(s3_storage, event_details, roster):
    await s3_storage.seed_event(EVENT_ID, event_details, list(reversed(roster)))

    details = await s3_storage.get_event_details(EVENT_ID)
    assert details.event_id == EVENT_ID
    assert details.event_name == "Masters Tournament"
    assert [g.eup_id for g in await s3_storage.get_golfers_for_event(EVENT_ID)] == [1, 2, 3, 4]
    assert await s3_storage.get_player_step_factors(EVENT_ID) == {(10140, "Alice"): 2.0}

    with pytest.raises(NotFoundError):
        await s3_storage.get_event_details(1)
    with pytest.raises(NotFoundError):
        await s3_storage.get_scores(EVENT_ID, RefreshSource.DB)


@pytest.mark.asyncio
async def test_s3_storage_freshness_in_seconds(s3_storage, event_details, roster, score_rows):
    await s3_storage.seed_event(
        EVENT_ID, event_details, roster, score_rows,
        last_refresh=utc_now() - timedelta(seconds=120),
    )
    assert await s3_storage.is_cache_fresh(EVENT_ID, 300)
    assert not await s3_storage.is_cache_fresh(EVENT_ID, 60)
    assert not await s3_storage.is_cache_fresh(EVENT_ID, 0)


@pytest.mark.asyncio
async def test_s3_storage_admin_operations(s3_storage, event_details, roster, score_rows):
    await s3_storage.seed_event(EVENT_ID, event_details, roster, score_rows)

    updated = await s3_storage.update_end_date(EVENT_ID, "2024-04-14T23:00:00Z")
    assert updated.end_date == "2024-04-14T23:00:00Z"
    assert (await s3_storage.get_event_details(EVENT_ID)).has_ended()

    assert await s3_storage.delete_scores(EVENT_ID) is True
    assert await s3_storage.delete_scores(EVENT_ID) is False
    assert await s3_storage.get_last_refresh(EVENT_ID) is None

    with pytest.raises(NotFoundError):
        await s3_storage.update_end_date(1, None)


@pytest.mark.asyncio
async def test_s3_seeded_scores_cover_provider_failure(
    monkeypatch, s3_storage, s3_client, event_details, roster, score_rows
):
    monkeypatch.delenv("FALLBACK_FIXTURE_PATH", raising=False)
    await s3_storage.seed_event(EVENT_ID, event_details, roster, score_rows)
    assert "cache/espn/401580351.json" in s3_client.objects

    def unreachable(request):
        raise AssertionError("provider should not be called")

    provider = ProviderClient(client=httpx.AsyncClient(transport=httpx.MockTransport(unreachable)))
    provider.set_forced_failure(EVENT_ID, True)
    coordinator = RefreshCoordinator(
        s3_storage, provider, LockRegistry(), build_fallback(s3_storage)
    )

    snapshot = await coordinator.get(EVENT_ID, 2024, use_cache=False)
    assert [s.eup_id for s in snapshot.score_struct] == [1, 2, 3, 4]
    assert snapshot.last_refresh_source == RefreshSource.ESPN
    await provider.aclose()


@pytest.mark.asyncio
async def test_s3_storage_invalid_document(s3_storage, s3_client):
    s3_client.objects["events/401580351/event.json"] = b'{"score_view_step_factor": "lots"}'
    with pytest.raises(StorageError):
        await s3_storage.get_event_details(EVENT_ID)


# ================================================================
# KvNamespace
# ================================================================

@pytest.mark.asyncio
async def test_kv_namespace_requests(kv, fake_kv):
    assert await kv.get("event:1:details") is None

    await kv.put_json("event:1:details", {"event_name": "Masters"})
    assert await kv.get_json("event:1:details") == {"event_name": "Masters"}

    put = [r for r in fake_kv.requests if r.method == "PUT"][0]
    assert put.url.path == "/client/v4/accounts/acct/storage/kv/namespaces/ns/values/event:1:details"
    assert put.headers["Authorization"] == "Bearer token"

    await kv.delete("event:1:details")
    await kv.delete("event:1:details")
    assert fake_kv.values == {}


@pytest.mark.asyncio
async def test_kv_namespace_errors():
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
        base_url=CLOUDFLARE_API_URL,
    )
    kv = KvNamespace("acct", "ns", "token", client=client)
    with pytest.raises(StorageError):
        await kv.get("k")
    with pytest.raises(StorageError):
        await kv.put("k", "v")


# ================================================================
# EdgeKvStorage
# ================================================================

@pytest.mark.asyncio
async def test_edge_storage_seed_layout(edge_storage, fake_kv, s3_client, event_details, roster, score_rows):
    stamp = datetime(2024, 4, 12, 18, 0)
    await edge_storage.seed_event(EVENT_ID, event_details, roster, score_rows, stamp)

    details = json.loads(fake_kv.values["event:401580351:details"])
    assert "event_id" not in details
    assert details["event_name"] == "Masters Tournament"
    assert json.loads(fake_kv.values["event:401580351:player_factors"]) == [
        {"golfer_espn_id": 10140, "bettor_name": "Alice", "step_factor": 2.0}
    ]
    assert json.loads(fake_kv.values["event:401580351:last_refresh"])["ts"] == "2024-04-12T18:00:00Z"
    for suffix in SEEDED_SUFFIXES:
        assert f"event:401580351:{suffix}:seeded_at" in fake_kv.values

    assert "events/401580351/scores.json" in s3_client.objects
    cache_doc = json.loads(s3_client.objects["cache/espn/401580351.json"])
    assert len(cache_doc["score_struct"]) == 4


@pytest.mark.asyncio
async def test_edge_storage_round_trip(edge_storage, event_details, roster, score_rows):
    await edge_storage.seed_event(EVENT_ID, event_details, roster)
    await edge_storage.store_scores(EVENT_ID, score_rows)

    snapshot = await edge_storage.get_scores(EVENT_ID, RefreshSource.ESPN)
    assert snapshot.score_struct == score_rows
    assert snapshot.last_refresh_source == RefreshSource.ESPN
    assert await edge_storage.get_last_refresh(EVENT_ID) == snapshot.last_refresh
    assert (await edge_storage.get_event_details(EVENT_ID)).event_id == EVENT_ID
    assert [g.eup_id for g in await edge_storage.get_golfers_for_event(EVENT_ID)] == [1, 2, 3, 4]
    assert await edge_storage.get_player_step_factors(EVENT_ID) == {(10140, "Alice"): 2.0}
    assert await edge_storage.is_cache_fresh(EVENT_ID, 300)


@pytest.mark.asyncio
async def test_edge_storage_missing_keys(edge_storage):
    with pytest.raises(NotFoundError):
        await edge_storage.get_event_details(EVENT_ID)
    with pytest.raises(NotFoundError):
        await edge_storage.get_golfers_for_event(EVENT_ID)
    with pytest.raises(NotFoundError):
        await edge_storage.get_scores(EVENT_ID, RefreshSource.DB)
    assert await edge_storage.get_player_step_factors(EVENT_ID) == {}
    assert await edge_storage.get_last_refresh(EVENT_ID) is None


@pytest.mark.asyncio
async def test_edge_storage_admin_operations(edge_storage, fake_kv, event_details, roster, score_rows):
    await edge_storage.seed_event(EVENT_ID, event_details, roster, score_rows)
    fake_kv.values.pop("event:401580351:details:seeded_at")

    updated = await edge_storage.update_end_date(EVENT_ID, "2024-04-14T23:00:00Z")
    assert updated.end_date == "2024-04-14T23:00:00Z"
    assert "event:401580351:details:seeded_at" in fake_kv.values

    assert await edge_storage.delete_scores(EVENT_ID) is True
    assert "event:401580351:last_refresh" not in fake_kv.values
    assert await edge_storage.delete_scores(EVENT_ID) is False


# ================================================================
# create_storage
# ================================================================

@pytest.mark.asyncio
async def test_create_storage_s3(monkeypatch, s3_client):
    monkeypatch.setattr(factory, "s3_client_from_env", lambda: s3_client)
    monkeypatch.setenv("S3_BUCKET", "golf-scores")

    storage = await factory.create_storage("s3")
    assert isinstance(storage, ObjectStoreStorage)
    assert storage.object_store.bucket == "golf-scores"


@pytest.mark.asyncio
async def test_create_storage_kv(monkeypatch, s3_client):
    monkeypatch.setattr(factory, "s3_client_from_env", lambda: s3_client)
    monkeypatch.setenv("STORAGE_BACKEND", "KV")
    monkeypatch.setenv("S3_BUCKET", "golf-scores")
    monkeypatch.setenv("KV_ACCOUNT_ID", "acct")
    monkeypatch.setenv("KV_NAMESPACE_ID", "ns")
    monkeypatch.setenv("KV_API_TOKEN", "token")

    storage = await factory.create_storage()
    assert isinstance(storage, EdgeKvStorage)
    await storage.close()


@pytest.mark.asyncio
async def test_create_storage_sql(monkeypatch, mock_pool):
    pool, _ = mock_pool
    calls = []

    async def fake_initialize(dsn=None, **kwargs):
        calls.append(dsn)
        factory.db._pool = pool

    monkeypatch.setattr(factory.db, "initialize", fake_initialize)
    monkeypatch.setattr(factory.db, "_pool", None)
    monkeypatch.setenv("DATABASE_URL", "postgresql://localhost/golf_pool")
    monkeypatch.delenv("DATABASE_INIT_SCHEMA", raising=False)

    storage = await factory.create_storage("sql")
    assert isinstance(storage, SqlStorage)
    assert calls == ["postgresql://localhost/golf_pool"]


@pytest.mark.asyncio
async def test_create_storage_errors(monkeypatch):
    with pytest.raises(StorageError, match="Unknown STORAGE_BACKEND"):
        await factory.create_storage("redis")

    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(StorageError, match="DATABASE_URL"):
        await factory.create_storage("sql")

    monkeypatch.delenv("KV_ACCOUNT_ID", raising=False)
    with pytest.raises(StorageError, match="KV_ACCOUNT_ID"):
        await factory.create_storage("kv")
