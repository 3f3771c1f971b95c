import asyncio
import io
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import unquote

import httpx
import pytest
from botocore.exceptions import ClientError

from models import (
    EventDetails,
    IntStat,
    LineScore,
    PlayerAssignment,
    PlayerJsonResponse,
    RefreshSource,
    Scores,
    ScoresAndLastRefresh,
    Statistic,
    StringStat,
    utc_now,
)
from database.base import StorageBackend, step_factors_from_golfers
from database.exceptions import NotFoundError, StorageError
from database.object_store import ObjectStore

SEEDED_EVENT_ID = 401580351


# ================================================================
# asyncpg pool
# ================================================================

@pytest.fixture
def mock_pool():
    pool = MagicMock()
    conn = AsyncMock()
    pool.acquire.return_value.__aenter__.return_value = conn
    conn.transaction = MagicMock()
    conn.transaction.return_value.__aenter__.return_value = AsyncMock()
    return pool, conn


# ================================================================
# S3 and Workers KV fakes
# ================================================================

class FakeS3Client:
    """Dict-backed stand-in for the handful of boto3 calls ObjectStore makes."""

    def __init__(self):
        self.objects = {}

    def get_object(self, Bucket, Key):
        if Key not in self.objects:
            raise ClientError(
                {"Error": {"Code": "NoSuchKey", "Message": "Not Found"}}, "GetObject"
            )
        return {"Body": io.BytesIO(self.objects[Key])}

    def put_object(self, Bucket, Key, Body, ContentType=None):
        self.objects[Key] = Body

    def delete_object(self, Bucket, Key):
        self.objects.pop(Key, None)

    def head_bucket(self, Bucket):
        return {}


class FakeKv:
    """In-memory Workers KV namespace served through httpx.MockTransport."""

    def __init__(self):
        self.values = {}
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = unquote(request.url.path.split("/values/", 1)[1])
        if request.method == "GET":
            if key not in self.values:
                return httpx.Response(404, json={"success": False})
            return httpx.Response(200, text=self.values[key])
        if request.method == "PUT":
            self.values[key] = request.content.decode("utf-8")
            return httpx.Response(200, json={"success": True})
        if request.method == "DELETE":
            self.values.pop(key, None)
            return httpx.Response(200, json={"success": True})
        return httpx.Response(405)


@pytest.fixture
def s3_client():
    return FakeS3Client()


@pytest.fixture
def object_store(s3_client):
    return ObjectStore(s3_client, "golf-scores")


@pytest.fixture
def fake_kv():
    return FakeKv()


# ================================================================
# Domain data
# ================================================================

@pytest.fixture
def roster():
    return [
        PlayerAssignment(eup_id=1, espn_id=9478, golfer_name="Scottie Scheffler",
                         bettor_name="Alice", group=1),
        PlayerAssignment(eup_id=2, espn_id=3470, golfer_name="Rory McIlroy",
                         bettor_name="Bob", group=1),
        PlayerAssignment(eup_id=3, espn_id=10140, golfer_name="Xander Schauffele",
                         bettor_name="Alice", group=2, score_view_step_factor=2.0),
        PlayerAssignment(eup_id=4, espn_id=4375972, golfer_name="Ludvig Aberg",
                         bettor_name="Bob", group=2),
    ]


@pytest.fixture
def event_details():
    return EventDetails(
        event_id=SEEDED_EVENT_ID,
        event_name="Masters Tournament",
        score_view_step_factor=3.0,
        refresh_from_espn=1,
    )


@pytest.fixture
def raw_player():
    """Factory for one ESPN player-summary body with two holes per round."""
    def _make(round_values, tee_time="2024-04-11T14:05Z"):
        return {
            "rounds": [
                {
                    "displayValue": value,
                    "teeTime": tee_time,
                    "linescores": [
                        {"par": 4, "displayValue": "4"},
                        {"par": 3, "displayValue": "2"},
                    ],
                }
                for value in round_values
            ]
        }
    return _make


@pytest.fixture
def provider_payload(roster, raw_player):
    return PlayerJsonResponse(
        data=[raw_player(["-3", "E"]), raw_player(["+1", "-2"]),
              raw_player(["-1", "-1"]), raw_player(["+2", "+4"])],
        eup_ids=[p.eup_id for p in roster],
    )


@pytest.fixture
def make_scores():
    """Factory for a Scores row with the given per-round scores."""
    def _make(assignment: PlayerAssignment, round_scores):
        stat = Statistic(
            eup_id=assignment.eup_id,
            rounds=[IntStat(val=i) for i in range(len(round_scores))],
            round_scores=[IntStat(val=s) for s in round_scores],
            tee_times=[StringStat(val="4/11 9:05am")],
            holes_completed_by_round=[IntStat(val=18 * (i + 1)) for i in range(len(round_scores))],
            line_scores=[
                LineScore(round=i, hole=1, score=4, par=4) for i in range(len(round_scores))
            ],
            total_score=sum(round_scores),
        )
        return Scores.from_assignment(assignment, stat)
    return _make


@pytest.fixture
def score_rows(roster, make_scores):
    return [
        make_scores(roster[0], [-3, 0]),
        make_scores(roster[1], [1, -2]),
        make_scores(roster[2], [-1, -1]),
        make_scores(roster[3], [2, 4]),
    ]


# ================================================================
# In-memory storage and provider
# ================================================================

class MemoryStorage(StorageBackend):
    """Dict-backed backend; freshness is measured in seconds."""

    name = "memory"

    def __init__(self, clock=utc_now):
        self.clock = clock
        self.events = {}
        self.golfers = {}
        self.snapshots = {}
        self.store_calls = 0
        self.fail_store = False

    async def get_event_details(self, event_id):
        if event_id not in self.events:
            raise NotFoundError(f"Event {event_id} not found")
        return self.events[event_id]

    async def get_golfers_for_event(self, event_id):
        if event_id not in self.golfers:
            raise NotFoundError(f"No golfers found for event {event_id}")
        return list(self.golfers[event_id])

    async def get_player_step_factors(self, event_id):
        return step_factors_from_golfers(await self.get_golfers_for_event(event_id))

    async def get_scores(self, event_id, source):
        snapshot = self.snapshots.get(event_id)
        if snapshot is None:
            raise NotFoundError(f"No scores stored for event {event_id}")
        return snapshot.model_copy(update={"last_refresh_source": source})

    async def store_scores(self, event_id, scores):
        await asyncio.sleep(0)
        if self.fail_store:
            raise StorageError("bucket unavailable")
        self.store_calls += 1
        self.snapshots[event_id] = ScoresAndLastRefresh(
            score_struct=list(scores),
            last_refresh=self.clock(),
            last_refresh_source=RefreshSource.ESPN,
        )

    async def get_last_refresh(self, event_id):
        snapshot = self.snapshots.get(event_id)
        return snapshot.last_refresh if snapshot else None

    def is_within_max_age(self, last_refresh, now, max_age):
        return (now - last_refresh).total_seconds() <= max_age

    async def seed_event(self, event_id, details, golfers, scores=None, last_refresh=None):
        self.events[event_id] = details.model_copy(update={"event_id": event_id})
        self.golfers[event_id] = list(golfers)
        if scores is not None:
            self.snapshots[event_id] = ScoresAndLastRefresh(
                score_struct=list(scores),
                last_refresh=last_refresh or self.clock(),
                last_refresh_source=RefreshSource.ESPN,
            )

    async def delete_scores(self, event_id):
        return self.snapshots.pop(event_id, None) is not None

    async def update_end_date(self, event_id, end_date):
        details = await self.get_event_details(event_id)
        updated = details.model_copy(update={"end_date": end_date})
        self.events[event_id] = updated
        return updated


class FakeProvider:
    """Counts fetches; sleeps so concurrent callers overlap."""

    def __init__(self, payload=None, error=None, delay=0.01):
        self.payload = payload
        self.error = error
        self.delay = delay
        self.calls = 0

    async def fetch(self, players, year, event_id):
        self.calls += 1
        await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.payload


class StaticFallback:
    def __init__(self, rows=None, error=None):
        self.rows = rows
        self.error = error
        self.calls = 0

    async def load(self, event_id, roster):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.rows


@pytest.fixture
def memory_storage(event_details, roster):
    storage = MemoryStorage()
    storage.events[SEEDED_EVENT_ID] = event_details
    storage.golfers[SEEDED_EVENT_ID] = list(roster)
    return storage


@pytest.fixture
def frozen_clock():
    """A clock that always returns the same instant."""
    instant = datetime(2024, 4, 12, 18, 0, 0)
    return lambda: instant


@pytest.fixture
def fake_provider_cls():
    return FakeProvider


@pytest.fixture
def static_fallback_cls():
    return StaticFallback


@pytest.fixture
def memory_storage_cls():
    return MemoryStorage
