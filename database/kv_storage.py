"""Edge backend: Cloudflare Workers KV for metadata, an S3 bucket for snapshots.

KV keys per event:

    event:{id}:details            EventDetails (without id)
    event:{id}:golfers            [PlayerAssignment]
    event:{id}:player_factors     [{golfer_espn_id, bettor_name, step_factor}]
    event:{id}:last_refresh       {"ts": ..., "source": ...}
    event:{id}:{suffix}:seeded_at {"seeded_at": ...}

Bucket keys: events/{id}/scores.json and cache/espn/{id}.json (the
last-known-good document the fallback source reads). The snapshot and its
KV marker are written one after the other; KV is eventually consistent, so
readers may briefly see either without the other.
"""

import json
import logging
from datetime import datetime
from typing import Any, List, Optional, Sequence
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from models import (
    EventDetails,
    PlayerAssignment,
    RefreshSource,
    Scores,
    ScoresAndLastRefresh,
    utc_now,
)
from database.base import StepFactors, StorageBackend
from database.exceptions import NotFoundError, StorageError
from database.object_store import ObjectStore, to_json
from database.s3_storage import (
    espn_cache_doc,
    espn_cache_key,
    format_timestamp,
    last_refresh_doc,
    parse_last_refresh_doc,
)

logger = logging.getLogger(__name__)

CLOUDFLARE_API_URL = "https://api.cloudflare.com/client/v4"
SEEDED_SUFFIXES = ("details", "golfers", "player_factors", "last_refresh")


class KvNamespace:
    """Minimal async client for the Workers KV REST API."""

    def __init__(
        self,
        account_id: str,
        namespace_id: str,
        api_token: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        base_url: str = CLOUDFLARE_API_URL,
        timeout: float = 10.0,
    ):
        self._prefix = f"/accounts/{account_id}/storage/kv/namespaces/{namespace_id}/values"
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {api_token}"},
            timeout=timeout,
        )

    def _path(self, key: str) -> str:
        return f"{self._prefix}/{quote(key, safe=':')}"

    async def get(self, key: str) -> Optional[str]:
        try:
            response = await self._client.get(self._path(key))
        except httpx.HTTPError as e:
            raise StorageError(f"KV get {key} failed: {e}") from e
        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise StorageError(f"KV get {key} failed: HTTP {response.status_code}")
        return response.text

    async def put(self, key: str, value: str) -> None:
        try:
            response = await self._client.put(self._path(key), content=value.encode("utf-8"))
        except httpx.HTTPError as e:
            raise StorageError(f"KV put {key} failed: {e}") from e
        if response.status_code >= 400:
            raise StorageError(f"KV put {key} failed: HTTP {response.status_code}")

    async def delete(self, key: str) -> None:
        try:
            response = await self._client.delete(self._path(key))
        except httpx.HTTPError as e:
            raise StorageError(f"KV delete {key} failed: {e}") from e
        if response.status_code >= 400 and response.status_code != 404:
            raise StorageError(f"KV delete {key} failed: HTTP {response.status_code}")

    async def get_json(self, key: str) -> Optional[Any]:
        text = await self.get(key)
        if text is None:
            return None
        try:
            return json.loads(text)
        except ValueError as e:
            raise StorageError(f"KV value {key} is not valid JSON: {e}") from e

    async def put_json(self, key: str, payload: Any) -> None:
        await self.put(key, to_json(payload))

    async def aclose(self) -> None:
        await self._client.aclose()


class EdgeKvStorage(StorageBackend):
    """Storage split across Workers KV and an S3-compatible bucket."""

    name = "kv"

    def __init__(self, kv: KvNamespace, store: ObjectStore):
        self._kv = kv
        self._store = store

    @property
    def object_store(self) -> ObjectStore:
        return self._store

    # ================================================================
    # Keys
    # ================================================================

    @staticmethod
    def details_key(event_id: int) -> str:
        return f"event:{event_id}:details"

    @staticmethod
    def golfers_key(event_id: int) -> str:
        return f"event:{event_id}:golfers"

    @staticmethod
    def player_factors_key(event_id: int) -> str:
        return f"event:{event_id}:player_factors"

    @staticmethod
    def last_refresh_key(event_id: int) -> str:
        return f"event:{event_id}:last_refresh"

    @staticmethod
    def seeded_at_key(event_id: int, suffix: str) -> str:
        return f"event:{event_id}:{suffix}:seeded_at"

    @staticmethod
    def scores_key(event_id: int) -> str:
        return f"events/{event_id}/scores.json"

    async def _mark_seeded(self, event_id: int, suffixes: Sequence[str]) -> None:
        doc = {"seeded_at": format_timestamp(utc_now())}
        for suffix in suffixes:
            await self._kv.put_json(self.seeded_at_key(event_id, suffix), doc)

    # ================================================================
    # Read
    # ================================================================

    async def get_event_details(self, event_id: int) -> EventDetails:
        doc = await self._kv.get_json(self.details_key(event_id))
        if doc is None:
            raise NotFoundError(f"KV key missing: {self.details_key(event_id)}")
        try:
            return EventDetails.model_validate({**doc, "event_id": event_id})
        except ValidationError as e:
            raise StorageError(f"Invalid event details for {event_id}: {e}") from e

    async def get_golfers_for_event(self, event_id: int) -> List[PlayerAssignment]:
        doc = await self._kv.get_json(self.golfers_key(event_id))
        if doc is None:
            raise NotFoundError(f"KV key missing: {self.golfers_key(event_id)}")
        try:
            golfers = [PlayerAssignment.model_validate(g) for g in doc]
        except (TypeError, ValidationError) as e:
            raise StorageError(f"Invalid golfers for {event_id}: {e}") from e
        return sorted(golfers, key=lambda g: (g.group, g.eup_id))

    async def get_player_step_factors(self, event_id: int) -> StepFactors:
        doc = await self._kv.get_json(self.player_factors_key(event_id)) or []
        try:
            return {
                (int(entry["golfer_espn_id"]), entry["bettor_name"]): float(entry["step_factor"])
                for entry in doc
            }
        except (KeyError, TypeError, ValueError) as e:
            raise StorageError(f"Invalid player factors for {event_id}: {e}") from e

    async def get_scores(self, event_id: int, source: RefreshSource) -> ScoresAndLastRefresh:
        doc = await self._store.get_json(self.scores_key(event_id))
        if doc is None:
            raise NotFoundError(f"Object not found: {self.scores_key(event_id)}")
        try:
            snapshot = ScoresAndLastRefresh.model_validate(doc)
        except ValidationError as e:
            raise StorageError(f"Invalid scores document for {event_id}: {e}") from e
        snapshot.last_refresh_source = source
        return snapshot

    async def get_last_refresh(self, event_id: int) -> Optional[datetime]:
        doc = await self._kv.get_json(self.last_refresh_key(event_id))
        return parse_last_refresh_doc(doc)

    def is_within_max_age(self, last_refresh: datetime, now: datetime, max_age: int) -> bool:
        return (now - last_refresh).total_seconds() <= max_age

    # ================================================================
    # Write
    # ================================================================

    async def _write_snapshot(
        self, event_id: int, scores: Sequence[Scores], stamp: datetime
    ) -> None:
        snapshot = ScoresAndLastRefresh(
            score_struct=list(scores),
            last_refresh=stamp,
            last_refresh_source=RefreshSource.ESPN,
        )
        await self._store.put_json(self.scores_key(event_id), snapshot)
        await self._kv.put_json(self.last_refresh_key(event_id), last_refresh_doc(stamp))

    async def store_scores(self, event_id: int, scores: Sequence[Scores]) -> None:
        await self._write_snapshot(event_id, scores, utc_now())
        logger.info(f"Stored {len(scores)} score rows for event {event_id}")

    async def seed_event(
        self,
        event_id: int,
        details: EventDetails,
        golfers: Sequence[PlayerAssignment],
        scores: Optional[Sequence[Scores]] = None,
        last_refresh: Optional[datetime] = None,
    ) -> None:
        await self._kv.put_json(
            self.details_key(event_id), details.model_dump(exclude={"event_id"})
        )
        await self._kv.put_json(self.golfers_key(event_id), list(golfers))
        factors = [
            {
                "golfer_espn_id": g.espn_id,
                "bettor_name": g.bettor_name,
                "step_factor": g.score_view_step_factor,
            }
            for g in golfers
            if g.score_view_step_factor is not None
        ]
        await self._kv.put_json(self.player_factors_key(event_id), factors)

        if scores is not None:
            await self._write_snapshot(event_id, scores, last_refresh or utc_now())
            await self._store.put_json(espn_cache_key(event_id), espn_cache_doc(scores))
        await self._mark_seeded(event_id, SEEDED_SUFFIXES)
        logger.info(f"Seeded event {event_id} with {len(golfers)} golfers")

    async def delete_scores(self, event_id: int) -> bool:
        existed = await self._store.get_json(self.scores_key(event_id)) is not None
        await self._store.delete(self.scores_key(event_id))
        await self._kv.delete(self.last_refresh_key(event_id))
        return existed

    async def update_end_date(self, event_id: int, end_date: Optional[str]) -> EventDetails:
        details = await self.get_event_details(event_id)
        updated = EventDetails(**{**details.model_dump(), "end_date": end_date})
        await self._kv.put_json(
            self.details_key(event_id), updated.model_dump(exclude={"event_id"})
        )
        await self._mark_seeded(event_id, ("details",))
        return updated

    async def close(self) -> None:
        await self._kv.aclose()

    async def health_check(self) -> bool:
        return await self._store.health_check()
