"""S3-compatible object-store backend.

Each event is a folder of JSON documents:

    events/{id}/event.json         EventDetails
    events/{id}/golfers.json       [PlayerAssignment]
    events/{id}/scores.json        ScoresAndLastRefresh
    events/{id}/last_refresh.json  {"ts": ..., "source": ...}
    cache/espn/{id}.json           seeded scores, read by the object-store fallback

Freshness is measured in seconds against the last-refresh marker.
"""

import logging
from datetime import datetime
from typing import List, Optional, Sequence

from pydantic import ValidationError

from models import (
    EventDetails,
    PlayerAssignment,
    RefreshSource,
    Scores,
    ScoresAndLastRefresh,
    utc_now,
)
from database.base import StepFactors, StorageBackend, step_factors_from_golfers
from database.exceptions import NotFoundError, StorageError
from database.object_store import ObjectStore

logger = logging.getLogger(__name__)


def format_timestamp(ts: datetime) -> str:
    """Naive UTC datetime -> RFC 3339 text with a Z suffix."""
    return ts.isoformat() + "Z"


def parse_timestamp(text: str) -> datetime:
    """RFC 3339 text -> naive UTC datetime."""
    value = text.strip()
    if value.endswith("Z"):
        value = value[:-1]
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is not None:
        parsed = parsed.replace(tzinfo=None) - parsed.utcoffset()
    return parsed


def espn_cache_key(event_id: int) -> str:
    return f"cache/espn/{event_id}.json"


def espn_cache_doc(scores: Sequence[Scores]) -> dict:
    return {"score_struct": [s.model_dump(mode="json") for s in scores]}


def last_refresh_doc(ts: datetime) -> dict:
    return {"ts": format_timestamp(ts), "source": RefreshSource.ESPN.value}


def parse_last_refresh_doc(doc: Optional[dict]) -> Optional[datetime]:
    if not doc or "ts" not in doc:
        return None
    try:
        return parse_timestamp(doc["ts"])
    except ValueError as e:
        raise StorageError(f"Invalid last_refresh marker: {e}") from e


class ObjectStoreStorage(StorageBackend):
    """Storage backed by JSON documents in one bucket."""

    name = "s3"

    def __init__(self, store: ObjectStore):
        self._store = store

    @property
    def object_store(self) -> ObjectStore:
        return self._store

    @staticmethod
    def event_key(event_id: int) -> str:
        return f"events/{event_id}/event.json"

    @staticmethod
    def golfers_key(event_id: int) -> str:
        return f"events/{event_id}/golfers.json"

    @staticmethod
    def scores_key(event_id: int) -> str:
        return f"events/{event_id}/scores.json"

    @staticmethod
    def last_refresh_key(event_id: int) -> str:
        return f"events/{event_id}/last_refresh.json"

    async def _require(self, key: str):
        doc = await self._store.get_json(key)
        if doc is None:
            raise NotFoundError(f"Object not found: {key}")
        return doc

    # ================================================================
    # Read
    # ================================================================

    async def get_event_details(self, event_id: int) -> EventDetails:
        doc = await self._require(self.event_key(event_id))
        try:
            details = EventDetails.model_validate(doc)
        except ValidationError as e:
            raise StorageError(f"Invalid event document for {event_id}: {e}") from e
        if details.event_id is None:
            details.event_id = event_id
        return details

    async def get_golfers_for_event(self, event_id: int) -> List[PlayerAssignment]:
        doc = await self._require(self.golfers_key(event_id))
        try:
            golfers = [PlayerAssignment.model_validate(g) for g in doc]
        except (TypeError, ValidationError) as e:
            raise StorageError(f"Invalid golfers document for {event_id}: {e}") from e
        return sorted(golfers, key=lambda g: (g.group, g.eup_id))

    async def get_player_step_factors(self, event_id: int) -> StepFactors:
        return step_factors_from_golfers(await self.get_golfers_for_event(event_id))

    async def get_scores(self, event_id: int, source: RefreshSource) -> ScoresAndLastRefresh:
        doc = await self._require(self.scores_key(event_id))
        try:
            snapshot = ScoresAndLastRefresh.model_validate(doc)
        except ValidationError as e:
            raise StorageError(f"Invalid scores document for {event_id}: {e}") from e
        snapshot.last_refresh_source = source
        return snapshot

    async def get_last_refresh(self, event_id: int) -> Optional[datetime]:
        doc = await self._store.get_json(self.last_refresh_key(event_id))
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
        await self._store.put_json(self.last_refresh_key(event_id), last_refresh_doc(stamp))

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
        details = EventDetails(**{**details.model_dump(), "event_id": event_id})
        await self._store.put_json(self.event_key(event_id), details)
        await self._store.put_json(self.golfers_key(event_id), list(golfers))
        if scores is not None:
            await self._write_snapshot(event_id, scores, last_refresh or utc_now())
            await self._store.put_json(espn_cache_key(event_id), espn_cache_doc(scores))
        logger.info(f"Seeded event {event_id} with {len(golfers)} golfers")

    async def delete_scores(self, event_id: int) -> bool:
        existed = await self._store.get_json(self.scores_key(event_id)) is not None
        await self._store.delete(self.scores_key(event_id))
        await self._store.delete(self.last_refresh_key(event_id))
        return existed

    async def update_end_date(self, event_id: int, end_date: Optional[str]) -> EventDetails:
        details = await self.get_event_details(event_id)
        updated = EventDetails(**{**details.model_dump(), "end_date": end_date})
        await self._store.put_json(self.event_key(event_id), updated)
        return updated

    async def health_check(self) -> bool:
        return await self._store.health_check()
