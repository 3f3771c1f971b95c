"""Cache-or-refresh orchestration for one event's score snapshot.

    CheckCache -> ReturnCached
               -> AcquireLock -> RecheckCache -> ReturnCached
                                              -> Fetch -> Normalize & Store -> ReturnFresh
                                                       -> Fallback -> ReturnLastKnownGood
                                                                   -> PropagateError
"""

import logging
from datetime import datetime
from typing import List, Optional, Protocol, Sequence

from models import PlayerAssignment, PlayerJsonResponse, RefreshSource, Scores, ScoresAndLastRefresh, utc_now
from database.base import StorageBackend
from database.exceptions import StorageError
from provider.exceptions import ProviderError
from provider.fallback import FallbackSource
from provider.normalizer import merge_statistics_with_scores, normalize_payload
from scoring.freshness import cache_max_age_for_event
from scoring.locks import LockRegistry

logger = logging.getLogger(__name__)


class ScoreProvider(Protocol):
    async def fetch(
        self, players: Sequence[PlayerAssignment], year: int, event_id: int
    ) -> PlayerJsonResponse:
        ...


class RefreshCoordinator:
    """Serves stored snapshots while fresh and refreshes at most once per event at a time."""

    def __init__(
        self,
        storage: StorageBackend,
        provider: ScoreProvider,
        lock_registry: LockRegistry,
        fallback: Optional[FallbackSource] = None,
    ):
        self._storage = storage
        self._provider = provider
        self._locks = lock_registry
        self._fallback = fallback

    async def _cached_if_fresh(
        self, event_id: int, max_age: int, use_cache: bool
    ) -> Optional[ScoresAndLastRefresh]:
        if use_cache and await self._storage.is_cache_fresh(event_id, max_age):
            return await self._storage.get_scores(event_id, RefreshSource.DB)
        return None

    async def get(
        self,
        event_id: int,
        year: int,
        use_cache: bool = True,
        max_age: Optional[int] = None,
    ) -> ScoresAndLastRefresh:
        """The event's snapshot, refreshed from the provider when stale.

        `last_refresh_source` is DB when served from storage and ESPN when
        this call (or one it waited on) produced the snapshot.
        """
        if max_age is None:
            max_age = await cache_max_age_for_event(self._storage, event_id)

        cached = await self._cached_if_fresh(event_id, max_age, use_cache)
        if cached is not None:
            return cached

        seen_generation = self._locks.generation(event_id)
        seen_refresh = await self._storage.get_last_refresh(event_id)
        async with self._locks.lock_for(event_id):
            cached = await self._cached_if_fresh(event_id, max_age, use_cache)
            if cached is not None:
                return cached

            # Another request (here or in another process) refreshed while
            # this one waited for the lock.
            latest_refresh = await self._storage.get_last_refresh(event_id)
            if (
                self._locks.generation(event_id) != seen_generation
                or _refreshed_since(seen_refresh, latest_refresh)
            ):
                logger.debug(f"Joining concurrent refresh of event {event_id}")
                return await self._storage.get_scores(event_id, RefreshSource.ESPN)

            return await self._refresh(event_id, year)

    async def _refresh(self, event_id: int, year: int) -> ScoresAndLastRefresh:
        roster = await self._storage.get_golfers_for_event(event_id)
        try:
            payload = await self._provider.fetch(roster, year, event_id)
        except ProviderError as e:
            logger.warning(f"Provider fetch failed for event {event_id}: {e}")
            return await self._fall_back(event_id, roster, e)

        rows = merge_statistics_with_scores(normalize_payload(payload), roster)
        await self._storage.store_scores(event_id, rows)
        self._locks.mark_refreshed(event_id)
        logger.info(f"Refreshed event {event_id} from provider ({len(rows)} rows)")
        return await self._storage.get_scores(event_id, RefreshSource.ESPN)

    async def _fall_back(
        self, event_id: int, roster: List[PlayerAssignment], error: ProviderError
    ) -> ScoresAndLastRefresh:
        if self._fallback is None:
            raise error

        try:
            rows = await self._fallback.load(event_id, roster)
        except (StorageError, ValueError, OSError) as fallback_error:
            logger.error(f"Fallback source failed for event {event_id}", exc_info=True)
            raise error from fallback_error

        if not rows:
            logger.warning(f"No fallback scores available for event {event_id}")
            raise error

        logger.warning(f"Serving {len(rows)} fallback rows for event {event_id}")
        try:
            await self._storage.store_scores(event_id, rows)
        except StorageError:
            logger.error(f"Could not store fallback scores for event {event_id}", exc_info=True)
            return _in_memory_snapshot(rows)

        self._locks.mark_refreshed(event_id)
        return await self._storage.get_scores(event_id, RefreshSource.ESPN)


def _refreshed_since(seen: Optional[datetime], latest: Optional[datetime]) -> bool:
    return latest is not None and (seen is None or latest > seen)


def _in_memory_snapshot(rows: Sequence[Scores]) -> ScoresAndLastRefresh:
    return ScoresAndLastRefresh(
        score_struct=list(rows),
        last_refresh=utc_now(),
        last_refresh_source=RefreshSource.ESPN,
    )
