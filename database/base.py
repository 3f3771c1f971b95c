"""The storage interface shared by the SQL, object-store and edge-KV backends."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from models import EventDetails, PlayerAssignment, RefreshSource, Scores, ScoresAndLastRefresh, utc_now
from database.exceptions import NotFoundError

StepFactors = Dict[Tuple[int, str], float]


class StorageBackend(ABC):
    """Durable read/write of event metadata, rosters and result snapshots.

    `store_scores` and the admin operations are the only mutating calls.
    Missing rows raise `NotFoundError`; every other failure is a `StorageError`.
    """

    name = "storage"
    # Max age for events with scheduled refresh, in this backend's unit.
    refresh_max_age = 300

    # ================================================================
    # Core operations
    # ================================================================

    @abstractmethod
    async def get_event_details(self, event_id: int) -> EventDetails:
        ...

    @abstractmethod
    async def get_golfers_for_event(self, event_id: int) -> List[PlayerAssignment]:
        ...

    @abstractmethod
    async def get_player_step_factors(self, event_id: int) -> StepFactors:
        ...

    @abstractmethod
    async def get_scores(self, event_id: int, source: RefreshSource) -> ScoresAndLastRefresh:
        """Load the stored snapshot, stamping `source` onto it."""

    @abstractmethod
    async def store_scores(self, event_id: int, scores: Sequence[Scores]) -> None:
        """Replace the event's snapshot; stamps now and RefreshSource.ESPN."""

    @abstractmethod
    async def get_last_refresh(self, event_id: int) -> Optional[datetime]:
        """Naive UTC timestamp of the last store, or None if nothing is stored."""

    @abstractmethod
    def is_within_max_age(self, last_refresh: datetime, now: datetime, max_age: int) -> bool:
        """Backend-specific age comparison (unit chosen by the backend)."""

    async def is_cache_fresh(self, event_id: int, max_age: int) -> bool:
        """Whether the stored snapshot can be served without a provider call.

        An ended event is always fresh once something is stored. Otherwise a
        non-positive max age is never fresh, and a positive one is compared
        against the last refresh in the backend's own unit.
        """
        try:
            details = await self.get_event_details(event_id)
        except NotFoundError:
            return False

        last_refresh = await self.get_last_refresh(event_id)
        if last_refresh is None:
            return False

        if details.has_ended():
            return True
        if max_age <= 0:
            return False

        return self.is_within_max_age(last_refresh, utc_now(), max_age)

    # ================================================================
    # Admin operations
    # ================================================================

    @abstractmethod
    async def seed_event(
        self,
        event_id: int,
        details: EventDetails,
        golfers: Sequence[PlayerAssignment],
        scores: Optional[Sequence[Scores]] = None,
        last_refresh: Optional[datetime] = None,
    ) -> None:
        """Force-write event metadata, roster and (optionally) a snapshot."""

    @abstractmethod
    async def delete_scores(self, event_id: int) -> bool:
        """Delete the stored snapshot. Returns True if anything was removed."""

    @abstractmethod
    async def update_end_date(self, event_id: int, end_date: Optional[str]) -> EventDetails:
        ...

    async def close(self) -> None:
        """Release connections. Backends holding none keep this no-op."""

    async def health_check(self) -> bool:
        return True


def step_factors_from_golfers(golfers: Sequence[PlayerAssignment]) -> StepFactors:
    """Per-player overrides keyed by (espn_id, bettor_name)."""
    return {
        (g.espn_id, g.bettor_name): g.score_view_step_factor
        for g in golfers
        if g.score_view_step_factor is not None
    }
