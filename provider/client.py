"""HTTP client for the ESPN player-summary endpoint.

One GET per tracked player. Larger rosters are split into four contiguous
shards fetched concurrently; a failing shard is logged and left out of the
combined payload.
"""

import asyncio
import logging
import math
import os
from typing import List, Optional, Sequence, Set

import httpx

from models import PlayerAssignment, PlayerJsonResponse
from provider.exceptions import ProviderError

logger = logging.getLogger(__name__)

ESPN_BASE_URL = "https://site.web.api.espn.com/apis/site/v2/sports/golf/pga/leaderboard"
SHARD_COUNT = 4
DEFAULT_SHARD_THRESHOLD = 4
DEFAULT_TIMEOUT_SECONDS = 20.0


def shard_players(players: Sequence[PlayerAssignment], shards: int = SHARD_COUNT) -> List[List[PlayerAssignment]]:
    """Split into `shards` contiguous groups of ceil(n / shards); empty groups are dropped."""
    if not players:
        return []
    size = math.ceil(len(players) / shards)
    groups = [list(players[i * size:(i + 1) * size]) for i in range(shards)]
    return [g for g in groups if g]


class ProviderClient:
    """Async ESPN client.

    `debug=True` fetches sequentially in one group, which keeps request
    order deterministic while developing against the live API.
    """

    def __init__(
        self,
        *,
        client: Optional[httpx.AsyncClient] = None,
        base_url: str = ESPN_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        debug: bool = False,
        shard_threshold: int = DEFAULT_SHARD_THRESHOLD,
    ):
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.debug = debug
        self.shard_threshold = shard_threshold
        self._forced_failures: Set[int] = set()

    @classmethod
    def from_env(cls) -> "ProviderClient":
        return cls(
            base_url=os.getenv("ESPN_BASE_URL", ESPN_BASE_URL),
            timeout=float(os.getenv("ESPN_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)),
            debug=os.getenv("ESPN_DEBUG", "").strip().lower() in {"1", "true", "yes", "on"},
        )

    # ================================================================
    # Forced failure (admin/test switch)
    # ================================================================

    def set_forced_failure(self, event_id: int, enabled: bool) -> None:
        if enabled:
            self._forced_failures.add(event_id)
        else:
            self._forced_failures.discard(event_id)

    def is_failure_forced(self, event_id: int) -> bool:
        return event_id in self._forced_failures

    # ================================================================
    # Fetch
    # ================================================================

    def player_url(self, event_id: int, year: int, espn_id: int) -> str:
        return f"{self.base_url}/{event_id}/playersummary?season={year}&player={espn_id}"

    async def _fetch_group(
        self, players: Sequence[PlayerAssignment], year: int, event_id: int
    ) -> PlayerJsonResponse:
        """Fetch players one after another; any HTTP or decode error fails the group."""
        response = PlayerJsonResponse()
        for player in players:
            resp = await self._client.get(self.player_url(event_id, year, player.espn_id))
            resp.raise_for_status()
            body = resp.json()
            if isinstance(body, dict) and "rounds" in body:
                response.data.append(body)
                response.eup_ids.append(player.eup_id)
            else:
                logger.debug(f"No rounds for espn_id={player.espn_id} in event {event_id}")
        return response

    async def _fetch_sharded(
        self, players: Sequence[PlayerAssignment], year: int, event_id: int
    ) -> PlayerJsonResponse:
        groups = shard_players(players)
        results = await asyncio.gather(
            *(self._fetch_group(g, year, event_id) for g in groups),
            return_exceptions=True,
        )

        combined = PlayerJsonResponse()
        failures = 0
        for group, result in zip(groups, results):
            if isinstance(result, Exception):
                failures += 1
                logger.warning(
                    f"ESPN shard of {len(group)} players failed for event {event_id}: {result}"
                )
                continue
            combined.extend(result)

        if groups and failures == len(groups):
            raise ProviderError(f"All ESPN shards failed for event {event_id}", event_id)
        return combined

    async def _fetch(
        self, players: Sequence[PlayerAssignment], year: int, event_id: int
    ) -> PlayerJsonResponse:
        if self.debug or len(players) <= self.shard_threshold:
            try:
                return await self._fetch_group(players, year, event_id)
            except (httpx.HTTPError, ValueError) as e:
                raise ProviderError(f"ESPN fetch failed for event {event_id}: {e}", event_id) from e
        return await self._fetch_sharded(players, year, event_id)

    async def fetch(
        self, players: Sequence[PlayerAssignment], year: int, event_id: int
    ) -> PlayerJsonResponse:
        """Raw per-player JSON for `players`, bounded by the client timeout."""
        if self.is_failure_forced(event_id):
            raise ProviderError(f"ESPN failure forced for event {event_id}", event_id)

        try:
            return await asyncio.wait_for(
                self._fetch(players, year, event_id), timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            raise ProviderError(
                f"ESPN fetch for event {event_id} timed out after {self.timeout}s", event_id
            ) from e

    async def aclose(self) -> None:
        await self._client.aclose()
