"""PostgreSQL storage backend (asyncpg).

Snapshots live in `eup_statistic`, one row per tracked player. Every store
also stamps `event.last_refresh` in the same transaction, so an empty
snapshot (no player has started) still counts as stored. Freshness is
measured in whole days.
"""

import asyncpg
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional, Sequence

from models import EventDetails, PlayerAssignment, RefreshSource, Scores, ScoresAndLastRefresh, utc_now
from database.base import StepFactors, StorageBackend, step_factors_from_golfers
from database.connection import DatabasePool
from database.converters import (
    assignment_from_row,
    event_from_row,
    scores_from_rows,
    statistic_to_row,
)
from database.exceptions import DuplicateError, IntegrityError, NotFoundError, StorageError

logger = logging.getLogger(__name__)

_GOLFERS_SQL = """
    SELECT eup.eup_id, g.espn_id, g.name AS golfer_name, b.name AS bettor_name,
           eup.grp, eup.score_view_step_factor
    FROM event_user_player eup
    JOIN event e ON e.event_id = eup.event_id
    JOIN golfer g ON g.golfer_id = eup.golfer_id
    JOIN bettor b ON b.user_id = eup.user_id
    WHERE e.espn_id = $1
    ORDER BY eup.grp, eup.eup_id
"""

_SCORES_SQL = """
    SELECT eup.eup_id, g.espn_id, g.name AS golfer_name, b.name AS bettor_name,
           eup.grp, eup.score_view_step_factor,
           s.rounds, s.round_scores, s.tee_times, s.holes_completed_by_round,
           s.line_scores, s.data_quality, s.total_score, s.ins_ts
    FROM eup_statistic s
    JOIN event_user_player eup ON eup.eup_id = s.eup_id
    JOIN golfer g ON g.golfer_id = eup.golfer_id
    JOIN bettor b ON b.user_id = eup.user_id
    WHERE s.event_espn_id = $1
    ORDER BY eup.grp, eup.eup_id
"""

_LAST_REFRESH_SQL = "SELECT last_refresh FROM event WHERE espn_id = $1"

_INSERT_STATISTIC_SQL = """
    INSERT INTO eup_statistic
    (event_espn_id, golfer_espn_id, eup_id, grp, rounds, round_scores,
     tee_times, holes_completed_by_round, line_scores, data_quality,
     total_score, ins_ts)
    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12)
"""


class SqlStorage(StorageBackend):
    """Async storage backed by an asyncpg pool."""

    name = "sql"
    # smallest positive age in whole days
    refresh_max_age = 1

    def __init__(self, pool: asyncpg.Pool, database: Optional[DatabasePool] = None):
        self._pool = pool
        self._database = database

    # ================================================================
    # Private helpers
    # ================================================================

    @asynccontextmanager
    async def _connection(self):
        """Acquire a connection and translate driver errors."""
        try:
            async with self._pool.acquire() as conn:
                yield conn
        except asyncpg.UniqueViolationError as e:
            raise DuplicateError(str(e)) from e
        except asyncpg.ForeignKeyViolationError as e:
            raise IntegrityError(str(e)) from e
        except (asyncpg.PostgresError, OSError) as e:
            raise StorageError(f"Database error: {e}") from e

    async def _replace_statistics(
        self, conn, event_id: int, scores: Sequence[Scores], stamp: datetime
    ) -> None:
        await conn.execute(
            "DELETE FROM eup_statistic WHERE event_espn_id = $1", event_id
        )
        rows = [statistic_to_row(event_id, s) + (stamp,) for s in scores]
        if rows:
            await conn.executemany(_INSERT_STATISTIC_SQL, rows)
        await conn.execute(
            "UPDATE event SET last_refresh = $2 WHERE espn_id = $1", event_id, stamp
        )

    # ================================================================
    # Read
    # ================================================================

    async def get_event_details(self, event_id: int) -> EventDetails:
        async with self._connection() as conn:
            row = await conn.fetchrow(
                """SELECT espn_id, name, score_view_step_factor,
                          refresh_from_espn, end_date
                   FROM event WHERE espn_id = $1""",
                event_id,
            )
        if not row:
            raise NotFoundError(f"Event {event_id} not found")
        return event_from_row(row)

    async def get_golfers_for_event(self, event_id: int) -> List[PlayerAssignment]:
        async with self._connection() as conn:
            rows = await conn.fetch(_GOLFERS_SQL, event_id)
        if not rows:
            raise NotFoundError(f"No golfers found for event {event_id}")
        return [assignment_from_row(r) for r in rows]

    async def get_player_step_factors(self, event_id: int) -> StepFactors:
        return step_factors_from_golfers(await self.get_golfers_for_event(event_id))

    async def get_scores(self, event_id: int, source: RefreshSource) -> ScoresAndLastRefresh:
        async with self._connection() as conn:
            last_refresh = await conn.fetchval(_LAST_REFRESH_SQL, event_id)
            if last_refresh is None:
                raise NotFoundError(f"No scores stored for event {event_id}")
            rows = await conn.fetch(_SCORES_SQL, event_id)
        return ScoresAndLastRefresh(
            score_struct=scores_from_rows(rows),
            last_refresh=last_refresh,
            last_refresh_source=source,
        )

    async def get_last_refresh(self, event_id: int) -> Optional[datetime]:
        async with self._connection() as conn:
            return await conn.fetchval(_LAST_REFRESH_SQL, event_id)

    def is_within_max_age(self, last_refresh: datetime, now: datetime, max_age: int) -> bool:
        return (now - last_refresh).days <= max_age

    # ================================================================
    # Write
    # ================================================================

    async def store_scores(self, event_id: int, scores: Sequence[Scores]) -> None:
        """Delete and re-insert the event's statistics in one transaction."""
        async with self._connection() as conn:
            async with conn.transaction():
                await self._replace_statistics(conn, event_id, scores, utc_now())
        logger.info(f"Stored {len(scores)} score rows for event {event_id}")

    async def seed_event(
        self,
        event_id: int,
        details: EventDetails,
        golfers: Sequence[PlayerAssignment],
        scores: Optional[Sequence[Scores]] = None,
        last_refresh: Optional[datetime] = None,
    ) -> None:
        async with self._connection() as conn:
            async with conn.transaction():
                event_pk = await conn.fetchval(
                    """INSERT INTO event
                       (espn_id, name, score_view_step_factor, refresh_from_espn, end_date)
                       VALUES ($1, $2, $3, $4, $5)
                       ON CONFLICT (espn_id) DO UPDATE SET
                           name = EXCLUDED.name,
                           score_view_step_factor = EXCLUDED.score_view_step_factor,
                           refresh_from_espn = EXCLUDED.refresh_from_espn,
                           end_date = EXCLUDED.end_date
                       RETURNING event_id""",
                    event_id, details.event_name, details.score_view_step_factor,
                    details.refresh_from_espn, details.end_date,
                )

                for golfer in golfers:
                    golfer_pk = await conn.fetchval(
                        """INSERT INTO golfer (espn_id, name) VALUES ($1, $2)
                           ON CONFLICT (espn_id) DO UPDATE SET name = EXCLUDED.name
                           RETURNING golfer_id""",
                        golfer.espn_id, golfer.golfer_name,
                    )
                    bettor_pk = await conn.fetchval(
                        """INSERT INTO bettor (name) VALUES ($1)
                           ON CONFLICT (name) DO UPDATE SET name = EXCLUDED.name
                           RETURNING user_id""",
                        golfer.bettor_name,
                    )
                    await conn.execute(
                        """INSERT INTO event_user_player
                           (eup_id, event_id, user_id, golfer_id, grp, score_view_step_factor)
                           VALUES ($1, $2, $3, $4, $5, $6)
                           ON CONFLICT (eup_id) DO UPDATE SET
                               grp = EXCLUDED.grp,
                               score_view_step_factor = EXCLUDED.score_view_step_factor""",
                        golfer.eup_id, event_pk, bettor_pk, golfer_pk,
                        golfer.group, golfer.score_view_step_factor,
                    )

                if scores is not None:
                    await self._replace_statistics(
                        conn, event_id, scores, last_refresh or utc_now()
                    )
        logger.info(f"Seeded event {event_id} with {len(golfers)} golfers")

    async def delete_scores(self, event_id: int) -> bool:
        async with self._connection() as conn:
            async with conn.transaction():
                result = await conn.execute(
                    "DELETE FROM eup_statistic WHERE event_espn_id = $1", event_id
                )
                cleared = await conn.fetchval(
                    """UPDATE event SET last_refresh = NULL
                       WHERE espn_id = $1 AND last_refresh IS NOT NULL
                       RETURNING espn_id""",
                    event_id,
                )
        return result != "DELETE 0" or cleared is not None

    async def update_end_date(self, event_id: int, end_date: Optional[str]) -> EventDetails:
        async with self._connection() as conn:
            row = await conn.fetchrow(
                """UPDATE event SET end_date = $2 WHERE espn_id = $1
                   RETURNING espn_id, name, score_view_step_factor,
                             refresh_from_espn, end_date""",
                event_id, end_date,
            )
        if not row:
            raise NotFoundError(f"Event {event_id} not found")
        return event_from_row(row)

    # ================================================================
    # Lifecycle
    # ================================================================

    async def close(self) -> None:
        if self._database is not None:
            await self._database.close()

    async def health_check(self) -> bool:
        if self._database is not None:
            return await self._database.health_check()
        return True
