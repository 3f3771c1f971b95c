"""Last-known-good score sources used when the provider is unavailable."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, List, Optional, Protocol, Sequence

from models import PlayerAssignment, PlayerJsonResponse, Scores
from database.object_store import ObjectStore
from database.s3_storage import espn_cache_key
from provider.normalizer import merge_statistics_with_scores, normalize_payload

logger = logging.getLogger(__name__)


class FallbackSource(Protocol):
    """Interface for offline score sources.

    Any class with a matching `load` satisfies this protocol.
    """

    async def load(
        self, event_id: int, roster: Sequence[PlayerAssignment]
    ) -> Optional[List[Scores]]:
        """Return normalized rows for the event, or None when nothing is available.

        Raises ValueError when a document exists but cannot be read as scores.
        """
        ...


class NullFallback:
    """Placeholder that never has anything. Provider errors propagate."""

    async def load(
        self, event_id: int, roster: Sequence[PlayerAssignment]
    ) -> Optional[List[Scores]]:
        return None


def scores_from_document(doc: Any, roster: Sequence[PlayerAssignment]) -> List[Scores]:
    """Accept any of the shapes a cached document may take.

    * `{"score_struct": [...]}` (also a full stored snapshot)
    * a bare list of score rows
    * a raw provider payload `{"data": [...], "eup_ids": [...]}`, normalized
      and joined to `roster`
    """
    if isinstance(doc, dict) and "score_struct" in doc:
        rows = doc["score_struct"]
    elif isinstance(doc, list):
        rows = doc
    elif isinstance(doc, dict) and "data" in doc and "eup_ids" in doc:
        payload = PlayerJsonResponse.model_validate(doc)
        return merge_statistics_with_scores(normalize_payload(payload), roster)
    else:
        raise ValueError("Fallback document has no score_struct, rows or provider payload")

    scores = [Scores.model_validate(r) for r in rows]
    return sorted(scores, key=lambda s: (s.group, s.eup_id))


class FixtureFallback:
    """Reads a JSON fixture from disk.

    `path` may be a single file (used for every event) or a directory of
    `{event_id}.json` files.
    """

    def __init__(self, path):
        self.path = Path(path)

    def _resolve(self, event_id: int) -> Path:
        if self.path.is_dir():
            return self.path / f"{event_id}.json"
        return self.path

    async def load(
        self, event_id: int, roster: Sequence[PlayerAssignment]
    ) -> Optional[List[Scores]]:
        path = self._resolve(event_id)
        if not path.exists():
            return None
        text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        scores = scores_from_document(json.loads(text), roster)
        logger.warning(f"Falling back to offline fixture {path} for event {event_id}")
        return scores


class ObjectStoreFallback:
    """Reads `cache/espn/{event_id}.json` from the bucket."""

    def __init__(self, store: ObjectStore):
        self._store = store

    @staticmethod
    def cache_key(event_id: int) -> str:
        return espn_cache_key(event_id)

    async def load(
        self, event_id: int, roster: Sequence[PlayerAssignment]
    ) -> Optional[List[Scores]]:
        doc = await self._store.get_json(self.cache_key(event_id))
        if doc is None:
            return None
        scores = scores_from_document(doc, roster)
        logger.warning(
            f"Falling back to cached provider document {self.cache_key(event_id)} "
            f"for event {event_id}"
        )
        return scores
