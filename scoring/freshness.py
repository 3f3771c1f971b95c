"""How long a stored snapshot may be served before the provider is asked again."""

from database.base import StorageBackend
from database.exceptions import NotFoundError

ENDED_EVENT_MAX_AGE = -1
NO_CACHE_MAX_AGE = 0


async def cache_max_age_for_event(storage: StorageBackend, event_id: int) -> int:
    """Max age (in the backend's unit) derived from event details.

    Ended events get -1; the end-date rule in `is_cache_fresh` makes them
    permanently fresh. Events with scheduled refresh enabled get the
    backend's `refresh_max_age` (1 day for SQL, 300 seconds for the object
    store and edge backends); all others, and unknown events, get 0
    (always refresh).
    """
    try:
        details = await storage.get_event_details(event_id)
    except NotFoundError:
        return NO_CACHE_MAX_AGE

    if details.has_ended():
        return ENDED_EVENT_MAX_AGE
    if details.refresh_from_espn == 1:
        return storage.refresh_max_age
    return NO_CACHE_MAX_AGE
