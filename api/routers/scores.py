"""Score view endpoint."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from database.base import StorageBackend
from database.exceptions import NotFoundError, StorageError
from provider.exceptions import ProviderError
from scoring.context import load_score_context
from scoring.coordinator import RefreshCoordinator
from scoring.exceptions import ConfigError
from scoring.request import parse_score_request
from api.dependencies import get_coordinator, get_storage

logger = logging.getLogger(__name__)

router = APIRouter()

# Hole-by-hole detail is only sent for the expanded view.
_COLLAPSED_SNAPSHOT_EXCLUDE = {"score_struct": {"__all__": {"detailed_statistics": {"line_scores"}}}}
_COLLAPSED_EXCLUDE = {"snapshot": _COLLAPSED_SNAPSHOT_EXCLUDE}


@router.get("")
async def get_scores(
    request: Request,
    coordinator: RefreshCoordinator = Depends(get_coordinator),
    storage: StorageBackend = Depends(get_storage),
):
    """Scoreboard, per-round summary, per-golfer detail and bar geometry.

    Query: `event` and `yr` (required), `cache=0` to force a refresh,
    `expanded=1` to include line scores, `json=1` for the bare snapshot.
    """
    try:
        score_request = parse_score_request(dict(request.query_params))
    except ConfigError as e:
        raise HTTPException(400, str(e))

    try:
        view = await load_score_context(coordinator, storage, score_request)
    except NotFoundError as e:
        raise HTTPException(404, str(e))
    except ProviderError as e:
        raise HTTPException(502, str(e))
    except StorageError as e:
        logger.error(f"Storage failure for event {score_request.event_id}: {e}")
        raise HTTPException(500, str(e))

    if score_request.want_json:
        exclude = None if score_request.expanded else _COLLAPSED_SNAPSHOT_EXCLUDE
        return view.snapshot.model_dump(mode="json", exclude=exclude)

    exclude = None if score_request.expanded else _COLLAPSED_EXCLUDE
    return view.model_dump(mode="json", exclude=exclude)
