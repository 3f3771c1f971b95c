"""Admin triggers: seeding, cleanup, end-date updates and forced provider failure."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from database.base import StorageBackend
from database.exceptions import NotFoundError, StorageError
from provider.client import ProviderClient
from api.dependencies import get_provider, get_storage
from api.schemas import (
    DeleteScoresResponse,
    EndDateUpdate,
    ProviderFailureResponse,
    ProviderFailureToggle,
    SeedEventRequest,
    SeedEventResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/events/{event_id}/seed", response_model=SeedEventResponse)
async def seed_event(
    event_id: int,
    req: SeedEventRequest,
    storage: StorageBackend = Depends(get_storage),
):
    try:
        await storage.seed_event(
            event_id,
            req.to_event_details(event_id),
            req.golfers,
            req.score_struct,
            req.naive_last_refresh(),
        )
    except StorageError as e:
        raise HTTPException(500, str(e))
    logger.info(f"Admin seeded event {event_id}")
    return SeedEventResponse(
        event_id=event_id,
        golfers=len(req.golfers),
        scores=len(req.score_struct or []),
    )


@router.delete("/events/{event_id}/scores", response_model=DeleteScoresResponse)
async def delete_scores(event_id: int, storage: StorageBackend = Depends(get_storage)):
    try:
        deleted = await storage.delete_scores(event_id)
    except StorageError as e:
        raise HTTPException(500, str(e))
    return DeleteScoresResponse(event_id=event_id, deleted=deleted)


@router.put("/events/{event_id}/end-date")
async def update_end_date(
    event_id: int,
    req: EndDateUpdate,
    storage: StorageBackend = Depends(get_storage),
):
    try:
        return await storage.update_end_date(event_id, req.end_date)
    except NotFoundError:
        raise HTTPException(404, "Event not found")
    except StorageError as e:
        raise HTTPException(500, str(e))


@router.put("/provider/failure", response_model=ProviderFailureResponse)
async def set_provider_failure(
    req: ProviderFailureToggle,
    provider: ProviderClient = Depends(get_provider),
):
    provider.set_forced_failure(req.event_id, req.enabled)
    logger.warning(
        f"Forced provider failure {'enabled' if req.enabled else 'disabled'} for event {req.event_id}"
    )
    return ProviderFailureResponse(
        event_id=req.event_id, forced_failure=provider.is_failure_forced(req.event_id)
    )
