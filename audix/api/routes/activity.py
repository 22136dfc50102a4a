"""
Listening Activity API Routes

Endpoints for logging plays and reading the activity views.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from audix.api.auth import get_current_user_id
from audix.services.activity_service import ActivityService, get_activity_service
from audix.services.errors import InvalidArgumentError, NotFoundError, TransientStoreError

router = APIRouter()
logger = logging.getLogger(__name__)


class LogActivityRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    song_id: str | None = Field(default=None, alias="songId")
    play_duration: Any = Field(default=None, alias="playDuration")


@router.post("/log")
def log_activity(
    payload: LogActivityRequest,
    user_id: str = Depends(get_current_user_id),
    service: ActivityService = Depends(get_activity_service),
) -> dict[str, Any]:
    """
    Record a flushed play session.

    Called by the player when a play episode of at least five seconds ends.
    """
    try:
        record = service.log_play(user_id, payload.song_id, payload.play_duration)
        return {"message": "Activity updated", "activity": record.to_payload()}
    except InvalidArgumentError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except TransientStoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.exception("Failed to log activity")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/recent")
def get_recently_played(
    user_id: str = Depends(get_current_user_id),
    service: ActivityService = Depends(get_activity_service),
) -> list[dict[str, Any]]:
    """Most recently played songs, newest first."""
    return [record.to_payload() for record in service.recently_played(user_id)]


@router.get("/most-played")
def get_most_played(
    user_id: str = Depends(get_current_user_id),
    service: ActivityService = Depends(get_activity_service),
) -> list[dict[str, Any]]:
    return [record.to_payload() for record in service.most_played(user_id)]


@router.get("/top-artists")
def get_top_artists(
    user_id: str = Depends(get_current_user_id),
    service: ActivityService = Depends(get_activity_service),
) -> list[dict[str, Any]]:
    """Artists ranked by total plays, using the artist recorded at first play."""
    return [artist.to_payload() for artist in service.top_artists(user_id)]


@router.get("/summary")
def get_listening_summary(
    user_id: str = Depends(get_current_user_id),
    service: ActivityService = Depends(get_activity_service),
) -> dict[str, Any]:
    return service.listening_summary(user_id).to_payload()


@router.get("/all")
def get_all_activity(
    user_id: str = Depends(get_current_user_id),
    service: ActivityService = Depends(get_activity_service),
) -> dict[str, Any]:
    """
    Get everything the activity page shows in one call.

    A failing view is returned as its empty default instead of failing the
    request.
    """
    return service.get_all_activity(user_id).to_payload()
