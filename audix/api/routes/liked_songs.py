"""
Liked Songs API Routes
"""

from __future__ import annotations

import logging
from typing import Any, NoReturn

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from audix.api.auth import get_current_user_id
from audix.services.errors import InvalidArgumentError, NotFoundError, TransientStoreError
from audix.services.liked_songs import LikedSongsService, get_liked_songs_service

router = APIRouter()
logger = logging.getLogger(__name__)


class ToggleLikeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    song_id: str | None = Field(default=None, alias="songId")


class BulkStatusRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    song_ids: list[str] | None = Field(default=None, alias="songIds")


def _raise_for(error: Exception, action: str) -> NoReturn:
    if isinstance(error, InvalidArgumentError):
        raise HTTPException(status_code=400, detail=str(error))
    if isinstance(error, NotFoundError):
        raise HTTPException(status_code=404, detail=str(error))
    if isinstance(error, TransientStoreError):
        raise HTTPException(status_code=503, detail=str(error))
    logger.exception(f"Failed to {action}")
    raise HTTPException(status_code=500, detail=str(error))


@router.get("/")
def list_liked_songs(
    user_id: str = Depends(get_current_user_id),
    service: LikedSongsService = Depends(get_liked_songs_service),
) -> list[dict[str, Any]]:
    """Liked songs for the caller, newest like first."""
    try:
        return [liked.to_payload() for liked in service.list_liked(user_id)]
    except Exception as e:
        _raise_for(e, "list liked songs")


@router.get("/check/{song_id}")
def check_song_liked(
    song_id: str,
    user_id: str = Depends(get_current_user_id),
    service: LikedSongsService = Depends(get_liked_songs_service),
) -> dict[str, Any]:
    try:
        return {"liked": service.is_liked(user_id, song_id)}
    except Exception as e:
        _raise_for(e, "check liked song")


@router.post("/check-bulk")
def check_bulk_like_status(
    payload: BulkStatusRequest,
    user_id: str = Depends(get_current_user_id),
    service: LikedSongsService = Depends(get_liked_songs_service),
) -> dict[str, bool]:
    """Map each requested song id to whether the caller likes it."""
    try:
        return service.bulk_status(user_id, payload.song_ids)
    except Exception as e:
        _raise_for(e, "check bulk like status")


@router.post("/toggle")
def toggle_like(
    payload: ToggleLikeRequest,
    user_id: str = Depends(get_current_user_id),
    service: LikedSongsService = Depends(get_liked_songs_service),
) -> dict[str, Any]:
    try:
        liked = service.toggle(user_id, payload.song_id)
    except Exception as e:
        _raise_for(e, "toggle like")

    return {
        "message": "Song liked successfully" if liked else "Song unliked successfully",
        "liked": liked,
        "songId": payload.song_id.strip(),
    }
