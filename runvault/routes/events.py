"""Event routes.

Only what the folder lifecycle needs: create (with initial photos),
attach more photos, delete.
"""
from datetime import date

from fastapi import APIRouter, Request
from pydantic import BaseModel

from ..dependencies import require_user, get_event_service

router = APIRouter(prefix="/api/events", tags=["events"])


class EventCreate(BaseModel):
    event_date: date
    title: str | None = None
    photo_ids: list[str] = []


class EventPhotos(BaseModel):
    photo_ids: list[str]


@router.post("", status_code=201)
def create_event(request: Request, data: EventCreate):
    """Create an event; its folder is created alongside."""
    user = require_user(request)
    event = get_event_service().create_event(
        data.event_date, user["id"], title=data.title, photo_ids=data.photo_ids
    )
    return {"status": "ok", "event": event}


@router.post("/{event_id}/photos")
def attach_photos(request: Request, event_id: str, data: EventPhotos):
    """Append photos to an event."""
    user = require_user(request)
    result = get_event_service().attach_photos(event_id, data.photo_ids, user["id"])
    return {"status": "ok", **result}


@router.delete("/{event_id}")
async def delete_event(request: Request, event_id: str):
    """Delete an event with its folder, photos and stored objects."""
    user = require_user(request)
    report = await get_event_service().delete_event(event_id, user["id"])
    return {"status": "ok", **report}
