"""Administrative routes — unfiltered views over all events."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from partake.database import get_db
from partake.schemas.event import EventOut
from partake.services import event_service
from partake.services.pagination import CursorPage, map_page

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/events", response_model=CursorPage[EventOut])
def list_all_events(
    cursor: Optional[str] = Query(None, description="Cursor from the previous page"),
    limit: Optional[int] = Query(None, ge=1),
    include_cancelled: bool = Query(False),
    organizer_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """Every event, private and draft included, using keyset pagination."""
    logger.info("Admin listing all events (cursor=%s, limit=%s)", cursor, limit)
    page = event_service.list_events(
        db, cursor=cursor, limit=limit, include_cancelled=include_cancelled, organizer_id=organizer_id,
    )
    return map_page(page, EventOut.model_validate)
