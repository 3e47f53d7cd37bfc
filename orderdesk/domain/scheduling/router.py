"""Scheduling router - slot availability for the booking form"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...cache import Cache, get_cache
from ...database import get_db
from ...errors import ValidationError
from ..orders.schemas import SlotsResponse
from .availability_service import AvailabilityService

router = APIRouter(prefix="/slots", tags=["Scheduling"])


def get_availability_service(
    db: Session = Depends(get_db), cache: Cache = Depends(get_cache)
) -> AvailabilityService:
    """Dependency injection for AvailabilityService"""
    return AvailabilityService(db, cache)


@router.get("", response_model=SlotsResponse)
def get_available_slots(
    date: Optional[str] = Query(None),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Free delivery times for a date; an empty list means the date is fully booked"""
    if not date:
        raise ValidationError("No date selected")
    try:
        availability = service.get_available_slots(date)
    except ValueError as e:
        raise ValidationError("Date must be in YYYY-MM-DD format") from e
    return SlotsResponse(
        date=availability.delivery_date,
        slots=list(availability.slots),
        fully_booked=availability.fully_booked,
    )
