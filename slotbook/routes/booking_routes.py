from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from slotbook.database import get_db
from slotbook.routes.availability_routes import SlotResponse
from slotbook.routes.http_errors import database_unavailable, to_http_exception
from slotbook.services.booking_coordinator import BookingCoordinator
from slotbook.services.errors import SlotServiceError
from slotbook.services.slot_store import SlotStore

router = APIRouter(tags=['booking'])


class CreateBookingRequest(BaseModel):
    availability_id: int
    booked_by_name: str
    booked_by_email: str

    @field_validator('booked_by_name')
    @classmethod
    def normalize_name(cls, value: str) -> str:
        return value.strip()

    @field_validator('booked_by_email')
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class BookingResponse(BaseModel):
    id: int
    availability_id: int
    booked_by_name: str
    booked_by_email: str
    created_at: datetime

    class Config:
        from_attributes = True


@router.get('/users/{owner_id}/slots', response_model=list[SlotResponse])
def list_open_slots(owner_id: int, db: Session = Depends(get_db)):
    try:
        return SlotStore(db).list_slots(owner_id, exclude_booked=True)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('', response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(data: CreateBookingRequest, db: Session = Depends(get_db)):
    try:
        return BookingCoordinator(db).book(
            data.availability_id,
            data.booked_by_name,
            data.booked_by_email,
        )
    except SlotServiceError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
