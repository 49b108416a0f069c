from datetime import date, datetime, time

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from slotbook.auth.dependencies import get_current_owner
from slotbook.database import get_db
from slotbook.models.user import User
from slotbook.routes.http_errors import database_unavailable, to_http_exception
from slotbook.services.booking_coordinator import BookingCoordinator
from slotbook.services.errors import SlotServiceError
from slotbook.services.slot_store import SlotStore

router = APIRouter(tags=['availability'])


class CreateSlotRequest(BaseModel):
    date: date
    start_time: str
    end_time: str
    description: str

    @field_validator('start_time', 'end_time', 'description')
    @classmethod
    def strip_text(cls, value: str) -> str:
        return value.strip()


class UpdateSlotRequest(BaseModel):
    slot_date: date | None = Field(default=None, alias='date')
    start_time: str | None = None
    end_time: str | None = None
    description: str | None = None

    @field_validator('start_time', 'end_time', 'description')
    @classmethod
    def strip_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip()


class SlotResponse(BaseModel):
    id: int
    date: date
    start_time: time
    end_time: time
    description: str
    is_booked: bool

    class Config:
        from_attributes = True


class BookedSlotInfo(BaseModel):
    date: date
    start_time: time
    end_time: time
    description: str

    class Config:
        from_attributes = True


class OwnerBookingResponse(BaseModel):
    id: int
    availability_id: int
    booked_by_name: str
    booked_by_email: str
    created_at: datetime
    slot: BookedSlotInfo


@router.post('/slots', response_model=SlotResponse, status_code=status.HTTP_201_CREATED)
def create_slot(
    data: CreateSlotRequest,
    current_owner: User = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    try:
        return SlotStore(db).create_slot(
            owner_id=current_owner.id,
            slot_date=data.date,
            start_time=data.start_time,
            end_time=data.end_time,
            description=data.description,
        )
    except SlotServiceError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('/slots', response_model=list[SlotResponse])
def list_my_slots(
    current_owner: User = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    try:
        return SlotStore(db).list_slots(current_owner.id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.put('/slots/{slot_id}', response_model=SlotResponse)
def update_slot(
    slot_id: int,
    data: UpdateSlotRequest,
    current_owner: User = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    try:
        return SlotStore(db).update_slot(
            slot_id,
            current_owner.id,
            slot_date=data.slot_date,
            start_time=data.start_time,
            end_time=data.end_time,
            description=data.description,
        )
    except SlotServiceError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.delete('/slots/{slot_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_slot(
    slot_id: int,
    current_owner: User = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    try:
        SlotStore(db).delete_slot(slot_id, current_owner.id)
    except SlotServiceError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get('/bookings', response_model=list[OwnerBookingResponse])
def list_my_bookings(
    current_owner: User = Depends(get_current_owner),
    db: Session = Depends(get_db),
):
    try:
        bookings = BookingCoordinator(db).get_bookings_for_owner(current_owner.id)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return [
        OwnerBookingResponse(
            id=booking.id,
            availability_id=booking.availability_id,
            booked_by_name=booking.booked_by_name,
            booked_by_email=booking.booked_by_email,
            created_at=booking.created_at,
            slot=BookedSlotInfo.model_validate(slot),
        )
        for booking, slot in bookings
    ]
