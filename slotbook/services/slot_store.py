"""Persistence of availability slots and their bookings, scoped by owner."""

import logging
from datetime import date, datetime, time

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from slotbook.core import config
from slotbook.models.availability import AvailabilitySlot
from slotbook.models.booking import Booking
from slotbook.models.user import User
from slotbook.services.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

TIME_INPUT_FORMATS = ('%H:%M:%S', '%H:%M')

# Integer primary keys are signed 64-bit in every supported backend.
MAX_ROW_ID = 2**63 - 1


def is_storable_id(value: int) -> bool:
    return 0 < value <= MAX_ROW_ID


def normalize_time(value: time | str | None, field_name: str) -> time:
    """Parse ``HH:MM`` or ``HH:MM:SS`` into a time with whole seconds."""
    if isinstance(value, time):
        return value.replace(microsecond=0, tzinfo=None)

    text = (value or '').strip() if isinstance(value, str) else ''
    if not text:
        raise ValidationError(f'{field_name} is required.')

    for time_format in TIME_INPUT_FORMATS:
        try:
            return datetime.strptime(text, time_format).time()
        except ValueError:
            continue

    raise ValidationError(f'{field_name} must be formatted as HH:MM or HH:MM:SS.')


def format_time(value: time) -> str:
    return value.strftime('%H:%M:%S')


def normalize_date(value: date | str | None) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = (value or '').strip() if isinstance(value, str) else ''
    if not text:
        raise ValidationError('Date is required.')

    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise ValidationError('Date must be formatted as YYYY-MM-DD.') from exc


def normalize_description(value: str | None) -> str:
    normalized = (value or '').strip()
    if not normalized:
        raise ValidationError('Description is required.')
    if len(normalized) > config.MAX_TEXT_LENGTH:
        raise ValidationError(f'Description must be {config.MAX_TEXT_LENGTH} characters or fewer.')
    return normalized


def validate_time_range(start_time: time, end_time: time) -> None:
    if start_time >= end_time:
        raise ValidationError('Start time must be before end time.')


class SlotStore:
    """Slot and booking storage for one request scoped session."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def create_slot(
        self,
        owner_id: int,
        slot_date: date | str,
        start_time: time | str,
        end_time: time | str,
        description: str,
    ) -> AvailabilitySlot:
        normalized_date = normalize_date(slot_date)
        slot_start = normalize_time(start_time, 'Start time')
        slot_end = normalize_time(end_time, 'End time')
        validate_time_range(slot_start, slot_end)
        slot_description = normalize_description(description)

        if not is_storable_id(owner_id) or self.db.get(User, owner_id) is None:
            raise NotFoundError('Owner not found.')

        slot = AvailabilitySlot(
            user_id=owner_id,
            date=normalized_date,
            start_time=slot_start,
            end_time=slot_end,
            description=slot_description,
        )
        self.db.add(slot)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise NotFoundError('Owner not found.') from exc
        self.db.refresh(slot)

        logger.info('Created slot %s for owner %s on %s %s-%s', slot.id, owner_id, normalized_date,
                    format_time(slot_start), format_time(slot_end))
        return slot

    def update_slot(
        self,
        slot_id: int,
        owner_id: int,
        slot_date: date | str | None = None,
        start_time: time | str | None = None,
        end_time: time | str | None = None,
        description: str | None = None,
    ) -> AvailabilitySlot:
        slot = self._get_owned_slot(slot_id, owner_id)

        try:
            if self.has_booking(slot.id):
                raise ConflictError()

            new_date = normalize_date(slot_date) if slot_date is not None else slot.date
            new_start = normalize_time(start_time, 'Start time') if start_time is not None else slot.start_time
            new_end = normalize_time(end_time, 'End time') if end_time is not None else slot.end_time
            validate_time_range(new_start, new_end)
            new_description = normalize_description(description) if description is not None else slot.description
        except (ConflictError, ValidationError):
            self.db.rollback()
            raise

        # A booking may commit after the check above; the write only lands while none exists.
        booked = self.db.query(Booking.id).filter(Booking.availability_id == slot.id).exists()
        result = self.db.execute(
            update(AvailabilitySlot)
            .where(
                AvailabilitySlot.id == slot.id,
                AvailabilitySlot.user_id == owner_id,
                ~booked,
            )
            .values(
                date=new_date,
                start_time=new_start,
                end_time=new_end,
                description=new_description,
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            self.db.rollback()
            still_owned = self.db.query(AvailabilitySlot.id).filter(
                AvailabilitySlot.id == slot_id,
                AvailabilitySlot.user_id == owner_id,
            ).first()
            if still_owned is None:
                raise NotFoundError()
            raise ConflictError()

        self.db.commit()
        self.db.refresh(slot)

        logger.info('Updated slot %s for owner %s', slot.id, owner_id)
        return slot

    def delete_slot(self, slot_id: int, owner_id: int) -> None:
        slot = self._get_owned_slot(slot_id, owner_id)

        if slot.booking is not None:
            logger.warning('Deleting booked slot %s also removes booking %s', slot.id, slot.booking.id)

        self.db.delete(slot)
        self.db.commit()

        logger.info('Deleted slot %s for owner %s', slot_id, owner_id)

    def list_slots(self, owner_id: int, exclude_booked: bool = False) -> list[AvailabilitySlot]:
        if not is_storable_id(owner_id):
            return []

        query = self.db.query(AvailabilitySlot).options(
            selectinload(AvailabilitySlot.booking),
        ).filter(AvailabilitySlot.user_id == owner_id).populate_existing()

        if exclude_booked:
            query = query.filter(~AvailabilitySlot.booking.has())

        return query.order_by(
            AvailabilitySlot.date.asc(),
            AvailabilitySlot.start_time.asc(),
            AvailabilitySlot.id.asc(),
        ).all()

    def find_slot(self, slot_id: int, for_update: bool = False) -> AvailabilitySlot | None:
        if not is_storable_id(slot_id):
            return None

        query = self.db.query(AvailabilitySlot).filter(AvailabilitySlot.id == slot_id).populate_existing()
        if for_update:
            query = query.with_for_update()
        return query.first()

    def has_booking(self, slot_id: int) -> bool:
        return self.db.query(Booking.id).filter(Booking.availability_id == slot_id).first() is not None

    def add_booking(self, slot: AvailabilitySlot, booker_name: str, booker_email: str) -> Booking:
        """Stage a booking for ``slot`` and flush it.

        Does not commit: the caller owns the unit of work and decides whether
        it is committed or rolled back.
        """
        booking = Booking(
            availability_id=slot.id,
            booked_by_name=booker_name,
            booked_by_email=booker_email,
        )
        self.db.add(booking)
        self.db.flush()
        return booking

    def bookings_for_owner(self, owner_id: int) -> list[tuple[Booking, AvailabilitySlot]]:
        rows = self.db.query(Booking, AvailabilitySlot).join(
            AvailabilitySlot,
            Booking.availability_id == AvailabilitySlot.id,
        ).filter(
            AvailabilitySlot.user_id == owner_id,
        ).order_by(
            AvailabilitySlot.date.asc(),
            AvailabilitySlot.start_time.asc(),
            Booking.id.asc(),
        ).all()

        return [(booking, slot) for booking, slot in rows]

    def _get_owned_slot(self, slot_id: int, owner_id: int) -> AvailabilitySlot:
        if not (is_storable_id(slot_id) and is_storable_id(owner_id)):
            raise NotFoundError()

        slot = self.db.query(AvailabilitySlot).filter(
            AvailabilitySlot.id == slot_id,
            AvailabilitySlot.user_id == owner_id,
        ).with_for_update().populate_existing().first()

        if slot is None:
            self.db.rollback()
            raise NotFoundError()

        return slot
