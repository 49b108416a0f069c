"""The only path that creates bookings.

Concurrent attempts on one slot are settled by the database: the slot row is
locked for the unit of work where the backend supports ``SELECT ... FOR
UPDATE``, and the unique constraint on ``bookings.availability_id`` rejects any
second insert that slipped past the booked check. Exactly one attempt commits;
the others see ``SlotUnavailableError``.
"""

import logging
import re

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from slotbook.core import config
from slotbook.models.availability import AvailabilitySlot
from slotbook.models.booking import Booking
from slotbook.services.errors import NotFoundError, SlotServiceError, SlotUnavailableError, ValidationError
from slotbook.services.slot_store import SlotStore

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')


def normalize_booker_name(value: str | None) -> str:
    normalized = (value or '').strip()
    if not normalized:
        raise ValidationError('Name is required.')
    if len(normalized) > config.MAX_TEXT_LENGTH:
        raise ValidationError(f'Name must be {config.MAX_TEXT_LENGTH} characters or fewer.')
    return normalized


def normalize_booker_email(value: str | None) -> str:
    normalized = (value or '').strip().lower()
    if not EMAIL_PATTERN.match(normalized) or len(normalized) > config.MAX_TEXT_LENGTH:
        raise ValidationError('Please enter a valid email address.')
    return normalized


class BookingCoordinator:
    def __init__(self, db: Session, slot_store: SlotStore | None = None) -> None:
        self.db = db
        self.slot_store = slot_store or SlotStore(db)

    def book(self, slot_id: int, booker_name: str, booker_email: str) -> Booking:
        name = normalize_booker_name(booker_name)
        email = normalize_booker_email(booker_email)

        try:
            slot = self.slot_store.find_slot(slot_id, for_update=True)
            if slot is None:
                raise NotFoundError()

            if self.slot_store.has_booking(slot.id):
                raise SlotUnavailableError()

            booking = self.slot_store.add_booking(slot, name, email)
            self.db.commit()
        except SlotServiceError:
            self.db.rollback()
            raise
        except IntegrityError as exc:
            self.db.rollback()
            logger.warning('Booking for slot %s lost to a concurrent booking', slot_id)
            raise SlotUnavailableError() from exc
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info('Slot %s booked by %s (booking %s)', slot_id, email, booking.id)
        return booking

    def get_bookings_for_owner(self, owner_id: int) -> list[tuple[Booking, AvailabilitySlot]]:
        return self.slot_store.bookings_for_owner(owner_id)
