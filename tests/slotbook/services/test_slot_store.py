from datetime import date, time

import pytest

from slotbook.models.booking import Booking
from slotbook.services.booking_coordinator import BookingCoordinator
from slotbook.services.errors import ConflictError, NotFoundError, ValidationError
from slotbook.services.slot_store import SlotStore, format_time, normalize_time


def _create_intro_call(store: SlotStore, owner_id: int, **overrides):
    values = {
        'slot_date': '2025-09-01',
        'start_time': '09:00',
        'end_time': '10:00',
        'description': 'intro call',
    }
    values.update(overrides)
    return store.create_slot(owner_id, **values)


def test_create_slot_is_listed_once_and_unbooked(db, owner) -> None:
    store = SlotStore(db)
    _create_intro_call(store, owner.id)

    slots = store.list_slots(owner.id)

    assert len(slots) == 1
    assert slots[0].date == date(2025, 9, 1)
    assert slots[0].start_time == time(9, 0, 0)
    assert slots[0].end_time == time(10, 0, 0)
    assert slots[0].description == 'intro call'
    assert slots[0].is_booked is False


@pytest.mark.parametrize('raw_value', ['09:30', '09:30:00', ' 09:30 '])
def test_normalize_time_accepts_short_and_long_forms(raw_value: str) -> None:
    assert format_time(normalize_time(raw_value, 'Start time')) == '09:30:00'


@pytest.mark.parametrize(
    ('start_time', 'end_time'),
    [
        ('10:00', '10:00'),
        ('11:00', '10:00'),
        ('10:00:01', '10:00:00'),
    ],
)
def test_create_slot_rejects_start_not_before_end(db, owner, start_time: str, end_time: str) -> None:
    store = SlotStore(db)

    with pytest.raises(ValidationError) as exception_info:
        _create_intro_call(store, owner.id, start_time=start_time, end_time=end_time)

    assert exception_info.value.message == 'Start time must be before end time.'
    assert store.list_slots(owner.id) == []


@pytest.mark.parametrize(
    ('overrides', 'message'),
    [
        ({'slot_date': ''}, 'Date is required.'),
        ({'slot_date': '01/09/2025'}, 'Date must be formatted as YYYY-MM-DD.'),
        ({'start_time': ''}, 'Start time is required.'),
        ({'end_time': '10am'}, 'End time must be formatted as HH:MM or HH:MM:SS.'),
        ({'description': '   '}, 'Description is required.'),
        ({'description': 'x' * 256}, 'Description must be 255 characters or fewer.'),
    ],
)
def test_create_slot_rejects_missing_or_malformed_fields(db, owner, overrides: dict, message: str) -> None:
    with pytest.raises(ValidationError) as exception_info:
        _create_intro_call(SlotStore(db), owner.id, **overrides)

    assert exception_info.value.message == message


def test_create_slot_rejects_unknown_owner(db) -> None:
    with pytest.raises(NotFoundError):
        _create_intro_call(SlotStore(db), 4242)


def test_list_slots_is_scoped_to_owner_and_ordered(db, owner, other_owner) -> None:
    store = SlotStore(db)
    later = _create_intro_call(store, owner.id, slot_date=date(2025, 9, 2))
    earlier = _create_intro_call(store, owner.id, start_time='08:00', end_time='08:30')
    _create_intro_call(store, other_owner.id)

    assert [slot.id for slot in store.list_slots(owner.id)] == [earlier.id, later.id]


def test_list_slots_excluding_booked_omits_booked_slots(db, owner) -> None:
    store = SlotStore(db)
    booked = _create_intro_call(store, owner.id)
    open_slot = _create_intro_call(store, owner.id, start_time='11:00', end_time='11:30')
    BookingCoordinator(db).book(booked.id, 'Bea Booker', 'bea@example.com')

    all_slots = store.list_slots(owner.id)
    open_slots = store.list_slots(owner.id, exclude_booked=True)

    assert {slot.id: slot.is_booked for slot in all_slots} == {booked.id: True, open_slot.id: False}
    assert [slot.id for slot in open_slots] == [open_slot.id]


def test_update_slot_applies_partial_changes(db, owner) -> None:
    store = SlotStore(db)
    slot = _create_intro_call(store, owner.id)

    updated = store.update_slot(slot.id, owner.id, end_time='10:30:00', description='  longer intro  ')

    assert updated.start_time == time(9, 0)
    assert updated.end_time == time(10, 30)
    assert updated.description == 'longer intro'


def test_update_slot_rejects_inverted_range_and_keeps_original(db, owner) -> None:
    store = SlotStore(db)
    slot = _create_intro_call(store, owner.id)

    with pytest.raises(ValidationError):
        store.update_slot(slot.id, owner.id, start_time='10:30')

    assert store.list_slots(owner.id)[0].start_time == time(9, 0)


@pytest.mark.parametrize('operation', ['update', 'delete'])
def test_mismatched_owner_is_reported_as_not_found(db, owner, other_owner, operation: str) -> None:
    store = SlotStore(db)
    slot = _create_intro_call(store, owner.id)

    with pytest.raises(NotFoundError) as exception_info:
        if operation == 'update':
            store.update_slot(slot.id, other_owner.id, description='hijacked')
        else:
            store.delete_slot(slot.id, other_owner.id)

    with pytest.raises(NotFoundError) as missing_info:
        if operation == 'update':
            store.update_slot(999, other_owner.id, description='hijacked')
        else:
            store.delete_slot(999, other_owner.id)

    assert exception_info.value.message == missing_info.value.message
    assert store.list_slots(owner.id)[0].description == 'intro call'


def test_update_slot_rejects_booked_slot(db, owner) -> None:
    store = SlotStore(db)
    slot = _create_intro_call(store, owner.id)
    BookingCoordinator(db).book(slot.id, 'Bea Booker', 'bea@example.com')

    with pytest.raises(ConflictError):
        store.update_slot(slot.id, owner.id, description='moved')

    assert store.list_slots(owner.id)[0].description == 'intro call'


def test_delete_slot_removes_unbooked_slot(db, owner) -> None:
    store = SlotStore(db)
    slot = _create_intro_call(store, owner.id)

    store.delete_slot(slot.id, owner.id)

    assert store.list_slots(owner.id) == []


def test_delete_booked_slot_cascades_to_booking(db, owner) -> None:
    store = SlotStore(db)
    slot = _create_intro_call(store, owner.id)
    BookingCoordinator(db).book(slot.id, 'Bea Booker', 'bea@example.com')

    store.delete_slot(slot.id, owner.id)

    assert store.list_slots(owner.id) == []
    assert db.query(Booking).count() == 0


def test_update_slot_refuses_booking_that_commits_after_the_booked_check(
    database,
    db,
    owner,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    store = SlotStore(db)
    slot = _create_intro_call(store, owner.id)
    checked_free = store.has_booking

    def book_from_another_request(slot_id: int) -> bool:
        is_booked = checked_free(slot_id)
        visitor_session = database.session()
        try:
            BookingCoordinator(visitor_session).book(slot_id, 'Bea Booker', 'bea@example.com')
        finally:
            visitor_session.close()
        return is_booked

    monkeypatch.setattr(store, 'has_booking', book_from_another_request)

    with pytest.raises(ConflictError):
        store.update_slot(slot.id, owner.id, description='moved')

    listed = SlotStore(db).list_slots(owner.id)
    assert listed[0].is_booked is True
    assert listed[0].description == 'intro call'


@pytest.mark.parametrize('slot_id', [0, -1, 2**63, 2**70])
def test_unstorable_slot_ids_are_not_found(db, owner, slot_id: int) -> None:
    store = SlotStore(db)

    assert store.find_slot(slot_id) is None
    with pytest.raises(NotFoundError):
        store.update_slot(slot_id, owner.id, description='moved')
    with pytest.raises(NotFoundError):
        store.delete_slot(slot_id, owner.id)
    assert store.list_slots(slot_id, exclude_booked=True) == []
