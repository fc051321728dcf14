from datetime import datetime, timedelta, timezone

from campus_hub_api.app.services.availability import (
    booking_windows,
    current_booking,
    find_overlaps,
    is_booked,
    resolve_availability,
)

DAY = datetime(2025, 9, 1, tzinfo=timezone.utc)


def at(hour, minute=0):
    return DAY + timedelta(hours=hour, minutes=minute)


def booking(booking_id, start, end, status="confirmed", resource_id=1):
    return {
        "id": booking_id,
        "resource_id": resource_id,
        "start_time": start.isoformat(),
        "end_time": end.isoformat(),
        "status": status,
    }


def test_active_booking_reports_booked_until_end():
    result = resolve_availability([booking(1, at(10), at(11))], now=at(10, 30))
    assert result.status == "booked"
    assert result.message == "Booked until Sep 1 at 11:00"
    assert result.until == at(11)
    assert result.current_booking_id == 1


def test_past_booking_only_is_available_now():
    result = resolve_availability([booking(1, at(9), at(10))], now=at(10, 30))
    assert result.status == "available"
    assert result.message == "Available now"
    assert result.until is None


def test_free_slot_before_next_booking():
    bookings = [booking(1, at(9), at(10)), booking(2, at(14), at(15))]
    result = resolve_availability(bookings, now=at(11))
    assert result.status == "available"
    assert result.message == "Available until Sep 1 at 14:00"
    assert result.until == at(14)


def test_empty_list_is_always_available():
    for hour in (0, 12, 23):
        assert resolve_availability([], now=at(hour)).message == "Available now"


def test_cancelled_bookings_are_ignored():
    bookings = [booking(1, at(10), at(11), status="cancelled"), booking(2, at(14), at(15), status="cancelled")]
    assert resolve_availability(bookings, now=at(10, 30)).message == "Available now"
    assert not is_booked(bookings, now=at(10, 30))
    assert booking_windows(bookings) == []
    assert find_overlaps(bookings + [booking(3, at(10), at(12))]) == []


def test_window_bounds_are_inclusive():
    bookings = [booking(1, at(10), at(11))]
    assert resolve_availability(bookings, now=at(10)).status == "booked"
    assert resolve_availability(bookings, now=at(11)).status == "booked"


def test_malformed_timestamps_are_skipped():
    bookings = [
        {"id": 1, "start_time": "not a date", "end_time": at(11).isoformat(), "status": "confirmed"},
        {"id": 2, "start_time": None, "end_time": None, "status": "confirmed"},
        booking(3, at(14), at(15)),
    ]
    result = resolve_availability(bookings, now=at(10))
    assert result.message == "Available until Sep 1 at 14:00"


def test_naive_timestamps_are_utc():
    bookings = [{"id": 1, "start_time": "2025-09-01T10:00:00", "end_time": "2025-09-01T11:00:00", "status": "pending"}]
    assert resolve_availability(bookings, now=datetime(2025, 9, 1, 10, 30)).status == "booked"


def test_first_matching_booking_wins_when_overlapping():
    bookings = [booking(7, at(10), at(12)), booking(8, at(9), at(11))]
    assert current_booking(booking_windows(bookings), at(10, 30)).booking_id == 7


def test_resource_filter():
    bookings = [booking(1, at(10), at(11), resource_id=2)]
    assert resolve_availability(bookings, now=at(10, 30), resource_id=1).message == "Available now"
    assert resolve_availability(bookings, now=at(10, 30), resource_id=2).status == "booked"


def test_overlaps_are_reported_per_resource():
    bookings = [
        booking(1, at(10), at(12)),
        booking(2, at(11), at(13)),
        booking(3, at(12), at(14)),
        booking(4, at(10), at(12), resource_id=2),
    ]
    pairs = {(a.booking_id, b.booking_id) for a, b in find_overlaps(bookings)}
    assert pairs == {(1, 2), (2, 3)}


def test_booking_models_are_accepted():
    from campus_hub_api.app.schemas.booking import BookingRead

    model = BookingRead(
        id=5, resource_id=1, user_id=1, start_time=at(10), end_time=at(11), status="pending"
    )
    assert resolve_availability([model], now=at(10, 15)).current_booking_id == 5
