from datetime import date, datetime, time, timedelta

import pytest

from app.core.exceptions import InvalidRangeError, ValidationError
from app.services.slot_generator import generate_slots

SLOT_DATE = date(2030, 3, 4)


def _start(slot):
    return datetime.combine(slot.slot_date, slot.slot_time)


@pytest.mark.unit
class TestGenerateSlots:
    """Test splitting a time range into back-to-back slots."""

    def test_working_day_in_half_hours(self):
        """09:00-17:00 at 30 minutes yields 16 slots from 09:00 to 16:30."""
        slots = generate_slots(1, SLOT_DATE, time(9, 0), time(17, 0), 30)

        assert len(slots) == 16
        assert slots[0].slot_time == time(9, 0)
        assert slots[-1].slot_time == time(16, 30)

    @pytest.mark.parametrize(
        "start,end,duration",
        [
            (time(9, 0), time(17, 0), 30),
            (time(8, 15), time(12, 40), 15),
            (time(10, 0), time(18, 0), 45),
            (time(7, 0), time(19, 30), 120),
            (time(13, 5), time(13, 50), 20),
        ],
    )
    def test_slots_step_by_duration_and_fit_in_range(self, start, end, duration):
        """Start times increase by exactly the duration; the last slot ends in range."""
        slots = generate_slots(7, SLOT_DATE, start, end, duration)
        step = timedelta(minutes=duration)

        assert slots, "range is longer than one duration"
        assert slots[0].slot_time == start
        for previous, current in zip(slots, slots[1:]):
            assert _start(current) - _start(previous) == step
        assert _start(slots[-1]) + step <= datetime.combine(SLOT_DATE, end)
        # No further slot would have fit
        assert _start(slots[-1]) + 2 * step > datetime.combine(SLOT_DATE, end)

    def test_remainder_is_discarded(self):
        """A tail shorter than one duration does not become a short slot."""
        slots = generate_slots(1, SLOT_DATE, time(9, 0), time(10, 10), 30)

        assert [s.slot_time for s in slots] == [time(9, 0), time(9, 30)]
        assert all(s.duration_minutes == 30 for s in slots)

    def test_exact_fit_includes_last_slot(self):
        slots = generate_slots(1, SLOT_DATE, time(9, 0), time(11, 0), 60)

        assert [s.slot_time for s in slots] == [time(9, 0), time(10, 0)]

    def test_range_shorter_than_duration_yields_no_slots(self):
        """Zero slots is a valid result, not an error."""
        assert generate_slots(1, SLOT_DATE, time(9, 0), time(9, 20), 30) == []

    def test_range_ending_near_midnight_does_not_wrap(self):
        slots = generate_slots(1, SLOT_DATE, time(23, 0), time(23, 59), 15)

        assert [s.slot_time for s in slots] == [time(23, 0), time(23, 15), time(23, 30)]
        assert all(s.slot_date == SLOT_DATE for s in slots)

    def test_descriptors_carry_doctor_and_date(self):
        slots = generate_slots(42, SLOT_DATE, time(14, 0), time(15, 0), 20)

        assert {s.doctor_id for s in slots} == {42}
        assert {s.slot_date for s in slots} == {SLOT_DATE}
        assert {s.duration_minutes for s in slots} == {20}

    @pytest.mark.parametrize(
        "start,end",
        [
            (time(9, 0), time(9, 0)),
            (time(17, 0), time(9, 0)),
        ],
    )
    def test_end_not_after_start_is_rejected(self, start, end):
        with pytest.raises(InvalidRangeError, match="end_time must be after start_time"):
            generate_slots(1, SLOT_DATE, start, end, 30)

    @pytest.mark.parametrize("duration", [0, -15])
    def test_non_positive_duration_is_rejected(self, duration):
        with pytest.raises(InvalidRangeError, match="positive"):
            generate_slots(1, SLOT_DATE, time(9, 0), time(17, 0), duration)

    def test_non_integer_duration_is_rejected(self):
        with pytest.raises(InvalidRangeError):
            generate_slots(1, SLOT_DATE, time(9, 0), time(17, 0), 12.5)

    def test_range_error_is_a_validation_error(self):
        """Callers can handle every malformed-input failure the same way."""
        with pytest.raises(ValidationError):
            generate_slots(1, SLOT_DATE, time(9, 0), time(8, 0), 30)
        with pytest.raises(ValueError):
            generate_slots(1, SLOT_DATE, time(9, 0), time(8, 0), 30)
