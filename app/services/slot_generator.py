from datetime import date, datetime, time, timedelta

from app.core.exceptions import InvalidRangeError
from app.schemas.slot import SlotDescriptor


def generate_slots(
    doctor_id: int,
    slot_date: date,
    start_time: time,
    end_time: time,
    duration_minutes: int,
) -> list[SlotDescriptor]:
    """
    Split ``[start_time, end_time)`` on one date into back-to-back slots.

    Slots start at ``start_time`` and step forward by ``duration_minutes``.
    Only slots that end at or before ``end_time`` are produced; a remainder
    shorter than one duration is dropped. An empty result is valid.

    Raises:
        InvalidRangeError: if ``end_time <= start_time`` or the duration is
            not a positive integer.
    """
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int):
        raise InvalidRangeError("duration_minutes must be an integer")
    if duration_minutes <= 0:
        raise InvalidRangeError("duration_minutes must be positive")
    if end_time <= start_time:
        raise InvalidRangeError("end_time must be after start_time")

    step = timedelta(minutes=duration_minutes)
    range_end = datetime.combine(slot_date, end_time)
    current = datetime.combine(slot_date, start_time)

    slots = []
    while current + step <= range_end:
        slots.append(
            SlotDescriptor(
                doctor_id=doctor_id,
                slot_date=slot_date,
                slot_time=current.time(),
                duration_minutes=duration_minutes,
            )
        )
        current += step

    return slots
