from datetime import date, time


class BookingServiceError(Exception):
    """Base class for domain errors raised by the booking services."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(BookingServiceError, ValueError):
    """Malformed input, rejected before storage is touched."""


class InvalidRangeError(ValidationError):
    """Slot generation range or duration is not usable."""


class NotFoundError(BookingServiceError, LookupError):
    """Unknown doctor, slot or booking id."""


class ConflictError(BookingServiceError):
    """Structural conflict with existing data."""


def _format_slot_times(slots: list[tuple[date, time]]) -> str:
    return ", ".join(
        f"{slot_date.isoformat()} {slot_time.strftime('%H:%M')}"
        for slot_date, slot_time in slots
    )


class DuplicateSlotError(ConflictError):
    """One or more slots collide on (doctor_id, slot_date, slot_time)."""

    def __init__(self, doctor_id: int, duplicates: list[tuple[date, time]]):
        self.doctor_id = doctor_id
        self.duplicates = duplicates
        super().__init__(
            f"Slot already exists for doctor {doctor_id}: "
            f"{_format_slot_times(duplicates)}"
        )


class SlotOverlapError(ConflictError):
    """One or more slots overlap in time with another slot of the same doctor."""

    def __init__(self, doctor_id: int, overlaps: list[tuple[date, time]]):
        self.doctor_id = doctor_id
        self.overlaps = overlaps
        super().__init__(
            f"Slot overlaps another slot for doctor {doctor_id}: "
            f"{_format_slot_times(overlaps)}"
        )


class InvalidStateError(BookingServiceError):
    """Requested lifecycle transition is not allowed from the current status."""
