import enum
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.database import Base


class BookingStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


ACTIVE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)

SLOT_UNAVAILABLE_REASON = "slot unavailable"
SLOT_NOT_FOUND_REASON = "slot not found"

# PENDING resolves synchronously; CANCELLED is only reachable from CONFIRMED
ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING: [BookingStatus.CONFIRMED, BookingStatus.FAILED],
    BookingStatus.CONFIRMED: [BookingStatus.CANCELLED],
    BookingStatus.FAILED: [],  # Final state
    BookingStatus.CANCELLED: [],  # Final state
}

_status_values = ", ".join(f"'{s.value}'" for s in BookingStatus)
_active_clause = "status IN ({})".format(
    ", ".join(f"'{s.value}'" for s in ACTIVE_STATUSES)
)


class Booking(Base):
    """Ledger entry for one booking request and its lifecycle.

    Bookings are never deleted; cancellation is a status transition.
    """

    __tablename__ = "bookings"

    # Core identity
    id = Column(Integer, primary_key=True, index=True)
    # Not a foreign key: requests for unknown slot ids are recorded as FAILED
    slot_id = Column(Integer, nullable=False, index=True)

    # Patient contact
    patient_name = Column(String(255), nullable=False)
    patient_email = Column(String(255), nullable=False, index=True)
    patient_phone = Column(String(50), nullable=True)

    # Status management
    status = Column(
        String(20), nullable=False, default=BookingStatus.PENDING.value, index=True
    )
    booking_time = Column(DateTime(timezone=True), nullable=False)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    failed_at = Column(DateTime(timezone=True), nullable=True)
    failure_reason = Column(Text, nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint(f"status IN ({_status_values})", name="check_booking_status"),
        # At most one PENDING/CONFIRMED booking per slot
        Index(
            "uq_bookings_active_slot",
            "slot_id",
            unique=True,
            postgresql_where=text(_active_clause),
            sqlite_where=text(_active_clause),
        ),
    )

    # Relationships
    slot = relationship(
        "AppointmentSlot",
        primaryjoin="foreign(Booking.slot_id) == AppointmentSlot.id",
        back_populates="bookings",
    )

    def can_transition_to(self, new_status: BookingStatus) -> bool:
        """Check if booking can transition to the new status."""
        current = BookingStatus(self.status)
        return new_status in ALLOWED_TRANSITIONS.get(current, [])

    def transition_to(
        self, new_status: BookingStatus, reason: Optional[str] = None
    ) -> bool:
        """Transition booking to new status, stamping the matching timestamp."""
        if not self.can_transition_to(new_status):
            return False

        now = datetime.now(timezone.utc)
        self.status = new_status.value

        if new_status == BookingStatus.CONFIRMED:
            self.confirmed_at = now
        elif new_status == BookingStatus.FAILED:
            self.failed_at = now
            self.failure_reason = reason
        elif new_status == BookingStatus.CANCELLED:
            self.cancelled_at = now

        return True

    @property
    def is_active(self) -> bool:
        """Check if booking currently holds its slot."""
        return self.status in [s.value for s in ACTIVE_STATUSES]

    # Display fields derived from the slot and its doctor at read time
    @property
    def slot_date(self):
        return self.slot.slot_date if self.slot else None

    @property
    def slot_time(self):
        return self.slot.slot_time if self.slot else None

    @property
    def duration_minutes(self):
        return self.slot.duration_minutes if self.slot else None

    @property
    def doctor_name(self):
        return self.slot.doctor_name if self.slot else None

    @property
    def specialization(self):
        return self.slot.specialization if self.slot else None

    def __repr__(self):
        return (
            f"<Booking(id={self.id}, slot_id={self.slot_id}, "
            f"status='{self.status}', patient_email='{self.patient_email}')>"
        )
