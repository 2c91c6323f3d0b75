from datetime import datetime, timedelta

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.database import Base


class AppointmentSlot(Base):
    """A fixed-start, fixed-duration opportunity for one doctor to see one patient.

    ``is_available`` is only written by the availability store: it is false
    exactly while a PENDING or CONFIRMED booking references the slot.
    """

    __tablename__ = "appointment_slots"

    # Core identity
    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(
        Integer, ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False
    )

    # Scheduling details
    slot_date = Column(Date, nullable=False)
    slot_time = Column(Time, nullable=False)
    duration_minutes = Column(Integer, nullable=False)

    # Occupancy
    is_available = Column(Boolean, nullable=False, default=True, index=True)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Constraints
    __table_args__ = (
        UniqueConstraint(
            "doctor_id", "slot_date", "slot_time", name="uq_slot_doctor_date_time"
        ),
        CheckConstraint("duration_minutes > 0", name="check_positive_slot_duration"),
        Index("ix_appointment_slots_date", "slot_date", "slot_time"),
    )

    # Relationships
    doctor = relationship("Doctor", back_populates="slots")
    # Slots with bookings are never deleted; the ORM must not touch booking rows
    bookings = relationship(
        "Booking",
        primaryjoin="AppointmentSlot.id == foreign(Booking.slot_id)",
        back_populates="slot",
        passive_deletes="all",
    )

    @property
    def doctor_name(self):
        return self.doctor.name if self.doctor else None

    @property
    def specialization(self):
        return self.doctor.specialization if self.doctor else None

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.slot_date, self.slot_time)

    @property
    def ends_at(self) -> datetime:
        return self.starts_at + timedelta(minutes=self.duration_minutes)

    def __repr__(self):
        return (
            f"<AppointmentSlot(id={self.id}, doctor_id={self.doctor_id}, "
            f"date='{self.slot_date}', time='{self.slot_time}', "
            f"available={self.is_available})>"
        )
