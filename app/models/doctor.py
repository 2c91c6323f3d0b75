from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.database import Base


class Doctor(Base):
    """Doctor profile; owns the appointment slots generated for it."""

    __tablename__ = "doctors"

    # Core identity
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    # Free-text label used for filtering, not a closed enumeration
    specialization = Column(String(255), nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False)
    phone = Column(String(50), nullable=True)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    slots = relationship(
        "AppointmentSlot", back_populates="doctor", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return (
            f"<Doctor(id={self.id}, name='{self.name}', "
            f"specialization='{self.specialization}')>"
        )
