from typing import Optional

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError
from app.models.booking import Booking
from app.models.doctor import Doctor
from app.models.slot import AppointmentSlot
from app.schemas.doctor import DoctorCreate, DoctorUpdate

logger = structlog.get_logger(__name__)


class DoctorService:
    """Service layer for doctor profiles."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_doctor(self, doctor_data: DoctorCreate) -> Doctor:
        """Create a new doctor."""
        await self._ensure_email_free(str(doctor_data.email))

        doctor = Doctor(**doctor_data.model_dump(mode="json"))
        try:
            self.db.add(doctor)
            await self.db.commit()
            await self.db.refresh(doctor)
        except IntegrityError as e:
            await self.db.rollback()
            logger.error(
                "Failed to create doctor due to integrity constraint", error=str(e)
            )
            raise ConflictError("A doctor with this email already exists") from e

        logger.info(
            "Doctor created successfully",
            doctor_id=doctor.id,
            specialization=doctor.specialization,
        )
        return doctor

    async def get_doctor(self, doctor_id: int) -> Doctor:
        """Get doctor by ID."""
        result = await self.db.execute(select(Doctor).where(Doctor.id == doctor_id))
        doctor = result.scalar_one_or_none()

        if not doctor:
            logger.warning("Doctor not found", doctor_id=doctor_id)
            raise NotFoundError(f"Doctor {doctor_id} not found")

        return doctor

    async def list_doctors(self, specialization: Optional[str] = None) -> list[Doctor]:
        """List doctors ordered by name, optionally filtered by specialization."""
        query = select(Doctor)

        if specialization and specialization.strip():
            query = query.where(
                func.lower(Doctor.specialization) == specialization.strip().lower()
            )

        query = query.order_by(Doctor.name, Doctor.id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def update_doctor(self, doctor_id: int, update_data: DoctorUpdate) -> Doctor:
        """Apply a partial update to a doctor profile."""
        doctor = await self.get_doctor(doctor_id)
        changes = update_data.model_dump(exclude_unset=True, mode="json")

        if changes.get("email"):
            await self._ensure_email_free(changes["email"], exclude_id=doctor_id)

        for field, value in changes.items():
            if field in ("name", "specialization", "email") and value is None:
                continue
            setattr(doctor, field, value)

        try:
            await self.db.commit()
            await self.db.refresh(doctor)
        except IntegrityError as e:
            await self.db.rollback()
            logger.error(
                "Failed to update doctor due to integrity constraint",
                doctor_id=doctor_id,
                error=str(e),
            )
            raise ConflictError("A doctor with this email already exists") from e

        logger.info("Doctor updated", doctor_id=doctor_id, fields=sorted(changes))
        return doctor

    async def delete_doctor(self, doctor_id: int) -> None:
        """Delete a doctor and its slots, unless any slot has booking history.

        The slots are deleted before the booking check, in one transaction.
        The delete holds the slot rows, so a booking racing with it has either
        committed before the check or finds its slot gone.
        """
        await self.get_doctor(doctor_id)

        try:
            result = await self.db.execute(
                delete(AppointmentSlot)
                .where(AppointmentSlot.doctor_id == doctor_id)
                .returning(AppointmentSlot.id)
                .execution_options(synchronize_session=False)
            )
            slot_ids = list(result.scalars().all())

            if slot_ids:
                booked = (
                    await self.db.execute(
                        select(func.count(Booking.id)).where(
                            Booking.slot_id.in_(slot_ids)
                        )
                    )
                ).scalar()
                if booked:
                    await self.db.rollback()
                    raise ConflictError(
                        f"Doctor {doctor_id} has slots with booking history "
                        "and cannot be deleted"
                    )

            await self.db.execute(delete(Doctor).where(Doctor.id == doctor_id))
            await self.db.commit()
        except ConflictError:
            raise
        except IntegrityError as e:
            await self.db.rollback()
            logger.error(
                "Failed to delete doctor due to integrity constraint",
                doctor_id=doctor_id,
                error=str(e),
            )
            raise ConflictError(f"Doctor {doctor_id} cannot be deleted") from e

        logger.info("Doctor deleted", doctor_id=doctor_id, slots_deleted=len(slot_ids))

    async def _ensure_email_free(
        self, email: str, exclude_id: Optional[int] = None
    ) -> None:
        query = select(Doctor.id).where(func.lower(Doctor.email) == email.lower())
        if exclude_id is not None:
            query = query.where(Doctor.id != exclude_id)
        result = await self.db.execute(query)
        if result.scalar_one_or_none() is not None:
            raise ConflictError("A doctor with this email already exists")
