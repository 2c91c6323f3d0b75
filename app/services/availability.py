from datetime import datetime, timedelta
from typing import Optional

import structlog
from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager, joinedload

from app.core.exceptions import (
    ConflictError,
    DuplicateSlotError,
    NotFoundError,
    SlotOverlapError,
)
from app.models.booking import Booking
from app.models.doctor import Doctor
from app.models.slot import AppointmentSlot
from app.schemas.slot import SlotDescriptor, SlotFilters

logger = structlog.get_logger(__name__)


class AvailabilityStore:
    """Owner of slot rows and the only writer of ``is_available``.

    ``claim`` and ``release`` run inside the caller's transaction and never
    commit; ``insert`` and ``delete_slot`` are complete operations and commit.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_available(
        self, filters: Optional[SlotFilters] = None
    ) -> list[AppointmentSlot]:
        """List available slots with their doctor, ordered by date and time."""
        filters = filters or SlotFilters()

        query = (
            select(AppointmentSlot)
            .join(Doctor, AppointmentSlot.doctor_id == Doctor.id)
            .options(contains_eager(AppointmentSlot.doctor))
            .where(AppointmentSlot.is_available.is_(True))
        )

        if filters.doctor_id is not None:
            query = query.where(AppointmentSlot.doctor_id == filters.doctor_id)
        if filters.slot_date is not None:
            query = query.where(AppointmentSlot.slot_date == filters.slot_date)
        if filters.specialization and filters.specialization.strip():
            query = query.where(
                func.lower(Doctor.specialization)
                == filters.specialization.strip().lower()
            )

        query = query.order_by(
            AppointmentSlot.slot_date,
            AppointmentSlot.slot_time,
            AppointmentSlot.doctor_id,
        ).execution_options(populate_existing=True)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_slot(self, slot_id: int) -> AppointmentSlot:
        """Get one slot with its doctor, available or not."""
        query = (
            select(AppointmentSlot)
            .options(joinedload(AppointmentSlot.doctor))
            .where(AppointmentSlot.id == slot_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        slot = result.scalar_one_or_none()
        if not slot:
            raise NotFoundError(f"Slot {slot_id} not found")
        return slot

    async def slot_exists(self, slot_id: int) -> bool:
        result = await self.db.execute(
            select(AppointmentSlot.id).where(AppointmentSlot.id == slot_id)
        )
        return result.scalar_one_or_none() is not None

    async def claim(self, slot_id: int) -> bool:
        """Atomically flip ``is_available`` from true to false.

        Returns True for exactly one of any number of concurrent callers on
        the same slot; the row lock is held until the caller's transaction ends.
        """
        result = await self.db.execute(
            update(AppointmentSlot)
            .where(
                and_(
                    AppointmentSlot.id == slot_id,
                    AppointmentSlot.is_available.is_(True),
                )
            )
            .values(is_available=False)
            .execution_options(synchronize_session=False)
        )
        claimed = result.rowcount == 1
        logger.debug("Slot claim attempted", slot_id=slot_id, claimed=claimed)
        return claimed

    async def release(self, slot_id: int) -> None:
        """Mark a slot available again; the caller has validated the booking state."""
        result = await self.db.execute(
            update(AppointmentSlot)
            .where(AppointmentSlot.id == slot_id)
            .values(is_available=True)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.warning("Released slot does not exist", slot_id=slot_id)

    async def insert(self, descriptors: list[SlotDescriptor]) -> list[AppointmentSlot]:
        """Persist generated slots as available, all or nothing.

        Raises:
            NotFoundError: a referenced doctor does not exist.
            DuplicateSlotError: any slot collides with an existing slot or with
                another slot of the same batch; nothing is written.
            SlotOverlapError: any slot overlaps in time with another slot of
                the same doctor; nothing is written.
        """
        if not descriptors:
            return []

        doctor_ids = {d.doctor_id for d in descriptors}
        for doctor_id in doctor_ids:
            if await self.db.get(Doctor, doctor_id) is None:
                raise NotFoundError(f"Doctor {doctor_id} not found")

        duplicates = self._duplicates_within_batch(descriptors)
        duplicates += await self._existing_duplicates(descriptors)
        if duplicates:
            doctor_id, _, _ = duplicates[0]
            logger.info(
                "Rejected slot batch with duplicates",
                doctor_id=doctor_id,
                batch_size=len(descriptors),
                duplicates=len(duplicates),
            )
            raise DuplicateSlotError(
                doctor_id, sorted({(d, t) for _, d, t in duplicates})
            )

        overlaps = self._overlaps_within_batch(descriptors)
        overlaps += await self._existing_overlaps(descriptors)
        if overlaps:
            doctor_id, _, _ = overlaps[0]
            logger.info(
                "Rejected slot batch with overlaps",
                doctor_id=doctor_id,
                batch_size=len(descriptors),
                overlaps=len(overlaps),
            )
            raise SlotOverlapError(
                doctor_id, sorted({(d, t) for _, d, t in overlaps})
            )

        slots = [
            AppointmentSlot(
                doctor_id=d.doctor_id,
                slot_date=d.slot_date,
                slot_time=d.slot_time,
                duration_minutes=d.duration_minutes,
                is_available=True,
            )
            for d in descriptors
        ]

        try:
            self.db.add_all(slots)
            await self.db.commit()
        except IntegrityError as e:
            # A concurrent writer inserted one of these slots after the check
            await self.db.rollback()
            logger.warning("Slot batch hit uniqueness constraint", error=str(e))
            duplicates = await self._existing_duplicates(descriptors)
            if not duplicates:
                raise
            doctor_id, _, _ = duplicates[0]
            raise DuplicateSlotError(
                doctor_id, sorted({(d, t) for _, d, t in duplicates})
            ) from e

        logger.info(
            "Slots inserted",
            doctor_ids=sorted(doctor_ids),
            count=len(slots),
        )

        result = await self.db.execute(
            select(AppointmentSlot)
            .options(joinedload(AppointmentSlot.doctor))
            .where(AppointmentSlot.id.in_([slot.id for slot in slots]))
            .order_by(AppointmentSlot.slot_date, AppointmentSlot.slot_time)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def delete_slot(self, slot_id: int) -> None:
        """Delete a slot that no booking has ever referenced.

        The row is deleted before the booking check, in one transaction, so a
        claim racing with the delete either committed first or finds no slot.
        """
        await self.get_slot(slot_id)

        await self.db.execute(
            delete(AppointmentSlot)
            .where(AppointmentSlot.id == slot_id)
            .execution_options(synchronize_session="fetch")
        )
        booking_count = (
            await self.db.execute(
                select(func.count()).select_from(Booking).where(
                    Booking.slot_id == slot_id
                )
            )
        ).scalar()
        if booking_count:
            await self.db.rollback()
            raise ConflictError(
                f"Slot {slot_id} has booking history and cannot be deleted"
            )

        await self.db.commit()
        logger.info("Slot deleted", slot_id=slot_id)

    # Helper methods
    @staticmethod
    def _duplicates_within_batch(descriptors: list[SlotDescriptor]) -> list[tuple]:
        seen = set()
        duplicates = []
        for d in descriptors:
            key = (d.doctor_id, d.slot_date, d.slot_time)
            if key in seen:
                duplicates.append(key)
            seen.add(key)
        return duplicates

    async def _existing_duplicates(
        self, descriptors: list[SlotDescriptor]
    ) -> list[tuple]:
        conditions = [
            and_(
                AppointmentSlot.doctor_id == d.doctor_id,
                AppointmentSlot.slot_date == d.slot_date,
                AppointmentSlot.slot_time == d.slot_time,
            )
            for d in descriptors
        ]
        result = await self.db.execute(
            select(
                AppointmentSlot.doctor_id,
                AppointmentSlot.slot_date,
                AppointmentSlot.slot_time,
            ).where(or_(*conditions))
        )
        return [tuple(row) for row in result.all()]

    @staticmethod
    def _overlaps_within_batch(descriptors: list[SlotDescriptor]) -> list[tuple]:
        # Sorted by start, any overlap shows up between neighbours
        ordered = sorted(
            descriptors, key=lambda d: (d.doctor_id, d.slot_date, d.slot_time)
        )
        overlaps = []
        for previous, current in zip(ordered, ordered[1:]):
            if (previous.doctor_id, previous.slot_date) != (
                current.doctor_id,
                current.slot_date,
            ):
                continue
            if _start(current) < _end(previous):
                overlaps.append(
                    (current.doctor_id, current.slot_date, current.slot_time)
                )
        return overlaps

    async def _existing_overlaps(
        self, descriptors: list[SlotDescriptor]
    ) -> list[tuple]:
        doctor_ids = sorted({d.doctor_id for d in descriptors})
        slot_dates = sorted({d.slot_date for d in descriptors})
        result = await self.db.execute(
            select(
                AppointmentSlot.doctor_id,
                AppointmentSlot.slot_date,
                AppointmentSlot.slot_time,
                AppointmentSlot.duration_minutes,
            ).where(
                AppointmentSlot.doctor_id.in_(doctor_ids),
                AppointmentSlot.slot_date.in_(slot_dates),
            )
        )
        existing = result.all()

        overlaps = []
        for d in descriptors:
            for row in existing:
                if (row.doctor_id, row.slot_date) != (d.doctor_id, d.slot_date):
                    continue
                if _start(d) < _end(row) and _start(row) < _end(d):
                    overlaps.append((d.doctor_id, d.slot_date, d.slot_time))
                    break
        return overlaps


def _start(slot) -> datetime:
    return datetime.combine(slot.slot_date, slot.slot_time)


def _end(slot) -> datetime:
    return _start(slot) + timedelta(minutes=slot.duration_minutes)
