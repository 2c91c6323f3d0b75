from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from app.core.exceptions import NotFoundError
from app.models.booking import Booking
from app.models.slot import AppointmentSlot
from app.schemas.booking import BookingFilters


class BookingLedger:
    """Read side of the booking records; bookings are written by the coordinator."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _base_query(self):
        return select(Booking).options(
            joinedload(Booking.slot).joinedload(AppointmentSlot.doctor)
        )

    async def get_booking(self, booking_id: int) -> Booking:
        """Get booking by ID with slot and doctor loaded."""
        query = (
            self._base_query()
            .where(Booking.id == booking_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        booking = result.unique().scalar_one_or_none()
        if not booking:
            raise NotFoundError(f"Booking {booking_id} not found")
        return booking

    async def list_bookings(
        self, filters: Optional[BookingFilters] = None
    ) -> list[Booking]:
        """List bookings, newest first."""
        filters = filters or BookingFilters()
        query = self._base_query()

        if filters.status:
            query = query.where(Booking.status == filters.status.value)
        if filters.patient_email:
            query = query.where(
                func.lower(Booking.patient_email)
                == filters.patient_email.strip().lower()
            )

        query = query.order_by(
            Booking.booking_time.desc(), Booking.id.desc()
        ).execution_options(populate_existing=True)

        result = await self.db.execute(query)
        return list(result.unique().scalars().all())

    async def count(self) -> int:
        result = await self.db.execute(select(func.count()).select_from(Booking))
        return result.scalar()
