from datetime import datetime, timezone

import structlog
from sqlalchemy import and_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidStateError
from app.models.booking import (
    SLOT_NOT_FOUND_REASON,
    SLOT_UNAVAILABLE_REASON,
    Booking,
    BookingStatus,
)
from app.schemas.booking import BookingCreate
from app.services.availability import AvailabilityStore
from app.services.ledger import BookingLedger

logger = structlog.get_logger(__name__)


class ReservationCoordinator:
    """Books slots and drives bookings through their lifecycle.

    A booking request claims the slot and writes the booking in a single
    transaction. Of any number of concurrent requests for one slot exactly
    one ends CONFIRMED; the rest end FAILED with ``"slot unavailable"``.
    A request for a slot id that does not exist ends FAILED with
    ``"slot not found"``.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = AvailabilityStore(db)
        self.ledger = BookingLedger(db)

    async def request_booking(self, booking_data: BookingCreate) -> Booking:
        """Create a booking and resolve it to CONFIRMED or FAILED."""
        booking = self._new_booking(booking_data)

        try:
            claimed = await self.store.claim(booking_data.slot_id)

            if claimed:
                booking.transition_to(BookingStatus.CONFIRMED)
            elif await self.store.slot_exists(booking_data.slot_id):
                booking.transition_to(BookingStatus.FAILED, SLOT_UNAVAILABLE_REASON)
            else:
                booking.transition_to(BookingStatus.FAILED, SLOT_NOT_FOUND_REASON)

            self.db.add(booking)
            await self.db.commit()

        except IntegrityError as e:
            # The active-booking index rejected a second holder of this slot
            await self.db.rollback()
            logger.error(
                "Active booking constraint violated",
                slot_id=booking_data.slot_id,
                error=str(e),
            )
            booking = await self._record_failure(booking_data)
        except Exception as e:
            await self.db.rollback()
            logger.error(
                "Failed to process booking request",
                slot_id=booking_data.slot_id,
                exc_info=e,
            )
            raise

        if booking.status == BookingStatus.CONFIRMED.value:
            logger.info(
                "Booking confirmed", booking_id=booking.id, slot_id=booking.slot_id
            )
        else:
            logger.info(
                "Booking failed",
                booking_id=booking.id,
                slot_id=booking.slot_id,
                reason=booking.failure_reason,
            )

        return await self.ledger.get_booking(booking.id)

    async def cancel_booking(self, booking_id: int) -> Booking:
        """Cancel a CONFIRMED booking and return its slot to availability.

        Raises:
            NotFoundError: the booking id does not exist.
            InvalidStateError: the booking is not CONFIRMED, including a
                booking that was already cancelled.
        """
        booking = await self.ledger.get_booking(booking_id)

        if not booking.can_transition_to(BookingStatus.CANCELLED):
            raise InvalidStateError(
                f"Cannot cancel booking {booking_id} in status {booking.status}"
            )

        try:
            # Conditional update so two racing cancels cannot both release
            result = await self.db.execute(
                update(Booking)
                .where(
                    and_(
                        Booking.id == booking_id,
                        Booking.status == BookingStatus.CONFIRMED.value,
                    )
                )
                .values(
                    status=BookingStatus.CANCELLED.value,
                    cancelled_at=datetime.now(timezone.utc),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                await self.db.rollback()
                raise InvalidStateError(
                    f"Booking {booking_id} is no longer confirmed"
                )

            await self.store.release(booking.slot_id)
            await self.db.commit()

        except InvalidStateError:
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error(
                "Failed to cancel booking", booking_id=booking_id, exc_info=e
            )
            raise

        logger.info(
            "Booking cancelled", booking_id=booking_id, slot_id=booking.slot_id
        )
        return await self.ledger.get_booking(booking_id)

    # Helper methods
    @staticmethod
    def _new_booking(booking_data: BookingCreate) -> Booking:
        return Booking(
            slot_id=booking_data.slot_id,
            patient_name=booking_data.patient_name,
            patient_email=str(booking_data.patient_email),
            patient_phone=booking_data.patient_phone,
            status=BookingStatus.PENDING.value,
            booking_time=datetime.now(timezone.utc),
        )

    async def _record_failure(self, booking_data: BookingCreate) -> Booking:
        booking = self._new_booking(booking_data)
        booking.transition_to(BookingStatus.FAILED, SLOT_UNAVAILABLE_REASON)
        self.db.add(booking)
        await self.db.commit()
        return booking
