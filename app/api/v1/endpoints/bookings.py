from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.database import get_db
from app.core.exceptions import InvalidStateError, NotFoundError
from app.schemas.booking import (
    Booking,
    BookingCreate,
    BookingFilters,
    BookingStats,
    BookingStatus,
)
from app.services.ledger import BookingLedger
from app.services.reservation import ReservationCoordinator
from app.services.statistics import StatisticsAggregator

router = APIRouter()


@router.get("/", response_model=list[Booking])
async def list_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    patient_email: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """List bookings, newest first, optionally filtered by status or patient email."""
    filters = BookingFilters(status=status_filter, patient_email=patient_email)
    return await BookingLedger(db).list_bookings(filters)


@router.get("/stats", response_model=BookingStats)
async def get_booking_stats(db: AsyncSession = Depends(get_db)):
    """Get booking counts per status."""
    return await StatisticsAggregator(db).compute()


@router.post("/", response_model=Booking, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    db: AsyncSession = Depends(get_db),
):
    """Request a booking for a slot.

    The returned booking is either CONFIRMED or FAILED. A slot taken by
    another patient ("slot unavailable") and an unknown slot id ("slot not
    found") are reported through ``status`` and ``failure_reason``.
    """
    try:
        return await ReservationCoordinator(db).request_booking(booking_data)
    except Exception:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create booking",
        )


@router.get("/{booking_id}", response_model=Booking)
async def get_booking(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Get booking by ID."""
    try:
        return await BookingLedger(db).get_booking(booking_id)
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found"
        )


@router.put("/{booking_id}/cancel", response_model=Booking)
async def cancel_booking(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Cancel a confirmed booking and free its slot."""
    try:
        return await ReservationCoordinator(db).cancel_booking(booking_id)
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found"
        )
    except InvalidStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    except Exception:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to cancel booking",
        )
