from datetime import date as date_type
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.database import get_db
from app.core.exceptions import (
    ConflictError,
    InvalidRangeError,
    NotFoundError,
)
from app.schemas.slot import (
    BulkSlotCreate,
    Slot,
    SlotCreate,
    SlotDescriptor,
    SlotFilters,
)
from app.services.availability import AvailabilityStore
from app.services.slot_generator import generate_slots

router = APIRouter()


@router.get("/", response_model=list[Slot])
async def list_available_slots(
    doctor_id: Optional[int] = Query(None),
    date: Optional[date_type] = Query(None, description="Slot date (YYYY-MM-DD)"),
    specialization: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """List available slots with doctor name and specialization."""
    filters = SlotFilters(
        doctor_id=doctor_id, slot_date=date, specialization=specialization
    )
    return await AvailabilityStore(db).list_available(filters)


@router.post("/", response_model=Slot, status_code=status.HTTP_201_CREATED)
async def create_slot(
    slot_data: SlotCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a single appointment slot."""
    descriptor = SlotDescriptor(**slot_data.model_dump())
    try:
        slots = await AvailabilityStore(db).insert([descriptor])
        return slots[0]
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Doctor not found"
        )
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    except Exception:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create slot",
        )


@router.post("/bulk", response_model=list[Slot], status_code=status.HTTP_201_CREATED)
async def create_bulk_slots(
    bulk_data: BulkSlotCreate,
    db: AsyncSession = Depends(get_db),
):
    """Generate back-to-back slots for one doctor and date and store them atomically."""
    try:
        descriptors = generate_slots(
            doctor_id=bulk_data.doctor_id,
            slot_date=bulk_data.slot_date,
            start_time=bulk_data.start_time,
            end_time=bulk_data.end_time,
            duration_minutes=bulk_data.duration_minutes,
        )
        return await AvailabilityStore(db).insert(descriptors)
    except InvalidRangeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Doctor not found"
        )
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    except Exception:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create slots",
        )


@router.get("/{slot_id}", response_model=Slot)
async def get_slot(
    slot_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Get slot by ID, whether or not it is available."""
    try:
        return await AvailabilityStore(db).get_slot(slot_id)
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Slot not found"
        )


@router.delete("/{slot_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_slot(
    slot_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Delete a slot that has never been booked."""
    try:
        await AvailabilityStore(db).delete_slot(slot_id)
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Slot not found"
        )
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
