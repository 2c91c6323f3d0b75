from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.database import get_db
from app.core.exceptions import ConflictError, NotFoundError
from app.schemas.doctor import Doctor, DoctorCreate, DoctorUpdate
from app.services.doctor import DoctorService

router = APIRouter()


@router.get("/", response_model=list[Doctor])
async def list_doctors(
    specialization: Optional[str] = Query(
        None, description="Filter by specialization (case-insensitive)"
    ),
    db: AsyncSession = Depends(get_db),
):
    """List doctors, optionally filtered by specialization."""
    return await DoctorService(db).list_doctors(specialization)


@router.post("/", response_model=Doctor, status_code=status.HTTP_201_CREATED)
async def create_doctor(
    doctor_data: DoctorCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a new doctor."""
    try:
        return await DoctorService(db).create_doctor(doctor_data)
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    except Exception:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create doctor",
        )


@router.get("/{doctor_id}", response_model=Doctor)
async def get_doctor(
    doctor_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Get doctor by ID."""
    try:
        return await DoctorService(db).get_doctor(doctor_id)
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Doctor not found"
        )


@router.put("/{doctor_id}", response_model=Doctor)
async def update_doctor(
    doctor_id: int,
    doctor_update: DoctorUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Update doctor profile."""
    try:
        return await DoctorService(db).update_doctor(doctor_id, doctor_update)
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
            detail="Failed to update doctor",
        )


@router.delete("/{doctor_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_doctor(
    doctor_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Delete a doctor together with its never-booked slots."""
    try:
        await DoctorService(db).delete_doctor(doctor_id)
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Doctor not found"
        )
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
