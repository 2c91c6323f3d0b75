from fastapi import APIRouter

from app.api.v1.endpoints import bookings, doctors, slots

api_router = APIRouter()

# Doctor management endpoints
api_router.include_router(doctors.router, prefix="/doctors", tags=["doctors"])

# Appointment slot endpoints
api_router.include_router(slots.router, prefix="/slots", tags=["slots"])

# Booking endpoints
api_router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
