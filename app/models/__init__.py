# Import all models to ensure they are registered with SQLAlchemy
from . import booking, doctor, slot

__all__ = [
    "booking",
    "doctor",
    "slot",
]
