import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.booking import Booking, BookingStatus
from app.schemas.booking import BookingStats

logger = structlog.get_logger(__name__)


class StatisticsAggregator:
    """Derives per-status booking counts from the ledger on every call."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def compute(self) -> BookingStats:
        result = await self.db.execute(
            select(Booking.status, func.count(Booking.id)).group_by(Booking.status)
        )
        counts = {status.value: 0 for status in BookingStatus}
        for status, count in result.all():
            counts[status] = count

        stats = BookingStats(
            confirmed=counts[BookingStatus.CONFIRMED.value],
            pending=counts[BookingStatus.PENDING.value],
            failed=counts[BookingStatus.FAILED.value],
            cancelled=counts[BookingStatus.CANCELLED.value],
            total=sum(counts.values()),
        )
        logger.debug("Computed booking stats", **stats.model_dump())
        return stats
