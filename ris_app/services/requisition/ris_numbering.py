from datetime import datetime, date, timezone
from typing import Optional
from zoneinfo import ZoneInfo
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy import func, update
from ris_app.models.requisition.request import Request
from ris_app.models.requisition.ris_counter import RisCounter
from ris_app.core.config import settings
from ris_app.core.exceptions import ConflictError
import logging

logger = logging.getLogger(__name__)

MAX_NUMBERING_ATTEMPTS = 5


def to_local(value: Optional[datetime] = None, tz_name: Optional[str] = None) -> datetime:
    """Convert a timestamp to the office timezone; naive values are taken as UTC"""
    if value is None:
        value = datetime.now(timezone.utc)
    elif value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(ZoneInfo(tz_name or settings.TIMEZONE))


def local_date(value: Optional[datetime] = None, tz_name: Optional[str] = None) -> date:
    return to_local(value, tz_name).date()


def ris_day_prefix(reference: Optional[datetime] = None, tz_name: Optional[str] = None) -> str:
    """``R<yyyy>-<mm><dd>-`` for the calendar day of ``reference`` in the office timezone"""
    day = local_date(reference, tz_name)
    return f"R{day.year:04d}-{day.month:02d}{day.day:02d}-"


def format_ris_number(day_prefix: str, sequence: int) -> str:
    return f"{day_prefix}{sequence:03d}"


class RisNumberService:
    """Hands out day-scoped sequential RIS numbers.

    Each day prefix owns a row in ``ris_counters`` that is incremented with a
    single UPDATE, so two concurrent callers can never read the same value.
    The first caller of a day inserts the row, seeded from RIS numbers already
    stored on requests; a concurrent insert loses on the primary key and retries
    as an increment. Never commits.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def next_number(self, reference: Optional[datetime] = None) -> str:
        day_prefix = ris_day_prefix(reference)

        for attempt in range(1, MAX_NUMBERING_ATTEMPTS + 1):
            sequence = await self._increment(day_prefix)
            if sequence is not None:
                return format_ris_number(day_prefix, sequence)

            seed = await self._count_assigned(day_prefix)
            try:
                async with self.db.begin_nested():
                    self.db.add(RisCounter(day_prefix=day_prefix, last_sequence=seed + 1))
                    await self.db.flush()
                return format_ris_number(day_prefix, seed + 1)
            except IntegrityError:
                logger.info(f"RIS counter for {day_prefix} created concurrently, retrying (attempt {attempt})")

        logger.error(f"❌ Could not allocate a RIS number for {day_prefix}")
        raise ConflictError("Could not allocate a RIS number, please try again")

    async def peek_sequence(self, day_prefix: str) -> int:
        """Last sequence handed out for a day prefix, 0 if none"""
        result = await self.db.execute(
            select(RisCounter.last_sequence).where(RisCounter.day_prefix == day_prefix)
        )
        return result.scalar_one_or_none() or 0

    async def _increment(self, day_prefix: str) -> Optional[int]:
        result = await self.db.execute(
            update(RisCounter)
            .where(RisCounter.day_prefix == day_prefix)
            .values(last_sequence=RisCounter.last_sequence + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None
        return await self.peek_sequence(day_prefix)

    async def _count_assigned(self, day_prefix: str) -> int:
        result = await self.db.execute(
            select(func.count(Request.id)).where(Request.ris_number.like(f"{day_prefix}%"))
        )
        return result.scalar_one()
