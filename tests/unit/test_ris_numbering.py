import asyncio
import pytest
from datetime import datetime, timezone
from sqlalchemy.future import select
from ris_app.models.requisition.request import Request
from ris_app.models.requisition.ris_counter import RisCounter
from ris_app.services.requisition.ris_numbering import (
    RisNumberService, format_ris_number, local_date, ris_day_prefix
)

MARCH_12_NOON_MANILA = datetime(2026, 3, 12, 4, 0, tzinfo=timezone.utc)

class TestDayPrefix:
    def test_prefix_format(self):
        assert ris_day_prefix(MARCH_12_NOON_MANILA) == "R2026-0312-"

    def test_day_follows_office_timezone(self):
        late_evening_utc = datetime(2026, 3, 12, 17, 30, tzinfo=timezone.utc)
        assert ris_day_prefix(late_evening_utc) == "R2026-0313-"
        assert ris_day_prefix(late_evening_utc, "UTC") == "R2026-0312-"

    def test_naive_values_are_utc(self):
        assert ris_day_prefix(datetime(2026, 3, 12, 17, 30)) == "R2026-0313-"
        assert local_date(datetime(2026, 12, 31, 15, 59)) == datetime(2026, 12, 31).date()

    def test_sequence_is_zero_padded(self):
        assert format_ris_number("R2026-0312-", 7) == "R2026-0312-007"
        assert format_ris_number("R2026-0312-", 123) == "R2026-0312-123"

@pytest.mark.asyncio
class TestRisNumberService:
    async def test_sequential_per_day(self, db_session):
        service = RisNumberService(db_session)

        numbers = [await service.next_number(MARCH_12_NOON_MANILA) for _ in range(3)]
        await db_session.commit()

        assert numbers == ["R2026-0312-001", "R2026-0312-002", "R2026-0312-003"]

    async def test_days_are_independent(self, db_session):
        service = RisNumberService(db_session)

        first = await service.next_number(MARCH_12_NOON_MANILA)
        other_day = await service.next_number(datetime(2026, 3, 13, 4, 0, tzinfo=timezone.utc))
        second = await service.next_number(MARCH_12_NOON_MANILA)

        assert (first, other_day, second) == ("R2026-0312-001", "R2026-0313-001", "R2026-0312-002")
        assert len({first, other_day, second}) == 3

    async def test_counter_seeded_from_existing_numbers(self, db_session):
        for sequence in (1, 2):
            db_session.add(Request(
                requested_by=2,
                purpose="Imported",
                ris_number=format_ris_number("R2026-0312-", sequence),
            ))
        await db_session.commit()

        number = await RisNumberService(db_session).next_number(MARCH_12_NOON_MANILA)
        await db_session.commit()

        assert number == "R2026-0312-003"
        result = await db_session.execute(
            select(RisCounter.last_sequence).where(RisCounter.day_prefix == "R2026-0312-")
        )
        assert result.scalar_one() == 3

    async def test_rollback_releases_nothing(self, db_session):
        service = RisNumberService(db_session)
        await service.next_number(MARCH_12_NOON_MANILA)
        await db_session.rollback()

        assert await service.next_number(MARCH_12_NOON_MANILA) == "R2026-0312-001"

    async def test_concurrent_allocation_never_repeats(self, session_maker):
        async def allocate():
            async with session_maker() as session:
                number = await RisNumberService(session).next_number(MARCH_12_NOON_MANILA)
                await session.commit()
                return number

        numbers = await asyncio.gather(*(allocate() for _ in range(3)))

        assert sorted(numbers) == ["R2026-0312-001", "R2026-0312-002", "R2026-0312-003"]
