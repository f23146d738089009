"""Tests for forward and backfill window calculation."""

from datetime import timedelta

from tenant_sync.db.models import RunStatus
from tenant_sync.sync.date_range import DateRange, DateRangeCalculator, compute_date_ranges
from tests.conftest import MAR_01, NINETY_DAYS, SEVEN_DAYS
from tests.factories import make_data_source, make_run, make_tenant

ONE_DAY = timedelta(days=1)


class TestComputeDateRanges:
    """Tests for the pure window computation."""

    def test_first_run_fetches_initial_window_only(self):
        ranges = compute_date_ranges(
            now=MAR_01,
            target_window=NINETY_DAYS,
            last_fetched_at=None,
            earliest_fetched_at=None,
        )

        assert ranges.forward == DateRange(MAR_01 - SEVEN_DAYS, MAR_01)
        assert ranges.backfill is None
        assert ranges.backfill_complete is False

    def test_forward_continues_from_high_water_mark(self):
        last = MAR_01 - ONE_DAY

        ranges = compute_date_ranges(
            now=MAR_01,
            target_window=NINETY_DAYS,
            last_fetched_at=last,
            earliest_fetched_at=last - SEVEN_DAYS,
        )

        assert ranges.forward == DateRange(last, MAR_01)

    def test_backfill_steps_back_one_chunk(self):
        earliest = MAR_01 - SEVEN_DAYS

        ranges = compute_date_ranges(
            now=MAR_01,
            target_window=NINETY_DAYS,
            last_fetched_at=MAR_01 - ONE_DAY,
            earliest_fetched_at=earliest,
        )

        assert ranges.backfill == DateRange(earliest - SEVEN_DAYS, earliest)
        assert ranges.backfill_complete is False

    def test_backfill_clamped_at_retention_boundary(self):
        boundary = MAR_01 - NINETY_DAYS
        earliest = boundary + timedelta(days=3)

        ranges = compute_date_ranges(
            now=MAR_01,
            target_window=NINETY_DAYS,
            last_fetched_at=MAR_01 - ONE_DAY,
            earliest_fetched_at=earliest,
        )

        assert ranges.backfill == DateRange(boundary, earliest)
        assert ranges.backfill.duration == timedelta(days=3)

    def test_backfill_complete_at_boundary(self):
        ranges = compute_date_ranges(
            now=MAR_01,
            target_window=NINETY_DAYS,
            last_fetched_at=MAR_01 - ONE_DAY,
            earliest_fetched_at=MAR_01 - NINETY_DAYS,
        )

        assert ranges.backfill is None
        assert ranges.backfill_complete is True
        assert ranges.segments() == [ranges.forward]

    def test_backfill_complete_stays_complete(self):
        earliest = MAR_01 - NINETY_DAYS
        last = MAR_01
        for day in range(1, 8):
            now = MAR_01 + day * ONE_DAY
            ranges = compute_date_ranges(
                now=now,
                target_window=NINETY_DAYS,
                last_fetched_at=last,
                earliest_fetched_at=earliest,
            )

            assert ranges.backfill_complete is True
            assert ranges.backfill is None
            assert ranges.forward == DateRange(last, now)
            last = ranges.forward.end

    def test_missing_low_water_mark_derived_from_high_water_mark(self):
        last = MAR_01 - ONE_DAY

        ranges = compute_date_ranges(
            now=MAR_01,
            target_window=NINETY_DAYS,
            last_fetched_at=last,
            earliest_fetched_at=None,
        )

        derived = last - SEVEN_DAYS
        assert ranges.backfill == DateRange(derived - SEVEN_DAYS, derived)

    def test_custom_window_sizes(self):
        ranges = compute_date_ranges(
            now=MAR_01,
            target_window=NINETY_DAYS,
            last_fetched_at=MAR_01,
            earliest_fetched_at=MAR_01 - ONE_DAY,
            initial_window=ONE_DAY,
            backfill_chunk=timedelta(days=30),
        )

        assert ranges.backfill == DateRange(MAR_01 - timedelta(days=31), MAR_01 - ONE_DAY)

    def test_segments_forward_first(self):
        ranges = compute_date_ranges(
            now=MAR_01,
            target_window=NINETY_DAYS,
            last_fetched_at=MAR_01 - ONE_DAY,
            earliest_fetched_at=MAR_01 - SEVEN_DAYS,
        )

        assert ranges.segments() == [ranges.forward, ranges.backfill]

    def test_to_dict(self):
        window = DateRange(MAR_01 - ONE_DAY, MAR_01)

        assert window.to_dict() == {
            "start": "2024-02-29T12:00:00+00:00",
            "end": "2024-03-01T12:00:00+00:00",
        }


class TestDateRangeCalculator:
    """Tests for the store-backed calculator."""

    async def test_no_record_is_first_run(self, session_factory, clock):
        calculator = DateRangeCalculator(session_factory, clock=clock)

        ranges = await calculator.calculate("ds-1", "github:commit", NINETY_DAYS)

        assert ranges.forward == DateRange(MAR_01 - SEVEN_DAYS, MAR_01)
        assert ranges.backfill is None

    async def test_running_record_resumes_from_completed_watermarks(
        self, db_session, session_factory, clock
    ):
        data_source = make_data_source(db_session, make_tenant(db_session))
        make_run(
            db_session,
            data_source,
            status=RunStatus.RUNNING,
            last_fetched_data_at=MAR_01 - ONE_DAY,
            earliest_fetched_data_at=MAR_01 - SEVEN_DAYS,
        )
        await db_session.commit()
        calculator = DateRangeCalculator(session_factory, clock=clock)

        ranges = await calculator.calculate(data_source.id, "github:commit", NINETY_DAYS)

        assert ranges.forward == DateRange(MAR_01 - ONE_DAY, MAR_01)
        assert ranges.backfill == DateRange(MAR_01 - 2 * SEVEN_DAYS, MAR_01 - SEVEN_DAYS)

    async def test_explicit_now_overrides_clock(self, session_factory, clock):
        calculator = DateRangeCalculator(session_factory, clock=clock)
        later = MAR_01 + ONE_DAY

        ranges = await calculator.calculate("ds-1", "github:commit", NINETY_DAYS, now=later)

        assert ranges.forward.end == later
