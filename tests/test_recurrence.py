"""Tests for schedbot.core.recurrence — day/time grammar and mask rotation."""

from datetime import date, datetime, timedelta, timezone

import pytest

from schedbot.core.recurrence import (
    DaySpec,
    TimeSpec,
    describe_repeat,
    parse_day_spec,
    parse_time_spec,
    rotate_mask,
)
from schedbot.integrations.tz_abbr import lookup_offset

from conftest import NOW

MON, TUE, WED, THU, FRI, SAT, SUN = (1 << i for i in range(7))


# ---------------------------------------------------------------------------
# rotate_mask
# ---------------------------------------------------------------------------


class TestRotateMask:
    def test_right_moves_monday_to_sunday(self):
        assert rotate_mask(MON, -1) == SUN

    def test_right_shifts_each_day_back(self):
        assert rotate_mask(WED | FRI, -1) == TUE | THU

    def test_left_moves_sunday_to_monday(self):
        assert rotate_mask(SUN, 1) == MON

    def test_left_shifts_each_day_forward(self):
        assert rotate_mask(MON | SAT, 1) == TUE | SUN

    def test_zero_direction_is_identity(self):
        assert rotate_mask(WED | SUN, 0) == WED | SUN

    def test_full_week_unchanged(self):
        assert rotate_mask(0x7F, -1) == 0x7F
        assert rotate_mask(0x7F, 1) == 0x7F

    def test_empty_mask_stays_empty(self):
        assert rotate_mask(0, -1) == 0
        assert rotate_mask(0, 1) == 0

    def test_round_trip_every_mask(self):
        for mask in range(0x80):
            assert rotate_mask(rotate_mask(mask, 1), -1) == mask

    def test_result_stays_seven_bits(self):
        for mask in range(0x80):
            assert rotate_mask(mask, 1) <= 0x7F
            assert rotate_mask(mask, -1) <= 0x7F


# ---------------------------------------------------------------------------
# parse_day_spec
# ---------------------------------------------------------------------------


class TestParseDaySpecKeywords:
    def test_today_is_one_off(self):
        assert parse_day_spec("today", NOW) == DaySpec(NOW.date(), 0)

    def test_daily(self):
        assert parse_day_spec("daily", NOW).mask == 0x7F

    def test_weekdays(self):
        assert parse_day_spec("Weekdays", NOW).mask == 0x1F

    def test_weekends_advances_to_saturday(self):
        spec = parse_day_spec("WEEKENDS", NOW)
        assert spec.mask == 0x60
        assert spec.reference_date == date(2026, 10, 24)

    def test_weekly_uses_todays_weekday(self):
        spec = parse_day_spec("weekly", NOW)
        assert spec.mask == WED
        assert spec.reference_date == NOW.date()


class TestParseDaySpecLists:
    def test_single_day(self):
        assert parse_day_spec("fri", NOW) == DaySpec(date(2026, 10, 23), FRI)

    def test_comma_list(self):
        spec = parse_day_spec("mon,wed,fri", NOW)
        assert spec.mask == MON | WED | FRI
        assert spec.reference_date == NOW.date()

    def test_case_insensitive(self):
        assert parse_day_spec("Mon,TUE", NOW).mask == MON | TUE

    def test_unknown_tokens_ignored(self):
        assert parse_day_spec("mon,xyz", NOW).mask == MON

    def test_all_unknown_fails(self):
        assert parse_day_spec("foo,bar", NOW) is None

    def test_reference_wraps_into_next_week(self):
        spec = parse_day_spec("mon", NOW)
        assert spec.reference_date == date(2026, 10, 26)


class TestParseDaySpecDates:
    def test_iso_date(self):
        assert parse_day_spec("2026-12-24", NOW) == DaySpec(date(2026, 12, 24), 0)

    def test_invalid_date(self):
        assert parse_day_spec("2026-13-40", NOW) is None

    def test_garbage(self):
        assert parse_day_spec("20:00", NOW) is None
        assert parse_day_spec("", NOW) is None


class TestReferenceDateAlignment:
    def test_every_mask_and_weekday(self):
        monday = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)
        for weekday in range(7):
            now = monday + timedelta(days=weekday)
            for mask in range(1, 0x80):
                tokens = ",".join(
                    name for i, name in enumerate(("mon", "tue", "wed", "thu", "fri", "sat", "sun"))
                    if mask & (1 << i)
                )
                spec = parse_day_spec(tokens, now)
                advance = (spec.reference_date - now.date()).days
                assert 0 <= advance <= 6
                assert mask & (1 << spec.reference_date.weekday())
                # nothing closer would have matched
                for step in range(advance):
                    skipped = now.date() + timedelta(days=step)
                    assert not mask & (1 << skipped.weekday())


# ---------------------------------------------------------------------------
# parse_time_spec
# ---------------------------------------------------------------------------


class TestParseTimeSpec:
    def test_single_time_defaults_to_one_hour(self):
        assert parse_time_spec("09:00") == TimeSpec(540, 600, explicit_end=False, day_shift=0)

    def test_explicit_range(self):
        spec = parse_time_spec("18:30-21:00")
        assert (spec.start_minute, spec.end_minute) == (1110, 1260)
        assert spec.explicit_end is True

    def test_crossing_midnight(self):
        spec = parse_time_spec("23:30-00:30")
        assert spec.start_minute == 1410
        assert spec.end_minute == spec.start_minute + 60
        assert spec.end_minute >= 1440

    def test_single_digit_hour(self):
        assert parse_time_spec("9:05").start_minute == 545

    def test_timezone_converts_to_utc(self):
        spec = parse_time_spec("10:00-12:00CEST")
        assert (spec.start_minute, spec.end_minute) == (480, 600)
        assert spec.day_shift == 0

    def test_timezone_into_previous_day(self):
        spec = parse_time_spec("01:00JST")
        assert spec.start_minute == 60 - 540
        assert spec.day_shift == -1

    def test_timezone_into_next_day(self):
        spec = parse_time_spec("20:00PST")
        assert spec.start_minute == 20 * 60 + 480
        assert spec.day_shift == 1

    def test_records_timezone_offset(self):
        assert parse_time_spec("10:00CEST").utc_offset == 120
        assert parse_time_spec("10:00").utc_offset == 0

    def test_unknown_timezone_rejected(self):
        assert parse_time_spec("20:00XYZ") is None

    @pytest.mark.parametrize("text", ["", "abc", "25:00", "12:60", "12", "-1:00", "20:00-", "20:00junk", "20:00+02", "20:00-21:00!"])
    def test_invalid(self, text):
        assert parse_time_spec(text) is None


class TestTimezoneAbbreviations:
    def test_known(self):
        assert lookup_offset("GMT") == 0
        assert lookup_offset("est") == -300
        assert lookup_offset("AEDT") == 660

    def test_unknown(self):
        assert lookup_offset("NOPE") is None
        assert lookup_offset("") is None


# ---------------------------------------------------------------------------
# describe_repeat
# ---------------------------------------------------------------------------


class TestDescribeRepeat:
    def test_named_masks(self):
        assert describe_repeat(0x7F, NOW) == "Daily"
        assert describe_repeat(0x1F, NOW) == "Weekdays"
        assert describe_repeat(0x60, NOW) == "Weekends"

    def test_one_off_shows_date(self):
        assert describe_repeat(0, NOW) == "2026-10-21"

    def test_day_list(self):
        assert describe_repeat(MON | WED | SUN, NOW) == "mon,wed,sun"
