from datetime import datetime, timedelta, timezone

from pocketledger import timetools as tt

SAMPLE = datetime(2024, 5, 15, 13, 45, 12, 345678)


def test_day_bounds_enclose_moment():
    first = tt.first_second_of_day(SAMPLE)
    last = tt.last_second_of_day(SAMPLE)
    assert first <= SAMPLE <= last
    assert first.date() == SAMPLE.date() == last.date()
    assert last + timedelta(microseconds=1) == first + timedelta(days=1)


def test_to_day_matches_first_second_of_day():
    assert tt.to_day(SAMPLE) == tt.first_second_of_day(SAMPLE)
    assert tt.to_day(tt.to_day(SAMPLE)) == tt.to_day(SAMPLE)


def test_timezone_is_preserved():
    zone = timezone(timedelta(hours=8))
    moment = SAMPLE.replace(tzinfo=zone)
    assert tt.to_day(moment).tzinfo is zone
    assert tt.last_second_of_month(moment).tzinfo is zone
    assert tt.first_second_of_week(moment).tzinfo is zone


def test_month_bounds():
    first = tt.first_second_of_month(SAMPLE)
    last = tt.last_second_of_month(SAMPLE)
    assert first.day == 1 and first.month == SAMPLE.month
    assert last.month == SAMPLE.month
    following = last + timedelta(seconds=1)
    assert following.day == 1 and following.month != SAMPLE.month
    assert tt.first_second_of_month(following) == following


def test_last_second_of_december_rolls_into_next_year():
    last = tt.last_second_of_month(datetime(2023, 12, 5))
    following = last + timedelta(seconds=1)
    assert following == tt.first_second_of_year(datetime(2024, 6, 1))


def test_leap_february():
    assert tt.last_second_of_month(datetime(2024, 2, 10)).day == 29


def test_week_bounds():
    for offset in range(7):
        moment = SAMPLE + timedelta(days=offset)
        monday = tt.first_second_of_week(moment)
        sunday = tt.last_second_of_week(moment)
        assert monday.weekday() == 0
        assert sunday.weekday() == 6
        assert monday <= moment <= sunday
        assert sunday + timedelta(seconds=1) == monday + timedelta(days=7)


def test_year_bounds():
    first = tt.first_second_of_year(SAMPLE)
    last = tt.last_second_of_year(SAMPLE)
    assert (first.month, first.day) == (1, 1)
    assert (last.month, last.day) == (12, 31)
    assert last + timedelta(seconds=1) == tt.first_second_of_year(SAMPLE.replace(year=SAMPLE.year + 1))


def test_split_months_chains_ranges():
    start = datetime(2024, 1, 15, 8)
    end = datetime(2024, 3, 10, 12)
    parts = tt.split_months(start, end)
    assert len(parts) == 3
    assert parts[0][0] == start
    assert parts[-1][1] == end
    for (_, prev_end), (next_start, _) in zip(parts, parts[1:]):
        assert next_start == prev_end + timedelta(seconds=1)
    for part_start, part_end in parts[:-1]:
        assert part_end == tt.last_second_of_month(part_start)


def test_split_months_empty_for_equal_bounds():
    assert tt.split_months(SAMPLE, SAMPLE) == []


def test_split_days():
    start = datetime(2024, 2, 27, 15)
    end = datetime(2024, 3, 3, 9)
    days = tt.split_days(start, end)
    assert days[0] == tt.to_day(start)
    assert all(b - a == timedelta(days=1) for a, b in zip(days, days[1:]))
    assert days[-1] <= end < days[-1] + timedelta(days=1)


def test_split_days_empty_when_end_before_start_day():
    assert tt.split_days(datetime(2024, 3, 3, 9), datetime(2024, 3, 2)) == []


def test_split_weeks():
    start = datetime(2024, 1, 3, 10)
    end = datetime(2024, 2, 14, 18)
    weeks = tt.split_weeks(start, end)
    assert weeks[0][0] == start
    assert weeks[-1][1] == end
    for _, week_end in weeks[:-1]:
        assert week_end.weekday() == 6
    for week_start, _ in weeks[1:]:
        assert week_start.weekday() == 0
        assert week_start == tt.to_day(week_start)
    for (_, prev_end), (next_start, _) in zip(weeks, weeks[1:]):
        assert next_start == prev_end + timedelta(seconds=1)


def test_split_weeks_empty_when_start_not_before_end():
    assert tt.split_weeks(SAMPLE, SAMPLE) == []
    assert tt.split_weeks(SAMPLE, SAMPLE - timedelta(days=3)) == []


def test_split_years():
    start = datetime(2022, 6, 1)
    end = datetime(2024, 3, 1)
    years = tt.split_years(start, end)
    assert years[0][0] == start
    assert years[-1][1] == end
    for _, year_end in years[:-1]:
        assert (year_end.month, year_end.day) == (12, 31)
    for year_start, _ in years[1:]:
        assert (year_start.month, year_start.day) == (1, 1)


def test_split_years_is_capped():
    years = tt.split_years(datetime(1800, 1, 1), datetime(2200, 1, 1))
    assert len(years) == 101