import unittest
import os
import sys
import time
from datetime import date, datetime, timezone
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from marine_admin.courses import scheduler
from marine_admin.courses.slot import AvailabilitySlot


def make_slot(slot_id, start_date, end_date=None, available=10, booked=0, status=None, days=None):
    return AvailabilitySlot(id=slot_id, start_date=start_date, end_date=end_date or start_date,
                            start_time='09:00', end_time='17:00', days_of_week=days or ['Monday'],
                            spots_available=available, spots_booked=booked, status=status)


def ids(slots):
    return [slot.id for slot in slots]


class DeriveStatusTest(unittest.TestCase):
    def setUp(self):
        self.now = datetime(2024, 2, 1, 12, 0)

    def test_past_and_full_slot_is_expired(self):
        slot = make_slot('a', '2024-01-01', available=10, booked=10)
        self.assertEqual(scheduler.derive_status(slot, self.now), scheduler.EXPIRED)

    def test_future_full_slot(self):
        slot = make_slot('a', '2024-03-01', available=10, booked=10)
        self.assertEqual(scheduler.derive_status(slot, self.now), scheduler.FULL)

    def test_overbooked_slot_is_full(self):
        slot = make_slot('a', '2024-03-01', available=10, booked=12)
        self.assertEqual(scheduler.derive_status(slot, self.now), scheduler.FULL)

    def test_future_slot_with_spots(self):
        slot = make_slot('a', '2024-03-01', available=10, booked=5)
        self.assertEqual(scheduler.derive_status(slot, self.now), scheduler.AVAILABLE)

    def test_backend_status_wins(self):
        slot = make_slot('a', '2024-03-01', available=10, booked=0, status='full')
        self.assertEqual(scheduler.derive_status(slot, self.now), 'full')
        slot = make_slot('b', '2020-01-01', available=10, booked=10, status='available')
        self.assertEqual(scheduler.derive_status(slot, self.now), 'available')

    def test_slot_starting_today_after_midnight_is_expired(self):
        slot = make_slot('a', '2024-02-01')
        self.assertEqual(scheduler.derive_status(slot, self.now), scheduler.EXPIRED)

    def test_date_reference_means_midnight(self):
        slot = make_slot('a', '2024-02-01')
        self.assertEqual(scheduler.derive_status(slot, date(2024, 2, 1)), scheduler.AVAILABLE)

    def test_malformed_start_date_is_not_in_the_past(self):
        self.assertEqual(scheduler.derive_status(make_slot('a', 'not-a-date'), self.now), scheduler.AVAILABLE)
        self.assertEqual(scheduler.derive_status(make_slot('b', None, booked=10), self.now), scheduler.FULL)


class FilterAndSortTest(unittest.TestCase):
    def setUp(self):
        self.now = datetime(2024, 2, 1)
        self.a = make_slot('A', '2024-01-01', available=10, booked=10)
        self.b = make_slot('B', '2024-03-01', available=10, booked=5)

    def test_status_sort_puts_available_before_expired(self):
        result = scheduler.filter_and_sort([self.a, self.b], self.now, 'all', 'status')
        self.assertEqual(ids(result), ['B', 'A'])

    def test_available_filter_by_date(self):
        result = scheduler.filter_and_sort([self.a, self.b], self.now, 'available', 'date')
        self.assertEqual(ids(result), ['B'])

    def test_expired_and_full_filters(self):
        full = make_slot('C', '2024-04-01', available=4, booked=4)
        slots = [self.a, self.b, full]
        self.assertEqual(ids(scheduler.filter_and_sort(slots, self.now, 'expired', 'date')), ['A'])
        self.assertEqual(ids(scheduler.filter_and_sort(slots, self.now, 'full', 'date')), ['C'])

    def test_unknown_filter_keeps_everything(self):
        result = scheduler.filter_and_sort([self.b, self.a], self.now, 'bogus', 'date')
        self.assertEqual(ids(result), ['A', 'B'])

    def test_unknown_sort_keeps_input_order(self):
        result = scheduler.filter_and_sort([self.b, self.a], self.now, 'all', 'bogus')
        self.assertEqual(ids(result), ['B', 'A'])

    def test_date_sort_ascending_with_malformed_last(self):
        bad = make_slot('X', 'garbage')
        slots = [bad, self.b, self.a]
        self.assertEqual(ids(scheduler.filter_and_sort(slots, self.now, 'all', 'date')), ['A', 'B', 'X'])

    def test_spots_sort_most_openings_first(self):
        slots = [make_slot('two', '2024-03-01', 10, 8), make_slot('eight', '2024-03-02', 10, 2),
                 make_slot('five', '2024-03-03', 10, 5)]
        self.assertEqual(ids(scheduler.filter_and_sort(slots, self.now, 'all', 'spots')), ['eight', 'five', 'two'])

    def test_status_sort_puts_unknown_backend_status_last(self):
        odd = make_slot('odd', '2024-03-01', status='cancelled')
        full = make_slot('full', '2024-03-01', 3, 3)
        result = scheduler.filter_and_sort([odd, self.a, full, self.b], self.now, 'all', 'status')
        self.assertEqual(ids(result), ['B', 'full', 'A', 'odd'])

    def test_sorts_are_stable(self):
        x = make_slot('x', '2024-03-01', 10, 4)
        y = make_slot('y', '2024-03-01', 10, 4)
        for criterion in scheduler.SORT_CRITERIA:
            self.assertEqual(ids(scheduler.filter_and_sort([x, y], self.now, 'all', criterion)), ['x', 'y'])
            self.assertEqual(ids(scheduler.filter_and_sort([y, x], self.now, 'all', criterion)), ['y', 'x'])

    def test_applying_twice_is_a_no_op(self):
        slots = [make_slot('p', '2024-05-01', 10, 1), self.a, make_slot('q', '2024-02-15', 5, 5), self.b,
                 make_slot('r', '2023-12-01', 10, 0)]
        for filter_criterion in scheduler.FILTER_CRITERIA:
            for sort_criterion in scheduler.SORT_CRITERIA:
                once = scheduler.filter_and_sort(slots, self.now, filter_criterion, sort_criterion)
                twice = scheduler.filter_and_sort(once, self.now, filter_criterion, sort_criterion)
                self.assertEqual(ids(once), ids(twice))

    def test_input_is_not_mutated(self):
        slots = [self.b, self.a]
        result = scheduler.filter_and_sort(slots, self.now, 'all', 'date')
        self.assertEqual(ids(slots), ['B', 'A'])
        self.assertIsNot(result, slots)

    def test_empty_input(self):
        self.assertEqual(scheduler.filter_and_sort([], self.now, 'available', 'spots'), [])


class SlotsForDateTest(unittest.TestCase):
    def setUp(self):
        self.slot = make_slot('s', '2024-01-10', '2024-01-20')

    def test_containment(self):
        self.assertEqual(ids(scheduler.slots_for_date([self.slot], date(2024, 1, 15))), ['s'])
        self.assertEqual(scheduler.slots_for_date([self.slot], date(2024, 1, 25)), [])

    def test_bounds_are_inclusive(self):
        self.assertEqual(len(scheduler.slots_for_date([self.slot], date(2024, 1, 10))), 1)
        self.assertEqual(len(scheduler.slots_for_date([self.slot], date(2024, 1, 20))), 1)
        self.assertEqual(len(scheduler.slots_for_date([self.slot], date(2024, 1, 9))), 0)

    def test_time_of_day_is_ignored(self):
        self.assertEqual(len(scheduler.slots_for_date([self.slot], datetime(2024, 1, 20, 23, 59))), 1)

    def test_malformed_dates_contain_nothing(self):
        slots = [make_slot('bad-start', 'oops', '2024-01-20'), make_slot('bad-end', '2024-01-10', '2024-99-99')]
        self.assertEqual(scheduler.slots_for_date(slots, date(2024, 1, 15)), [])

    def test_weekdays_ignored_by_default(self):
        # 2024-01-01 is a Monday
        mondays = make_slot('m', '2024-01-01', '2024-01-14', days=['Monday'])
        self.assertEqual(len(scheduler.slots_for_date([mondays], date(2024, 1, 2))), 1)
        self.assertEqual(len(scheduler.slots_for_date([mondays], date(2024, 1, 2), respect_days_of_week=True)), 0)
        self.assertEqual(len(scheduler.slots_for_date([mondays], date(2024, 1, 8), respect_days_of_week=True)), 1)


class MonthGridTest(unittest.TestCase):
    def setUp(self):
        self.now = datetime(2024, 4, 17, 9, 30)

    def test_grid_has_one_entry_per_day(self):
        self.assertEqual(len(scheduler.build_month_grid(date(2024, 2, 10), [], 'all', self.now)), 29)
        self.assertEqual(len(scheduler.build_month_grid(date(2024, 4, 1), [], 'all', self.now)), 30)
        self.assertEqual(len(scheduler.build_month_grid(date(2023, 2, 1), [], 'all', self.now)), 28)

    def test_grid_bounds_and_flags(self):
        grid = scheduler.build_month_grid(date(2024, 4, 30), [], 'all', self.now)
        self.assertEqual(grid[0].date, date(2024, 4, 1))
        self.assertEqual(grid[-1].date, date(2024, 4, 30))
        self.assertTrue(all(day.is_current_month for day in grid))
        self.assertEqual([day.date for day in grid if day.is_today], [date(2024, 4, 17)])

    def test_no_today_outside_current_month(self):
        grid = scheduler.build_month_grid(date(2024, 5, 1), [], 'all', self.now)
        self.assertFalse(any(day.is_today for day in grid))

    def test_slot_counts(self):
        slots = [make_slot('a', '2024-04-10', '2024-04-12'), make_slot('b', '2024-04-12', '2024-05-03')]
        grid = scheduler.build_month_grid(date(2024, 4, 1), slots, 'all', self.now)
        counts = {day.date.day: day.slot_count for day in grid}
        self.assertEqual(counts[9], 0)
        self.assertEqual(counts[10], 1)
        self.assertEqual(counts[12], 2)
        self.assertEqual(counts[30], 1)

    def test_slot_counts_use_filter(self):
        expired = make_slot('old', '2024-04-01', '2024-04-20')
        upcoming = make_slot('new', '2024-04-18', '2024-04-25')
        grid = scheduler.build_month_grid(date(2024, 4, 1), [expired, upcoming], 'expired', self.now)
        counts = {day.date.day: day.slot_count for day in grid}
        self.assertEqual(counts[19], 1)
        self.assertEqual(counts[22], 0)

    def test_grid_is_recomputed_each_call(self):
        slots = [make_slot('a', '2024-04-10')]
        first = scheduler.build_month_grid(date(2024, 4, 1), slots, 'all', self.now)
        slots.append(make_slot('b', '2024-04-10'))
        second = scheduler.build_month_grid(date(2024, 4, 1), slots, 'all', self.now)
        self.assertEqual(first[9].slot_count, 1)
        self.assertEqual(second[9].slot_count, 2)


@unittest.skipUnless(hasattr(time, 'tzset'), "needs time.tzset to pin the local timezone")
class AwareReferenceTimeTest(unittest.TestCase):
    # 03:00 UTC on Feb 1 is still Jan 31 in UTC-5
    def setUp(self):
        self.original_tz = os.environ.get('TZ')
        os.environ['TZ'] = 'EST+05'
        time.tzset()
        self.now = datetime(2024, 2, 1, 3, 0, tzinfo=timezone.utc)

    def tearDown(self):
        if self.original_tz is None:
            os.environ.pop('TZ', None)
        else:
            os.environ['TZ'] = self.original_tz
        time.tzset()

    def test_status_uses_local_date(self):
        slot = make_slot('a', '2024-02-01')
        self.assertEqual(scheduler.derive_status(slot, self.now), scheduler.AVAILABLE)
        self.assertEqual(scheduler.derive_status(make_slot('b', '2024-01-31'), self.now), scheduler.EXPIRED)

    def test_today_is_the_local_date(self):
        january = scheduler.build_month_grid(date(2024, 1, 1), [], 'all', self.now)
        february = scheduler.build_month_grid(date(2024, 2, 1), [], 'all', self.now)
        self.assertEqual([day.date for day in january if day.is_today], [date(2024, 1, 31)])
        self.assertFalse(any(day.is_today for day in february))


class MonthNavigationTest(unittest.TestCase):
    def test_shift_month(self):
        self.assertEqual(scheduler.shift_month(date(2024, 1, 15), -1), date(2023, 12, 1))
        self.assertEqual(scheduler.shift_month(date(2024, 12, 3), 1), date(2025, 1, 1))
        self.assertEqual(scheduler.shift_month(date(2024, 3, 31), 0), date(2024, 3, 1))

    def test_parse_month(self):
        self.assertEqual(scheduler.parse_month('2024-02'), date(2024, 2, 1))
        self.assertIsNone(scheduler.parse_month('2024-13'))
        self.assertIsNone(scheduler.parse_month('february'))
        self.assertIsNone(scheduler.parse_month(None))


if __name__ == '__main__':
    unittest.main()
