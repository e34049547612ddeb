"""
Unit tests for the day-grid layout (20-hour timeline, origin 06:00 by default).
"""

import unittest
from datetime import date, datetime

from ghostguide.layout import entries_for_day, entry_geometry, layout_day, time_slots
from ghostguide.model import DEFAULT_CHANNELS, ScheduleEntry


def _e(channel, start, end, title="T", id_=None):
    return ScheduleEntry(id=id_, channel=channel, title=title, start_time=start, end_time=end)


class TestEntryGeometry(unittest.TestCase):
    def test_overnight_entry(self) -> None:
        # 22:00 -> 02:00: start 16h, end 20h after the +24 wrap
        g = entry_geometry(_e("Shudder", datetime(2024, 1, 15, 22), datetime(2024, 1, 16, 2)))
        self.assertAlmostEqual(g.left, 80.0)
        self.assertAlmostEqual(g.width, 20.0)

    def test_evening_entry(self) -> None:
        g = entry_geometry(_e("Shudder", datetime(2024, 1, 15, 20), datetime(2024, 1, 15, 22)))
        self.assertAlmostEqual(g.left, 70.0)
        self.assertAlmostEqual(g.width, 10.0)

    def test_half_hours(self) -> None:
        g = entry_geometry(_e("Syfy", datetime(2024, 1, 15, 20), datetime(2024, 1, 15, 22, 30)))
        self.assertAlmostEqual(g.left, 70.0)
        self.assertAlmostEqual(g.width, 12.5)

    def test_short_entry_gets_minimum_width(self) -> None:
        g = entry_geometry(_e("AMC", datetime(2024, 1, 15, 12), datetime(2024, 1, 15, 12, 15)))
        self.assertAlmostEqual(g.left, 30.0)
        self.assertAlmostEqual(g.width, 5.0)

    def test_ending_at_midnight(self) -> None:
        g = entry_geometry(_e("TCM", datetime(2024, 1, 15, 22), datetime(2024, 1, 16, 0)))
        self.assertAlmostEqual(g.left, 80.0)
        self.assertAlmostEqual(g.width, 10.0)

    def test_malformed_end_is_capped_at_grid_end(self) -> None:
        # 23:00 -> 05:00: end 23h after wrap is beyond the grid, width limited to what is left
        g = entry_geometry(_e("TCM", datetime(2024, 1, 15, 23), datetime(2024, 1, 16, 5)))
        self.assertAlmostEqual(g.left, 85.0)
        self.assertAlmostEqual(g.width, 15.0)

    def test_end_before_start_after_wrap_caps(self) -> None:
        # 10:00 -> 08:00 on the same clock: adjusted end 2 < start 4, capped to 20
        g = entry_geometry(_e("AMC", datetime(2024, 1, 15, 10), datetime(2024, 1, 16, 8)))
        self.assertAlmostEqual(g.left, 20.0)
        self.assertAlmostEqual(g.width, 80.0)

    def test_custom_origin(self) -> None:
        g = entry_geometry(_e("AMC", datetime(2024, 1, 15, 20), datetime(2024, 1, 15, 22)), origin_hour=18)
        self.assertAlmostEqual(g.left, 10.0)
        self.assertAlmostEqual(g.width, 10.0)

    def test_deterministic(self) -> None:
        e = _e("Shudder", datetime(2024, 1, 15, 21, 10), datetime(2024, 1, 15, 23, 40))
        self.assertEqual(entry_geometry(e), entry_geometry(e))


class TestDayFilterAndRows(unittest.TestCase):
    def test_entries_for_day(self) -> None:
        day = date(2024, 1, 15)
        inside = _e("AMC", datetime(2024, 1, 15, 20), datetime(2024, 1, 15, 22), id_="inside")
        from_yesterday = _e("AMC", datetime(2024, 1, 14, 23), datetime(2024, 1, 15, 1), id_="prev")
        spanning = _e("AMC", datetime(2024, 1, 14, 12), datetime(2024, 1, 16, 12), id_="span")
        other_day = _e("AMC", datetime(2024, 1, 17, 20), datetime(2024, 1, 17, 22), id_="other")

        got = {e.id for e in entries_for_day([inside, from_yesterday, spanning, other_day], day)}
        self.assertEqual(got, {"inside", "prev", "span"})

    def test_layout_day_rows_follow_roster(self) -> None:
        day = date(2024, 1, 15)
        entries = [
            _e("shudder", datetime(2024, 1, 15, 22), datetime(2024, 1, 16, 0), title="Elm Street 2"),
            _e("Shudder", datetime(2024, 1, 15, 20), datetime(2024, 1, 15, 22), title="Elm Street"),
            _e("HBO", datetime(2024, 1, 15, 20), datetime(2024, 1, 15, 22), title="Hidden"),
        ]
        rows = layout_day(entries, day, DEFAULT_CHANNELS)

        self.assertEqual([r.channel.name for r in rows], [c.name for c in DEFAULT_CHANNELS])
        shudder = rows[0]
        self.assertEqual([e.title for e, _ in shudder.items], ["Elm Street", "Elm Street 2"])
        self.assertTrue(all(not r.items for r in rows[1:]))

    def test_time_slots(self) -> None:
        slots = time_slots()
        self.assertEqual(len(slots), 21)
        self.assertEqual(slots[0], "6 AM")
        self.assertEqual(slots[6], "12 PM")
        self.assertEqual(slots[18], "12 AM")
        self.assertEqual(slots[-1], "2 AM")


if __name__ == "__main__":
    unittest.main()
