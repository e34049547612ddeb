import unittest
from datetime import datetime

from ghostguide.model import ScheduleEntry
from ghostguide.now import progress_percent, time_remaining, upcoming, whats_on_now


def _e(channel, start, end, title="T"):
    return ScheduleEntry(channel=channel, title=title, start_time=start, end_time=end)


SCHEDULE = [
    _e("Shudder", datetime(2024, 1, 15, 20), datetime(2024, 1, 15, 22), "Elm Street"),
    _e("Shudder", datetime(2024, 1, 15, 22), datetime(2024, 1, 16, 0), "Elm Street 2"),
    _e("AMC", datetime(2024, 1, 15, 21), datetime(2024, 1, 15, 22), "The Walking Dead"),
    _e("Syfy", datetime(2024, 1, 16, 3), datetime(2024, 1, 16, 5), "Alien"),
]


class TestWhatsOn(unittest.TestCase):
    def test_whats_on_now(self) -> None:
        airing = whats_on_now(SCHEDULE, datetime(2024, 1, 15, 21, 30))
        self.assertEqual([e.title for e in airing], ["The Walking Dead", "Elm Street"])

    def test_end_is_exclusive(self) -> None:
        airing = whats_on_now(SCHEDULE, datetime(2024, 1, 15, 22, 0))
        self.assertEqual([e.title for e in airing], ["Elm Street 2"])

    def test_upcoming(self) -> None:
        soon = upcoming(SCHEDULE, datetime(2024, 1, 15, 20, 30), hours=4)
        self.assertEqual([e.title for e in soon], ["The Walking Dead", "Elm Street 2"])

    def test_progress_and_remaining(self) -> None:
        e = SCHEDULE[0]
        self.assertAlmostEqual(progress_percent(e, datetime(2024, 1, 15, 21)), 50.0)
        self.assertEqual(progress_percent(e, datetime(2024, 1, 15, 19)), 0.0)
        self.assertEqual(progress_percent(e, datetime(2024, 1, 15, 23)), 100.0)

        self.assertEqual(time_remaining(e, datetime(2024, 1, 15, 21, 15)), "45m left")
        self.assertEqual(time_remaining(e, datetime(2024, 1, 15, 20, 30)), "1h 30m left")
        self.assertEqual(time_remaining(e, datetime(2024, 1, 15, 22, 0)), "Ending now")


if __name__ == "__main__":
    unittest.main()
