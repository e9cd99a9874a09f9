import unittest
from datetime import date
from unittest import mock

from orrery import cli
from orrery.config import settings


@mock.patch.object(settings, "DEFAULT_PLAYBACK_DURATION", 10.0)
class TestCli(unittest.TestCase):

    def test_non_interactive_uses_defaults(self):
        with mock.patch("builtins.input", side_effect=EOFError), mock.patch("builtins.print"):
            start, end, duration, mode = cli.run_cli(today=date(2025, 1, 1))
        self.assertEqual(start, date(2025, 1, 1))
        self.assertEqual(end, date(2025, 1, 31))
        self.assertEqual(duration, 10.0)
        self.assertEqual(mode, "preview")

    def test_reprompts_on_bad_input(self):
        answers = ["2025-02-01", "2025-01-01", "2025-01-01", "2025-01-10", "abc", "-3", "5", "2"]
        with mock.patch("builtins.input", side_effect=answers), mock.patch("builtins.print"):
            start, end, duration, mode = cli.run_cli(today=date(2025, 1, 1))
        self.assertEqual((start, end), (date(2025, 1, 1), date(2025, 1, 10)))
        self.assertEqual(duration, 5.0)
        self.assertEqual(mode, "headless")
        self.assertEqual(settings.DEFAULT_PLAYBACK_DURATION, 5.0)

    def test_get_date_rejects_garbage(self):
        with mock.patch("builtins.input", side_effect=["31/01/2025", "2025-01-31"]), mock.patch("builtins.print"):
            self.assertEqual(cli.get_date("Date: ", "2025-01-01"), date(2025, 1, 31))


if __name__ == '__main__':
    unittest.main()
