import os
import sys
import io
import json
import unittest
from contextlib import redirect_stdout
from unittest import mock

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
import cli
from cli import show_insights, demo_data


class CLITestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_insights_cli.db"
        self.yaml_path = "test_insights_cli.yaml"
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)

    def tearDown(self) -> None:
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)

    def _run(self, func, *args) -> str:
        out = io.StringIO()
        with redirect_stdout(out):
            func(*args)
        return out.getvalue()

    def test_demo_and_insights(self) -> None:
        output = self._run(demo_data, self.db_path, self.yaml_path)
        self.assertIn("Demo user 1 inserted", output)

        output = self._run(show_insights, 1, self.db_path, self.yaml_path)
        self.assertIn("[info] Weekly volume", output)
        self.assertIn("[success] New PR on Bench Press!", output)

        output = self._run(show_insights, 1, self.db_path, self.yaml_path, "es", True)
        data = json.loads(output)
        self.assertEqual(data[-1]["id"], "volume-summary")
        self.assertEqual(data[-1]["title"], "Volumen semanal")

    def test_unknown_user(self) -> None:
        output = self._run(show_insights, 7, self.db_path, self.yaml_path)
        self.assertEqual(output.strip(), "No insights")

    def test_estimate_command(self) -> None:
        argv = ["cli.py", "--yaml", self.yaml_path, "estimate", "--weight", "100", "--reps", "10"]
        with mock.patch.object(sys, "argv", argv):
            output = self._run(cli.main)
        self.assertEqual(output.strip(), "Estimated 1RM: 133.3")


if __name__ == "__main__":
    unittest.main()
