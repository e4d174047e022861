import os
import tempfile
import unittest
import uuid
from pathlib import Path

from _test_support import python_command
from hubdeploy.config import DeploymentConfig
from hubdeploy.executor import run_deployment, split_command
from hubdeploy.models import DeploymentError


class SplitCommandTests(unittest.TestCase):
    def test_split(self):
        self.assertEqual(split_command([]), ("", []))
        self.assertEqual(split_command(["ls"]), ("ls", []))
        self.assertEqual(split_command(["docker", "compose", "up"]), ("docker", ["compose", "up"]))


class RunDeploymentTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.work_dir = Path(self._tmp.name).resolve()

    def tearDown(self):
        self._tmp.cleanup()

    def _deployment(self, command, work_dir=None):
        return DeploymentConfig(type="dockerhub", work_dir=str(work_dir or self.work_dir), command=command)

    def test_success_captures_combined_output(self):
        code = "import sys; print('out'); sys.stdout.flush(); print('err', file=sys.stderr)"
        result_id, output, error = run_deployment(self._deployment(python_command(code)))
        self.assertIsInstance(result_id, uuid.UUID)
        self.assertEqual(result_id.version, 1)
        self.assertIsNone(error)
        self.assertIn(b"out", output)
        self.assertIn(b"err", output)

    def test_runs_in_work_dir_without_touching_process_cwd(self):
        before = os.getcwd()
        _, output, error = run_deployment(self._deployment(python_command("import os; print(os.getcwd())")))
        self.assertIsNone(error)
        self.assertEqual(Path(output.decode().strip()).resolve(), self.work_dir)
        self.assertEqual(os.getcwd(), before)

    def test_non_zero_exit_keeps_output(self):
        code = "import sys; print('partial log'); sys.exit(3)"
        result_id, output, error = run_deployment(self._deployment(python_command(code)))
        self.assertIsInstance(error, DeploymentError)
        self.assertEqual(error.returncode, 3)
        self.assertIn(b"partial log", output)
        self.assertEqual(error.output, output)
        self.assertIn(str(result_id), str(error))

    def test_missing_work_dir(self):
        _, output, error = run_deployment(self._deployment(["true"], work_dir=self.work_dir / "gone"))
        self.assertIsInstance(error, DeploymentError)
        self.assertIn("chdir", str(error))
        self.assertEqual(output, b"")

    def test_empty_command(self):
        _, output, error = run_deployment(self._deployment([]))
        self.assertIsInstance(error, DeploymentError)
        self.assertEqual(output, b"")

    def test_missing_executable(self):
        _, _, error = run_deployment(self._deployment(["hubdeploy-no-such-binary-xyz"]))
        self.assertIsInstance(error, DeploymentError)
        self.assertIn("execution failed", str(error))

    def test_ids_are_unique_and_time_ordered(self):
        first, _, _ = run_deployment(self._deployment(python_command("pass")))
        second, _, _ = run_deployment(self._deployment(python_command("pass")))
        self.assertNotEqual(first, second)
        self.assertLessEqual(first.time, second.time)


if __name__ == "__main__":
    unittest.main()
