import unittest
from datetime import datetime, timezone

from gdmirror.models import CopyTask, TaskStatus


class TestCopyTask(unittest.TestCase):
    def _task(self, mapping):
        return CopyTask(
            id=1,
            source_id="S",
            target_id="T",
            status=TaskStatus.INTERRUPTED,
            ctime=datetime(2025, 1, 1, tzinfo=timezone.utc),
            mapping=mapping,
        )

    def test_root_id_is_first_mapping_destination(self) -> None:
        task = self._task([("S", "R1"), ("A", "RA")])
        self.assertEqual(task.root_id, "R1")

    def test_root_id_none_without_mapping(self) -> None:
        self.assertIsNone(self._task([]).root_id)

    def test_status_values(self) -> None:
        self.assertEqual(TaskStatus("copying"), TaskStatus.COPYING)
        self.assertEqual(TaskStatus.FINISHED.value, "finished")


if __name__ == "__main__":
    unittest.main()
