import atexit
import unittest

from gdmirror.models import TaskStatus
from gdmirror.store import MemoryTaskStore, install_shutdown_hook


class _BrokenStore(MemoryTaskStore):
    def interrupt_running(self) -> int:
        raise RuntimeError("database is locked")


class TestShutdownHook(unittest.TestCase):
    def test_hook_marks_copying_tasks_interrupted(self) -> None:
        tasks = MemoryTaskStore()
        tasks.create_task("S", "T")

        hook = install_shutdown_hook(tasks, signals=())
        self.addCleanup(atexit.unregister, hook)

        with self.assertLogs("gdmirror.store.shutdown", level="WARNING"):
            self.assertEqual(hook(), 1)
        self.assertIs(tasks.get_task("S", "T").status, TaskStatus.INTERRUPTED)

    def test_hook_logs_store_failures(self) -> None:
        hook = install_shutdown_hook(_BrokenStore(), signals=())
        self.addCleanup(atexit.unregister, hook)

        with self.assertLogs("gdmirror.store.shutdown", level="ERROR"):
            self.assertEqual(hook(), 0)


if __name__ == "__main__":
    unittest.main()
