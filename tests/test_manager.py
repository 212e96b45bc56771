import asyncio
import tempfile
import unittest
from pathlib import Path
from typing import Optional
from unittest.mock import patch

from gdmirror.auth import CredentialPool, StaticCatalog
from gdmirror.config import MirrorConfig
from gdmirror.controller import FolderListing
from gdmirror.errors import InvalidArgumentError, NotFoundError
from gdmirror.manager import DriveMirror
from gdmirror.models import Node, TaskStatus
from gdmirror.store import MemoryCheckpointStore, MemoryHashIndex, MemoryTaskStore, SqliteStore
from gdmirror.util.mime import FOLDER_MIME

SOURCE = "SOURCE_FOLDER_ID"
TARGET = "TARGET_FOLDER_ID"
SINGLE = "SINGLE_FILE_ID"


def folder(folder_id: str, name: Optional[str] = None) -> Node:
    return Node(id=folder_id, name=name or folder_id, mime_type=FOLDER_MIME)


def file(file_id: str, size: int = 10, md5: Optional[str] = None, name: Optional[str] = None) -> Node:
    return Node(id=file_id, name=name or f"{file_id}.txt", mime_type="text/plain",
                size=size, md5_checksum=md5)


class FakeController:
    def __init__(self) -> None:
        self.tree = {
            SOURCE: [folder("A"), folder("E1", "empty"), folder("E2", "empty"),
                     file("f1", md5="m1"), file("f2", md5="m1"), file("f3", size=1, md5="m3")],
            "A": [file("fa", size=100, md5="ma")],
        }
        self.objects = {
            SOURCE: folder(SOURCE, "Source"),
            TARGET: folder(TARGET, "Target"),
            SINGLE: file(SINGLE, size=42, name="movie.mkv"),
        }
        self.listed: list[str] = []
        self.trashed: list[str] = []
        self.copied: list[str] = []
        self._next = 0

    async def get(self, file_id, *, use_service_identity=False):
        return self.objects.get(file_id)

    async def list_folder(self, folder_id, *, with_timestamps=False, use_service_identity=False):
        self.listed.append(folder_id)
        await asyncio.sleep(0)
        return FolderListing(
            folder_id, [child.with_parent(folder_id) for child in self.tree.get(folder_id, [])]
        )

    async def create_folder(self, name, parent_id, *, use_service_identity=False):
        self._next += 1
        return f"new{self._next}"

    async def copy(self, file_id, new_parent_id, *, use_service_identity=False):
        self.copied.append(file_id)
        self._next += 1
        return f"new{self._next}"

    async def trash(self, file_id, *, use_service_identity=False):
        self.trashed.append(file_id)


class TestDriveMirror(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.controller = FakeController()
        self.checkpoints = MemoryCheckpointStore()
        self.tasks = MemoryTaskStore()
        self.hashes = MemoryHashIndex()

    def _mirror(self, **config) -> DriveMirror:
        config.setdefault("progress_interval", 0)
        return DriveMirror.from_components(
            self.controller,
            checkpoints=self.checkpoints,
            tasks=self.tasks,
            hash_index=self.hashes,
            config=MirrorConfig(**config),
        )

    async def test_count_crawls_then_uses_stored_summary(self) -> None:
        mirror = self._mirror()

        first = await mirror.count(SOURCE)
        self.assertFalse(first.cached)
        self.assertEqual(first.summary.file_count, 4)
        self.assertEqual(first.summary.folder_count, 3)
        self.assertEqual(first.summary.total_size, 121)
        self.assertEqual(len(first.nodes), 7)

        listed = len(self.controller.listed)
        second = await mirror.count(SOURCE)
        self.assertTrue(second.cached)
        self.assertEqual(second.summary, first.summary)
        self.assertEqual(second.nodes, [])
        self.assertEqual(len(self.controller.listed), listed)

    async def test_count_with_sort_uses_checkpointed_tree(self) -> None:
        mirror = self._mirror()
        await mirror.count(SOURCE)
        listed = len(self.controller.listed)

        result = await mirror.count(SOURCE, sort="size")

        self.assertTrue(result.cached)
        self.assertEqual(len(result.nodes), 7)
        self.assertEqual(result.summary.extensions[0].ext, "txt")
        self.assertEqual(len(self.controller.listed), listed)

    async def test_count_refresh_lists_again(self) -> None:
        mirror = self._mirror()
        await mirror.count(SOURCE)
        self.controller.tree["A"].append(file("fb"))

        result = await mirror.count(SOURCE, refresh=True)

        self.assertFalse(result.cached)
        self.assertEqual(result.summary.file_count, 5)

    async def test_count_single_file(self) -> None:
        result = await self._mirror().count(SINGLE)
        self.assertEqual(result.summary.file_count, 1)
        self.assertEqual(result.summary.total_size, 42)
        self.assertEqual(result.summary.extensions[0].ext, "mkv")

    async def test_count_inaccessible_and_invalid(self) -> None:
        mirror = self._mirror()
        with self.assertRaises(NotFoundError):
            await mirror.count("MISSING_FOLDER_ID")
        with self.assertRaises(InvalidArgumentError):
            await mirror.count("bad id")

    async def test_get_info(self) -> None:
        node = await self._mirror().get_info(SINGLE)
        self.assertEqual(node.name, "movie.mkv")

    async def test_copy_uses_default_target(self) -> None:
        mirror = self._mirror(default_target=TARGET)
        result = await mirror.copy(SOURCE)

        self.assertEqual(result.copied, 4)
        self.assertIs(self.tasks.get_task(SOURCE, TARGET).status, TaskStatus.FINISHED)

    async def test_copy_requires_target(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            await self._mirror().copy(SOURCE)

    async def test_server_mode_continues_existing_task(self) -> None:
        mirror = self._mirror(server_mode=True)
        await mirror.copy(SOURCE, TARGET)
        copied = len(self.controller.copied)

        result = await mirror.copy(SOURCE, TARGET)

        self.assertEqual(result.copied, 0)
        self.assertEqual(len(self.controller.copied), copied)

    async def test_dedupe_requires_confirmation(self) -> None:
        mirror = self._mirror()

        self.assertIsNone(await mirror.dedupe(SOURCE))
        self.assertIsNone(await mirror.dedupe(SOURCE, confirm=lambda files, folders: False))
        self.assertEqual(self.controller.trashed, [])

    async def test_dedupe_with_confirmation(self) -> None:
        seen = []

        async def confirm(files, folders):
            seen.append((files, folders))
            return True

        result = await self._mirror().dedupe(SOURCE, confirm=confirm)

        self.assertEqual(seen, [(1, 1)])
        self.assertEqual(sorted(self.controller.trashed), ["E2", "f2"])
        self.assertEqual((result.file_count, result.folder_count), (1, 1))
        self.assertEqual(result.failed, [])

    async def test_dedupe_yes_uses_cached_tree(self) -> None:
        mirror = self._mirror()
        await mirror.count(SOURCE)
        listed = len(self.controller.listed)

        result = await mirror.dedupe(SOURCE, yes=True)

        self.assertEqual(len(self.controller.listed), listed)
        self.assertEqual(result.file_count, 1)

    async def test_save_hashes(self) -> None:
        mirror = self._mirror()

        added = await mirror.save_hashes(SOURCE, min_size=5)
        self.assertEqual(added, 3)
        self.assertIn(self.hashes.lookup("m1"), {"f1", "f2"})
        self.assertIsNone(self.hashes.lookup("m3"))

        self.assertEqual(await mirror.save_hashes(SOURCE, min_size=5), 0)

    async def test_save_hashes_without_index(self) -> None:
        mirror = DriveMirror.from_components(
            self.controller, checkpoints=self.checkpoints, tasks=self.tasks
        )
        with self.assertRaises(InvalidArgumentError):
            await mirror.save_hashes(SOURCE)

    async def test_server_mode_reload_timer_lifecycle(self) -> None:
        pool = CredentialPool(StaticCatalog([]))
        mirror = DriveMirror.from_components(
            self.controller,
            checkpoints=self.checkpoints,
            tasks=self.tasks,
            pool=pool,
            config=MirrorConfig(server_mode=True),
        )

        async with mirror:
            self.assertIsNotNone(mirror._reload_task)
            self.assertFalse(mirror._reload_task.done())
        self.assertIsNone(mirror._reload_task)


class TestDriveMirrorConstruction(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.config = MirrorConfig(
            db_path=str(Path(self._tmp.name) / "gdmirror.db"),
            sa_dir=str(Path(self._tmp.name) / "sa"),
        )

    def test_shutdown_hook_installed_by_default(self) -> None:
        with patch("gdmirror.manager.install_shutdown_hook") as hook:
            DriveMirror(config=self.config)

        hook.assert_called_once()
        self.assertIsInstance(hook.call_args.args[0], SqliteStore)

    def test_shutdown_hook_can_be_skipped(self) -> None:
        with patch("gdmirror.manager.install_shutdown_hook") as hook:
            DriveMirror(config=self.config, install_hook=False)

        hook.assert_not_called()


if __name__ == "__main__":
    unittest.main()
