import unittest
from typing import Optional

from gdmirror.dedupe import find_duplicates, trash_nodes
from gdmirror.errors import PermissionError
from gdmirror.models import Node
from gdmirror.util.mime import FOLDER_MIME


def file(file_id: str, parent: str, md5: Optional[str]) -> Node:
    return Node(id=file_id, name=f"{file_id}.bin", mime_type="application/octet-stream",
                parent_id=parent, md5_checksum=md5)


def folder(folder_id: str, parent: str, name: str) -> Node:
    return Node(id=folder_id, name=name, mime_type=FOLDER_MIME, parent_id=parent)


class TestFindDuplicates(unittest.TestCase):
    def test_second_file_with_same_parent_and_hash(self) -> None:
        nodes = [
            file("x1", "A", "hashX"),
            file("x2", "A", "hashX"),
            file("y1", "A", "hashY"),
        ]
        self.assertEqual([n.id for n in find_duplicates(nodes)], ["x2"])

    def test_same_hash_in_other_folder_is_not_duplicate(self) -> None:
        nodes = [file("x1", "A", "hashX"), file("x2", "B", "hashX")]
        self.assertEqual(find_duplicates(nodes), [])

    def test_files_without_hash_are_ignored(self) -> None:
        nodes = [file("d1", "A", None), file("d2", "A", None)]
        self.assertEqual(find_duplicates(nodes), [])

    def test_empty_duplicate_folder_reported_once(self) -> None:
        nodes = [folder("foo1", "A", "foo"), folder("foo2", "A", "foo")]
        self.assertEqual([n.id for n in find_duplicates(nodes)], ["foo2"])

    def test_no_folder_reported_when_one_has_a_child(self) -> None:
        for parent_of_child in ("foo1", "foo2"):
            with self.subTest(parent_of_child=parent_of_child):
                nodes = [
                    folder("foo1", "A", "foo"),
                    folder("foo2", "A", "foo"),
                    file("c1", parent_of_child, "h"),
                ]
                self.assertEqual(find_duplicates(nodes), [])

    def test_same_name_in_other_parent_is_not_duplicate(self) -> None:
        nodes = [folder("foo1", "A", "foo"), folder("foo2", "B", "foo")]
        self.assertEqual(find_duplicates(nodes), [])

    def test_non_empty_duplicate_folders_are_left_alone(self) -> None:
        nodes = [
            folder("foo1", "A", "foo"),
            folder("foo2", "A", "foo"),
            file("c1", "foo1", "h1"),
            file("c2", "foo2", "h2"),
        ]
        self.assertEqual(find_duplicates(nodes), [])

    def test_files_come_before_folders(self) -> None:
        nodes = [
            folder("e1", "A", "e"),
            folder("e2", "A", "e"),
            file("x1", "A", "h"),
            file("x2", "A", "h"),
        ]
        self.assertEqual([n.id for n in find_duplicates(nodes)], ["x2", "e2"])


class FakeTrash:
    def __init__(self, failing=()) -> None:
        self.trashed = []
        self.failing = set(failing)

    async def trash(self, file_id, *, use_service_identity=False):
        if file_id in self.failing:
            raise PermissionError("insufficient permissions")
        self.trashed.append(file_id)


class TestTrashNodes(unittest.IsolatedAsyncioTestCase):
    async def test_counts_and_failures(self) -> None:
        controller = FakeTrash(failing={"x3"})
        nodes = [
            file("x2", "A", "h"),
            file("x3", "A", "h"),
            folder("e2", "A", "e"),
        ]

        with self.assertLogs("gdmirror.dedupe", level="WARNING"):
            result = await trash_nodes(controller, nodes, parallel_limit=2)

        self.assertEqual(result.file_count, 1)
        self.assertEqual(result.folder_count, 1)
        self.assertEqual([n.id for n in result.failed], ["x3"])
        self.assertEqual(sorted(controller.trashed), ["e2", "x2"])


if __name__ == "__main__":
    unittest.main()
