import unittest

from gdmirror.models import Node, TreeSummary, summarize
from gdmirror.models.summary import NO_EXTENSION, file_extension
from gdmirror.util.mime import FOLDER_MIME


def _file(file_id, name, size):
    return Node(id=file_id, name=name, mime_type="text/plain", parent_id="P", size=size)


class TestSummary(unittest.TestCase):
    def setUp(self) -> None:
        self.nodes = [
            Node(id="D1", name="dir", mime_type=FOLDER_MIME, parent_id="P"),
            _file("F1", "a.mp4", 100),
            _file("F2", "b.MP4", 50),
            _file("F3", "c.txt", 10),
            _file("F4", "c.txt", 10),
            _file("F5", "c.txt", 10),
            _file("F6", "README", None),
        ]

    def test_counts(self) -> None:
        summary = summarize(self.nodes)
        self.assertEqual(summary.folder_count, 1)
        self.assertEqual(summary.file_count, 6)
        self.assertEqual(summary.total_size, 180)
        self.assertEqual([s.ext for s in summary.extensions], [NO_EXTENSION, "mp4", "txt"])

    def test_sort_by_count_and_size(self) -> None:
        by_count = summarize(self.nodes, sort="count")
        self.assertEqual(by_count.extensions[0].ext, "txt")
        self.assertEqual(by_count.extensions[0].count, 3)

        by_size = summarize(self.nodes, sort="size")
        self.assertEqual(by_size.extensions[0].ext, "mp4")
        self.assertEqual(by_size.extensions[0].size, 150)

    def test_dict_round_trip(self) -> None:
        summary = summarize(self.nodes)
        self.assertEqual(TreeSummary.from_dict(summary.to_dict()), summary)

    def test_file_extension(self) -> None:
        self.assertEqual(file_extension("x.tar.GZ"), "gz")
        self.assertEqual(file_extension("noext"), NO_EXTENSION)


if __name__ == "__main__":
    unittest.main()
