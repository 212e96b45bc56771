import tempfile
import unittest
from pathlib import Path

from gdmirror.auth import Identity, ServiceAccountDirectory, StaticCatalog


class _Named(Identity):
    def __init__(self, name: str) -> None:
        self.name = name


class TestCatalogs(unittest.TestCase):
    def test_static_catalog_batches(self) -> None:
        ids = [_Named(str(i)) for i in range(5)]
        catalog = StaticCatalog(ids)
        self.assertEqual(len(catalog), 5)
        self.assertEqual(catalog.load_batch(0, 2), ids[:2])
        self.assertEqual(catalog.load_batch(4, 2), ids[4:])
        self.assertEqual(catalog.load_batch(5, 2), [])

    def test_directory_lists_json_sorted_and_skips_bad_keys(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            for name in ("b.json", "a.json", "notes.txt"):
                (Path(tmp) / name).write_text("{}", encoding="utf-8")

            catalog = ServiceAccountDirectory(tmp)
            self.assertEqual(len(catalog), 2)
            # Both files are invalid service account keys.
            with self.assertLogs("gdmirror.auth.catalog", level="WARNING"):
                self.assertEqual(catalog.load_batch(0, 10), [])

    def test_missing_directory_is_empty(self) -> None:
        with self.assertLogs("gdmirror.auth.catalog", level="WARNING"):
            catalog = ServiceAccountDirectory("/nonexistent/sa-dir")
        self.assertEqual(len(catalog), 0)


if __name__ == "__main__":
    unittest.main()
