import unittest

from gdmirror.util.size import format_size, parse_size


class TestUtilSize(unittest.TestCase):
    def test_parse_units_are_binary(self) -> None:
        self.assertEqual(parse_size("2048"), 2048)
        self.assertEqual(parse_size("1KB"), 1024)
        self.assertEqual(parse_size("10MB"), 10 * 1024**2)
        self.assertEqual(parse_size("1.5g"), int(1.5 * 1024**3))
        self.assertEqual(parse_size(" 3 tb "), 3 * 1024**4)

    def test_parse_numbers_and_empty(self) -> None:
        self.assertEqual(parse_size(100), 100)
        self.assertEqual(parse_size(12.7), 12)
        self.assertIsNone(parse_size(None))
        self.assertIsNone(parse_size(""))

    def test_parse_rejects_invalid(self) -> None:
        for bad in ("ten", "10XB", "-5", True):
            with self.subTest(value=bad):
                with self.assertRaises(ValueError):
                    parse_size(bad)
        with self.assertRaises(ValueError):
            parse_size(-1)

    def test_format_size(self) -> None:
        self.assertEqual(format_size(512), "512 B")
        self.assertEqual(format_size(1536), "1.50 KB")
        self.assertEqual(format_size(5 * 1024**3), "5.00 GB")


if __name__ == "__main__":
    unittest.main()
