import os
import unittest
from unittest.mock import patch

from gdmirror.config import MirrorConfig


class TestMirrorConfig(unittest.TestCase):
    def test_defaults(self) -> None:
        config = MirrorConfig()
        self.assertEqual(config.parallel_limit, 20)
        self.assertEqual(config.retry_limit, 7)
        self.assertEqual(config.timeout_base, 7.0)
        self.assertEqual(config.timeout_max, 60.0)
        self.assertEqual(config.sa_batch_size, 1000)
        self.assertIsNone(config.default_target)
        self.assertFalse(config.server_mode)

    def test_validation(self) -> None:
        with self.assertRaises(ValueError):
            MirrorConfig(parallel_limit=0)
        with self.assertRaises(ValueError):
            MirrorConfig(page_size=1001)
        with self.assertRaises(ValueError):
            MirrorConfig(sa_batch_size=0)

    def test_from_env(self) -> None:
        env = {
            "GDMIRROR_PARALLEL_LIMIT": "5",
            "GDMIRROR_SA_DIR": "/tmp/accounts",
            "GDMIRROR_DEFAULT_TARGET": "TARGET_FOLDER_ID",
            "GDMIRROR_SERVER_MODE": "yes",
            "GDMIRROR_SUPPORTS_ALL_DRIVES": "0",
            "GDMIRROR_VERBOSE": " ",
        }
        with patch.dict(os.environ, env):
            config = MirrorConfig.from_env()

        self.assertEqual(config.parallel_limit, 5)
        self.assertEqual(config.sa_dir, "/tmp/accounts")
        self.assertEqual(config.default_target, "TARGET_FOLDER_ID")
        self.assertTrue(config.server_mode)
        self.assertFalse(config.supports_all_drives)
        self.assertFalse(config.verbose)

    def test_from_env_empty_target_is_none(self) -> None:
        with patch.dict(os.environ, {"GDMIRROR_DEFAULT_TARGET": ""}):
            self.assertIsNone(MirrorConfig.from_env().default_target)


if __name__ == "__main__":
    unittest.main()
