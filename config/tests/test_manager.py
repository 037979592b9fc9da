import os
import unittest
from unittest import mock
from pathlib import Path
import tempfile

from pydantic import ValidationError

from config.manager import EnvironmentManager
from config.types import WorkflowSettings


class TestEnvironmentManager(unittest.TestCase):
    """Test cases for the EnvironmentManager class."""

    def setUp(self):
        """Set up test fixtures."""
        # Create a temporary directory for test files
        self.temp_dir = tempfile.mkdtemp()

        # Keep settings from the real environment out of the tests
        self.env_patcher = mock.patch.dict(
            os.environ,
            {k: v for k, v in os.environ.items() if k not in EnvironmentManager.ENV_MAPPING},
            clear=True,
        )
        self.env_patcher.start()

    def tearDown(self):
        """Clean up after tests."""
        import shutil

        self.env_patcher.stop()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def create_env_file(self, content):
        """Create a temporary .env file with the given content."""
        env_file = Path(self.temp_dir) / ".env"
        env_file.write_text(content)
        return env_file

    def make_manager(self, content=""):
        return EnvironmentManager(
            env_file=self.create_env_file(content), base_dir=Path(self.temp_dir)
        )

    def test_initialization(self):
        """Test that EnvironmentManager initializes with defaults."""
        env_manager = EnvironmentManager()

        self.assertIsInstance(env_manager.env_variables, dict)
        self.assertIsInstance(env_manager._providers, list)
        self.assertEqual(env_manager.get_setting("execution_store_backend"), "memory")
        self.assertEqual(env_manager.get_setting("step_timeout_seconds"), 300.0)
        self.assertIsNone(env_manager.get_setting("workflow_definitions_dir"))

    def test_instances_are_independent(self):
        """Test that managers do not share state."""
        first = EnvironmentManager()
        second = EnvironmentManager()

        first.set_setting("default_list_limit", 50)

        self.assertIsNot(first, second)
        self.assertEqual(second.get_setting("default_list_limit"), 10)

    def test_env_mapping(self):
        self.assertEqual(
            EnvironmentManager.ENV_MAPPING["STEP_TIMEOUT_SECONDS"], "step_timeout_seconds"
        )
        self.assertEqual(
            set(EnvironmentManager.ENV_MAPPING.values()),
            set(EnvironmentManager.DEFAULT_SETTINGS.keys()),
        )

    def test_load_from_env_file(self):
        """Test loading typed settings from a .env file."""
        env_manager = self.make_manager(
            "# workflow engine\n"
            "EXECUTION_STORE_BACKEND=filesystem\n"
            'STEP_TIMEOUT_SECONDS="45.5"\n'
            "DEFAULT_LIST_LIMIT='20'\n"
            "UNRELATED=value\n"
            "not a setting line\n"
        ).load()

        self.assertEqual(env_manager.get_setting("execution_store_backend"), "filesystem")
        self.assertEqual(env_manager.get_setting("step_timeout_seconds"), 45.5)
        self.assertEqual(env_manager.get_setting("default_list_limit"), 20)
        self.assertEqual(env_manager.env_variables["UNRELATED"], "value")

    def test_invalid_value_keeps_default(self):
        """Test that a value of the wrong type is ignored with a warning."""
        env_manager = self.make_manager("DEFAULT_LIST_LIMIT=many\n")

        with self.assertLogs("config.manager", level="WARNING") as logs:
            env_manager.load()

        self.assertEqual(env_manager.get_setting("default_list_limit"), 10)
        self.assertIn("DEFAULT_LIST_LIMIT", logs.output[0])

    def test_os_environment_overrides_env_file(self):
        env_manager = self.make_manager("LOG_LEVEL=DEBUG\nDEFAULT_LIST_LIMIT=20\n")

        with mock.patch.dict(os.environ, {"LOG_LEVEL": "ERROR"}):
            env_manager.load()

        self.assertEqual(env_manager.get_setting("log_level"), "ERROR")
        self.assertEqual(env_manager.get_setting("default_list_limit"), 20)

    def test_providers_override_environment(self):
        env_manager = self.make_manager("EXECUTION_RETENTION_DAYS=14\n")
        env_manager.register_provider(lambda: {"execution_retention_days": 30})
        env_manager.register_provider(lambda: {"not_a_setting": 1})

        with self.assertLogs("config.manager", level="WARNING"):
            env_manager.load()

        self.assertEqual(env_manager.get_setting("execution_retention_days"), 30)
        self.assertNotIn("not_a_setting", env_manager.settings)

    def test_failing_provider_is_skipped(self):
        env_manager = self.make_manager()

        def broken():
            raise RuntimeError("provider down")

        env_manager.register_provider(broken)
        env_manager.register_provider(lambda: {"default_list_limit": 3})

        with self.assertLogs("config.manager", level="ERROR"):
            env_manager.load()

        self.assertEqual(env_manager.get_setting("default_list_limit"), 3)

    def test_relative_paths_resolved(self):
        env_manager = self.make_manager(
            "WORKFLOW_DEFINITIONS_DIR=workflows\nLOG_FILE=/var/log/workflow.log\n"
        ).load()

        expected = str((Path(self.temp_dir) / "workflows").resolve())
        self.assertEqual(env_manager.get_setting("workflow_definitions_dir"), expected)
        self.assertEqual(
            env_manager.get_setting("execution_store_path"),
            str((Path(self.temp_dir) / ".workflow_executions").resolve()),
        )
        self.assertEqual(
            env_manager.get_setting("log_file"),
            str(Path("/var/log/workflow.log").resolve()),
        )

    def test_set_setting_unknown(self):
        with self.assertRaises(KeyError):
            EnvironmentManager().set_setting("unknown", 1)

    def test_get_settings(self):
        env_manager = self.make_manager("LOG_LEVEL=warning\n").load()

        settings = env_manager.get_settings()

        self.assertIsInstance(settings, WorkflowSettings)
        self.assertEqual(settings.log_level, "WARNING")

    def test_get_settings_validates(self):
        env_manager = EnvironmentManager().set_setting("execution_store_backend", "redis")

        with self.assertRaises(ValidationError):
            env_manager.get_settings()

    def test_missing_env_file(self):
        """Test that a missing explicit .env file leaves defaults in place."""
        env_manager = EnvironmentManager(
            env_file=Path(self.temp_dir) / "missing.env", base_dir=Path(self.temp_dir)
        ).load()

        self.assertEqual(env_manager.get_setting("execution_store_backend"), "memory")


if __name__ == "__main__":
    unittest.main()
