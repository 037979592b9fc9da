from pathlib import Path
from typing import Dict, Any, Optional, List, Callable
from config.types import WorkflowSettings
import logging
import os


class EnvironmentManager:
    """
    Environment manager that collects workflow engine settings from
    defaults, a .env file, the OS environment and registered providers.

    Create one at startup and hand its settings to the runtime; there is no
    shared instance.
    """

    # List of all settings that are paths
    PATH_SETTINGS = [
        "workflow_definitions_dir",
        "execution_store_path",
        "log_file",
    ]

    # Default settings with their types
    DEFAULT_SETTINGS = {
        # Workflow definitions loaded at startup
        "workflow_definitions_dir": (None, str),
        # Execution persistence
        "execution_store_backend": ("memory", str),
        "execution_store_path": (".workflow_executions", str),
        "execution_retention_days": (7, int),
        # Suspension point timeouts
        "step_timeout_seconds": (300.0, float),
        "persist_timeout_seconds": (30.0, float),
        # Queries
        "default_list_limit": (10, int),
        # Logging
        "log_level": ("INFO", str),
        "log_file": (None, str),
    }

    # Create mapping dynamically - each setting can be set via its uppercase env var
    ENV_MAPPING = {setting.upper(): setting for setting in DEFAULT_SETTINGS.keys()}

    def __init__(
        self,
        env_file: Optional[Path] = None,
        base_dir: Optional[Path] = None,
    ):
        """
        Args:
            env_file: Explicit .env file. If not given, the current directory
                and then the home directory are searched.
            base_dir: Directory that relative path settings resolve against.
                Defaults to the current directory at load time.
        """
        self.env_file = Path(env_file) if env_file else None
        self.base_dir = Path(base_dir) if base_dir else None
        self.env_variables: Dict[str, str] = {}
        self._providers: List[Callable[[], Dict[str, Any]]] = []
        self.settings: Dict[str, Any] = {}
        self.logger = logging.getLogger(__name__)

        # Initialize settings with default values
        for key, (default_value, _) in self.DEFAULT_SETTINGS.items():
            self.settings[key] = default_value

    def _convert_value(self, value: str, target_type: type) -> Any:
        """Convert string value to target type"""
        return target_type(value)

    def _apply_variable(self, key: str, value: str, source: str):
        """Store a variable and update the mapped setting, if any"""
        self.env_variables[key] = value

        setting_name = self.ENV_MAPPING.get(key)
        if setting_name is None:
            return

        _, target_type = self.DEFAULT_SETTINGS[setting_name]
        try:
            self.settings[setting_name] = self._convert_value(value, target_type)
        except ValueError:
            self.logger.warning(
                f"Ignoring {key}={value!r} from {source}: "
                f"expected {target_type.__name__}"
            )

    def _env_file_candidates(self) -> List[Path]:
        if self.env_file:
            return [self.env_file]

        env_file_paths = [Path.cwd() / ".env"]

        # Try additional common locations - safely handle home directory
        try:
            env_file_paths.append(Path.home() / ".env")
        except (RuntimeError, OSError):
            # Skip home directory if it can't be determined
            pass

        return env_file_paths

    def _load_from_env_file(self):
        """Find and load variables from a .env file"""
        env_file_paths = self._env_file_candidates()

        # Load from the first .env file found
        for env_path in env_file_paths:
            if env_path.exists() and env_path.is_file():
                self.logger.info(f"Loading environment from: {env_path}")
                self._parse_env_file(env_path)
                return

        self.logger.debug(
            "No .env file found; tried: "
            + ", ".join(str(p) for p in env_file_paths)
        )

    def _parse_env_file(self, env_file_path: Path):
        """Parse a .env file and load variables into environment"""
        try:
            with open(env_file_path, "r") as f:
                lines = f.readlines()
        except OSError as e:
            self.logger.error(f"Error reading .env file {env_file_path}: {e}")
            return

        for line in lines:
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip()

                # Remove quotes if present
                if (value.startswith('"') and value.endswith('"')) or (
                    value.startswith("'") and value.endswith("'")
                ):
                    value = value[1:-1]

                self._apply_variable(key, value, str(env_file_path))

    def _resolve_paths(self):
        """Resolve relative path settings against the base directory"""
        base_dir = self.base_dir or Path.cwd()
        for key in self.PATH_SETTINGS:
            value = self.settings.get(key)
            if value is not None:
                p = Path(value)
                if not p.is_absolute():
                    p = base_dir / p
                self.settings[key] = str(p.resolve())

    def register_provider(self, provider: Callable[[], Dict[str, Any]]):
        """Register a provider function that returns setting overrides"""
        self._providers.append(provider)
        return self

    def load(self):
        """
        Load all environment information.

        Precedence, lowest first: defaults, .env file, OS environment,
        registered providers.
        """
        self._load_from_env_file()

        # Load variables from OS environment
        for key, value in os.environ.items():
            if key in self.ENV_MAPPING:
                self._apply_variable(key, value, "environment")

        # Call all registered providers
        for provider in self._providers:
            try:
                additional = provider()
            except Exception as e:
                self.logger.error(f"Error from settings provider: {e}")
                continue
            for key, value in (additional or {}).items():
                if key in self.settings:
                    self.settings[key] = value
                else:
                    self.logger.warning(f"Provider returned unknown setting '{key}'")

        self._resolve_paths()
        return self

    def get_setting(self, name: str, default: Any = None) -> Any:
        """Get a setting value by name"""
        return self.settings.get(name, default)

    def set_setting(self, name: str, value: Any):
        """Override a setting value by name"""
        if name not in self.DEFAULT_SETTINGS:
            raise KeyError(f"Unknown setting '{name}'")
        self.settings[name] = value
        return self

    def get_settings(self) -> WorkflowSettings:
        """
        Validated view of the current settings.

        Raises:
            pydantic.ValidationError: If a setting has an invalid value
        """
        return WorkflowSettings(**self.settings)
