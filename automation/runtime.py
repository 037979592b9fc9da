"""
Workflow Runtime

The context object built once at startup and passed to the HTTP layer and
the scheduler. It owns the settings, registries, store and engine.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from config import EnvironmentManager, WorkflowSettings

from .agents import CapabilityRegistry
from .runtime_data import ExecutionStore, FileSystemExecutionStore, MemoryExecutionStore
from .workflows import WorkflowEngine, WorkflowRegistry, load_workflows

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(settings: WorkflowSettings):
    """Configure root logging: console handler, plus a file handler if set."""
    # Reset the logging configuration
    # This is important as basicConfig won't do anything if the root logger
    # already has handlers configured
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)
        handler.close()

    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG if settings.log_file else settings.log_level)

    formatter = logging.Formatter(LOG_FORMAT)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(settings.log_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # File handler
    if settings.log_file:
        log_file = Path(settings.log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(log_file.absolute()))
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)


def create_store(settings: WorkflowSettings) -> ExecutionStore:
    if settings.execution_store_backend == "filesystem":
        return FileSystemExecutionStore(Path(settings.execution_store_path))
    return MemoryExecutionStore()


@dataclass
class WorkflowRuntime:
    """Single-instance-per-process bundle of the workflow subsystem."""

    settings: WorkflowSettings
    capabilities: CapabilityRegistry
    workflows: WorkflowRegistry
    store: ExecutionStore
    engine: WorkflowEngine

    @classmethod
    def from_settings(
        cls,
        settings: Optional[WorkflowSettings] = None,
        capabilities: Optional[CapabilityRegistry] = None,
        store: Optional[ExecutionStore] = None,
    ) -> "WorkflowRuntime":
        """
        Build the runtime and load workflow definitions.

        Args:
            settings: Validated settings; defaults are used if omitted
            capabilities: Pre-populated capability registry
            store: Execution store; chosen from settings if omitted
        """
        settings = settings or WorkflowSettings()
        capabilities = capabilities or CapabilityRegistry()
        store = store if store is not None else create_store(settings)
        workflows = WorkflowRegistry()

        if settings.workflow_definitions_dir:
            load_workflows(workflows, settings.workflow_definitions_dir)

        engine = WorkflowEngine(
            registry=workflows,
            capabilities=capabilities,
            store=store,
            step_timeout=settings.step_timeout_seconds,
            persist_timeout=settings.persist_timeout_seconds,
            default_list_limit=settings.default_list_limit,
            retention_days=settings.execution_retention_days,
        )

        logging.getLogger(__name__).info(
            f"Workflow runtime ready: {len(workflows)} workflows, "
            f"{settings.execution_store_backend} execution store"
        )
        return cls(
            settings=settings,
            capabilities=capabilities,
            workflows=workflows,
            store=store,
            engine=engine,
        )

    @classmethod
    def from_environment(
        cls,
        env_manager: Optional[EnvironmentManager] = None,
        capabilities: Optional[CapabilityRegistry] = None,
        configure_logging: bool = True,
    ) -> "WorkflowRuntime":
        """Load settings from the environment, configure logging, build."""
        env_manager = env_manager or EnvironmentManager()
        settings = env_manager.load().get_settings()
        if configure_logging:
            setup_logging(settings)
        return cls.from_settings(settings, capabilities=capabilities)
