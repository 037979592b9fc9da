"""
Workflow Loader

Registers workflow definitions from YAML files at startup.
"""

import logging
from pathlib import Path
from typing import List, Union

from ..errors import InvalidDefinitionError
from .definition import WorkflowDefinition
from .registry import WorkflowRegistry

logger = logging.getLogger(__name__)

WORKFLOW_FILE_PATTERNS = ("*.yaml", "*.yml")

# Definitions shipped with the package (build failure, PR and sprint monitoring)
BUILTIN_DEFINITIONS_DIR = Path(__file__).parent / "definitions"


def load_workflows(
    registry: WorkflowRegistry, directory: Union[str, Path]
) -> List[str]:
    """
    Load and register all workflow files in a directory.

    A file that cannot be parsed or fails validation is logged and skipped;
    the remaining files are still registered.

    Args:
        registry: Registry to register into
        directory: Directory containing *.yaml / *.yml definitions

    Returns:
        Ids of the workflows that were registered
    """
    path = Path(directory)
    if not path.is_dir():
        logger.warning(f"Workflow directory not found: {path}")
        return []

    files = sorted(
        file for pattern in WORKFLOW_FILE_PATTERNS for file in path.glob(pattern)
    )

    loaded = []
    for file in files:
        try:
            definition = WorkflowDefinition.from_file(str(file))
            registry.register(definition)
        except (InvalidDefinitionError, OSError) as e:
            logger.error(f"Failed to load workflow {file.name}: {e}")
            continue
        loaded.append(definition.id)
        logger.info(f"Loaded workflow: {definition.name}")

    logger.info(f"Loaded {len(loaded)} of {len(files)} workflows from {path}")
    return loaded
