"""
Storage abstraction for execution persistence.
"""

import copy
import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from ..errors import PersistenceError
from .state import Execution, ExecutionStatus

logger = logging.getLogger(__name__)


@dataclass
class ExecutionFilter:
    """Criteria for listing executions."""

    workflow_id: Optional[str] = None
    status: Optional[ExecutionStatus] = None

    def matches(self, execution: Execution) -> bool:
        if self.workflow_id is not None and execution.workflow_id != self.workflow_id:
            return False
        if self.status is not None and execution.status != self.status:
            return False
        return True


def _newest_first(executions: List[Execution], limit: int) -> List[Execution]:
    # Executions without a start time sort last
    executions.sort(
        key=lambda e: e.started_at.timestamp() if e.started_at else float("-inf"),
        reverse=True,
    )
    return executions[: max(limit, 0)]


def _is_expired(execution: Execution, cutoff: datetime) -> bool:
    return (
        execution.is_terminal
        and execution.finished_at is not None
        and execution.finished_at < cutoff
    )


class ExecutionStore(ABC):
    """Abstract storage interface for execution snapshots"""

    @abstractmethod
    def save(self, execution: Execution):
        """Persist an execution snapshot, replacing any previous one"""
        pass

    @abstractmethod
    def load(self, execution_id: str) -> Optional[Execution]:
        """Load an execution, or None if it does not exist"""
        pass

    @abstractmethod
    def list(
        self,
        filter: Optional[ExecutionFilter] = None,
        limit: int = 100,
    ) -> List[Execution]:
        """Query executions, newest started_at first"""
        pass

    @abstractmethod
    def exists(self, execution_id: str) -> bool:
        """Check if an execution exists"""
        pass

    @abstractmethod
    def delete(self, execution_id: str):
        """Delete an execution"""
        pass

    def cleanup(self, cutoff: datetime) -> int:
        """Remove terminal executions that finished before cutoff"""
        expired = [
            execution.id
            for execution in self.list(limit=len(self))
            if _is_expired(execution, cutoff)
        ]
        for execution_id in expired:
            self.delete(execution_id)
        return len(expired)

    @abstractmethod
    def __len__(self) -> int:
        pass


class MemoryExecutionStore(ExecutionStore):
    """In-memory execution storage, for tests and single-process use"""

    def __init__(self):
        self._executions: Dict[str, Execution] = {}
        self._lock = threading.Lock()

    def save(self, execution: Execution):
        """Save execution to memory"""
        # Store a deep copy to avoid mutation issues
        snapshot = copy.deepcopy(execution)
        with self._lock:
            self._executions[execution.id] = snapshot

    def load(self, execution_id: str) -> Optional[Execution]:
        with self._lock:
            execution = self._executions.get(execution_id)
        return copy.deepcopy(execution) if execution else None

    def list(
        self,
        filter: Optional[ExecutionFilter] = None,
        limit: int = 100,
    ) -> List[Execution]:
        filter = filter or ExecutionFilter()
        with self._lock:
            matches = [e for e in self._executions.values() if filter.matches(e)]
        return [copy.deepcopy(e) for e in _newest_first(matches, limit)]

    def exists(self, execution_id: str) -> bool:
        with self._lock:
            return execution_id in self._executions

    def delete(self, execution_id: str):
        with self._lock:
            self._executions.pop(execution_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._executions)


class FileSystemExecutionStore(ExecutionStore):
    """Filesystem-based execution storage, one JSON document per execution"""

    def __init__(self, executions_dir: Path):
        self.executions_dir = Path(executions_dir)
        self.executions_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, execution_id: str) -> Path:
        return self.executions_dir / f"{execution_id}.json"

    def save(self, execution: Execution):
        """Save execution to filesystem"""
        path = self._path(execution.id)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            with open(tmp_path, "w") as f:
                json.dump(execution.to_dict(), f, indent=2)
            # Readers only ever see a complete document
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            tmp_path.unlink(missing_ok=True)
            raise PersistenceError(
                f"Could not save execution {execution.id}: {e}"
            ) from e

    def load(self, execution_id: str) -> Optional[Execution]:
        """Load execution from filesystem"""
        path = self._path(execution_id)
        if not path.exists():
            return None

        try:
            with open(path, "r") as f:
                return Execution.from_dict(json.load(f))
        except (OSError, ValueError, KeyError) as e:
            raise PersistenceError(
                f"Could not load execution {execution_id}: {e}"
            ) from e

    def list(
        self,
        filter: Optional[ExecutionFilter] = None,
        limit: int = 100,
    ) -> List[Execution]:
        filter = filter or ExecutionFilter()
        executions = []

        for path in self.executions_dir.glob("*.json"):
            try:
                execution = self.load(path.stem)
            except PersistenceError as e:
                # Skip documents that can't be loaded
                logger.warning(f"Skipping unreadable execution file {path}: {e}")
                continue
            if execution is not None and filter.matches(execution):
                executions.append(execution)

        return _newest_first(executions, limit)

    def exists(self, execution_id: str) -> bool:
        return self._path(execution_id).exists()

    def delete(self, execution_id: str):
        path = self._path(execution_id)
        if path.exists():
            path.unlink()

    def __len__(self) -> int:
        return sum(1 for _ in self.executions_dir.glob("*.json"))
