"""
Workflow state persistence.

One JSON document per workflow id. Active workflows live in `active/`;
finished ones are moved to `completed/` under a date-prefixed name so the
directory lists chronologically:

    ~/.devflow/workflows/<workflow_type>/
    ├── active/
    │   └── <workflow-id>.json
    └── completed/
        └── <YYYY-MM-DD>_<workflow-id>.json

Writes are atomic (temp file + fsync + rename) and serialized per workflow
with an fcntl lock. Saves may carry the revision the caller loaded; a save
whose expected revision no longer matches the stored one is refused.
"""

import fcntl
import json
import logging
import os
import random
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Generic, Iterator, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError

from ..errors import ConcurrentModificationError, WorkflowNotFoundError

logger = logging.getLogger(__name__)

DEVFLOW_HOME_ENV = "DEVFLOW_HOME"

ContextT = TypeVar("ContextT", bound=BaseModel)


def get_devflow_home() -> Path:
    """Base directory for devflow state (DEVFLOW_HOME or ~/.devflow)."""
    override = os.environ.get(DEVFLOW_HOME_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".devflow"


class WorkflowStore(ABC, Generic[ContextT]):
    """Storage port for workflow contexts."""

    @abstractmethod
    def save(self, workflow_id: str, context: ContextT, expected_revision: Optional[int] = None) -> None:
        """Persist a context, optionally checking the stored revision first."""
        pass

    @abstractmethod
    def load(self, workflow_id: str) -> Optional[ContextT]:
        """Load an active context, or None if there is none."""
        pass

    @abstractmethod
    def list(self) -> List[str]:
        """Ids of all active workflows."""
        pass

    @abstractmethod
    def archive(self, workflow_id: str) -> None:
        """Move a workflow out of the active collection."""
        pass

    @abstractmethod
    def delete(self, workflow_id: str) -> None:
        """Remove an active workflow without archiving it."""
        pass

    @abstractmethod
    def list_archived(self) -> List[str]:
        """Archived document names, oldest first."""
        pass


class FileWorkflowStore(WorkflowStore[ContextT]):
    """
    File-based workflow storage.

    Stores workflows in <base_dir>/workflows/<workflow_type>/{active,completed}.
    """

    def __init__(
        self,
        workflow_type: str,
        model: Type[ContextT],
        base_dir: Optional[Path] = None,
    ):
        """
        Args:
            workflow_type: Subdirectory name (e.g. "implement")
            model: Pydantic model used to validate loaded documents
            base_dir: Root directory; defaults to DEVFLOW_HOME or ~/.devflow
        """
        self.model = model
        root = Path(base_dir) if base_dir else get_devflow_home()
        self.base_dir = root / "workflows" / workflow_type
        self.active_dir = self.base_dir / "active"
        self.completed_dir = self.base_dir / "completed"

    def initialize(self) -> None:
        self.active_dir.mkdir(parents=True, exist_ok=True)
        self.completed_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _is_valid_id(workflow_id: str) -> bool:
        return bool(workflow_id) and not (
            "/" in workflow_id or "\\" in workflow_id or workflow_id.startswith(".")
        )

    def _path(self, workflow_id: str) -> Path:
        if not self._is_valid_id(workflow_id):
            raise WorkflowNotFoundError(workflow_id, "invalid workflow id")
        return self.active_dir / f"{workflow_id}.json"

    @contextmanager
    def _locked(self, workflow_id: str) -> Iterator[None]:
        """Hold an exclusive lock for one workflow id."""
        self.initialize()
        lock_path = self.active_dir / f".{workflow_id}.lock"
        with open(lock_path, "w") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def _read(self, path: Path, workflow_id: str) -> Optional[ContextT]:
        if not path.exists():
            return None
        try:
            with open(path) as f:
                data = json.load(f)
            return self.model.model_validate(data)
        except (OSError, json.JSONDecodeError, PydanticValidationError) as e:
            logger.warning(f"Unreadable workflow state at {path}: {e}")
            raise WorkflowNotFoundError(workflow_id, "state file is unreadable") from e

    def _write_atomic(self, path: Path, data: dict) -> None:
        temp_path = path.with_suffix(f".tmp.{random.randint(0, 999999)}")
        try:
            with open(temp_path, "w") as f:
                json.dump(data, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            temp_path.replace(path)
        except Exception:
            temp_path.unlink(missing_ok=True)
            raise

    def save(self, workflow_id: str, context: ContextT, expected_revision: Optional[int] = None) -> None:
        path = self._path(workflow_id)
        with self._locked(workflow_id):
            if expected_revision is not None:
                stored = self._read(path, workflow_id)
                if stored is None:
                    raise WorkflowNotFoundError(workflow_id, "removed while in use")
                found = getattr(stored, "revision", 0)
                if found != expected_revision:
                    raise ConcurrentModificationError(workflow_id, expected_revision, found)
            self._write_atomic(path, context.model_dump(mode="json"))
        logger.debug(f"Saved workflow {workflow_id} to {path}")

    def load(self, workflow_id: str) -> Optional[ContextT]:
        if not self._is_valid_id(workflow_id):
            return None
        path = self._path(workflow_id)
        if not path.exists():
            return None
        with self._locked(workflow_id):
            return self._read(path, workflow_id)

    def list(self) -> List[str]:
        if not self.active_dir.exists():
            return []
        return sorted(p.stem for p in self.active_dir.glob("*.json"))

    def archive(self, workflow_id: str) -> None:
        source = self._path(workflow_id)
        date = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        dest = self.completed_dir / f"{date}_{workflow_id}.json"
        with self._locked(workflow_id):
            if not source.exists():
                raise WorkflowNotFoundError(workflow_id)
            source.replace(dest)
        (self.active_dir / f".{workflow_id}.lock").unlink(missing_ok=True)
        logger.info(f"Archived workflow {workflow_id} to {dest.name}")

    def delete(self, workflow_id: str) -> None:
        path = self._path(workflow_id)
        with self._locked(workflow_id):
            if not path.exists():
                raise WorkflowNotFoundError(workflow_id)
            path.unlink()
        (self.active_dir / f".{workflow_id}.lock").unlink(missing_ok=True)

    def list_archived(self) -> List[str]:
        if not self.completed_dir.exists():
            return []
        return sorted(p.stem for p in self.completed_dir.glob("*.json"))
