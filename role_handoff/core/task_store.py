"""
Task storage for tasks and their append-only records.
Following Single Responsibility Principle - handles persistence only.
"""

import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Any

import yaml

from .enums import RecordKind
from .exceptions import ConflictError, InfrastructureError, NotFoundError, ValidationError
from .models import (
    Task, TaskMutation, Record, DelegationRecord, WorkflowTransitionRecord, CompletionReport
)

logger = logging.getLogger(__name__)

RECORD_TYPES = {
    RecordKind.DELEGATION: DelegationRecord,
    RecordKind.TRANSITION: WorkflowTransitionRecord,
    RecordKind.COMPLETION: CompletionReport,
}


class StoreTransaction:
    """
    Writes staged inside one repository transaction.

    Nothing is visible to readers until the owning repository commits the
    transaction; an exception inside the ``with`` block discards everything.
    """

    def __init__(self, read_task: Callable[[str], Task]):
        self._read_task = read_task
        self.tasks: Dict[str, Task] = {}
        self.records: List[Tuple[RecordKind, Record]] = []

    def append_record(self, kind: RecordKind, record: Record) -> str:
        """Stage a record, returning its id"""
        expected = RECORD_TYPES[kind]
        if not isinstance(record, expected):
            raise ValidationError(
                f"Record kind '{kind.value}' expects {expected.__name__}",
                field="record",
                value=type(record).__name__
            )
        self.records.append((kind, record))
        return record.record_id

    def update(self, task_id: str, mutation: TaskMutation, expected_version: int,
               now: Optional[datetime] = None) -> Task:
        """
        Stage a task mutation guarded by the optimistic version token.

        ``now`` stamps ``updated_at`` (defaults to the wall clock).

        Raises:
            NotFoundError: If the task does not exist
            ConflictError: If the task changed since ``expected_version`` was read
        """
        current = self.tasks.get(task_id) or self._read_task(task_id)
        if current.version != expected_version:
            raise ConflictError(
                "Task was modified by another writer",
                task_id=task_id,
                context={"expected_version": expected_version, "actual_version": current.version}
            )
        updated = mutation.apply(current, now)
        self.tasks[task_id] = updated
        return replace(updated)


class TaskRepository(ABC):
    """Abstract base class for task store backends"""

    @abstractmethod
    def get(self, task_id: str) -> Task:
        """Load a task snapshot, raising NotFoundError if absent"""
        pass

    @abstractmethod
    def add(self, task: Task) -> Task:
        """Register a new task (task creation proper is external to the engine)"""
        pass

    @abstractmethod
    def transaction(self) -> Iterator[StoreTransaction]:
        """Context manager grouping record appends and task updates atomically"""
        pass

    @abstractmethod
    def records(self, task_id: str, kind: Optional[RecordKind] = None) -> List[Record]:
        """Committed records for a task in append order"""
        pass


class InMemoryTaskRepository(TaskRepository):
    """
    Process-local task store.

    Commits are serialized by a lock and readers only ever receive copies,
    so a reader never sees a task row without its records.
    """

    def __init__(self, tasks: Optional[List[Task]] = None):
        self._lock = threading.RLock()
        self._tasks: Dict[str, Task] = {}
        self._records: List[Tuple[RecordKind, Record]] = []
        for task in tasks or []:
            self._tasks[task.task_id] = replace(task)

    def get(self, task_id: str) -> Task:
        with self._lock:
            self._reload()
            return replace(self._committed_task(task_id))

    def add(self, task: Task) -> Task:
        with self._lock:
            self._reload()
            if task.task_id in self._tasks:
                raise ValidationError(f"Task '{task.task_id}' already exists", field="task_id", value=task.task_id)
            self._tasks[task.task_id] = replace(task)
            self._persist()
            return replace(task)

    @contextmanager
    def transaction(self) -> Iterator[StoreTransaction]:
        with self._lock:
            self._reload()
            tx = StoreTransaction(self._committed_task)
            yield tx
            self._commit(tx)

    def records(self, task_id: str, kind: Optional[RecordKind] = None) -> List[Record]:
        with self._lock:
            self._reload()
            return [
                record for record_kind, record in self._records
                if record.task_id == task_id and (kind is None or record_kind == kind)
            ]

    def _committed_task(self, task_id: str) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} not found", task_id=task_id)
        return task

    def _commit(self, tx: StoreTransaction) -> None:
        previous_tasks = dict(self._tasks)
        previous_count = len(self._records)
        self._tasks.update(tx.tasks)
        self._records.extend(tx.records)
        try:
            self._persist()
        except Exception:
            self._tasks = previous_tasks
            del self._records[previous_count:]
            raise

    def _reload(self) -> None:
        """Hook for backends that keep state outside the process"""
        pass

    def _persist(self) -> None:
        """Hook for backends that keep state outside the process"""
        pass


class FileTaskRepository(InMemoryTaskRepository):
    """
    YAML file backed task store.

    The whole document is re-read before every access and rewritten through a
    temporary file on commit, so a crash mid-write leaves the previous
    document intact. Safe across threads of one process only.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        super().__init__()

    def _reload(self) -> None:
        if not self.path.exists():
            self._tasks = {}
            self._records = []
            return

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise InfrastructureError(f"Failed to read task store {self.path}: {e}")

        if not isinstance(data, dict):
            raise InfrastructureError(f"Task store root must be a mapping: {self.path}")

        try:
            self._tasks = {
                str(task_id): Task.from_dict({**task_data, "task_id": task_id})
                for task_id, task_data in (data.get("tasks") or {}).items()
            }
            self._records = [self._parse_record(entry) for entry in data.get("records") or []]
        except (KeyError, TypeError, ValueError) as e:
            raise InfrastructureError(f"Corrupt task store {self.path}: {e}")

    def _persist(self) -> None:
        data: Dict[str, Any] = {
            "schema_version": "1.0",
            "tasks": {task_id: self._task_entry(task) for task_id, task in self._tasks.items()},
            "records": [{"kind": kind.value, **record.to_dict()} for kind, record in self._records],
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                yaml.safe_dump(data, f, default_flow_style=False, allow_unicode=True, sort_keys=False)
            os.replace(tmp_name, self.path)
        except (OSError, yaml.YAMLError) as e:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise InfrastructureError(f"Failed to write task store {self.path}: {e}")
        logger.debug("Task store written to %s (%d tasks)", self.path, len(self._tasks))

    @staticmethod
    def _task_entry(task: Task) -> Dict[str, Any]:
        entry = task.to_dict()
        entry.pop("task_id")
        return entry

    @staticmethod
    def _parse_record(entry: Dict[str, Any]) -> Tuple[RecordKind, Record]:
        kind = RecordKind(entry["kind"])
        body = {k: v for k, v in entry.items() if k != "kind"}
        return kind, RECORD_TYPES[kind].from_dict(body)
