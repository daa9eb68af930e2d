"""
Shared pytest fixtures and configuration for all tests.
"""
import pytest
import tempfile
import shutil
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Generator, List

from role_handoff.core.enums import Role, TaskStatus
from role_handoff.core.models import Task
from role_handoff.core.requests import WorkflowRequest
from role_handoff.core.task_store import InMemoryTaskRepository
from role_handoff.core.workflow_engine import WorkflowEngine
from role_handoff.core.workflow_events import EventLogger


class FixedClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 9, 0, 0)):
        self.current = start

    def __call__(self) -> datetime:
        now = self.current
        self.current = self.current + timedelta(seconds=1)
        return now


@pytest.fixture
def temp_workspace() -> Generator[Path, None, None]:
    """Create a temporary workspace directory for testing."""
    temp_dir = tempfile.mkdtemp(prefix="role_handoff_test_")
    workspace = Path(temp_dir)
    (workspace / ".workflow").mkdir(parents=True, exist_ok=True)

    yield workspace

    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def sample_tasks() -> List[Task]:
    """Tasks covering the interesting starting states."""
    return [
        Task(task_id="T-1"),
        Task(task_id="T-2"),
        Task(task_id="T-3", status=TaskStatus.IN_PROGRESS, current_role=Role.ARCHITECT),
        Task(task_id="T-done", status=TaskStatus.COMPLETED, current_role=Role.SENIOR_DEVELOPER),
        Task(task_id="T-cancelled", status=TaskStatus.CANCELLED, current_role=Role.RESEARCHER),
        Task(task_id="T-paused", status=TaskStatus.PAUSED, current_role=Role.SENIOR_DEVELOPER),
    ]


@pytest.fixture
def repository(sample_tasks: List[Task]) -> InMemoryTaskRepository:
    """In-memory task store seeded with sample tasks."""
    return InMemoryTaskRepository(sample_tasks)


@pytest.fixture
def event_log() -> EventLogger:
    """Event logger capturing emitted events in memory."""
    return EventLogger()


@pytest.fixture
def engine(repository: InMemoryTaskRepository, event_log: EventLogger) -> WorkflowEngine:
    """Create a WorkflowEngine over the seeded repository."""
    return WorkflowEngine(repository, emitter=event_log, clock=FixedClock())


@pytest.fixture
def make_request():
    """Build a request from keyword arguments in wire shape."""
    def _make(operation: str, task_id: str = "T-1", **fields: Any) -> WorkflowRequest:
        data: Dict[str, Any] = {"operation": operation, "taskId": task_id}
        data.update(fields)
        return WorkflowRequest.from_dict(data)
    return _make
