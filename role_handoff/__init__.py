"""
Role Hand-off Workflow Engine

Routes tasks between specialist roles, enforcing who may act on a task and
recording every transition.
"""

from .core import (
    WorkflowEngine,
    WorkflowError,
    ValidationError,
    WorkflowRequest,
    WorkflowResponse,
    BatchCoordinator,
    Task,
    TaskStatus,
    Role,
    Operation,
    InMemoryTaskRepository,
    FileTaskRepository,
    EventLogger,
)

__version__ = "0.1.0"
__all__ = [
    "WorkflowEngine",
    "WorkflowError",
    "ValidationError",
    "WorkflowRequest",
    "WorkflowResponse",
    "BatchCoordinator",
    "Task",
    "TaskStatus",
    "Role",
    "Operation",
    "InMemoryTaskRepository",
    "FileTaskRepository",
    "EventLogger",
]
