"""
Exception classes for the hand-off workflow engine.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Any

from .enums import ErrorCode


@dataclass
class ValidationError(Exception):
    """
    Malformed input (request documents, configuration files).

    Carries the offending field and value so callers can report them.
    """
    message: str
    field: Optional[str] = None
    value: Any = None
    context: Optional[Dict[str, Any]] = None

    def __init__(self, message: str, field: Optional[str] = None,
                 value: Any = None, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.field = field
        self.value = value
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context"""
        parts = [self.message]
        if self.field:
            parts.append(f"Field: {self.field}")
        if self.value is not None:
            parts.append(f"Value: {repr(self.value)}")
        if self.context:
            ctx_parts = [f"{k}={v}" for k, v in self.context.items()]
            parts.append(f"Context: {', '.join(ctx_parts)}")
        return " | ".join(parts)

    def __str__(self) -> str:
        return self._format_message()


@dataclass
class WorkflowError(Exception):
    """
    Workflow operation failure with task and operation context.

    Subclasses pin ``code`` to one entry of the error taxonomy; the engine
    converts any of them into a structured response error.
    """
    message: str
    task_id: Optional[str] = None
    operation: Optional[str] = None
    context: Optional[Dict[str, Any]] = None

    code = ErrorCode.INFRASTRUCTURE_ERROR

    def __init__(self, message: str, task_id: Optional[str] = None,
                 operation: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.task_id = task_id
        self.operation = operation
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context"""
        parts = [self.message]
        if self.task_id:
            parts.append(f"Task: {self.task_id}")
        if self.operation:
            parts.append(f"Operation: {self.operation}")
        if self.context:
            ctx_parts = [f"{k}={v}" for k, v in self.context.items()]
            parts.append(f"Context: {', '.join(ctx_parts)}")
        return " | ".join(parts)

    def __str__(self) -> str:
        return self._format_message()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "taskId": self.task_id,
            "operation": self.operation,
        }


class NotFoundError(WorkflowError):
    """Task id unknown to the store"""
    code = ErrorCode.NOT_FOUND


class PreconditionFailedError(WorkflowError):
    """Declared request conditions were not met"""
    code = ErrorCode.PRECONDITION_FAILED


class InvalidTransitionError(WorkflowError):
    """Operation is not legal for the task's current status or role"""
    code = ErrorCode.INVALID_TRANSITION


class MissingRequiredFieldError(WorkflowError):
    """Operation payload lacks a field it cannot proceed without"""
    code = ErrorCode.MISSING_REQUIRED_FIELD

    def __init__(self, message: str, field: str, task_id: Optional[str] = None,
                 operation: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        self.field = field
        context = dict(context or {})
        context.setdefault("field", field)
        super().__init__(message, task_id=task_id, operation=operation, context=context)


class ConflictError(WorkflowError):
    """Another writer changed the task between load and commit"""
    code = ErrorCode.CONFLICT


class InfrastructureError(WorkflowError):
    """Store or emitter failure"""
    code = ErrorCode.INFRASTRUCTURE_ERROR

