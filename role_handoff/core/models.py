"""
Data model classes for the hand-off workflow engine.
Following Single Responsibility Principle - all data models in one module.
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, List, Optional, Any, Union

from .enums import TaskStatus, Role, Severity, TransitionKind
from .exceptions import WorkflowError


def _role_value(role: Optional[Role]) -> Optional[str]:
    return role.value if role else None


def _parse_role(value: Optional[str]) -> Optional[Role]:
    return Role(value) if value else None


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _new_record_id() -> str:
    return uuid.uuid4().hex


# ============================================================================
# Task Models
# ============================================================================

@dataclass
class Task:
    """The unit of work routed between roles"""
    task_id: str
    status: TaskStatus = TaskStatus.NOT_STARTED
    current_role: Optional[Role] = None
    redelegation_count: int = 0
    version: int = 0  # optimistic concurrency token, bumped on every commit
    completion_date: Optional[datetime] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "task_id": self.task_id,
            "status": self.status.value,
            "current_role": _role_value(self.current_role),
            "redelegation_count": self.redelegation_count,
            "version": self.version,
            "completion_date": self.completion_date.isoformat() if self.completion_date else None,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Task':
        now = datetime.now().isoformat()
        return cls(
            task_id=str(data["task_id"]),
            status=TaskStatus(data.get("status", TaskStatus.NOT_STARTED.value)),
            current_role=_parse_role(data.get("current_role")),
            redelegation_count=int(data.get("redelegation_count", 0)),
            version=int(data.get("version", 0)),
            completion_date=_parse_time(data.get("completion_date")),
            created_at=datetime.fromisoformat(data.get("created_at") or now),
            updated_at=datetime.fromisoformat(data.get("updated_at") or now),
        )


@dataclass(frozen=True)
class TaskMutation:
    """
    Field changes to apply to a task row.

    ``None`` leaves the field untouched; ``redelegation_increment`` is added
    to the current count. A task that ends up outside
    ``completed`` carries no completion date.
    """
    status: Optional[TaskStatus] = None
    current_role: Optional[Role] = None
    redelegation_increment: int = 0
    completion_date: Optional[datetime] = None

    def apply(self, task: Task, now: Optional[datetime] = None) -> Task:
        """Return the mutated copy of ``task`` with its version bumped"""
        status = self.status or task.status
        completion_date = self.completion_date or task.completion_date
        return replace(
            task,
            status=status,
            current_role=self.current_role or task.current_role,
            redelegation_count=task.redelegation_count + self.redelegation_increment,
            completion_date=completion_date if status == TaskStatus.COMPLETED else None,
            version=task.version + 1,
            updated_at=now or datetime.now(),
        )


# ============================================================================
# Record Models (append-only)
# ============================================================================

@dataclass(frozen=True)
class DelegationRecord:
    """Hand-off of a task between roles; carries a rejection reason on escalation"""
    task_id: str
    from_role: Optional[Role]
    to_role: Role
    message: str = ""
    rejection_reason: Optional[str] = None
    severity: Optional[Severity] = None
    required_changes: Optional[str] = None
    blockers: List[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)
    record_id: str = field(default_factory=_new_record_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record_id": self.record_id,
            "task_id": self.task_id,
            "from_role": _role_value(self.from_role),
            "to_role": self.to_role.value,
            "message": self.message,
            "rejection_reason": self.rejection_reason,
            "severity": self.severity.value if self.severity else None,
            "required_changes": self.required_changes,
            "blockers": list(self.blockers),
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DelegationRecord':
        return cls(
            record_id=data["record_id"],
            task_id=data["task_id"],
            from_role=_parse_role(data.get("from_role")),
            to_role=Role(data["to_role"]),
            message=data.get("message", ""),
            rejection_reason=data.get("rejection_reason"),
            severity=Severity(data["severity"]) if data.get("severity") else None,
            required_changes=data.get("required_changes"),
            blockers=list(data.get("blockers") or []),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )


@dataclass(frozen=True)
class WorkflowTransitionRecord:
    """Audit trail entry written for every successful operation"""
    task_id: str
    operation: str
    from_role: Optional[Role]
    to_role: Optional[Role]
    from_status: TaskStatus
    to_status: TaskStatus
    reason: str
    timestamp: datetime = field(default_factory=datetime.now)
    record_id: str = field(default_factory=_new_record_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record_id": self.record_id,
            "task_id": self.task_id,
            "operation": self.operation,
            "from_role": _role_value(self.from_role),
            "to_role": _role_value(self.to_role),
            "from_status": self.from_status.value,
            "to_status": self.to_status.value,
            "reason": self.reason,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WorkflowTransitionRecord':
        return cls(
            record_id=data["record_id"],
            task_id=data["task_id"],
            operation=data["operation"],
            from_role=_parse_role(data.get("from_role")),
            to_role=_parse_role(data.get("to_role")),
            from_status=TaskStatus(data["from_status"]),
            to_status=TaskStatus(data["to_status"]),
            reason=data.get("reason", ""),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )


@dataclass(frozen=True)
class CompletionReport:
    """Created once per successful ``complete`` operation"""
    task_id: str
    summary: str
    delegation_summary: str = ""
    files_modified: List[str] = field(default_factory=list)
    acceptance_criteria_verification: Dict[str, Any] = field(default_factory=dict)
    evidence: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)
    record_id: str = field(default_factory=_new_record_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record_id": self.record_id,
            "task_id": self.task_id,
            "summary": self.summary,
            "delegation_summary": self.delegation_summary,
            "files_modified": list(self.files_modified),
            "acceptance_criteria_verification": dict(self.acceptance_criteria_verification),
            "evidence": dict(self.evidence),
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CompletionReport':
        return cls(
            record_id=data["record_id"],
            task_id=data["task_id"],
            summary=data["summary"],
            delegation_summary=data.get("delegation_summary", ""),
            files_modified=list(data.get("files_modified") or []),
            acceptance_criteria_verification=dict(data.get("acceptance_criteria_verification") or {}),
            evidence=dict(data.get("evidence") or {}),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )


Record = Union[DelegationRecord, WorkflowTransitionRecord, CompletionReport]


# ============================================================================
# Result Models
# ============================================================================

@dataclass
class OperationResult:
    """Outcome of one successfully applied operation"""
    task: Task
    transition: TransitionKind
    transition_record: WorkflowTransitionRecord
    delegation: Optional[DelegationRecord] = None
    completion_report: Optional[CompletionReport] = None
    overrides: List[str] = field(default_factory=list)

    @property
    def record(self) -> Optional[Record]:
        """The operation-specific record, if the operation creates one"""
        return self.delegation or self.completion_report

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "task": self.task.to_dict(),
            "transition": self.transition.value,
            "transitionRecord": self.transition_record.to_dict(),
        }
        if self.delegation is not None:
            key = "escalation" if self.delegation.rejection_reason else "delegation"
            data[key] = self.delegation.to_dict()
        if self.completion_report is not None:
            data["completionReport"] = self.completion_report.to_dict()
        if self.overrides:
            data["overrides"] = list(self.overrides)
        return data


@dataclass
class BatchItemResult:
    """Per-task outcome inside a batch"""
    task_id: str
    success: bool
    data: Optional[OperationResult] = None
    error: Optional[WorkflowError] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"taskId": self.task_id, "success": self.success}
        if self.data is not None:
            data["data"] = self.data.to_dict()
        if self.error is not None:
            data["error"] = self.error.to_dict()
        return data


@dataclass
class BatchResult:
    """Aggregated outcome of a batch operation"""
    results: List[BatchItemResult] = field(default_factory=list)
    total: int = 0
    continue_on_error: bool = False

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def errors(self) -> List[BatchItemResult]:
        return [r for r in self.results if not r.success]

    @property
    def status(self) -> str:
        if not self.failed:
            return "completed"
        if not self.successful or not self.continue_on_error:
            return "failed"
        return "partially-failed"

    @property
    def summary(self) -> Dict[str, int]:
        return {"total": self.total, "successful": self.successful, "failed": self.failed}

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "results": [r.to_dict() for r in self.results],
            "summary": self.summary,
            "status": self.status,
        }
        if self.errors:
            data["errors"] = [r.to_dict() for r in self.errors]
        return data


@dataclass
class WorkflowResponse:
    """Structured response returned across the public engine boundary"""
    success: bool
    data: Optional[Union[OperationResult, BatchResult]] = None
    error: Optional[WorkflowError] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def error_code(self) -> Optional[str]:
        return self.error.code.value if self.error else None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"success": self.success}
        if self.data is not None:
            data["data"] = self.data.to_dict()
        if self.error is not None:
            data["error"] = self.error.to_dict()
        if self.metadata:
            data["metadata"] = dict(self.metadata)
        return data
