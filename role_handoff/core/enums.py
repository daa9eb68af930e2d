"""
Enumeration classes for the hand-off workflow engine.
"""

from enum import Enum


class TaskStatus(Enum):
    """Task lifecycle status"""
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    NEEDS_REVIEW = "needs-review"
    COMPLETED = "completed"
    NEEDS_CHANGES = "needs-changes"
    PAUSED = "paused"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.CANCELLED)


class Role(Enum):
    """Specialist roles that can hold a task"""
    BOOMERANG = "boomerang"
    RESEARCHER = "researcher"
    ARCHITECT = "architect"
    SENIOR_DEVELOPER = "senior-developer"
    CODE_REVIEW = "code-review"


class Operation(Enum):
    """Workflow operations accepted by the engine"""
    DELEGATE = "delegate"
    COMPLETE = "complete"
    TRANSITION = "transition"
    ESCALATE = "escalate"
    REASSIGN = "reassign"
    PAUSE = "pause"
    RESUME = "resume"
    CANCEL = "cancel"


class Severity(Enum):
    """Escalation severity"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode(Enum):
    """Error taxonomy surfaced in workflow responses"""
    NOT_FOUND = "not-found"
    PRECONDITION_FAILED = "precondition-failed"
    INVALID_TRANSITION = "invalid-transition"
    MISSING_REQUIRED_FIELD = "missing-required-field"
    CONFLICT = "conflict"
    INFRASTRUCTURE_ERROR = "infrastructure-error"


class RecordKind(Enum):
    """Kinds of append-only records kept by the task store"""
    DELEGATION = "delegation"
    TRANSITION = "transition"
    COMPLETION = "completion"


class TransitionKind(Enum):
    """Discriminator naming which transition an operation produced"""
    DELEGATION_COMPLETED = "delegation_completed"
    REASSIGNMENT_COMPLETED = "reassignment_completed"
    COMPLETION_RECORDED = "completion_recorded"
    ESCALATION_COMPLETED = "escalation_completed"
    ROLE_TRANSITION_COMPLETED = "role_transition_completed"
    TASK_PAUSED = "task_paused"
    TASK_RESUMED = "task_resumed"
    TASK_CANCELLED = "task_cancelled"
