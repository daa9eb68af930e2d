"""
Workflow request model.

A request carries the fields shared by every operation plus exactly one
operation payload. The payload's type decides the operation, so each
operation only exposes the fields it can use.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Any, Type, TypeVar, Union

from .enums import Operation, Role, TaskStatus, Severity
from .exceptions import ValidationError

E = TypeVar('E', TaskStatus, Role, Severity, Operation)

REQUEST_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "operation": {"type": "string"},
        "taskId": {"type": ["string", "number"]},
        "fromRole": {"type": ["string", "null"]},
        "toRole": {"type": ["string", "null"]},
        "newStatus": {"type": ["string", "null"]},
        "message": {"type": ["string", "null"]},
        "metadata": {"type": "object"},
        "completionData": {
            "type": "object",
            "properties": {
                "summary": {"type": ["string", "null"]},
                "evidence": {"type": "object"},
                "filesModified": {"type": "array", "items": {"type": "string"}},
                "acceptanceCriteriaVerification": {"type": "object"},
            },
        },
        "rejectionData": {
            "type": "object",
            "properties": {
                "reason": {"type": ["string", "null"]},
                "severity": {"type": ["string", "null"]},
                "requiredChanges": {"type": ["string", "null"]},
                "blockers": {"type": "array", "items": {"type": "string"}},
            },
        },
        "conditions": {
            "type": "object",
            "properties": {
                "customConditions": {"type": "array", "items": {"type": "string"}},
            },
        },
        "constraints": {
            "type": "object",
            "additionalProperties": {"type": "boolean"},
        },
        "batch": {
            "type": "object",
            "properties": {
                "taskIds": {"type": "array", "items": {"type": ["string", "number"]}},
                "parallelExecution": {"type": "boolean"},
                "continueOnError": {"type": "boolean"},
            },
        },
        "scheduling": {"type": "object"},
    },
}


def _parse_enum(enum_cls: Type[E], value: Any, field_name: str) -> Optional[E]:
    """Parse an optional enum value, raising ValidationError on unknown values"""
    if value is None or value == "":
        return None
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(
            f"Invalid value for {field_name}",
            field=field_name,
            value=value,
            context={"allowed": [m.value for m in enum_cls]}
        )


def _as_mapping(value: Any, field_name: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationError(f"{field_name} must be a mapping", field=field_name, value=value)
    return value


def _as_bool(data: Dict[str, Any], key: str, default: bool, section: str) -> bool:
    value = data.get(key, default)
    field_name = f"{section}.{key}"
    if not isinstance(value, bool):
        raise ValidationError(f"{field_name} must be true or false", field=field_name, value=value)
    return value


def _as_list(value: Any, field_name: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError(f"{field_name} must be a list", field=field_name, value=value)
    return list(value)


# ============================================================================
# Request parts
# ============================================================================

@dataclass(frozen=True)
class CompletionData:
    """Evidence supplied with a ``complete`` operation"""
    summary: str
    evidence: Dict[str, Any] = field(default_factory=dict)
    files_modified: List[str] = field(default_factory=list)
    acceptance_criteria_verification: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CompletionData':
        return cls(
            summary=str(data.get("summary") or ""),
            evidence=_as_mapping(data.get("evidence"), "completionData.evidence"),
            files_modified=[str(f) for f in _as_list(data.get("filesModified"), "completionData.filesModified")],
            acceptance_criteria_verification=_as_mapping(
                data.get("acceptanceCriteriaVerification"),
                "completionData.acceptanceCriteriaVerification"
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary,
            "evidence": dict(self.evidence),
            "filesModified": list(self.files_modified),
            "acceptanceCriteriaVerification": dict(self.acceptance_criteria_verification),
        }


@dataclass(frozen=True)
class RejectionData:
    """Reason and impact supplied with an ``escalate`` operation"""
    reason: str
    severity: Optional[Severity] = None
    required_changes: Optional[str] = None
    blockers: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RejectionData':
        return cls(
            reason=str(data.get("reason") or ""),
            severity=_parse_enum(Severity, data.get("severity"), "rejectionData.severity"),
            required_changes=data.get("requiredChanges"),
            blockers=[str(b) for b in _as_list(data.get("blockers"), "rejectionData.blockers")],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reason": self.reason,
            "severity": self.severity.value if self.severity else None,
            "requiredChanges": self.required_changes,
            "blockers": list(self.blockers),
        }


@dataclass(frozen=True)
class Conditions:
    """Preconditions checked against the task before an operation runs"""
    required_status: Optional[TaskStatus] = None
    required_role: Optional[Role] = None
    custom_conditions: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.required_status or self.required_role or self.custom_conditions)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Conditions':
        return cls(
            required_status=_parse_enum(TaskStatus, data.get("requiredStatus"), "conditions.requiredStatus"),
            required_role=_parse_enum(Role, data.get("requiredRole"), "conditions.requiredRole"),
            custom_conditions=[str(c) for c in _as_list(data.get("customConditions"), "conditions.customConditions")],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requiredStatus": self.required_status.value if self.required_status else None,
            "requiredRole": self.required_role.value if self.required_role else None,
            "customConditions": list(self.custom_conditions),
        }


@dataclass(frozen=True)
class BatchSpec:
    """Fan-out of one request template over several task ids"""
    task_ids: List[str]
    parallel_execution: bool = False
    continue_on_error: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BatchSpec':
        task_ids = [str(t) for t in _as_list(data.get("taskIds"), "batch.taskIds")]
        if not task_ids:
            raise ValidationError("Batch requires at least one task id", field="batch.taskIds")
        return cls(
            task_ids=task_ids,
            parallel_execution=_as_bool(data, "parallelExecution", False, "batch"),
            continue_on_error=_as_bool(data, "continueOnError", False, "batch"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "taskIds": list(self.task_ids),
            "parallelExecution": self.parallel_execution,
            "continueOnError": self.continue_on_error,
        }


@dataclass(frozen=True)
class Constraints:
    """Per-request switches for audit, notification and validation overrides"""
    create_audit_trail: bool = True
    notify_stakeholders: bool = True
    force_transition: bool = False
    allow_skip_validation: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any], defaults: Optional['Constraints'] = None) -> 'Constraints':
        base = defaults or cls()
        return cls(
            create_audit_trail=_as_bool(data, "createAuditTrail", base.create_audit_trail, "constraints"),
            notify_stakeholders=_as_bool(data, "notifyStakeholders", base.notify_stakeholders, "constraints"),
            force_transition=_as_bool(data, "forceTransition", base.force_transition, "constraints"),
            allow_skip_validation=_as_bool(data, "allowSkipValidation", base.allow_skip_validation, "constraints"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "createAuditTrail": self.create_audit_trail,
            "notifyStakeholders": self.notify_stakeholders,
            "forceTransition": self.force_transition,
            "allowSkipValidation": self.allow_skip_validation,
        }


@dataclass(frozen=True)
class Scheduling:
    """Scheduling hints; carried through to events, not acted upon"""
    schedule_for: Optional[str] = None
    deadline: Optional[str] = None
    priority: Optional[str] = None
    estimated_duration: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Scheduling':
        priority = data.get("priority")
        if priority is not None and priority not in ("low", "medium", "high", "urgent"):
            raise ValidationError("Invalid value for scheduling.priority",
                                  field="scheduling.priority", value=priority)
        return cls(
            schedule_for=data.get("scheduleFor"),
            deadline=data.get("deadline"),
            priority=priority,
            estimated_duration=data.get("estimatedDuration"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scheduleFor": self.schedule_for,
            "deadline": self.deadline,
            "priority": self.priority,
            "estimatedDuration": self.estimated_duration,
        }


# ============================================================================
# Operation payloads
# ============================================================================

@dataclass(frozen=True)
class DelegatePayload:
    to_role: Optional[Role]
    new_status: Optional[TaskStatus] = None


@dataclass(frozen=True)
class ReassignPayload:
    to_role: Optional[Role]
    new_status: Optional[TaskStatus] = None


@dataclass(frozen=True)
class CompletePayload:
    completion: CompletionData


@dataclass(frozen=True)
class EscalatePayload:
    rejection: RejectionData
    to_role: Optional[Role] = None
    new_status: Optional[TaskStatus] = None


@dataclass(frozen=True)
class TransitionPayload:
    new_status: Optional[TaskStatus]
    to_role: Optional[Role] = None


@dataclass(frozen=True)
class PausePayload:
    pass


@dataclass(frozen=True)
class ResumePayload:
    pass


@dataclass(frozen=True)
class CancelPayload:
    pass


OperationPayload = Union[
    DelegatePayload, ReassignPayload, CompletePayload, EscalatePayload,
    TransitionPayload, PausePayload, ResumePayload, CancelPayload,
]

PAYLOAD_TYPES: Dict[Operation, type] = {
    Operation.DELEGATE: DelegatePayload,
    Operation.REASSIGN: ReassignPayload,
    Operation.COMPLETE: CompletePayload,
    Operation.ESCALATE: EscalatePayload,
    Operation.TRANSITION: TransitionPayload,
    Operation.PAUSE: PausePayload,
    Operation.RESUME: ResumePayload,
    Operation.CANCEL: CancelPayload,
}

_OPERATIONS_BY_TYPE = {payload_type: op for op, payload_type in PAYLOAD_TYPES.items()}

if set(PAYLOAD_TYPES) != set(Operation):
    raise RuntimeError("Every operation needs a payload type")


def build_payload(operation: Operation, data: Dict[str, Any]) -> OperationPayload:
    """Build the payload variant for ``operation`` from a wire-format mapping"""
    to_role = _parse_enum(Role, data.get("toRole"), "toRole")
    new_status = _parse_enum(TaskStatus, data.get("newStatus"), "newStatus")

    if operation is Operation.DELEGATE:
        return DelegatePayload(to_role=to_role, new_status=new_status)
    if operation is Operation.REASSIGN:
        return ReassignPayload(to_role=to_role, new_status=new_status)
    if operation is Operation.COMPLETE:
        completion = CompletionData.from_dict(_as_mapping(data.get("completionData"), "completionData"))
        return CompletePayload(completion=completion)
    if operation is Operation.ESCALATE:
        rejection = RejectionData.from_dict(_as_mapping(data.get("rejectionData"), "rejectionData"))
        return EscalatePayload(rejection=rejection, to_role=to_role, new_status=new_status)
    if operation is Operation.TRANSITION:
        return TransitionPayload(new_status=new_status, to_role=to_role)
    if operation is Operation.PAUSE:
        return PausePayload()
    if operation is Operation.RESUME:
        return ResumePayload()
    return CancelPayload()


# ============================================================================
# Request
# ============================================================================

@dataclass(frozen=True)
class WorkflowRequest:
    """A single workflow operation, optionally fanned out over a batch"""
    task_id: str
    payload: OperationPayload
    from_role: Optional[Role] = None
    message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    scheduling: Optional[Scheduling] = None
    conditions: Optional[Conditions] = None
    constraints: Constraints = field(default_factory=Constraints)
    batch: Optional[BatchSpec] = None

    def __post_init__(self):
        if type(self.payload) not in _OPERATIONS_BY_TYPE:
            raise ValidationError(
                "Unsupported operation payload",
                field="payload",
                value=type(self.payload).__name__
            )
        if not self.task_id and not self.batch:
            raise ValidationError("taskId is required unless a batch is given", field="taskId")

    @property
    def operation(self) -> Operation:
        return _OPERATIONS_BY_TYPE[type(self.payload)]

    @property
    def to_role(self) -> Optional[Role]:
        return getattr(self.payload, "to_role", None)

    @property
    def new_status(self) -> Optional[TaskStatus]:
        return getattr(self.payload, "new_status", None)

    def for_task(self, task_id: str) -> 'WorkflowRequest':
        """Single-task copy of a batch template"""
        return replace(self, task_id=task_id, batch=None)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_constraints: Optional[Constraints] = None) -> 'WorkflowRequest':
        """
        Build a request from the camelCase wire shape.

        Args:
            data: Request mapping (operation, taskId, fromRole, toRole, ...)
            default_constraints: Constraint defaults applied where the request is silent

        Raises:
            ValidationError: On unknown operations, enum values or malformed parts
        """
        if not isinstance(data, dict):
            raise ValidationError("Request must be a mapping", value=data)
        operation = _parse_enum(Operation, data.get("operation"), "operation")
        if operation is None:
            raise ValidationError("operation is required", field="operation")

        batch_data = data.get("batch")
        conditions_data = data.get("conditions")
        scheduling_data = data.get("scheduling")
        return cls(
            task_id=str(data.get("taskId") or ""),
            payload=build_payload(operation, data),
            from_role=_parse_enum(Role, data.get("fromRole"), "fromRole"),
            message=data.get("message"),
            metadata=_as_mapping(data.get("metadata"), "metadata"),
            scheduling=Scheduling.from_dict(_as_mapping(scheduling_data, "scheduling")) if scheduling_data else None,
            conditions=Conditions.from_dict(_as_mapping(conditions_data, "conditions")) if conditions_data else None,
            constraints=Constraints.from_dict(_as_mapping(data.get("constraints"), "constraints"), default_constraints),
            batch=BatchSpec.from_dict(_as_mapping(batch_data, "batch")) if batch_data else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "operation": self.operation.value,
            "taskId": self.task_id,
            "fromRole": self.from_role.value if self.from_role else None,
            "toRole": self.to_role.value if self.to_role else None,
            "newStatus": self.new_status.value if self.new_status else None,
            "message": self.message,
            "constraints": self.constraints.to_dict(),
        }
        if isinstance(self.payload, CompletePayload):
            data["completionData"] = self.payload.completion.to_dict()
        if isinstance(self.payload, EscalatePayload):
            data["rejectionData"] = self.payload.rejection.to_dict()
        if self.metadata:
            data["metadata"] = dict(self.metadata)
        if self.scheduling:
            data["scheduling"] = self.scheduling.to_dict()
        if self.conditions:
            data["conditions"] = self.conditions.to_dict()
        if self.batch:
            data["batch"] = self.batch.to_dict()
        return data
