"""
Transition rules for the task state machine.
Following Single Responsibility Principle - decides legality and outcome only.

Pure functions of (task snapshot, request): nothing here touches storage.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional, Tuple

from .enums import Operation, RecordKind, Role, TaskStatus, TransitionKind
from .exceptions import InvalidTransitionError, MissingRequiredFieldError
from .models import Task, TaskMutation
from .requests import (
    WorkflowRequest, DelegatePayload, ReassignPayload, CompletePayload,
    EscalatePayload, TransitionPayload
)


@dataclass(frozen=True)
class TransitionPlan:
    """What a legal operation does to a task"""
    operation: Operation
    kind: TransitionKind
    from_status: TaskStatus
    to_status: TaskStatus
    from_role: Optional[Role]
    to_role: Optional[Role]
    mutation: TaskMutation
    record_kind: Optional[RecordKind]
    reason: str


# ============================================================================
# Required fields
# ============================================================================

def check_required_fields(request: WorkflowRequest) -> None:
    """
    Reject requests missing a field their operation cannot run without.

    Runs before the task is loaded and is never skipped by constraints.
    """
    payload = request.payload
    operation = request.operation.value

    def missing(message: str, field_name: str) -> MissingRequiredFieldError:
        return MissingRequiredFieldError(message, field=field_name, task_id=request.task_id, operation=operation)

    if isinstance(payload, (DelegatePayload, ReassignPayload)) and payload.to_role is None:
        raise missing(f"toRole is required for {operation}", "toRole")
    if isinstance(payload, CompletePayload) and not payload.completion.summary.strip():
        raise missing("completionData.summary is required for completion", "completionData.summary")
    if isinstance(payload, EscalatePayload):
        if not payload.rejection.reason.strip():
            raise missing("rejectionData.reason is required for escalation", "rejectionData.reason")
        if payload.to_role is None:
            raise missing("toRole is required for escalation", "toRole")
    if isinstance(payload, TransitionPayload) and payload.new_status is None:
        raise missing("newStatus is required for transition", "newStatus")


# ============================================================================
# Legality checks
# ============================================================================

def _reject(task: Task, request: WorkflowRequest, message: str, **context) -> InvalidTransitionError:
    return InvalidTransitionError(
        message,
        task_id=task.task_id,
        operation=request.operation.value,
        context={"status": task.status.value, **context}
    )


def _require_non_terminal(task: Task, request: WorkflowRequest) -> None:
    if task.is_terminal:
        raise _reject(
            task, request,
            f"Cannot {request.operation.value} a task in terminal status '{task.status.value}'",
            terminal_status=task.status.value
        )


def _require_holder(task: Task, request: WorkflowRequest) -> None:
    """The acting role must be the one currently holding the task"""
    if task.current_role is None:
        # unassigned work is owned by the coordinating role
        if request.from_role in (None, Role.BOOMERANG):
            return
    elif request.from_role == task.current_role:
        return

    acting = request.from_role.value if request.from_role else "no role"
    holder = task.current_role.value if task.current_role else "no role"
    raise _reject(
        task, request,
        f"Cannot {request.operation.value} from {acting}: task is currently owned by {holder}",
        current_role=holder
    )


def _check_handoff(task: Task, request: WorkflowRequest) -> None:
    _require_non_terminal(task, request)
    _require_holder(task, request)


def _check_escalate(task: Task, request: WorkflowRequest) -> None:
    _require_non_terminal(task, request)


def _check_any(task: Task, request: WorkflowRequest) -> None:
    pass


def _check_resume(task: Task, request: WorkflowRequest) -> None:
    if task.status != TaskStatus.PAUSED:
        raise _reject(task, request, f"Cannot resume a task that is '{task.status.value}', only paused tasks")


# ============================================================================
# Outcomes
# ============================================================================

def _acting_role(task: Task, request: WorkflowRequest) -> Optional[Role]:
    return request.from_role or task.current_role


def _default_reason(label: str, from_role: Optional[Role], to_role: Optional[Role]) -> str:
    source = from_role.value if from_role else "unassigned"
    target = to_role.value if to_role else "unassigned"
    return f"{label} from {source} to {target}"


def _plan_delegate(task: Task, request: WorkflowRequest, now: datetime) -> TransitionPlan:
    payload = request.payload
    to_status = payload.new_status or TaskStatus.IN_PROGRESS
    from_role = _acting_role(task, request)
    return TransitionPlan(
        operation=request.operation,
        kind=TransitionKind.DELEGATION_COMPLETED,
        from_status=task.status,
        to_status=to_status,
        from_role=from_role,
        to_role=payload.to_role,
        mutation=TaskMutation(status=to_status, current_role=payload.to_role),
        record_kind=RecordKind.DELEGATION,
        reason=request.message or _default_reason("delegation", from_role, payload.to_role),
    )


def _plan_reassign(task: Task, request: WorkflowRequest, now: datetime) -> TransitionPlan:
    payload = request.payload
    to_status = payload.new_status or task.status
    from_role = _acting_role(task, request)
    return TransitionPlan(
        operation=request.operation,
        kind=TransitionKind.REASSIGNMENT_COMPLETED,
        from_status=task.status,
        to_status=to_status,
        from_role=from_role,
        to_role=payload.to_role,
        mutation=TaskMutation(status=to_status, current_role=payload.to_role),
        record_kind=RecordKind.DELEGATION,
        reason=request.message or _default_reason("reassignment", from_role, payload.to_role),
    )


def _plan_complete(task: Task, request: WorkflowRequest, now: datetime) -> TransitionPlan:
    from_role = _acting_role(task, request)
    return TransitionPlan(
        operation=request.operation,
        kind=TransitionKind.COMPLETION_RECORDED,
        from_status=task.status,
        to_status=TaskStatus.COMPLETED,
        from_role=from_role,
        to_role=from_role,
        mutation=TaskMutation(status=TaskStatus.COMPLETED, completion_date=now),
        record_kind=RecordKind.COMPLETION,
        reason=request.message or f"Task completed: {request.payload.completion.summary}",
    )


def _plan_escalate(task: Task, request: WorkflowRequest, now: datetime) -> TransitionPlan:
    payload = request.payload
    to_status = payload.new_status or TaskStatus.NEEDS_CHANGES
    return TransitionPlan(
        operation=request.operation,
        kind=TransitionKind.ESCALATION_COMPLETED,
        from_status=task.status,
        to_status=to_status,
        from_role=_acting_role(task, request),
        to_role=payload.to_role,
        mutation=TaskMutation(status=to_status, current_role=payload.to_role, redelegation_increment=1),
        record_kind=RecordKind.DELEGATION,
        reason=request.message or f"Escalation: {payload.rejection.reason}",
    )


def _plan_transition(task: Task, request: WorkflowRequest, now: datetime) -> TransitionPlan:
    payload = request.payload
    from_role = _acting_role(task, request)
    to_role = payload.to_role or task.current_role
    completion_date = now if payload.new_status == TaskStatus.COMPLETED else None
    return TransitionPlan(
        operation=request.operation,
        kind=TransitionKind.ROLE_TRANSITION_COMPLETED,
        from_status=task.status,
        to_status=payload.new_status,
        from_role=from_role,
        to_role=to_role,
        mutation=TaskMutation(status=payload.new_status, current_role=payload.to_role,
                              completion_date=completion_date),
        record_kind=None,
        reason=request.message or f"Status changed to {payload.new_status.value}",
    )


def _lifecycle_planner(kind: TransitionKind, to_status: TaskStatus, label: str):
    def plan(task: Task, request: WorkflowRequest, now: datetime) -> TransitionPlan:
        from_role = _acting_role(task, request)
        return TransitionPlan(
            operation=request.operation,
            kind=kind,
            from_status=task.status,
            to_status=to_status,
            from_role=from_role,
            to_role=task.current_role,
            mutation=TaskMutation(status=to_status),
            record_kind=None,
            reason=request.message or _default_reason(label, from_role, task.current_role),
        )
    return plan


Check = Callable[[Task, WorkflowRequest], None]
Planner = Callable[[Task, WorkflowRequest, datetime], TransitionPlan]

RULES: Dict[Operation, Tuple[Check, Planner]] = {
    Operation.DELEGATE: (_check_handoff, _plan_delegate),
    Operation.REASSIGN: (_check_handoff, _plan_reassign),
    Operation.COMPLETE: (_check_handoff, _plan_complete),
    Operation.ESCALATE: (_check_escalate, _plan_escalate),
    Operation.TRANSITION: (_check_any, _plan_transition),
    Operation.PAUSE: (_require_non_terminal,
                      _lifecycle_planner(TransitionKind.TASK_PAUSED, TaskStatus.PAUSED, "pause")),
    Operation.RESUME: (_check_resume,
                       _lifecycle_planner(TransitionKind.TASK_RESUMED, TaskStatus.IN_PROGRESS, "resume")),
    Operation.CANCEL: (_check_any,
                       _lifecycle_planner(TransitionKind.TASK_CANCELLED, TaskStatus.CANCELLED, "cancellation")),
}

missing_rules = set(Operation) - set(RULES)
if missing_rules:
    raise RuntimeError(f"No transition rule for: {sorted(op.value for op in missing_rules)}")


class TransitionRules:
    """State machine deciding whether an operation is legal and what it produces"""

    def plan(self, task: Task, request: WorkflowRequest, now: Optional[datetime] = None,
             enforce: bool = True) -> TransitionPlan:
        """
        Compute the outcome of applying ``request`` to ``task``.

        Args:
            task: Current task snapshot
            request: Single-task request (required fields already checked)
            now: Timestamp used for completion dates
            enforce: When False the status/role checks are skipped (forced transition)
        """
        check, planner = RULES[request.operation]
        if enforce:
            check(task, request)
        return planner(task, request, now or datetime.now())
