"""
Workflow engine orchestrating single task operations.
Following Single Responsibility Principle - handles operation orchestration only.
"""

import logging
import time
import warnings
from datetime import datetime
from typing import Callable, List, Optional

from .batch_coordinator import BatchCoordinator
from .condition_validator import ConditionValidator
from .enums import RecordKind
from .exceptions import WorkflowError, InfrastructureError, PreconditionFailedError
from .models import (
    Task, DelegationRecord, WorkflowTransitionRecord, CompletionReport,
    OperationResult, WorkflowResponse
)
from .requests import WorkflowRequest, CompletePayload, EscalatePayload
from .task_store import TaskRepository
from .transition_rules import TransitionRules, TransitionPlan, check_required_fields
from .workflow_events import Emitter, NullEmitter, WorkflowEvent, AUDIT, NOTIFICATION

logger = logging.getLogger(__name__)


class WorkflowEngine:
    """
    Applies workflow operations to tasks held in a task repository.

    One operation runs: required-field check, load, condition check,
    transition rules, one atomic store transaction (operation record,
    transition record, task update), then event emission.
    """

    def __init__(
        self,
        repository: TaskRepository,
        emitter: Optional[Emitter] = None,
        validator: Optional[ConditionValidator] = None,
        rules: Optional[TransitionRules] = None,
        max_parallel: int = 4,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Initialize workflow engine.

        Args:
            repository: Task store the engine reads and writes
            emitter: Audit/notification sink (defaults to discarding events)
            validator: Condition validator (defaults to built-in predicates only)
            rules: Transition rules (for dependency injection)
            max_parallel: Upper bound on concurrent tasks in parallel batches
            clock: Timestamp source for records
        """
        self.repository = repository
        self.emitter = emitter or NullEmitter()
        self.validator = validator or ConditionValidator()
        self.rules = rules or TransitionRules()
        self.max_parallel = max_parallel
        self._now = clock or datetime.now

    # ------------------------------------------------------------------
    # Public boundary
    # ------------------------------------------------------------------

    def execute(self, request: WorkflowRequest) -> WorkflowResponse:
        """
        Execute a request, fanning out over ``request.batch`` when present.

        Never raises: every failure is returned as ``WorkflowResponse.error``.
        """
        start = time.perf_counter()
        operation = request.operation.value
        logger.debug("Workflow operation %s for %s", operation, request.task_id or request.batch)

        response = WorkflowResponse(success=False)
        try:
            if request.batch:
                coordinator = BatchCoordinator(self, max_parallel=self.max_parallel)
                batch_result = coordinator.run(request)
                failed = batch_result.errors
                response.data = batch_result
                response.success = not failed or request.batch.continue_on_error
                if not response.success:
                    response.error = failed[0].error
            else:
                response.data = self.apply(request)
                response.success = True
        except WorkflowError as e:
            response.error = e
        except Exception as e:
            logger.exception("Unexpected failure in %s on %s", operation, request.task_id)
            response.error = InfrastructureError(str(e), task_id=request.task_id or None, operation=operation)

        if response.error is not None and not response.success:
            logger.info("Workflow operation %s on %s failed: %s", operation, request.task_id, response.error)

        response.metadata = {
            "operation": operation,
            "taskId": request.task_id or None,
            "fromRole": request.from_role.value if request.from_role else None,
            "toRole": request.to_role.value if request.to_role else None,
            "responseTime": round((time.perf_counter() - start) * 1000),
        }
        return response

    def apply(self, request: WorkflowRequest) -> OperationResult:
        """
        Apply a single-task request.

        Raises:
            WorkflowError: Subclass matching the failure; no mutation has happened
        """
        try:
            return self._apply(request)
        except WorkflowError as e:
            raise self._with_context(e, request)
        except Exception as e:
            logger.exception("Task store failure during %s on %s", request.operation.value, request.task_id)
            raise InfrastructureError(str(e), task_id=request.task_id, operation=request.operation.value) from e

    def history(self, task_id: str) -> List[WorkflowTransitionRecord]:
        """Audit trail of a task, oldest first"""
        self.repository.get(task_id)
        return self.repository.records(task_id, RecordKind.TRANSITION)

    # ------------------------------------------------------------------
    # Single operation path
    # ------------------------------------------------------------------

    def _apply(self, request: WorkflowRequest) -> OperationResult:
        check_required_fields(request)

        task = self.repository.get(request.task_id)
        overrides: List[str] = []

        if request.conditions and not request.conditions.is_empty:
            if request.constraints.allow_skip_validation:
                self._log_override("allowSkipValidation", request)
                overrides.append("allowSkipValidation")
            else:
                outcome = self.validator.validate(task, request.conditions)
                if not outcome.passed:
                    raise PreconditionFailedError(
                        outcome.reason,
                        task_id=task.task_id,
                        operation=request.operation.value,
                        context={"failed_checks": len(outcome.reasons)}
                    )

        enforce = not request.constraints.force_transition
        if not enforce:
            self._log_override("forceTransition", request)
            overrides.append("forceTransition")

        now = self._now()
        plan = self.rules.plan(task, request, now=now, enforce=enforce)

        delegation, completion_report = self._build_record(task, request, plan, now)
        transition_record = WorkflowTransitionRecord(
            task_id=task.task_id,
            operation=request.operation.value,
            from_role=plan.from_role,
            to_role=plan.to_role,
            from_status=plan.from_status,
            to_status=plan.to_status,
            reason=plan.reason,
            timestamp=now,
        )

        with self.repository.transaction() as tx:
            if delegation is not None:
                tx.append_record(RecordKind.DELEGATION, delegation)
            if completion_report is not None:
                tx.append_record(RecordKind.COMPLETION, completion_report)
            tx.append_record(RecordKind.TRANSITION, transition_record)
            updated = tx.update(task.task_id, plan.mutation, expected_version=task.version, now=now)

        result = OperationResult(
            task=updated,
            transition=plan.kind,
            transition_record=transition_record,
            delegation=delegation,
            completion_report=completion_report,
            overrides=overrides,
        )
        self._emit(request, plan, result)
        return result

    def _build_record(self, task: Task, request: WorkflowRequest, plan: TransitionPlan, now: datetime):
        if plan.record_kind == RecordKind.DELEGATION:
            rejection = request.payload.rejection if isinstance(request.payload, EscalatePayload) else None
            delegation = DelegationRecord(
                task_id=task.task_id,
                from_role=plan.from_role,
                to_role=plan.to_role,
                message=request.message or "",
                rejection_reason=rejection.reason if rejection else None,
                severity=rejection.severity if rejection else None,
                required_changes=rejection.required_changes if rejection else None,
                blockers=list(rejection.blockers) if rejection else [],
                timestamp=now,
            )
            return delegation, None

        if plan.record_kind == RecordKind.COMPLETION and isinstance(request.payload, CompletePayload):
            completion = request.payload.completion
            acting = plan.from_role.value if plan.from_role else "unassigned"
            report = CompletionReport(
                task_id=task.task_id,
                summary=completion.summary,
                delegation_summary=f"Task completed by {acting}",
                files_modified=list(completion.files_modified),
                acceptance_criteria_verification=dict(completion.acceptance_criteria_verification),
                evidence=dict(completion.evidence),
                timestamp=now,
            )
            return None, report

        return None, None

    # ------------------------------------------------------------------
    # Side effects
    # ------------------------------------------------------------------

    def _emit(self, request: WorkflowRequest, plan: TransitionPlan, result: OperationResult) -> None:
        constraints = request.constraints
        if not (constraints.create_audit_trail or constraints.notify_stakeholders):
            return

        request_data = request.to_dict()
        task_data = result.task.to_dict()
        recipients: List[str] = []
        for role in (plan.from_role, plan.to_role):
            if role and role.value not in recipients:
                recipients.append(role.value)

        event_types = []
        if constraints.create_audit_trail:
            event_types.append(AUDIT)
        if constraints.notify_stakeholders:
            event_types.append(NOTIFICATION)

        for event_type in event_types:
            event = WorkflowEvent(
                event_type=event_type,
                operation=request.operation.value,
                task_id=result.task.task_id,
                transition=result.transition.value,
                request=request_data,
                task=task_data,
                recipients=recipients if event_type == NOTIFICATION else [],
                overrides=list(result.overrides),
            )
            try:
                self.emitter.publish(event)
            except Exception as e:
                # The mutation is already committed; emission is best effort
                logger.warning("Failed to publish %s event for %s: %s", event_type, event.task_id, e)
                warnings.warn(f"Failed to publish {event_type} event for {event.task_id}: {e}", UserWarning)

    @staticmethod
    def _log_override(constraint: str, request: WorkflowRequest) -> None:
        logger.warning(
            "Validation override %s on %s for task %s",
            constraint, request.operation.value, request.task_id
        )

    @staticmethod
    def _with_context(error: WorkflowError, request: WorkflowRequest) -> WorkflowError:
        if not error.task_id or not error.operation:
            error.task_id = error.task_id or request.task_id
            error.operation = error.operation or request.operation.value
            error.args = (error._format_message(),)
        return error
