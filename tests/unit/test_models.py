"""
Unit tests for data models.
"""
from datetime import datetime

import pytest

from role_handoff.core.enums import Role, Severity, TaskStatus, TransitionKind
from role_handoff.core.exceptions import NotFoundError
from role_handoff.core.models import (
    Task, TaskMutation, DelegationRecord, WorkflowTransitionRecord, CompletionReport,
    OperationResult, BatchItemResult, BatchResult, WorkflowResponse
)

NOW = datetime(2024, 1, 1, 12, 0, 0)


class TestTask:
    """Test Task and TaskMutation."""

    def test_task_round_trip(self):
        """Test Task serialization."""
        task = Task(
            task_id="T-1",
            status=TaskStatus.COMPLETED,
            current_role=Role.CODE_REVIEW,
            redelegation_count=2,
            version=5,
            completion_date=NOW,
        )

        assert Task.from_dict(task.to_dict()) == task

    @pytest.mark.parametrize("status,terminal", [
        (TaskStatus.COMPLETED, True),
        (TaskStatus.CANCELLED, True),
        (TaskStatus.PAUSED, False),
        (TaskStatus.NEEDS_CHANGES, False),
    ])
    def test_is_terminal(self, status, terminal):
        """Test terminal status detection."""
        assert Task(task_id="T", status=status).is_terminal is terminal

    def test_mutation_applies_and_bumps_version(self):
        """Test mutation application."""
        task = Task(task_id="T-1", status=TaskStatus.IN_PROGRESS, current_role=Role.ARCHITECT)

        updated = TaskMutation(status=TaskStatus.NEEDS_CHANGES, redelegation_increment=1).apply(task, NOW)

        assert updated.status == TaskStatus.NEEDS_CHANGES
        assert updated.current_role == Role.ARCHITECT
        assert updated.redelegation_count == 1
        assert updated.version == 1
        assert updated.updated_at == NOW
        assert task.version == 0

    def test_mutation_outside_completed_has_no_completion_date(self):
        """Test that a completed task moved elsewhere loses its completion date."""
        task = Task(task_id="T-1", status=TaskStatus.COMPLETED, completion_date=NOW)

        reopened = TaskMutation(status=TaskStatus.IN_PROGRESS).apply(task, NOW)
        relabelled = TaskMutation(current_role=Role.ARCHITECT).apply(task, NOW)

        assert reopened.completion_date is None
        assert relabelled.completion_date == NOW


class TestRecords:
    """Test record serialization."""

    def test_delegation_record_round_trip(self):
        """Test DelegationRecord serialization."""
        record = DelegationRecord(
            task_id="T-1",
            from_role=None,
            to_role=Role.ARCHITECT,
            rejection_reason="blocked",
            severity=Severity.HIGH,
            blockers=["B-1"],
            timestamp=NOW,
        )

        assert DelegationRecord.from_dict(record.to_dict()) == record

    def test_transition_record_round_trip(self):
        """Test WorkflowTransitionRecord serialization."""
        record = WorkflowTransitionRecord(
            task_id="T-1",
            operation="pause",
            from_role=Role.ARCHITECT,
            to_role=Role.ARCHITECT,
            from_status=TaskStatus.IN_PROGRESS,
            to_status=TaskStatus.PAUSED,
            reason="waiting",
            timestamp=NOW,
        )

        assert WorkflowTransitionRecord.from_dict(record.to_dict()) == record

    def test_record_ids_are_unique(self):
        """Test generated record ids."""
        first = CompletionReport(task_id="T-1", summary="a")
        second = CompletionReport(task_id="T-1", summary="a")

        assert first.record_id != second.record_id


class TestResults:
    """Test result and response models."""

    def _transition_record(self):
        return WorkflowTransitionRecord(
            task_id="T-1", operation="escalate", from_role=Role.ARCHITECT, to_role=Role.BOOMERANG,
            from_status=TaskStatus.IN_PROGRESS, to_status=TaskStatus.NEEDS_CHANGES, reason="r", timestamp=NOW
        )

    def test_escalation_key_used_for_rejections(self):
        """Test that escalation records serialize under the escalation key."""
        delegation = DelegationRecord(
            task_id="T-1", from_role=Role.ARCHITECT, to_role=Role.BOOMERANG, rejection_reason="blocked"
        )
        result = OperationResult(
            task=Task(task_id="T-1"),
            transition=TransitionKind.ESCALATION_COMPLETED,
            transition_record=self._transition_record(),
            delegation=delegation,
        )

        data = result.to_dict()

        assert "escalation" in data
        assert "delegation" not in data
        assert result.record is delegation

    def test_batch_status(self):
        """Test batch status labels."""
        ok = BatchItemResult(task_id="A", success=True)
        bad = BatchItemResult(task_id="B", success=False, error=NotFoundError("Task B not found", task_id="B"))

        assert BatchResult(results=[ok], total=1).status == "completed"
        assert BatchResult(results=[ok, bad], total=2).status == "failed"
        assert BatchResult(results=[ok, bad], total=2, continue_on_error=True).status == "partially-failed"
        assert BatchResult(results=[bad], total=2, continue_on_error=True).status == "failed"

    def test_response_error_code(self):
        """Test WorkflowResponse error code accessor."""
        response = WorkflowResponse(success=False, error=NotFoundError("Task X not found", task_id="X"))

        assert response.error_code == "not-found"
        assert WorkflowResponse(success=True).error_code is None
        assert response.to_dict()["error"]["code"] == "not-found"
