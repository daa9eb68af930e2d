"""
Unit tests for batch execution.
"""
import pytest

from role_handoff.core.batch_coordinator import BatchCoordinator
from role_handoff.core.enums import TaskStatus
from role_handoff.core.models import BatchResult


class TestBatchExecution:
    """Test batch fan-out through WorkflowEngine.execute."""

    def test_parallel_batch_with_unknown_task(self, engine, repository, make_request):
        """Test that one unknown task does not affect the others."""
        response = engine.execute(make_request(
            "pause", "",
            batch={"taskIds": ["T-1", "missing", "T-2"], "parallelExecution": True, "continueOnError": True}
        ))

        result = response.data
        assert isinstance(result, BatchResult)
        assert result.summary == {"total": 3, "successful": 2, "failed": 1}
        assert [r.task_id for r in result.results] == ["T-1", "missing", "T-2"]
        assert result.results[1].error.code.value == "not-found"
        assert repository.get("T-1").status == TaskStatus.PAUSED
        assert repository.get("T-2").status == TaskStatus.PAUSED
        assert response.success is True
        assert result.status == "partially-failed"

    def test_sequential_batch_stops_at_first_failure(self, engine, repository, make_request):
        """Test abort semantics without continueOnError."""
        response = engine.execute(make_request(
            "pause", "",
            batch={"taskIds": ["T-1", "T-done", "T-2"]}
        ))

        result = response.data
        assert response.success is False
        assert response.error_code == "invalid-transition"
        assert result.summary == {"total": 3, "successful": 1, "failed": 1}
        assert result.status == "failed"
        assert repository.get("T-1").status == TaskStatus.PAUSED
        assert repository.get("T-2").status == TaskStatus.NOT_STARTED

    def test_sequential_batch_continue_on_error(self, engine, repository, make_request):
        """Test that continueOnError runs the remaining tasks."""
        response = engine.execute(make_request(
            "pause", "",
            batch={"taskIds": ["T-1", "T-done", "T-2"], "continueOnError": True}
        ))

        assert response.success is True
        assert response.data.summary == {"total": 3, "successful": 2, "failed": 1}
        assert repository.get("T-2").status == TaskStatus.PAUSED

    def test_batch_where_every_task_fails(self, engine, make_request):
        """Test that a batch with no successes is reported as failed."""
        response = engine.execute(make_request(
            "resume", "",
            batch={"taskIds": ["T-1", "missing"], "parallelExecution": True, "continueOnError": True}
        ))

        assert response.data.summary == {"total": 2, "successful": 0, "failed": 2}
        assert response.data.status == "failed"

    def test_parallel_batch_without_continue_on_error_still_runs_all(self, engine, repository, make_request):
        """Test that parallel batches run every task but report failure."""
        response = engine.execute(make_request(
            "cancel", "",
            batch={"taskIds": ["T-1", "missing", "T-2", "T-3"], "parallelExecution": True}
        ))

        assert response.success is False
        assert response.error_code == "not-found"
        assert response.data.summary == {"total": 4, "successful": 3, "failed": 1}
        for task_id in ("T-1", "T-2", "T-3"):
            assert repository.get(task_id).status == TaskStatus.CANCELLED

    def test_batch_items_are_independent_transactions(self, engine, repository, make_request):
        """Test that a failure does not roll back earlier successes."""
        engine.execute(make_request(
            "delegate", "",
            fromRole="boomerang", toRole="researcher",
            batch={"taskIds": ["T-1", "T-3"]}
        ))

        assert repository.get("T-1").current_role.value == "researcher"
        assert len(engine.history("T-1")) == 1
        assert engine.history("T-3") == []

    def test_batch_to_dict(self, engine, make_request):
        """Test serialized batch response."""
        data = engine.execute(make_request(
            "pause", "", batch={"taskIds": ["T-1", "missing"], "continueOnError": True}
        )).to_dict()

        assert data["data"]["summary"] == {"total": 2, "successful": 1, "failed": 1}
        assert data["data"]["status"] == "partially-failed"
        assert data["data"]["errors"][0]["taskId"] == "missing"
        assert data["data"]["errors"][0]["error"]["code"] == "not-found"


class TestBatchCoordinator:
    """Test BatchCoordinator directly."""

    def test_requires_batch(self, engine, make_request):
        """Test that a template without batch is rejected."""
        coordinator = BatchCoordinator(engine)

        with pytest.raises(ValueError):
            coordinator.run(make_request("pause", "T-1"))

    def test_explicit_batch_overrides_template(self, engine, repository, make_request):
        """Test running a single-task template over an explicit batch."""
        from role_handoff.core.requests import BatchSpec

        coordinator = BatchCoordinator(engine, max_parallel=2)
        result = coordinator.run(make_request("pause", "T-1"), BatchSpec(task_ids=["T-2", "T-3"], parallel_execution=True))

        assert [r.task_id for r in result.results] == ["T-2", "T-3"]
        assert result.successful == 2
        assert repository.get("T-1").status == TaskStatus.NOT_STARTED

    def test_max_parallel_floor(self, engine):
        """Test that max_parallel is at least one."""
        assert BatchCoordinator(engine, max_parallel=0).max_parallel == 1
