"""
Unit tests for task repositories.
"""
import pytest
import yaml

from role_handoff.core.enums import RecordKind, Role, TaskStatus
from role_handoff.core.exceptions import InfrastructureError, NotFoundError, ValidationError
from role_handoff.core.models import Task, TaskMutation, DelegationRecord, WorkflowTransitionRecord
from role_handoff.core.task_store import InMemoryTaskRepository, FileTaskRepository


def _transition(task_id="T-1"):
    return WorkflowTransitionRecord(
        task_id=task_id, operation="pause", from_role=None, to_role=None,
        from_status=TaskStatus.NOT_STARTED, to_status=TaskStatus.PAUSED, reason="pause"
    )


class TestInMemoryTaskRepository:
    """Test InMemoryTaskRepository."""

    def test_get_unknown_task(self):
        """Test NotFoundError for unknown ids."""
        with pytest.raises(NotFoundError):
            InMemoryTaskRepository().get("nope")

    def test_get_returns_copy(self):
        """Test that callers cannot mutate stored rows."""
        repository = InMemoryTaskRepository([Task(task_id="T-1")])

        repository.get("T-1").status = TaskStatus.CANCELLED

        assert repository.get("T-1").status == TaskStatus.NOT_STARTED

    def test_add_duplicate(self):
        """Test duplicate task ids are rejected."""
        repository = InMemoryTaskRepository([Task(task_id="T-1")])

        with pytest.raises(ValidationError):
            repository.add(Task(task_id="T-1"))
        with pytest.raises(NotFoundError):
            repository.get("T-2")

    def test_transaction_commits_records_and_task(self):
        """Test that a transaction commits everything together."""
        repository = InMemoryTaskRepository([Task(task_id="T-1")])

        with repository.transaction() as tx:
            tx.append_record(RecordKind.TRANSITION, _transition())
            tx.update("T-1", TaskMutation(status=TaskStatus.PAUSED), expected_version=0)

        assert repository.get("T-1").status == TaskStatus.PAUSED
        assert len(repository.records("T-1")) == 1

    def test_transaction_rolls_back_on_error(self):
        """Test that nothing is visible after a failed transaction."""
        repository = InMemoryTaskRepository([Task(task_id="T-1")])

        with pytest.raises(RuntimeError):
            with repository.transaction() as tx:
                tx.append_record(RecordKind.TRANSITION, _transition())
                tx.update("T-1", TaskMutation(status=TaskStatus.PAUSED), expected_version=0)
                raise RuntimeError("boom")

        assert repository.get("T-1").status == TaskStatus.NOT_STARTED
        assert repository.records("T-1") == []

    def test_record_kind_type_checked(self):
        """Test that records must match their kind."""
        repository = InMemoryTaskRepository([Task(task_id="T-1")])

        with pytest.raises(ValidationError):
            with repository.transaction() as tx:
                tx.append_record(RecordKind.DELEGATION, _transition())

    def test_records_filtered_by_kind(self):
        """Test record filtering."""
        repository = InMemoryTaskRepository([Task(task_id="T-1"), Task(task_id="T-2")])
        delegation = DelegationRecord(task_id="T-1", from_role=None, to_role=Role.ARCHITECT)

        with repository.transaction() as tx:
            tx.append_record(RecordKind.DELEGATION, delegation)
            tx.append_record(RecordKind.TRANSITION, _transition())
            tx.append_record(RecordKind.TRANSITION, _transition("T-2"))

        assert repository.records("T-1", RecordKind.DELEGATION) == [delegation]
        assert len(repository.records("T-1")) == 2
        assert len(repository.records("T-2", RecordKind.TRANSITION)) == 1


class TestFileTaskRepository:
    """Test FileTaskRepository."""

    def test_persists_across_instances(self, temp_workspace):
        """Test that committed state is visible to a new instance."""
        path = temp_workspace / ".workflow" / "tasks.yaml"
        repository = FileTaskRepository(path)
        repository.add(Task(task_id="T-1", current_role=Role.BOOMERANG))

        with repository.transaction() as tx:
            tx.append_record(RecordKind.TRANSITION, _transition())
            tx.update("T-1", TaskMutation(status=TaskStatus.PAUSED), expected_version=0)

        reopened = FileTaskRepository(path)
        task = reopened.get("T-1")
        assert task.status == TaskStatus.PAUSED
        assert task.current_role == Role.BOOMERANG
        assert task.version == 1
        assert reopened.records("T-1")[0].reason == "pause"

        document = yaml.safe_load(path.read_text(encoding="utf-8"))
        assert document["schema_version"] == "1.0"
        assert document["records"][0]["kind"] == "transition"
        assert "task_id" not in document["tasks"]["T-1"]

    def test_missing_file_is_empty_store(self, temp_workspace):
        """Test that an absent store has no tasks."""
        repository = FileTaskRepository(temp_workspace / "absent.yaml")

        with pytest.raises(NotFoundError):
            repository.get("T-1")
        assert repository.records("T-1") == []

    def test_corrupt_file(self, temp_workspace):
        """Test that unreadable documents raise InfrastructureError."""
        path = temp_workspace / "tasks.yaml"
        path.write_text("tasks: [unclosed", encoding="utf-8")

        with pytest.raises(InfrastructureError):
            FileTaskRepository(path).get("T-1")

    def test_invalid_root(self, temp_workspace):
        """Test that a non-mapping document is rejected."""
        path = temp_workspace / "tasks.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")

        with pytest.raises(InfrastructureError):
            FileTaskRepository(path).get("T-1")

    def test_invalid_task_entry(self, temp_workspace):
        """Test that an unknown status value is reported as corruption."""
        path = temp_workspace / "tasks.yaml"
        path.write_text("tasks:\n  T-1:\n    status: finished\n", encoding="utf-8")

        with pytest.raises(InfrastructureError, match="Corrupt task store"):
            FileTaskRepository(path).get("T-1")

    def test_failed_write_keeps_previous_document(self, temp_workspace, monkeypatch):
        """Test that a failed write leaves the committed document intact."""
        path = temp_workspace / "tasks.yaml"
        repository = FileTaskRepository(path)
        repository.add(Task(task_id="T-1"))
        before = path.read_text(encoding="utf-8")

        def failing_replace(src, dst):
            raise OSError("read-only filesystem")

        monkeypatch.setattr("role_handoff.core.task_store.os.replace", failing_replace)

        with pytest.raises(InfrastructureError):
            with repository.transaction() as tx:
                tx.update("T-1", TaskMutation(status=TaskStatus.CANCELLED), expected_version=0)

        assert path.read_text(encoding="utf-8") == before
        assert list(temp_workspace.glob(".tasks.yaml.*")) == []
        monkeypatch.undo()
        assert FileTaskRepository(path).get("T-1").status == TaskStatus.NOT_STARTED
