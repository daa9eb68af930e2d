"""
Unit tests for ConditionValidator and PredicateRegistry.
"""
import pytest

from role_handoff.core.condition_validator import ConditionValidator, PredicateRegistry
from role_handoff.core.enums import Role, TaskStatus
from role_handoff.core.exceptions import ValidationError
from role_handoff.core.models import Task
from role_handoff.core.requests import Conditions


@pytest.fixture
def task():
    return Task(task_id="T-1", status=TaskStatus.IN_PROGRESS, current_role=Role.SENIOR_DEVELOPER)


class TestConditionValidator:
    """Test condition evaluation."""

    def test_no_conditions_pass(self, task):
        """Test that absent or empty conditions pass."""
        validator = ConditionValidator()

        assert validator.validate(task, None).passed is True
        assert validator.validate(task, Conditions()).passed is True

    def test_required_status_and_role(self, task):
        """Test matching status and role."""
        conditions = Conditions(required_status=TaskStatus.IN_PROGRESS, required_role=Role.SENIOR_DEVELOPER)

        assert ConditionValidator().validate(task, conditions).passed is True

    def test_all_failures_reported(self, task):
        """Test that every failed check is listed."""
        conditions = Conditions(
            required_status=TaskStatus.NEEDS_REVIEW,
            required_role=Role.ARCHITECT,
            custom_conditions=["never-redelegated", "nonexistent"],
        )

        result = ConditionValidator().validate(task, conditions)

        assert result.passed is False
        assert len(result.reasons) == 3
        assert "needs-review" in result.reason
        assert "architect" in result.reason
        assert "Unknown condition 'nonexistent'" in result.reason

    def test_unassigned_task_fails_required_role(self):
        """Test required role against an unassigned task."""
        result = ConditionValidator().validate(Task(task_id="T-1"), Conditions(required_role=Role.BOOMERANG))

        assert result.passed is False
        assert "no role" in result.reason

    def test_raising_predicate_fails_closed(self, task):
        """Test that predicate exceptions count as failures."""
        def broken(_task):
            raise KeyError("missing")

        registry = PredicateRegistry({"broken": broken})
        result = ConditionValidator(registry).validate(task, Conditions(custom_conditions=["broken"]))

        assert result.passed is False
        assert "could not be evaluated" in result.reason


class TestPredicateRegistry:
    """Test predicate registration."""

    @pytest.mark.parametrize("name,expected", [
        ("has-current-role", True),
        ("not-terminal", True),
        ("not-paused", True),
        ("never-redelegated", True),
    ])
    def test_builtins(self, task, name, expected):
        """Test built-in predicates against an in-progress task."""
        registry = PredicateRegistry()

        assert registry.get(name)(task) is expected

    def test_builtins_can_be_excluded(self):
        """Test include_builtins=False."""
        registry = PredicateRegistry(include_builtins=False)

        assert registry.names() == []
        assert "not-terminal" not in registry

    def test_register_rejects_empty_name(self):
        """Test name validation."""
        with pytest.raises(ValidationError):
            PredicateRegistry().register("", lambda t: True)

    def test_declared_predicate(self, task):
        """Test predicates declared as field constraints."""
        registry = PredicateRegistry()
        registry.register_declared({
            "ready-for-review": {"status": ["in-progress"], "role": "senior-developer", "max_redelegations": 1}
        })

        predicate = registry.get("ready-for-review")

        assert predicate(task) is True
        assert predicate(Task(task_id="T-2", status=TaskStatus.PAUSED, current_role=Role.SENIOR_DEVELOPER)) is False
        assert predicate(Task(task_id="T-3", status=TaskStatus.IN_PROGRESS, current_role=Role.SENIOR_DEVELOPER,
                              redelegation_count=2)) is False

    @pytest.mark.parametrize("spec", [
        {"status": ["finished"]},
        {"role": ["manager"]},
        {"max_redelegations": "two"},
        "in-progress",
    ])
    def test_invalid_declarations(self, spec):
        """Test that malformed declarations raise ValidationError."""
        with pytest.raises(ValidationError):
            PredicateRegistry().register_declared({"bad": spec})
