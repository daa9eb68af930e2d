"""
Condition validator for request preconditions.
Following Single Responsibility Principle - handles condition evaluation only.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Any

from .enums import Role, TaskStatus
from .exceptions import ValidationError
from .models import Task
from .requests import Conditions

logger = logging.getLogger(__name__)

Predicate = Callable[[Task], bool]


@dataclass
class ConditionResult:
    """Outcome of a condition check; ``reasons`` lists every failed check"""
    passed: bool
    reasons: List[str] = field(default_factory=list)

    @property
    def reason(self) -> str:
        return "; ".join(self.reasons)


class PredicateRegistry:
    """
    Named task predicates referenced by ``customConditions``.

    Built-in predicates:
    - has-current-role: the task is held by some role
    - not-terminal: the task is neither completed nor cancelled
    - not-paused: the task is not paused
    - never-redelegated: the task has never been sent back
    """

    def __init__(self, predicates: Optional[Dict[str, Predicate]] = None, include_builtins: bool = True):
        self._predicates: Dict[str, Predicate] = {}
        if include_builtins:
            self.register("has-current-role", lambda task: task.current_role is not None)
            self.register("not-terminal", lambda task: not task.is_terminal)
            self.register("not-paused", lambda task: task.status != TaskStatus.PAUSED)
            self.register("never-redelegated", lambda task: task.redelegation_count == 0)
        for name, predicate in (predicates or {}).items():
            self.register(name, predicate)

    def register(self, name: str, predicate: Predicate) -> None:
        if not name:
            raise ValidationError("Predicate name must not be empty", field="name")
        self._predicates[name] = predicate

    def get(self, name: str) -> Optional[Predicate]:
        return self._predicates.get(name)

    def names(self) -> List[str]:
        return sorted(self._predicates)

    def __contains__(self, name: str) -> bool:
        return name in self._predicates

    def register_declared(self, declarations: Dict[str, Dict[str, Any]]) -> None:
        """
        Register predicates declared as field constraints in configuration.

        Each declaration may constrain ``status`` (list of statuses),
        ``role`` (list of roles) and ``max_redelegations`` (int).
        """
        for name, spec in declarations.items():
            if not isinstance(spec, dict):
                raise ValidationError(f"Condition '{name}' must be a mapping", field=f"conditions.{name}", value=spec)
            self.register(name, _declared_predicate(name, spec))


def _declared_predicate(name: str, spec: Dict[str, Any]) -> Predicate:
    try:
        statuses = {TaskStatus(s) for s in _as_list(spec.get("status"))}
        roles = {Role(r) for r in _as_list(spec.get("role"))}
    except ValueError as e:
        raise ValidationError(f"Invalid condition '{name}': {e}", field=f"conditions.{name}", value=spec)
    max_redelegations = spec.get("max_redelegations")
    if max_redelegations is not None and not isinstance(max_redelegations, int):
        raise ValidationError(
            f"max_redelegations must be an integer in condition '{name}'",
            field=f"conditions.{name}.max_redelegations",
            value=max_redelegations
        )

    def predicate(task: Task) -> bool:
        if statuses and task.status not in statuses:
            return False
        if roles and task.current_role not in roles:
            return False
        if max_redelegations is not None and task.redelegation_count > max_redelegations:
            return False
        return True

    return predicate


def _as_list(value: Any) -> Iterable[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return value
    return [value]


class ConditionValidator:
    """
    Checks request conditions against a task snapshot.

    All checks run independently and every failure is reported. Unknown
    predicate names and predicates that raise fail closed.
    """

    def __init__(self, registry: Optional[PredicateRegistry] = None):
        self.registry = registry or PredicateRegistry()

    def validate(self, task: Task, conditions: Optional[Conditions]) -> ConditionResult:
        if conditions is None or conditions.is_empty:
            return ConditionResult(passed=True)

        reasons: List[str] = []

        if conditions.required_status and task.status != conditions.required_status:
            reasons.append(
                f"Task status must be {conditions.required_status.value}, but is {task.status.value}"
            )

        if conditions.required_role and task.current_role != conditions.required_role:
            owner = task.current_role.value if task.current_role else "no role"
            reasons.append(
                f"Task must be owned by {conditions.required_role.value}, but is owned by {owner}"
            )

        for name in conditions.custom_conditions:
            predicate = self.registry.get(name)
            if predicate is None:
                reasons.append(f"Unknown condition '{name}'")
                continue
            try:
                if not predicate(task):
                    reasons.append(f"Condition '{name}' not met")
            except Exception as e:
                logger.warning("Condition '%s' raised for task %s: %s", name, task.task_id, e)
                reasons.append(f"Condition '{name}' could not be evaluated: {e}")

        return ConditionResult(passed=not reasons, reasons=reasons)
