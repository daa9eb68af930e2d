"""
Configuration loader for the hand-off engine.
Following Single Responsibility Principle - handles configuration loading only.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, Optional, Tuple, cast

from .condition_validator import ConditionValidator, PredicateRegistry
from .exceptions import ValidationError
from .requests import Constraints
from .documents import load_document
from .task_store import FileTaskRepository
from .workflow_engine import WorkflowEngine
from .workflow_events import EventLogger

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path(".workflow") / "handoff.yaml"
DEFAULT_STORE_FILE = Path(".workflow") / "tasks.yaml"

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["schema_version"],
    "properties": {
        "schema_version": {"type": ["string", "number"]},
        "max_parallel": {"type": "integer", "minimum": 1},
        "store_path": {"type": "string"},
        "event_log": {"type": ["string", "null"]},
        "default_constraints": {
            "type": "object",
            "properties": {
                "createAuditTrail": {"type": "boolean"},
                "notifyStakeholders": {"type": "boolean"},
                "forceTransition": {"type": "boolean"},
                "allowSkipValidation": {"type": "boolean"},
            },
            "additionalProperties": False,
        },
        "conditions": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "properties": {
                    "status": {"type": ["string", "array"], "items": {"type": "string"}},
                    "role": {"type": ["string", "array"], "items": {"type": "string"}},
                    "max_redelegations": {"type": "integer", "minimum": 0},
                },
                "additionalProperties": False,
            },
        },
    },
}


@dataclass
class EngineConfig:
    """
    Engine settings.

    Example ``.workflow/handoff.yaml``::

        schema_version: "1.0"
        max_parallel: 8
        store_path: .workflow/tasks.yaml
        event_log: .workflow/events.json
        default_constraints:
          notifyStakeholders: false
        conditions:
          ready-for-review:
            status: [in-progress]
            role: [senior-developer]
            max_redelegations: 2
    """
    max_parallel: int = 4
    store_path: Path = DEFAULT_STORE_FILE
    event_log: Optional[Path] = None
    default_constraints: Constraints = field(default_factory=Constraints)
    conditions: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_path: Optional[Path] = None) -> 'EngineConfig':
        base = Path(base_path) if base_path else Path(".")

        max_parallel = data.get("max_parallel", 4)
        if not isinstance(max_parallel, int) or max_parallel < 1:
            raise ValidationError("max_parallel must be a positive integer", field="max_parallel", value=max_parallel)

        constraints = data.get("default_constraints") or {}
        conditions = data.get("conditions") or {}
        if not isinstance(constraints, dict):
            raise ValidationError("default_constraints must be a mapping", field="default_constraints")
        if not isinstance(conditions, dict):
            raise ValidationError("conditions must be a mapping", field="conditions")

        store_path = data.get("store_path")
        event_log = data.get("event_log")
        return cls(
            max_parallel=max_parallel,
            store_path=base / store_path if store_path else base / DEFAULT_STORE_FILE,
            event_log=base / event_log if event_log else None,
            default_constraints=Constraints.from_dict(constraints),
            conditions=cast(Dict[str, Dict[str, Any]], conditions),
        )


class ConfigLoader:
    """Loads engine configuration and wires an engine from it"""

    def __init__(self, workspace_path: Path):
        self.workspace_path = Path(workspace_path)
        self._cache: Dict[Path, Tuple[EngineConfig, float]] = {}

    def load(self, config_file: Optional[Path] = None) -> EngineConfig:
        """
        Load configuration, falling back to defaults when the file is absent.

        Raises:
            ValidationError: If the file exists but is malformed
        """
        path = Path(config_file) if config_file else self.workspace_path / DEFAULT_CONFIG_FILE
        if not path.exists():
            logger.debug("No config at %s, using defaults", path)
            return EngineConfig.from_dict({}, base_path=self.workspace_path)

        mtime = path.stat().st_mtime
        cached = self._cache.get(path)
        if cached and cached[1] == mtime:
            return cached[0]

        data = load_document(path, CONFIG_SCHEMA, source="config")
        config = EngineConfig.from_dict(data, base_path=self.workspace_path)
        self._cache[path] = (config, mtime)
        return config

    def build_engine(self, config: EngineConfig, store_path: Optional[Path] = None,
                     event_log: Optional[Path] = None) -> WorkflowEngine:
        """Create an engine over a YAML task store as described by ``config``"""
        registry = PredicateRegistry()
        registry.register_declared(config.conditions)
        log_file = event_log or config.event_log
        return WorkflowEngine(
            repository=FileTaskRepository(store_path or config.store_path),
            emitter=EventLogger(log_file),
            validator=ConditionValidator(registry),
            max_parallel=config.max_parallel,
        )

    def clear_cache(self) -> None:
        """Clear the configuration cache"""
        self._cache.clear()
