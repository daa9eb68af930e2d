"""
Workflow event emission for audit and notification sinks.
Following Single Responsibility Principle - handles event publishing only.
"""

import json
import logging
import threading
import uuid
import warnings
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Any

import yaml

logger = logging.getLogger(__name__)

AUDIT = "audit"
NOTIFICATION = "notification"


@dataclass
class WorkflowEvent:
    """
    A completed operation outcome, as seen by audit and notification sinks.

    Carries the full request and the resulting task snapshot.
    """
    event_type: str  # "audit" | "notification"
    operation: str
    task_id: str
    transition: str
    request: Dict[str, Any] = field(default_factory=dict)
    task: Dict[str, Any] = field(default_factory=dict)
    recipients: List[str] = field(default_factory=list)
    overrides: List[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)
    event_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "operation": self.operation,
            "task_id": self.task_id,
            "transition": self.transition,
            "request": self.request,
            "task": self.task,
            "recipients": self.recipients,
            "overrides": self.overrides,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WorkflowEvent':
        """Create from dictionary"""
        return cls(
            event_id=data.get("event_id") or uuid.uuid4().hex,
            event_type=data["event_type"],
            operation=data["operation"],
            task_id=data["task_id"],
            transition=data.get("transition", ""),
            request=data.get("request", {}),
            task=data.get("task", {}),
            recipients=data.get("recipients", []),
            overrides=data.get("overrides", []),
            timestamp=datetime.fromisoformat(data.get("timestamp", datetime.now().isoformat())),
        )


class Emitter(ABC):
    """Side-effect boundary receiving completed operation outcomes"""

    @abstractmethod
    def publish(self, event: WorkflowEvent) -> None:
        pass


class NullEmitter(Emitter):
    """Discards every event"""

    def publish(self, event: WorkflowEvent) -> None:
        pass


class EventLogger(Emitter):
    """
    Records workflow events in memory, optionally persisting them to a
    JSON or YAML log file.

    Provides methods to query and export recorded events.
    """

    def __init__(self, log_file: Optional[Path] = None):
        """
        Initialize event logger.

        Args:
            log_file: Optional path to persistent log file (.json, .yaml or .yml)
        """
        self.events: List[WorkflowEvent] = []
        self.log_file = Path(log_file) if log_file else None
        self._lock = threading.Lock()
        if self.log_file and self.log_file.exists():
            self._load_from_file()

    def publish(self, event: WorkflowEvent) -> None:
        with self._lock:
            self.events.append(event)
            if self.log_file:
                self._append_to_file(event)
        logger.info("%s event: %s on %s (%s)", event.event_type, event.operation, event.task_id, event.transition)

    def get_events(
        self,
        task_id: Optional[str] = None,
        event_type: Optional[str] = None,
        operation: Optional[str] = None,
        transition: Optional[str] = None
    ) -> List[WorkflowEvent]:
        """
        Query events with filters.

        Args:
            task_id: Filter by task ID
            event_type: Filter by "audit" or "notification"
            operation: Filter by operation name
            transition: Filter by transition discriminator

        Returns:
            List of matching events
        """
        with self._lock:
            filtered = list(self.events)

        if task_id:
            filtered = [e for e in filtered if e.task_id == task_id]
        if event_type:
            filtered = [e for e in filtered if e.event_type == event_type]
        if operation:
            filtered = [e for e in filtered if e.operation == operation]
        if transition:
            filtered = [e for e in filtered if e.transition == transition]

        return filtered

    def export_events(
        self,
        output_file: Path,
        format: str = "json",
        filters: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Export events to file.

        Args:
            output_file: Output file path
            format: Export format ("json" or "yaml")
            filters: Optional filters dict (task_id, event_type, operation, transition)
        """
        events_dict = [e.to_dict() for e in self.get_events(**(filters or {}))]

        output_file.parent.mkdir(parents=True, exist_ok=True)

        if format == "json":
            with output_file.open('w', encoding='utf-8') as f:
                json.dump(events_dict, f, indent=2, ensure_ascii=False, default=str)
        elif format == "yaml":
            with output_file.open('w', encoding='utf-8') as f:
                yaml.safe_dump(events_dict, f, default_flow_style=False, allow_unicode=True)
        else:
            raise ValueError(f"Unsupported format: {format}")

    def _is_yaml(self) -> bool:
        return self.log_file is not None and self.log_file.suffix in ['.yaml', '.yml']

    def _load_from_file(self) -> None:
        """Load events from log file"""
        try:
            with self.log_file.open('r', encoding='utf-8') as f:
                data = yaml.safe_load(f) if self._is_yaml() else json.load(f)

            if isinstance(data, list):
                self.events = [WorkflowEvent.from_dict(e) for e in data]
        except (OSError, ValueError, KeyError, yaml.YAMLError) as e:
            warnings.warn(f"Failed to load events from {self.log_file}: {e}")

    def _append_to_file(self, event: WorkflowEvent) -> None:
        """Append event to log file; failures degrade to a warning"""
        try:
            existing_events: List[Dict[str, Any]] = []
            if self.log_file.exists():
                with self.log_file.open('r', encoding='utf-8') as f:
                    existing_events = (yaml.safe_load(f) if self._is_yaml() else json.load(f)) or []

            existing_events.append(event.to_dict())

            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            with self.log_file.open('w', encoding='utf-8') as f:
                if self._is_yaml():
                    yaml.safe_dump(existing_events, f, default_flow_style=False, allow_unicode=True)
                else:
                    json.dump(existing_events, f, indent=2, ensure_ascii=False, default=str)
        except (OSError, ValueError, yaml.YAMLError) as e:
            warnings.warn(f"Failed to append event to {self.log_file}: {e}")
