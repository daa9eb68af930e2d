"""
Core hand-off workflow modules.
Modules are organized by responsibility.
"""

# Exceptions
from .exceptions import (
    ValidationError, WorkflowError, NotFoundError, PreconditionFailedError,
    InvalidTransitionError, MissingRequiredFieldError, ConflictError, InfrastructureError
)

# Enums
from .enums import TaskStatus, Role, Operation, Severity, ErrorCode, RecordKind, TransitionKind

# Models
from .models import (
    Task, TaskMutation, DelegationRecord, WorkflowTransitionRecord, CompletionReport,
    OperationResult, BatchItemResult, BatchResult, WorkflowResponse
)
from .requests import (
    WorkflowRequest, CompletionData, RejectionData, Conditions, BatchSpec, Constraints,
    Scheduling, REQUEST_SCHEMA, DelegatePayload, ReassignPayload, CompletePayload, EscalatePayload,
    TransitionPayload, PausePayload, ResumePayload, CancelPayload
)

# Storage
from .task_store import TaskRepository, InMemoryTaskRepository, FileTaskRepository, StoreTransaction

# Validation and rules
from .condition_validator import ConditionValidator, ConditionResult, PredicateRegistry
from .transition_rules import TransitionRules, TransitionPlan, check_required_fields

# Events
from .workflow_events import WorkflowEvent, Emitter, EventLogger, NullEmitter

# Orchestration
from .workflow_engine import WorkflowEngine
from .batch_coordinator import BatchCoordinator

# Configuration
from .documents import load_document, validate_document
from .config_loader import ConfigLoader, EngineConfig, CONFIG_SCHEMA

__all__ = [
    # Exceptions
    'ValidationError',
    'WorkflowError',
    'NotFoundError',
    'PreconditionFailedError',
    'InvalidTransitionError',
    'MissingRequiredFieldError',
    'ConflictError',
    'InfrastructureError',
    # Enums
    'TaskStatus',
    'Role',
    'Operation',
    'Severity',
    'ErrorCode',
    'RecordKind',
    'TransitionKind',
    # Models
    'Task',
    'TaskMutation',
    'DelegationRecord',
    'WorkflowTransitionRecord',
    'CompletionReport',
    'OperationResult',
    'BatchItemResult',
    'BatchResult',
    'WorkflowResponse',
    'WorkflowRequest',
    'CompletionData',
    'RejectionData',
    'Conditions',
    'BatchSpec',
    'Constraints',
    'Scheduling',
    'REQUEST_SCHEMA',
    'DelegatePayload',
    'ReassignPayload',
    'CompletePayload',
    'EscalatePayload',
    'TransitionPayload',
    'PausePayload',
    'ResumePayload',
    'CancelPayload',
    # Storage
    'TaskRepository',
    'InMemoryTaskRepository',
    'FileTaskRepository',
    'StoreTransaction',
    # Validation and rules
    'ConditionValidator',
    'ConditionResult',
    'PredicateRegistry',
    'TransitionRules',
    'TransitionPlan',
    'check_required_fields',
    # Events
    'WorkflowEvent',
    'Emitter',
    'EventLogger',
    'NullEmitter',
    # Orchestration
    'WorkflowEngine',
    'BatchCoordinator',
    # Configuration
    'load_document',
    'validate_document',
    'ConfigLoader',
    'EngineConfig',
    'CONFIG_SCHEMA',
]
