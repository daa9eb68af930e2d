"""
CLI commands: create, show, history, run and one shortcut per workflow operation.
"""

import sys
from pathlib import Path
from typing import Any, Dict

from .base import _init_engine, _print_json, _fail
from ..core.enums import RecordKind, Role, TaskStatus
from ..core.exceptions import ValidationError, WorkflowError
from ..core.models import Task
from ..core.requests import WorkflowRequest, REQUEST_SCHEMA
from ..core.documents import load_document


def cmd_create(args):
    """Register a task in the store"""
    try:
        engine, _ = _init_engine(args)
        task = Task(
            task_id=args.task_id,
            status=TaskStatus(args.status) if args.status else TaskStatus.NOT_STARTED,
            current_role=Role(args.role) if args.role else None,
        )
        created = engine.repository.add(task)
        _print_json(created.to_dict())
    except (ValidationError, WorkflowError) as e:
        _fail(f"Create failed: {e}")


def cmd_show(args):
    """Show a task snapshot"""
    try:
        engine, _ = _init_engine(args)
        _print_json(engine.repository.get(args.task_id).to_dict())
    except (ValidationError, WorkflowError) as e:
        _fail(str(e))


def cmd_history(args):
    """Show records for a task"""
    try:
        engine, _ = _init_engine(args)
        engine.repository.get(args.task_id)
        kind = RecordKind(args.kind) if args.kind else None
        records = engine.repository.records(args.task_id, kind)
        _print_json([record.to_dict() for record in records])
    except (ValidationError, WorkflowError) as e:
        _fail(str(e))


def cmd_run(args):
    """Execute a request document (YAML or JSON)"""
    try:
        engine, config = _init_engine(args)
        data = load_document(Path(args.request_file), REQUEST_SCHEMA, source="request document")
        request = WorkflowRequest.from_dict(data, default_constraints=config.default_constraints)
    except ValidationError as e:
        _fail(f"Invalid request: {e}")
        return

    _report(engine.execute(request))


def cmd_operation(args):
    """Execute one workflow operation built from command-line flags"""
    try:
        engine, config = _init_engine(args)
        request = WorkflowRequest.from_dict(_request_from_args(args), default_constraints=config.default_constraints)
    except ValidationError as e:
        _fail(f"Invalid request: {e}")
        return

    _report(engine.execute(request))


def _report(response) -> None:
    _print_json(response.to_dict())
    if not response.success:
        sys.exit(1)


def _request_from_args(args) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "operation": args.operation,
        "fromRole": args.from_role,
        "toRole": getattr(args, 'to_role', None),
        "newStatus": getattr(args, 'new_status', None),
        "message": args.message,
    }

    if len(args.task_ids) == 1:
        data["taskId"] = args.task_ids[0]
    else:
        data["batch"] = {
            "taskIds": args.task_ids,
            "parallelExecution": args.parallel,
            "continueOnError": args.continue_on_error,
        }

    if args.operation == "complete":
        data["completionData"] = {
            "summary": args.summary,
            "filesModified": args.files or [],
        }
    if args.operation == "escalate":
        data["rejectionData"] = {
            "reason": args.reason,
            "severity": args.severity,
            "requiredChanges": args.required_changes,
            "blockers": args.blockers or [],
        }

    conditions: Dict[str, Any] = {}
    if args.require_status:
        conditions["requiredStatus"] = args.require_status
    if args.require_role:
        conditions["requiredRole"] = args.require_role
    if args.conditions:
        conditions["customConditions"] = args.conditions
    if conditions:
        data["conditions"] = conditions

    constraints: Dict[str, Any] = {}
    if args.force:
        constraints["forceTransition"] = True
    if args.skip_validation:
        constraints["allowSkipValidation"] = True
    if args.no_audit:
        constraints["createAuditTrail"] = False
    if args.no_notify:
        constraints["notifyStakeholders"] = False
    if constraints:
        data["constraints"] = constraints

    return data
