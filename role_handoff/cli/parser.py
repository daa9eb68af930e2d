"""
CLI parser setup.
"""

import argparse
from .commands import cmd_create, cmd_show, cmd_history, cmd_run, cmd_operation
from ..core.enums import Operation, RecordKind, Role, Severity, TaskStatus

ROLES = [r.value for r in Role]
STATUSES = [s.value for s in TaskStatus]

# operations that accept --to and --status
TARGETED = {Operation.DELEGATE, Operation.REASSIGN, Operation.ESCALATE, Operation.TRANSITION}


def _add_operation_parser(subparsers, operation: Operation):
    op_parser = subparsers.add_parser(operation.value, help=f"{operation.value.capitalize()} one or more tasks")
    op_parser.add_argument("task_ids", nargs="+", help="Task ID (several IDs run as a batch)")
    op_parser.add_argument("--from", dest="from_role", choices=ROLES, help="Acting role")
    op_parser.add_argument("--message", "-m", help="Message or reason")

    if operation in TARGETED:
        op_parser.add_argument("--to", dest="to_role", choices=ROLES, help="Target role")
        op_parser.add_argument("--status", dest="new_status", choices=STATUSES, help="Resulting status")

    if operation is Operation.COMPLETE:
        op_parser.add_argument("--summary", help="Summary of completed work")
        op_parser.add_argument("--file", dest="files", action="append", help="Modified file (repeatable)")
    if operation is Operation.ESCALATE:
        op_parser.add_argument("--reason", help="Reason for the escalation")
        op_parser.add_argument("--severity", choices=[s.value for s in Severity], help="Issue severity")
        op_parser.add_argument("--required-changes", help="Changes required before resubmission")
        op_parser.add_argument("--blocker", dest="blockers", action="append", help="Blocking issue (repeatable)")

    op_parser.add_argument("--require-status", choices=STATUSES, help="Only act if the task has this status")
    op_parser.add_argument("--require-role", choices=ROLES, help="Only act if this role holds the task")
    op_parser.add_argument("--condition", dest="conditions", action="append", help="Named condition (repeatable)")
    op_parser.add_argument("--parallel", action="store_true", help="Run batch tasks concurrently")
    op_parser.add_argument("--continue-on-error", action="store_true", help="Keep going after a failed task")
    op_parser.add_argument("--force", action="store_true", help="Skip status/role checks")
    op_parser.add_argument("--skip-validation", action="store_true", help="Skip condition checks")
    op_parser.add_argument("--no-audit", action="store_true", help="Do not emit an audit event")
    op_parser.add_argument("--no-notify", action="store_true", help="Do not emit a notification event")
    op_parser.set_defaults(func=cmd_operation, operation=operation.value)


def setup_parser():
    parser = argparse.ArgumentParser(
        prog="role-handoff",
        description="Task hand-off workflow between specialist roles",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s create TSK-001
  %(prog)s delegate TSK-001 --from boomerang --to architect
  %(prog)s escalate TSK-001 --from architect --to boomerang --reason blocked
  %(prog)s complete TSK-001 --from senior-developer --summary "Implemented" --file src/app.py
  %(prog)s pause TSK-001 TSK-002 --parallel --continue-on-error
  %(prog)s run request.yaml
  %(prog)s history TSK-001 --kind transition
        """
    )

    parser.add_argument("--workspace", "-w", help="Workspace path (default: current directory)")
    parser.add_argument("--config", "-c", help="Config file (default: .workflow/handoff.yaml)")
    parser.add_argument("--store", "-s", help="Task store file (default: .workflow/tasks.yaml)")
    parser.add_argument("--events", "-e", help="Event log file (.json or .yaml)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # create
    create_parser = subparsers.add_parser("create", help="Register a task in the store")
    create_parser.add_argument("task_id", help="Task ID")
    create_parser.add_argument("--status", choices=STATUSES, help="Initial status (default: not-started)")
    create_parser.add_argument("--role", choices=ROLES, help="Initial holder")
    create_parser.set_defaults(func=cmd_create)

    # show
    show_parser = subparsers.add_parser("show", help="Show a task")
    show_parser.add_argument("task_id", help="Task ID")
    show_parser.set_defaults(func=cmd_show)

    # history
    history_parser = subparsers.add_parser("history", help="Show task records")
    history_parser.add_argument("task_id", help="Task ID")
    history_parser.add_argument("--kind", choices=[k.value for k in RecordKind], help="Record kind filter")
    history_parser.set_defaults(func=cmd_history)

    # run
    run_parser = subparsers.add_parser("run", help="Execute a request document")
    run_parser.add_argument("request_file", help="Request file (.yaml, .yml or .json)")
    run_parser.set_defaults(func=cmd_run)

    for operation in Operation:
        _add_operation_parser(subparsers, operation)

    return parser
