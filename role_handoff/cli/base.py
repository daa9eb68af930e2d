"""
Base utilities for CLI commands.
"""

import json
import sys
from pathlib import Path
from typing import Any, Tuple

from ..core.config_loader import ConfigLoader, EngineConfig
from ..core.workflow_engine import WorkflowEngine


def _init_engine(args) -> Tuple[WorkflowEngine, EngineConfig]:
    """Build an engine from workspace configuration and command-line overrides"""
    workspace = Path(args.workspace or ".")
    loader = ConfigLoader(workspace)
    config = loader.load(Path(args.config) if getattr(args, 'config', None) else None)

    store = Path(args.store) if getattr(args, 'store', None) else None
    events = Path(args.events) if getattr(args, 'events', None) else None
    engine = loader.build_engine(config, store_path=store, event_log=events)
    return engine, config


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def _fail(message: str) -> None:
    print(f"❌ {message}", file=sys.stderr)
    sys.exit(1)
