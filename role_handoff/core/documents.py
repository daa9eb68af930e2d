"""
Request and configuration documents: YAML or JSON files checked against a JSON Schema.
"""

import json
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TextIO

import jsonschema
import yaml

from .exceptions import ValidationError

MAX_DOCUMENT_SIZE = 10 * 1024 * 1024

_PARSERS: Dict[str, Callable[[TextIO], Any]] = {
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
    ".json": json.load,
}


def load_document(path: Path, schema: Optional[Dict[str, Any]] = None, source: str = "document") -> Dict[str, Any]:
    """
    Read a mapping from a YAML or JSON file, chosen by suffix.

    Args:
        path: Document file
        schema: JSON Schema the document must satisfy, if any
        source: What the document is, for error messages

    Raises:
        ValidationError: If the file is unreadable, too large, malformed or fails ``schema``
    """
    path = Path(path)
    parse = _PARSERS.get(path.suffix)
    if parse is None:
        raise ValidationError(
            f"Unsupported {source} format: {path.suffix or '(none)'}",
            field="format",
            value=str(path),
            context={"supported_formats": sorted(_PARSERS)}
        )

    try:
        if path.stat().st_size > MAX_DOCUMENT_SIZE:
            raise ValidationError(f"{source} {path} exceeds {MAX_DOCUMENT_SIZE} bytes", field="file", value=str(path))
        with open(path, 'r', encoding='utf-8') as f:
            data = parse(f)
    except OSError as e:
        raise ValidationError(f"Cannot read {source} {path}: {e}", field="file", value=str(path))
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ValidationError(f"Malformed {source} {path}: {e}", field="file", value=str(path))

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError(f"{source} root must be a mapping: {path}", field="file", value=str(path))
    if schema is not None:
        validate_document(data, schema, source)
    return data


def validate_document(data: Dict[str, Any], schema: Dict[str, Any], source: str) -> None:
    """Check ``data`` against a Draft 7 JSON Schema, naming the first violation's location"""
    try:
        jsonschema.validate(data, schema, cls=jsonschema.Draft7Validator)
    except jsonschema.ValidationError as e:
        location = ".".join(str(p) for p in e.absolute_path) or None
        raise ValidationError(
            f"Invalid {source}: {e.message}",
            field=location,
            context={"schema_path": "/".join(str(p) for p in e.absolute_schema_path)}
        )
