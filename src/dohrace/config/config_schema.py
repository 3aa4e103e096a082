"""JSON Schema-based validation for dohrace YAML configuration.

The schema is kept inline (CONFIG_SCHEMA) so the package needs no data files.
"""

from __future__ import annotations

import copy
import json
import logging
import re
from typing import Any, Dict, List, Optional, Set

from jsonschema import Draft202012Validator, ValidationError

logger = logging.getLogger(__name__)

_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)\}")
_VAR_NAME = re.compile(r"[A-Z_][A-Z0-9_]*")

_PROVIDER_URL = {"type": "string", "pattern": "^https?://"}

CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "dohrace configuration",
    "type": "object",
    "properties": {
        "providers": {
            "type": "array",
            "items": {
                "oneOf": [
                    _PROVIDER_URL,
                    {
                        "type": "object",
                        "properties": {"url": _PROVIDER_URL},
                        "required": ["url"],
                        "additionalProperties": False,
                    },
                ]
            },
        },
        "resolver": {
            "type": "object",
            "properties": {
                "timeout_ms": {"type": "integer", "minimum": 1},
                "strict_record_types": {"type": "boolean"},
                "headers": {
                    "type": "object",
                    "additionalProperties": {"type": "string"},
                },
            },
            "additionalProperties": False,
        },
        "logging": {
            "type": "object",
            "properties": {
                "level": {
                    "type": "string",
                    "enum": ["debug", "info", "warn", "warning", "error", "crit", "critical"],
                },
                "stderr": {"type": "boolean"},
                "file": {"type": ["string", "null"]},
                "syslog": {
                    "oneOf": [
                        {"type": "boolean"},
                        {
                            "type": "object",
                            "properties": {
                                "address": {"type": ["string", "array"]},
                                "facility": {"type": "string"},
                                "tag": {"type": "string"},
                            },
                            "additionalProperties": False,
                        },
                    ]
                },
            },
            "additionalProperties": False,
        },
    },
    "additionalProperties": False,
}


def expand_variables(cfg: Dict[str, Any]) -> None:
    """Brief: Expand top-level `vars` into the config and remove the group.

    Inputs:
      - cfg: Parsed YAML configuration mapping (mutated in-place).

    Outputs:
      - None.

    Behavior:
      - `${KEY}` occurrences inside strings are replaced by the value text.
      - A string that is exactly `$KEY` or `${KEY}` is replaced by the
        variable's YAML value (int/bool/list/...).
      - Variables may reference other variables; cycles raise ValueError.
      - Unknown references are left untouched.
    """

    variables = cfg.pop("vars", None)
    if variables is None:
        return
    if not isinstance(variables, dict):
        raise ValueError("config.vars must be a mapping when present")
    for k in variables:
        if not isinstance(k, str) or not _VAR_NAME.fullmatch(k):
            raise ValueError(f"config.vars key {k!r} must match [A-Z_][A-Z0-9_]*")

    resolved: Dict[str, Any] = {}

    def _resolve(key: str, stack: List[str]) -> Any:
        if key in resolved:
            return resolved[key]
        if key in stack:
            raise ValueError(
                "config.vars contains a cycle: " + " -> ".join(stack + [key])
            )
        value = _expand(variables[key], stack + [key])
        resolved[key] = value
        return value

    def _whole(text: str) -> Optional[str]:
        if text.startswith("${") and text.endswith("}"):
            name = text[2:-1]
        elif text.startswith("$"):
            name = text[1:]
        else:
            return None
        return name if name in variables else None

    def _expand_string(text: str, stack: List[str]) -> Any:
        name = _whole(text)
        if name is not None:
            return copy.deepcopy(_resolve(name, stack))

        def _repl(match: "re.Match[str]") -> str:
            key = match.group(1)
            if key not in variables:
                return match.group(0)
            v = _resolve(key, stack)
            if isinstance(v, bool):
                return "true" if v else "false"
            if v is None:
                return "null"
            if isinstance(v, (int, float, str)):
                return str(v)
            return json.dumps(v)

        return _VAR_PATTERN.sub(_repl, text)

    def _expand(obj: Any, stack: List[str]) -> Any:
        if isinstance(obj, str):
            return _expand_string(obj, stack)
        if isinstance(obj, list):
            return [_expand(v, stack) for v in obj]
        if isinstance(obj, dict):
            return {k: _expand(v, stack) for k, v in obj.items()}
        return obj

    for key in list(cfg.keys()):
        cfg[key] = _expand(cfg[key], [])


def _format_errors(errors: List[ValidationError], *, config_path: Optional[str]) -> str:
    """Brief: Format jsonschema validation errors into a human-readable string.

    Inputs:
      - errors: List of jsonschema.ValidationError instances.
      - config_path: Optional path to the YAML config being validated.

    Outputs:
      - String suitable for display in logs or CLI output.
    """

    lines: List[str] = [f"Invalid configuration in {config_path or '<config dict>'}:"]
    for err in errors:
        instance_path = "/".join(str(p) for p in err.path) or "<root>"
        schema_path = "/".join(str(p) for p in err.schema_path)
        lines.append(f"- {instance_path}: {err.message} (schema: {schema_path})")
    return "\n".join(lines)


_EXTRA_VALIDATORS: Set[str] = {"additionalProperties", "unevaluatedProperties"}


def validate_config(
    cfg: Dict[str, Any],
    *,
    config_path: Optional[str] = None,
    unknown_keys: str = "warn",
) -> None:
    """Brief: Expand variables in and validate a parsed YAML configuration.

    Inputs:
      - cfg: Dict loaded from YAML (mutated: `vars` is expanded and removed).
      - config_path: Optional path of the YAML file, for error messages.
      - unknown_keys: "ignore", "warn" (default) or "error" for keys the
        schema does not describe.

    Outputs:
      - None on success.

    Raises:
      - ValueError: when validation fails, or when unknown_keys is "error"
        and unknown keys are present.

    Example:
      >>> validate_config({"providers": ["https://dns.google/resolve"]})
    """
    if unknown_keys not in {"ignore", "warn", "error"}:
        raise ValueError(
            f"unknown_keys policy must be 'ignore', 'warn', or 'error', got {unknown_keys!r}"
        )

    expand_variables(cfg)

    validator = Draft202012Validator(CONFIG_SCHEMA)
    all_errors = sorted(validator.iter_errors(cfg), key=lambda e: list(e.path))
    if not all_errors:
        return None

    extra = [e for e in all_errors if e.validator in _EXTRA_VALIDATORS]
    other = [e for e in all_errors if e.validator not in _EXTRA_VALIDATORS]

    if other:
        raise ValueError(_format_errors(other + extra, config_path=config_path))

    message = _format_errors(extra, config_path=config_path)
    if unknown_keys == "error":
        raise ValueError(message)
    if unknown_keys == "warn":
        logger.warning(message)
    return None
