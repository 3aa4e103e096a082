"""Configuration parsing and resolver construction for dohrace.

Brief:
  This module contains the configuration utilities used by the CLI
  entrypoint. It centralizes:
    - reading YAML config files
    - merging variables from config/env/CLI
    - JSON Schema validation (via validate_config)
    - normalization of the provider list and resolver options
    - building a Resolver from a normalized config

Inputs:
  - YAML config dicts and paths

Outputs:
  - Normalized config dicts and Resolver instances
"""

from __future__ import annotations

import os
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

import yaml

from ..default import DEFAULT_PROVIDERS
from ..errors import ConfigurationError
from ..resolver import DEFAULT_TIMEOUT_MS, Resolver
from .config_schema import validate_config


def _is_var_key(key: str) -> bool:
    """Return True when key is ALL_UPPERCASE and matches [A-Z_][A-Z0-9_]*."""
    return bool(key) and bool(re.fullmatch(r"[A-Z_][A-Z0-9_]*", key))


def _parse_yaml_value(text: str) -> Any:
    """Brief: Parse a CLI/environment variable value as YAML.

    Inputs:
      - text: String containing YAML scalar/list/dict.

    Outputs:
      - Any: Parsed value (falls back to original string on parse errors).
    """

    try:
        return yaml.safe_load(text)
    except yaml.YAMLError:
        return text


def parse_config_variables(
    cfg: Dict[str, Any],
    *,
    cli_vars: Optional[List[str]] = None,
    environ: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """Brief: Merge config/environment/CLI variables into cfg['vars'].

    Inputs:
      - cfg: Parsed YAML configuration mapping (mutated in-place).
      - cli_vars: Optional list of CLI `KEY=YAML` assignments.
      - environ: Optional environment mapping (defaults to os.environ).

    Outputs:
      - dict: The merged variables mapping stored back onto cfg['vars'].

    Precedence:
      - CLI (-v/--var) overrides environment overrides config-file variables.

    Example:
      >>> cfg = {'vars': {'TIMEOUT': 100}}
      >>> parse_config_variables(cfg, cli_vars=['TIMEOUT=300'], environ={})['TIMEOUT']
      300
    """

    base = cfg.get("vars")
    if base is None:
        merged: Dict[str, Any] = {}
    elif isinstance(base, dict):
        merged = dict(base)
    else:
        raise ValueError("config.vars must be a mapping when present")

    env = os.environ if environ is None else environ
    for k, v in env.items():
        if isinstance(k, str) and _is_var_key(k):
            merged[k] = _parse_yaml_value(str(v))

    for assignment in cli_vars or []:
        if "=" not in assignment:
            raise ValueError(
                "Invalid -v/--var value (expected KEY=YAML), got: %r" % assignment
            )
        k, raw = assignment.split("=", 1)
        k = k.strip()
        if not _is_var_key(k):
            raise ValueError(
                "Invalid variable name %r (must be ALL_UPPERCASE and match [A-Z_][A-Z0-9_]*)"
                % k
            )
        merged[k] = _parse_yaml_value(raw)

    if merged:
        cfg["vars"] = merged
    return merged


def parse_config_file(
    config_path: str,
    *,
    cli_vars: Optional[List[str]] = None,
    environ: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """Brief: Read, variable-merge, and schema-validate a YAML config file.

    Inputs:
      - config_path: Path to the YAML configuration file.
      - cli_vars: Optional list of CLI `KEY=YAML` assignments (from -v/--var).
      - environ: Optional environment mapping (defaults to os.environ).

    Outputs:
      - dict: Parsed configuration mapping with variables expanded.

    Raises:
      - ValueError: When the YAML is malformed, schema validation fails or
        variables are invalid.
      - OSError: When the file cannot be read.
    """

    with open(config_path, "r", encoding="utf-8") as f:
        try:
            cfg = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

    if not isinstance(cfg, dict):
        raise ValueError("Configuration root must be a mapping")

    parse_config_variables(cfg, cli_vars=list(cli_vars or []), environ=environ)
    validate_config(cfg, config_path=config_path)
    return cfg


def normalize_provider_config(cfg: Dict[str, Any]) -> Tuple[List[str], int]:
    """Brief: Normalize provider configuration to URLs + timeout.

    Inputs:
      - cfg: dict containing parsed YAML. Supports:
        - cfg['providers'] as a list of URL strings or {'url': str} mappings;
          omitted means DEFAULT_PROVIDERS
        - cfg['resolver']['timeout_ms'] for the per-request timeout.

    Outputs:
      - (providers, timeout_ms)

    Raises:
      - ValueError: For invalid types or missing required fields.
    """

    raw = cfg.get("providers")
    if raw is None:
        providers = list(DEFAULT_PROVIDERS)
    elif isinstance(raw, list):
        providers = []
        for entry in raw:
            if isinstance(entry, str):
                url = entry
            elif isinstance(entry, dict) and "url" in entry:
                url = str(entry["url"])
            else:
                raise ValueError("each provider entry must be a URL or a mapping with 'url'")
            url = url.strip()
            if not url:
                raise ValueError("provider URL must not be empty")
            providers.append(url)
    else:
        raise ValueError("config.providers must be a list of provider URLs")

    resolver_cfg = cfg.get("resolver") or {}
    if not isinstance(resolver_cfg, dict):
        raise ValueError("config.resolver must be a mapping when present")

    try:
        timeout_ms = int(resolver_cfg.get("timeout_ms", DEFAULT_TIMEOUT_MS))
    except (TypeError, ValueError):
        timeout_ms = DEFAULT_TIMEOUT_MS

    return providers, timeout_ms


def build_resolver(
    cfg: Dict[str, Any],
    *,
    providers: Optional[Sequence[str]] = None,
    timeout_ms: Optional[int] = None,
    strict_record_types: Optional[bool] = None,
) -> Resolver:
    """Brief: Construct a Resolver from a normalized config plus CLI overrides.

    Inputs:
      - cfg: Parsed (and validated) configuration mapping.
      - providers: Optional provider URLs replacing the configured list.
      - timeout_ms: Optional override of resolver.timeout_ms.
      - strict_record_types: Optional override of resolver.strict_record_types.

    Outputs:
      - Resolver

    Raises:
      - ConfigurationError: when the effective provider list is empty or
        the resolver section is malformed.
    """

    try:
        cfg_providers, cfg_timeout = normalize_provider_config(cfg)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc

    effective = list(providers) if providers else cfg_providers
    if not effective:
        raise ConfigurationError("no provider configured")

    resolver_cfg = cfg.get("resolver") or {}
    strict = (
        bool(resolver_cfg.get("strict_record_types", False))
        if strict_record_types is None
        else strict_record_types
    )
    headers = resolver_cfg.get("headers")
    return Resolver(
        effective,
        timeout_ms=cfg_timeout if timeout_ms is None else timeout_ms,
        strict_record_types=strict,
        headers=headers if isinstance(headers, dict) else None,
    )
