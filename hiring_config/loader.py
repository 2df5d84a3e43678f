"""
Configuration Loader (``hiring_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into a frozen
``HiringConfig``.  Every problem in the file is collected and reported
together in one ``ConfigValidationError``.  The single public runtime
entrypoint is ``hiring_config.get_active_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Out-of-range or mistyped values  -> ``ConfigValidationError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from hiring_config.schema import (
    BudgetPolicy,
    DatabaseConfig,
    FeedPolicy,
    HiringConfig,
    VisibilityPolicy,
)
from hiring_kernel.domain.visibility import ReceivedScope


class ConfigValidationError(ValueError):
    """The configuration file parsed but holds invalid values."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(
            "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        )


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization (deterministic)."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _section(data: dict[str, Any], name: str, errors: list[str]) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        errors.append(f"{name}: expected a mapping")
        return {}
    return value


def _parse_budget(data: dict[str, Any], errors: list[str]) -> BudgetPolicy:
    defaults = BudgetPolicy()
    raw_rate = data.get("debit_rate", defaults.debit_rate)
    try:
        rate = Decimal(str(raw_rate))
    except InvalidOperation:
        errors.append(f"budget.debit_rate: not a number ({raw_rate!r})")
        rate = defaults.debit_rate
    else:
        if not rate.is_finite() or not (Decimal("0") < rate <= Decimal("1")):
            errors.append(f"budget.debit_rate: must be in (0, 1], got {raw_rate!r}")

    places = data.get("currency_places", defaults.currency_places)
    if not isinstance(places, int) or isinstance(places, bool) or not 0 <= places <= 9:
        errors.append(f"budget.currency_places: must be an int in [0, 9], got {places!r}")
        places = defaults.currency_places

    return BudgetPolicy(debit_rate=rate, currency_places=places)


def _parse_feeds(data: dict[str, Any], errors: list[str]) -> FeedPolicy:
    limit = data.get("default_limit", FeedPolicy().default_limit)
    if not isinstance(limit, int) or isinstance(limit, bool) or limit <= 0:
        errors.append(f"feeds.default_limit: must be a positive int, got {limit!r}")
        return FeedPolicy()
    return FeedPolicy(default_limit=limit)


def _parse_visibility(data: dict[str, Any], errors: list[str]) -> VisibilityPolicy:
    raw = data.get("bu_head_received_scope", ReceivedScope.BUSINESS_UNIT.value)
    try:
        scope = ReceivedScope(raw)
    except ValueError:
        allowed = ", ".join(s.value for s in ReceivedScope)
        errors.append(f"visibility.bu_head_received_scope: expected one of {allowed}, got {raw!r}")
        return VisibilityPolicy()
    return VisibilityPolicy(bu_head_received_scope=scope)


def _parse_database(data: dict[str, Any], errors: list[str]) -> DatabaseConfig:
    defaults = DatabaseConfig()
    pool_size = data.get("pool_size", defaults.pool_size)
    if not isinstance(pool_size, int) or isinstance(pool_size, bool) or pool_size <= 0:
        errors.append(f"database.pool_size: must be a positive int, got {pool_size!r}")
        pool_size = defaults.pool_size
    return DatabaseConfig(
        url_env=str(data.get("url_env", defaults.url_env)),
        default_url=str(data.get("default_url", defaults.default_url)),
        pool_size=pool_size,
        echo=bool(data.get("echo", defaults.echo)),
    )


def parse_config(data: dict[str, Any]) -> HiringConfig:
    """
    Build a ``HiringConfig`` from a parsed YAML mapping.

    Raises:
        ConfigValidationError: listing every invalid value found.
    """
    errors: list[str] = []
    config_id = data.get("config_id")
    if not config_id:
        errors.append("config_id: required")

    version = data.get("version", 1)
    if not isinstance(version, int) or isinstance(version, bool):
        errors.append(f"version: must be an int, got {version!r}")
        version = 1

    config = HiringConfig(
        config_id=str(config_id),
        version=version,
        budget=_parse_budget(_section(data, "budget", errors), errors),
        feeds=_parse_feeds(_section(data, "feeds", errors), errors),
        visibility=_parse_visibility(_section(data, "visibility", errors), errors),
        database=_parse_database(_section(data, "database", errors), errors),
        checksum=compute_checksum(data),
    )
    if errors:
        raise ConfigValidationError(errors)
    return config


def load_config(path: Path) -> HiringConfig:
    return parse_config(load_yaml_file(path))
