"""
hiring_config -- single public entrypoint for workflow configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  The kernel never reads YAML or environment
    variables; the command gateway reads a ``HiringConfig`` here and passes
    plain values (debit rate, feed limit, received scope) into kernel
    services and selectors.

Architecture position:
    Configuration -- sits above ``hiring_kernel`` and below
    ``hiring_services``.  The kernel MUST NEVER import from
    ``hiring_config``.

Failure modes:
    - ``FileNotFoundError`` -- no configuration set with the requested name.
    - ``ConfigValidationError`` -- the set parsed but holds invalid values.

Audit relevance:
    Every successful ``get_active_config()`` call logs
    ``hiring_config_loaded`` with the config id, version and checksum, so a
    debit can be traced to the rate that was in force.
"""

from __future__ import annotations

import logging
from pathlib import Path

from hiring_config.loader import ConfigValidationError, load_config
from hiring_config.schema import (
    BudgetPolicy,
    DatabaseConfig,
    FeedPolicy,
    HiringConfig,
    VisibilityPolicy,
)

_logger = logging.getLogger("hiring_kernel.config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_active_config(
    name: str = "default",
    config_dir: Path | None = None,
) -> HiringConfig:
    """The ONLY public configuration entrypoint.

    Args:
        name: Configuration set name; loads ``<config_dir>/<name>.yaml``.
        config_dir: Override path to the sets directory.  Defaults to
            ``hiring_config/sets/``.

    Raises:
        FileNotFoundError: If the set does not exist.
        ConfigValidationError: If validation fails.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    path = sets_dir / f"{name}.yaml"
    if not path.is_file():
        raise FileNotFoundError(f"Configuration set not found: {path}")

    config = load_config(path)

    _logger.info(
        "hiring_config_loaded",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "debit_rate": str(config.budget.debit_rate),
            "received_scope": config.visibility.bu_head_received_scope.value,
        },
    )
    return config


__all__ = [
    "BudgetPolicy",
    "ConfigValidationError",
    "DatabaseConfig",
    "FeedPolicy",
    "HiringConfig",
    "VisibilityPolicy",
    "get_active_config",
]
