"""
pdr_config -- single public entrypoint for workflow configuration.

Responsibility:
    Provides the ONLY way to obtain the workflow policy at runtime through
    ``get_active_config()``.  No other component reads the YAML sets.

Architecture position:
    Configuration -- YAML-driven policy.  This package sits above
    ``pdr_kernel`` and below ``pdr_services``.  The kernel MUST NEVER
    import from ``pdr_config``; ``pdr_config.bridges`` translates a policy
    into kernel inputs.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Load-time validation: unknown actions, unknown requirement names, a
      malformed rating scale or an unknown timezone reject the policy.
    - Deterministic checksum: the same YAML always yields the same checksum.

Failure modes:
    - ``FileNotFoundError`` -- no set named ``name`` in the sets directory.
    - ``ConfigError`` -- the policy failed validation.

Audit relevance:
    Every successful call emits a ``PDR_CONFIG_TRACE`` log entry with the
    config id, version and checksum, tying each decision back to the exact
    policy that governed it.
"""

from __future__ import annotations

from pathlib import Path

from pdr_config.loader import load_workflow_policy
from pdr_config.schema import ActionPolicy, RatingScaleDef, WorkflowPolicy
from pdr_config.validator import validate_policy
from pdr_kernel.exceptions import ConfigError
from pdr_kernel.logging_config import get_logger

_logger = get_logger("config")

# Default configuration sets directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_active_config(
    config_dir: Path | None = None,
    name: str = "default",
) -> WorkflowPolicy:
    """The ONLY public configuration entrypoint.

    Args:
        config_dir: Override path to the configuration sets directory.
            Defaults to pdr_config/sets/.
        name: Set name; loads ``<config_dir>/<name>.yaml``.

    Raises:
        FileNotFoundError: If the set does not exist.
        ConfigError: If the policy fails validation.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    path = sets_dir / f"{name}.yaml"
    if not path.is_file():
        raise FileNotFoundError(f"Configuration set not found: {path}")

    policy = load_workflow_policy(path)

    errors = validate_policy(policy)
    if errors:
        raise ConfigError(
            "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors),
            errors,
        )

    _logger.info(
        "PDR_CONFIG_TRACE",
        extra={
            "trace_type": "PDR_CONFIG_TRACE",
            "config_set_id": policy.config_id,
            "config_set_version": policy.version,
            "checksum": policy.checksum,
            "action_override_count": len(policy.actions),
            "direct_mid_year_approval": policy.allow_direct_mid_year_approval,
        },
    )
    return policy


__all__ = [
    "ActionPolicy",
    "RatingScaleDef",
    "WorkflowPolicy",
    "get_active_config",
]
