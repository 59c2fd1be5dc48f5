"""
Configuration Loader (``pdr_config.loader``).

Responsibility
--------------
Loads a YAML policy file and parses it into ``pdr_config.schema``
dataclasses.  Build/test tooling only: runtime callers go through
``pdr_config.get_active_config()``.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the raw
  document for configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Wrongly typed values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from pdr_config.schema import ActionPolicy, RatingScaleDef, WorkflowPolicy


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
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_rating_scale(data: dict[str, Any] | None) -> RatingScaleDef:
    if not data:
        return RatingScaleDef()
    return RatingScaleDef(
        minimum=int(data.get("minimum", 1)),
        maximum=int(data.get("maximum", 5)),
    )


def parse_action_policy(action: str, data: dict[str, Any] | None) -> ActionPolicy:
    requirements = (data or {}).get("requirements", [])
    if not isinstance(requirements, list):
        raise ValueError(f"requirements for {action!r} must be a list")
    return ActionPolicy(action=action, requirements=tuple(str(r) for r in requirements))


def parse_workflow_policy(data: dict[str, Any]) -> WorkflowPolicy:
    """
    Parse a ``WorkflowPolicy`` from a loaded YAML document.

    Raises:
        KeyError: ``config_id`` or ``version`` missing.
        ValueError: ``actions`` is not a mapping.
    """
    actions = data.get("actions") or {}
    if not isinstance(actions, dict):
        raise ValueError("actions must be a mapping of action name to policy")
    mid_year = data.get("mid_year") or {}

    return WorkflowPolicy(
        config_id=data["config_id"],
        version=int(data["version"]),
        description=data.get("description", ""),
        timezone=data.get("timezone", "Australia/Adelaide"),
        rating_scale=parse_rating_scale(data.get("rating_scale")),
        allow_direct_mid_year_approval=bool(mid_year.get("allow_direct_approval", True)),
        direct_approval_summary=mid_year.get(
            "direct_approval_summary", "Mid-year review approved directly by CEO"
        ),
        actions=tuple(
            parse_action_policy(name, policy) for name, policy in sorted(actions.items())
        ),
        checksum=compute_checksum(data),
    )


def load_workflow_policy(path: Path) -> WorkflowPolicy:
    return parse_workflow_policy(load_yaml_file(path))
