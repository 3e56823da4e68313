"""Entity policy models and YAML loader.

An entity policy says which CRUD operations a recordset over that entity type
may use and whether saving and new-record creation happen automatically.
The YAML file maps entity names to policies:

    entities:
      default:
        save_changes_automatic: false
      customer:
        allow_delete: false
        add_new_record_automatic: true
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class EntityPolicy(BaseModel):
    """Permission switches and automation flags for one entity type."""

    allow_refresh: bool = True
    allow_create: bool = True
    allow_read: bool = True
    allow_update: bool = True
    allow_delete: bool = True
    save_changes_automatic: bool = False
    add_new_record_automatic: bool = False


_DEFAULT_POLICY = EntityPolicy()


def load_entity_policies(yaml_path: str) -> dict[str, EntityPolicy]:
    """Parse an entity policies YAML file into typed EntityPolicy objects.

    Args:
        yaml_path: Path to the YAML configuration file.

    Returns:
        A dict mapping entity names (and "default") to EntityPolicy instances.
        If the file is not found, returns just the built-in default policy.
    """
    path = Path(yaml_path)

    if not path.exists():
        logger.warning("Entity policies file not found at %s, using built-in defaults", yaml_path)
        return {"default": _DEFAULT_POLICY}

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        logger.error("Failed to parse entity policies YAML at %s: %s", yaml_path, exc)
        return {"default": _DEFAULT_POLICY}

    if not isinstance(raw, dict) or not isinstance(raw.get("entities"), dict):
        logger.warning("Entity policies YAML missing 'entities' key, using built-in defaults")
        return {"default": _DEFAULT_POLICY}

    policies: dict[str, EntityPolicy] = {}
    for entity, config in raw["entities"].items():
        try:
            policies[entity] = EntityPolicy.model_validate(config or {})
        except Exception as exc:
            logger.error("Invalid policy for entity '%s': %s, skipping", entity, exc)

    if "default" not in policies:
        policies["default"] = _DEFAULT_POLICY

    return policies


def policy_for(policies: dict[str, EntityPolicy], entity: str) -> EntityPolicy:
    """Return the policy for *entity*, falling back to the default policy."""
    return policies.get(entity) or policies.get("default") or _DEFAULT_POLICY
