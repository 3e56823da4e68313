"""Configuration module: settings, entity policies and CRUD configuration."""

from recordkit.config.entity_policies import EntityPolicy, load_entity_policies, policy_for
from recordkit.config.recordset_config import RecordsetConfiguration
from recordkit.config.settings import RecordkitSettings

__all__ = [
    "EntityPolicy",
    "RecordkitSettings",
    "RecordsetConfiguration",
    "load_entity_policies",
    "policy_for",
]
