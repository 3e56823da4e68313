"""Pydantic Settings for recordkit.

All environment variables use the RECORDKIT_ prefix.
Example: RECORDKIT_LOG_LEVEL=DEBUG, RECORDKIT_HTTP_BASE_URL=https://api.example.com
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class RecordkitSettings(BaseSettings):
    """Engine configuration validated from environment variables."""

    log_level: str = "INFO"

    # Entity policies
    entity_policies_path: str = "recordkit/config/entity_policies.yaml"

    # Recordset defaults (overridden per entity by policies)
    default_save_changes_automatic: bool = False
    default_add_new_record_automatic: bool = False

    # HTTP transport adapter
    http_base_url: str | None = None  # e.g. "https://api.example.com/api"
    http_timeout_seconds: float = Field(default=10.0, gt=0)

    model_config = {"env_prefix": "RECORDKIT_"}
