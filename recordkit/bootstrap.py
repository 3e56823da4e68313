"""Start-up wiring: settings, logging and per-entity configurations.

Applications call :func:`setup` once and then build one configuration per
entity type from the returned factory:

    factory = setup()
    customers = Recordset(
        factory.for_service("customer", CustomerService.from_settings(factory.settings),
                            model_factory=Customer)
    )
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

from recordkit.config.entity_policies import EntityPolicy, load_entity_policies, policy_for
from recordkit.config.recordset_config import RecordsetConfiguration
from recordkit.config.settings import RecordkitSettings
from recordkit.integration.service import CrudService
from recordkit.logging_config import configure_logging

logger = logging.getLogger(__name__)

TModel = TypeVar("TModel")


class ConfigurationFactory:
    """Builds recordset configurations from the loaded entity policies.

    An entity with its own policy entry uses it as is. Any other entity gets
    the ``default`` policy, with the settings' automation defaults switched on
    where the policy leaves them off.
    """

    def __init__(self, settings: RecordkitSettings) -> None:
        self.settings = settings
        self._policies = load_entity_policies(settings.entity_policies_path)

    @property
    def entities(self) -> list[str]:
        return sorted(self._policies)

    def policy(self, entity: str) -> EntityPolicy:
        if entity in self._policies:
            return self._policies[entity]
        fallback = policy_for(self._policies, entity)
        return fallback.model_copy(
            update={
                "save_changes_automatic": fallback.save_changes_automatic
                or self.settings.default_save_changes_automatic,
                "add_new_record_automatic": fallback.add_new_record_automatic
                or self.settings.default_add_new_record_automatic,
            }
        )

    def for_service(
        self, entity: str, service: CrudService[TModel], **kwargs: Any
    ) -> RecordsetConfiguration[TModel]:
        """Bind *service* under the policy for *entity*; kwargs win over the policy."""
        options: dict[str, Any] = {
            "get_all": service.get_all,
            "get_all_where": service.get_all_where,
            "create": service.create,
            "read": service.read,
            "update": service.update,
            "delete": service.delete,
        }
        options.update(kwargs)
        return RecordsetConfiguration.from_policy(self.policy(entity), **options)


def setup(settings: RecordkitSettings | None = None) -> ConfigurationFactory:
    """Configure JSON logging and load entity policies.

    Parameters
    ----------
    settings:
        Explicit settings; read from ``RECORDKIT_*`` environment variables
        when omitted.
    """
    settings = settings or RecordkitSettings()
    configure_logging(settings.log_level)
    factory = ConfigurationFactory(settings)
    logger.info("recordkit ready with policies for %s", ", ".join(factory.entities))
    return factory
