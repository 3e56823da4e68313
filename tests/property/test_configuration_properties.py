"""Property tests for configuration slot validation.

Construction must fail exactly when the slots left after masking break a
dependency rule, and the derived permissions must mirror the kept slots.
"""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from conftest import Customer, FakeCrudService
from recordkit.config.recordset_config import RecordsetConfiguration
from recordkit.errors import ConfigurationError

_SLOTS = ("get_all", "get_all_where", "create", "read", "update", "delete")
_SWITCH = {
    "get_all": "allow_refresh",
    "get_all_where": "allow_refresh",
    "create": "allow_create",
    "read": "allow_read",
    "update": "allow_update",
    "delete": "allow_delete",
}

slot_presence = st.fixed_dictionaries({slot: st.booleans() for slot in _SLOTS})
switches = st.fixed_dictionaries(
    {name: st.booleans() for name in sorted(set(_SWITCH.values()))}
)


@settings(max_examples=200)
@given(present=slot_presence, allowed=switches, has_factory=st.booleans())
def test_construction_fails_iff_rule_broken(
    present: dict[str, bool], allowed: dict[str, bool], has_factory: bool
) -> None:
    service = FakeCrudService()
    kwargs = {slot: getattr(service, slot) for slot, on in present.items() if on}
    kept = {slot: present[slot] and allowed[_SWITCH[slot]] for slot in _SLOTS}

    broken = (
        (kept["create"] and not kept["update"])
        or (kept["update"] and not kept["read"])
        or (kept["create"] and not has_factory)
    )

    def build() -> RecordsetConfiguration[Customer]:
        return RecordsetConfiguration(
            **kwargs, **allowed, model_factory=Customer if has_factory else None
        )

    if broken:
        with pytest.raises(ConfigurationError):
            build()
        return

    config = build()
    assert config.allow_refresh is (kept["get_all"] or kept["get_all_where"])
    assert config.allow_create is kept["create"]
    assert config.allow_read is kept["read"]
    assert config.allow_update is kept["update"]
    assert config.allow_delete is kept["delete"]
    for slot in _SLOTS:
        assert (getattr(config, slot) is not None) is kept[slot]
