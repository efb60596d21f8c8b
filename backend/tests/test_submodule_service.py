"""Entitlement service behaviour (memory store)."""

import logging

import pytest

from backend.core.errors import NotFoundError, ValidationError
from backend.features.submodules.catalog import SubmoduleCatalog
from backend.features.submodules.errors import SubmoduleNotFoundError, SubmoduleValidationError
from backend.features.submodules.service import SubmoduleService
from backend.features.submodules.store import MemorySubmoduleStore
from backend.models.submodule import ModuleCode, SubmoduleDefinition


TENANT = "tenant-a"


def test_enable_creates_record(service):
    record = service.enable(TENANT, "CRM.SEGMENTS", actor_id="u1")
    assert record.is_enabled is True
    assert record.module_code == "CRM"
    assert record.submodule_code == "CRM.SEGMENTS"
    assert record.enabled_by_id == "u1"
    assert record.enabled_at is not None
    assert service.is_enabled(TENANT, "CRM.SEGMENTS")


def test_scenario_a_dependency_order(service):
    with pytest.raises(SubmoduleValidationError) as exc:
        service.enable(TENANT, "CRM.EXPORT")
    assert exc.value.reason == "missing_dependencies"
    assert exc.value.codes == ("CRM.SEGMENTS",)
    assert "missing required submodules: CRM.SEGMENTS" in exc.value.message

    service.enable(TENANT, "CRM.SEGMENTS")
    service.enable(TENANT, "CRM.EXPORT")
    assert service.get_enabled_codes(TENANT) == ["CRM.EXPORT", "CRM.SEGMENTS"]


def test_scenario_b_batch_is_order_sensitive(service):
    result = service.batch_enable(TENANT, ["CRM.EXPORT", "CRM.SEGMENTS"])
    assert list(result.enabled) == ["CRM.SEGMENTS"]
    assert list(result.skipped) == []
    assert len(result.errors) == 1
    assert result.errors[0].startswith("CRM.EXPORT: ")
    assert not service.is_enabled(TENANT, "CRM.EXPORT")


def test_scenario_c_batch_in_dependency_order(service):
    result = service.batch_enable(TENANT, ["CRM.SEGMENTS", "CRM.EXPORT"])
    assert list(result.enabled) == ["CRM.SEGMENTS", "CRM.EXPORT"]
    assert result.errors == ()


def test_scenario_d_unknown_code_skipped(service):
    result = service.batch_enable(TENANT, ["GHOST.CODE"])
    assert list(result.skipped) == ["GHOST.CODE"]
    assert result.enabled == ()
    assert result.errors == ()


class FailingWriteStore(MemorySubmoduleStore):
    def __init__(self, failing_code, exc):
        super().__init__()
        self.failing_code = failing_code
        self.exc = exc

    def upsert_enabled(self, tenant_id, module_code, submodule_code, enabled_at, enabled_by_id):
        if submodule_code == self.failing_code:
            raise self.exc
        return super().upsert_enabled(tenant_id, module_code, submodule_code, enabled_at, enabled_by_id)


def test_batch_store_failure_is_bucketed_and_batch_continues(catalog, clock, caplog):
    store = FailingWriteStore("CRM.SEGMENTS", RuntimeError("store write failed"))
    service = SubmoduleService(catalog, store, clock=clock)

    with caplog.at_level(logging.WARNING, logger="bizdesk"):
        result = service.batch_enable(TENANT, ["CRM.SEGMENTS", "GHOST.CODE", "CRM.TAGS"])

    assert result.enabled == ("CRM.TAGS",)
    assert result.skipped == ("GHOST.CODE",)
    assert result.errors == ("CRM.SEGMENTS: store write failed",)
    assert service.get_enabled_codes(TENANT) == ["CRM.TAGS"]

    [failed] = [r for r in caplog.records if r.getMessage() == "submodule.batch_enable.step_failed"]
    assert failed.submodule_code == "CRM.SEGMENTS"
    assert failed.exc_info is not None
    [partial] = [r for r in caplog.records if r.getMessage() == "submodule.batch_enable.partial"]
    assert partial.tenant_id == TENANT
    assert partial.errors == "1"


def test_batch_failure_without_message_reports_unknown_error(catalog, clock):
    store = FailingWriteStore("CRM.SEGMENTS", RuntimeError())
    result = SubmoduleService(catalog, store, clock=clock).batch_enable(TENANT, ["CRM.SEGMENTS"])
    assert result.errors == ("CRM.SEGMENTS: Unknown error",)
    assert result.enabled == ()


def test_scenario_e_default_enabled_is_protected(service):
    with pytest.raises(SubmoduleValidationError) as exc:
        service.disable(TENANT, "CRM.CUSTOMERS")
    assert exc.value.reason == "protected"

    service.initialize_defaults(TENANT)
    with pytest.raises(SubmoduleValidationError) as exc:
        service.disable(TENANT, "CRM.CUSTOMERS")
    assert exc.value.reason == "protected"
    assert service.is_enabled(TENANT, "CRM.CUSTOMERS")


def test_enable_unknown_code_is_not_found(service):
    with pytest.raises(SubmoduleNotFoundError) as exc:
        service.enable(TENANT, "GHOST.CODE")
    assert isinstance(exc.value, NotFoundError)
    assert exc.value.message == "Submodule GHOST.CODE not found in registry"


def test_enable_inactive_rejected(service):
    service.initialize_defaults(TENANT)
    service.enable(TENANT, "REPORTS.SALES")
    with pytest.raises(SubmoduleValidationError) as exc:
        service.enable(TENANT, "REPORTS.ADVANCED_ANALYTICS")
    assert exc.value.reason == "inactive"
    assert isinstance(exc.value, ValidationError)


def test_enable_conflict_rejected(service):
    service.initialize_defaults(TENANT)
    service.enable(TENANT, "QUOTES.BASIC")
    service.enable(TENANT, "QUOTES.APPROVAL_WORKFLOW")

    with pytest.raises(SubmoduleValidationError) as exc:
        service.enable(TENANT, "QUOTES.AUTO_CONVERT")
    assert exc.value.reason == "conflicts"
    assert exc.value.codes == ("QUOTES.APPROVAL_WORKFLOW",)
    assert not service.is_enabled(TENANT, "QUOTES.AUTO_CONVERT")


def test_reenable_refreshes_timestamp_and_actor(service):
    first = service.enable(TENANT, "CRM.SEGMENTS", actor_id="u1")
    second = service.enable(TENANT, "CRM.SEGMENTS", actor_id="u2")
    assert second.enabled_at > first.enabled_at
    assert second.enabled_by_id == "u2"
    assert second.created_at == first.created_at
    assert service.get_enabled_codes(TENANT) == ["CRM.SEGMENTS"]


def test_disable_blocked_by_enabled_dependent(service):
    service.enable(TENANT, "CRM.SEGMENTS")
    service.enable(TENANT, "CRM.EXPORT")
    with pytest.raises(SubmoduleValidationError) as exc:
        service.disable(TENANT, "CRM.SEGMENTS")
    assert exc.value.reason == "has_dependents"
    assert exc.value.codes == ("CRM.EXPORT",)
    assert exc.value.message == "Cannot disable CRM.SEGMENTS: required by CRM.EXPORT"

    assert service.disable(TENANT, "CRM.EXPORT") == 1
    assert service.disable(TENANT, "CRM.SEGMENTS") == 1
    assert service.get_enabled_codes(TENANT) == []


def test_disable_never_enabled_is_noop(service):
    assert service.disable(TENANT, "CRM.TAGS") == 0


def test_disable_keeps_record_and_actor(service, memory_store):
    service.enable(TENANT, "CRM.TAGS", actor_id="u1")
    service.disable(TENANT, "CRM.TAGS", actor_id="u2")
    [record] = [r for r in memory_store.list_records(TENANT) if r.submodule_code == "CRM.TAGS"]
    assert record.is_enabled is False
    assert record.enabled_at is None
    assert record.enabled_by_id == "u1"


def test_disable_then_enable_round_trip(service):
    service.enable(TENANT, "CRM.TAGS")
    service.disable(TENANT, "CRM.TAGS")
    assert not service.is_enabled(TENANT, "CRM.TAGS")
    service.enable(TENANT, "CRM.TAGS")
    assert service.is_enabled(TENANT, "CRM.TAGS")


def test_dependencies_checked_only_at_mutation_time(service):
    """A later disable of a dependency is blocked, so the enabled set stays closed."""
    service.initialize_defaults(TENANT)
    service.enable(TENANT, "WMS.LOCATIONS")
    service.enable(TENANT, "WMS.DOCUMENTS")
    service.enable(TENANT, "WMS.INVENTORY")
    enabled = set(service.get_enabled_codes(TENANT))
    for code in enabled:
        definition = service.catalog.get_by_code(code)
        assert set(definition.required_submodules) <= enabled


def test_tenants_are_isolated(service):
    service.enable("tenant-a", "CRM.SEGMENTS")
    assert service.is_enabled("tenant-a", "CRM.SEGMENTS")
    assert not service.is_enabled("tenant-b", "CRM.SEGMENTS")
    with pytest.raises(SubmoduleValidationError):
        service.enable("tenant-b", "CRM.EXPORT")


def test_is_enabled_unknown_code_is_false(service):
    assert service.is_enabled(TENANT, "GHOST.CODE") is False


def test_initialize_defaults_bypasses_validation_and_is_idempotent(service, catalog):
    first = service.initialize_defaults(TENANT, actor_id="system")
    defaults = [d.code for d in catalog.get_defaults()]
    assert list(first.initialized) == defaults
    assert first.already_enabled == ()

    second = service.initialize_defaults(TENANT)
    assert second.initialized == ()
    assert list(second.already_enabled) == defaults


def test_initialize_defaults_reenables_disabled_record(clock):
    catalog = SubmoduleCatalog(
        [
            SubmoduleDefinition(code="CRM.A", parent_module=ModuleCode.CRM, name="A", name_pl="A", default_enabled=True),
        ]
    )
    store = MemorySubmoduleStore()
    # record left disabled by an earlier catalog revision where CRM.A was optional
    store.upsert_enabled(TENANT, "CRM", "CRM.A", clock(), None)
    store.disable(TENANT, "CRM.A", clock())

    result = SubmoduleService(catalog, store, clock=clock).initialize_defaults(TENANT)
    assert list(result.initialized) == ["CRM.A"]
    assert store.is_enabled(TENANT, "CRM.A")


def test_initialize_defaults_skips_dependency_checks(clock):
    catalog = SubmoduleCatalog(
        [
            SubmoduleDefinition(code="CRM.BASE", parent_module=ModuleCode.CRM, name="B", name_pl="B"),
            SubmoduleDefinition(
                code="CRM.TOP",
                parent_module=ModuleCode.CRM,
                name="T",
                name_pl="T",
                default_enabled=True,
                required_submodules=("CRM.BASE",),
            ),
        ]
    )
    service = SubmoduleService(catalog, MemorySubmoduleStore(), clock=clock)
    result = service.initialize_defaults(TENANT)
    assert list(result.initialized) == ["CRM.TOP"]
    assert service.get_enabled_codes(TENANT) == ["CRM.TOP"]


def test_enabled_with_details_joins_catalog(service):
    service.enable(TENANT, "CRM.SEGMENTS", actor_id="u1")
    [detail] = service.get_enabled_with_details(TENANT)
    assert detail.code == "CRM.SEGMENTS"
    assert detail.definition.name == "Customer segments"
    assert detail.enabled_by_id == "u1"
    wire = detail.to_wire()
    assert wire["definition"]["parentModule"] == "CRM"
    assert "enabledAt" in wire


def test_enabled_with_details_drops_codes_missing_from_catalog(catalog, memory_store, clock):
    memory_store.upsert_enabled(TENANT, "CRM", "CRM.RETIRED", clock(), None)
    memory_store.upsert_enabled(TENANT, "CRM", "CRM.SEGMENTS", clock(), None)
    service = SubmoduleService(catalog, memory_store, clock=clock)
    assert [d.code for d in service.get_enabled_with_details(TENANT)] == ["CRM.SEGMENTS"]
