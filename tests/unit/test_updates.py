from datetime import datetime, timezone

import pytest

from rcs.database import InMemoryStore
from rcs.model import ApiSurface, ComponentRecord, ComponentType, ExportStatus, SecurityStatus
from rcs.persistence import RecordNotFoundError
from rcs.updates import ComponentUpdate, apply_component_update


def _component(export_status: ExportStatus = ExportStatus.IDENTIFIED) -> ComponentRecord:
    now = datetime(2020, 1, 1, tzinfo=timezone.utc)
    return ComponentRecord(
        id="component-1",
        name="dates",
        file_path="shared/dates.ts",
        component_type=ComponentType.UTILITY,
        description="Date helpers.",
        reusability_score=50,
        protocol_compatibility_score=40,
        dependencies=[],
        api_surface=ApiSurface(),
        recommended_pattern="mcp-utility-function",
        tags=[],
        last_scanned=now,
        created_at=now,
        updated_at=now,
        export_status=export_status,
    )


def test_upd_001_reviewer_can_reject_and_retag(store: InMemoryStore) -> None:
    store.insert_component(_component())

    updated = apply_component_update(
        store,
        "component-1",
        ComponentUpdate(
            security_status=SecurityStatus.REJECTED,
            description="Do not reuse.",
            tags=["legacy"],
            flagged_by="reviewer",
        ),
    )

    assert updated.security_status is SecurityStatus.REJECTED
    assert updated.description == "Do not reuse."
    assert updated.tags == ["legacy"]
    assert updated.flagged_by == "reviewer"
    assert updated.updated_at > updated.created_at
    assert store.get_component("component-1") == updated


def test_upd_002_export_status_moves_forward_only(store: InMemoryStore) -> None:
    store.insert_component(_component(export_status=ExportStatus.EXPORTED))

    advanced = apply_component_update(
        store, "component-1", ComponentUpdate(export_status=ExportStatus.INTEGRATED)
    )
    assert advanced.export_status is ExportStatus.INTEGRATED

    with pytest.raises(ValueError, match="cannot move from integrated back to identified"):
        apply_component_update(
            store, "component-1", ComponentUpdate(export_status=ExportStatus.IDENTIFIED)
        )
    stored = store.get_component("component-1")
    assert stored is not None
    assert stored.export_status is ExportStatus.INTEGRATED


def test_upd_003_empty_update_is_a_no_op(store: InMemoryStore) -> None:
    component = store.insert_component(_component())

    assert apply_component_update(store, "component-1", ComponentUpdate()) == component


def test_upd_004_unknown_component_raises(store: InMemoryStore) -> None:
    with pytest.raises(RecordNotFoundError):
        apply_component_update(store, "missing", ComponentUpdate(description="x"))


def test_upd_005_export_stage_order() -> None:
    assert ExportStatus.IDENTIFIED.advance(ExportStatus.DOCUMENTED) is ExportStatus.DOCUMENTED
    assert ExportStatus.EXPORTED.advance(ExportStatus.DOCUMENTED) is ExportStatus.EXPORTED
    assert ExportStatus.INTEGRATED.rank > ExportStatus.EXPORTED.rank
