# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Manual edits to stored components."""

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from rcs.model import ComponentRecord, ExportStatus, SecurityStatus
from rcs.persistence import ComponentStore, require_component

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComponentUpdate:
    """Fields a reviewer may change; ``None`` leaves a field as is.

    ``security_status`` is the only way a component becomes ``rejected``.
    ``export_status`` may only move forward.
    """

    security_status: SecurityStatus | None = None
    export_status: ExportStatus | None = None
    description: str | None = None
    tags: list[str] | None = None
    flagged_by: str | None = None


def apply_component_update(
    store: ComponentStore, component_id: str, update: ComponentUpdate
) -> ComponentRecord:
    """Apply a manual update.

    Args:
        store: Record store.
        component_id: Component identifier.
        update: Requested changes.

    Returns:
        The stored component.

    Raises:
        RecordNotFoundError: If the component does not exist.
        ValueError: If ``export_status`` would move backwards.
    """
    component = require_component(store, component_id)
    changes: dict[str, object] = {}
    if update.security_status is not None:
        changes["security_status"] = update.security_status
    if update.export_status is not None:
        if update.export_status.rank < component.export_status.rank:
            raise ValueError(
                f"Export status cannot move from {component.export_status.value} "
                f"back to {update.export_status.value}"
            )
        changes["export_status"] = component.export_status.advance(update.export_status)
    if update.description is not None:
        changes["description"] = update.description
    if update.tags is not None:
        changes["tags"] = list(update.tags)
    if update.flagged_by is not None:
        changes["flagged_by"] = update.flagged_by
    if not changes:
        return component

    updated = replace(component, updated_at=datetime.now(tz=timezone.utc), **changes)
    logger.info(
        f"Component updated manually (component_id={component_id} "
        f"fields={','.join(sorted(changes))})"
    )
    return store.update_component(updated)
