"""Result models for diffing, reconciliation, and cascade delete."""

from typing import Any

from pydantic import BaseModel, Field


class DetailDiff(BaseModel):
    """Classification of a submitted detail list against persisted rows.

    The three groups are disjoint.  ``removed`` holds persisted rows,
    ``added`` and ``retained`` hold submitted rows, each in input order.
    """

    removed: list[dict] = Field(default_factory=list)
    added: list[dict] = Field(default_factory=list)
    retained: list[dict] = Field(default_factory=list)

    @property
    def is_noop(self) -> bool:
        """True when nothing would be removed or added."""
        return not self.removed and not self.added

    def summary(self) -> dict[str, int]:
        """Counts per group."""
        return {
            "removed": len(self.removed),
            "added": len(self.added),
            "retained": len(self.retained),
        }


class ReconcileResult(BaseModel):
    """Outcome of reconciling one detail collection of one master.

    Attributes:
        detail: Name of the detail descriptor.
        master_id: Identifier of the master the details belong to.
        skipped: True when no detail list was submitted.
        deleted_ids: Identifiers deleted, in processing order.
        created_ids: Identifiers minted by storage for added rows.
        updated_ids: Identifiers of retained rows re-submitted as updates.
        rows: Persisted rows returned by the service (creates, then updates).
    """

    detail: str
    master_id: Any = None
    skipped: bool = False
    deleted_ids: list[Any] = Field(default_factory=list)
    created_ids: list[Any] = Field(default_factory=list)
    updated_ids: list[Any] = Field(default_factory=list)
    rows: list[dict] = Field(default_factory=list)

    @property
    def persisted_ids(self) -> set:
        """Identifiers that exist for the master after reconciliation."""
        return set(self.created_ids) | set(self.updated_ids)


class CascadeResult(BaseModel):
    """Outcome of deleting one detail collection ahead of its master."""

    detail: str
    master_id: Any = None
    deleted_ids: list[Any] = Field(default_factory=list)
