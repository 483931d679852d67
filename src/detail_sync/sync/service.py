"""Detail row service: per-row create/update/delete for one detail type.

``DetailRowService`` is the capability the reconciler and the cascade
coordinator hand individual mutations to.  Every method receives the
``TransactionClient`` of the enclosing master operation, so detail writes
never commit on their own.

``TableDetailService`` is the generic table-backed implementation.
Validators registered on it run before each write and are the per-row
hook point (business rules, audit fields, and the like).

Usage:
    from detail_sync.sync.service import TableDetailService

    def require_role(detail: dict, operation: str) -> None:
        if operation != "delete" and not detail.get("role"):
            raise DetailValidationError("role is required")

    service = TableDetailService(cast_def, validators=[require_role])

    async with client.transaction() as tx:
        row = await service.create(tx, {"movie_id": 2, "role": "Neo"})
"""

from collections.abc import Callable
from typing import Any, Protocol

from detail_sync.adapters.base import TransactionClient
from detail_sync.config.models import DetailDef
from detail_sync.errors import NotFoundError, ReconciliationError

DetailValidator = Callable[[dict, str], None]


class DetailRowService(Protocol):
    """Create/update/delete one detail entity type inside a transaction."""

    async def create(self, tx: TransactionClient, detail: dict) -> dict:
        """Insert a detail row and return it with its minted identifier.

        Raises:
            ConstraintViolationError: If the row violates a constraint.
            StorageConnectionError: If the connection fails.
        """
        ...

    async def update(self, tx: TransactionClient, detail: dict) -> dict:
        """Update a detail row by identifier and return the stored row.

        Raises:
            NotFoundError: If no row has the detail's identifier.
            ConstraintViolationError: If the row violates a constraint.
            StorageConnectionError: If the connection fails.
        """
        ...

    async def delete(self, tx: TransactionClient, detail_id: Any) -> None:
        """Delete a detail row by identifier.

        Raises:
            NotFoundError: If no row has the identifier.
            ConstraintViolationError: If another row still references it.
            StorageConnectionError: If the connection fails.
        """
        ...


class TableDetailService:
    """Table-backed ``DetailRowService`` driven by a ``DetailDef``.

    Joined (denormalized) fields and ``_``-prefixed metadata keys are
    stripped before writing: they are not columns of the detail table.
    """

    def __init__(
        self,
        detail_def: DetailDef,
        validators: list[DetailValidator] | None = None,
    ) -> None:
        self.detail_def = detail_def
        self.validators: list[DetailValidator] = list(validators or [])
        self._non_native = frozenset(detail_def.joined_field_names)

    def _native_fields(self, detail: dict) -> dict:
        return {
            k: v
            for k, v in detail.items()
            if k not in self._non_native and not k.startswith("_")
        }

    def _validate(self, detail: dict, operation: str) -> None:
        for validator in self.validators:
            validator(detail, operation)

    async def create(self, tx: TransactionClient, detail: dict) -> dict:
        data = self._native_fields(detail)
        if data.get(self.detail_def.pk) is None:
            data.pop(self.detail_def.pk, None)
        self._validate(data, "create")
        return await tx.insert(self.detail_def.table, data)

    async def update(self, tx: TransactionClient, detail: dict) -> dict:
        pk = self.detail_def.pk
        detail_id = detail.get(pk)
        if detail_id is None:
            raise ReconciliationError(
                f"Cannot update {self.detail_def.table} row without '{pk}'"
            )
        data = self._native_fields(detail)
        self._validate(data, "update")
        data.pop(pk)
        return await tx.update(self.detail_def.table, data, {pk: detail_id})

    async def delete(self, tx: TransactionClient, detail_id: Any) -> None:
        self._validate({self.detail_def.pk: detail_id}, "delete")
        deleted = await tx.delete(self.detail_def.table, {self.detail_def.pk: detail_id})
        if not deleted:
            raise NotFoundError(
                f"No {self.detail_def.table} row with "
                f"{self.detail_def.pk}={detail_id!r}"
            )
