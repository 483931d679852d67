"""Config-driven master pipeline with named extension points.

A ``MasterDetailPipeline`` holds ordered handler lists for three stages:

- ``after_master_persist``: the master row is written and its identifier
  resolved; detail lists are reconciled here.
- ``before_master_delete``: the master row is about to be removed; detail
  rows are cascade-deleted here.
- ``after_master_retrieve``: the master row has been read; detail rows
  (with their joined display fields) are attached here.

``MasterDetailPipeline.from_config()`` registers reconcile/cascade/join
handlers for every ``DetailDef`` of a ``MasterDef``, so attaching a detail
collection to a master is a descriptor entry, not a subclass.
``MasterStore`` is the reference master request pipeline that owns the
transaction and invokes the stages at the right points.

Usage:
    from detail_sync.pipeline import MasterStore

    store = MasterStore(adapter, config.get_master("movie"))

    movie, report = await store.save({
        "title": "The Matrix",
        "cast": [{"person_id": 7, "role": "Neo"}],
    })
    movie = await store.get(movie["id"])
    await store.delete(movie["id"])
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, Field

from detail_sync.adapters.base import DatabaseClient, TransactionClient
from detail_sync.config.models import DetailDef, MasterDef
from detail_sync.errors import ConfigError, NotFoundError
from detail_sync.sync.cascade import cascade_delete_details
from detail_sync.sync.joiner import attach_details
from detail_sync.sync.models import DetailDiff
from detail_sync.sync.reader import DetailRowReader
from detail_sync.sync.reconciler import plan_details, reconcile_details
from detail_sync.sync.service import DetailRowService, TableDetailService

logger = logging.getLogger(__name__)

AFTER_MASTER_PERSIST = "after_master_persist"
BEFORE_MASTER_DELETE = "before_master_delete"
AFTER_MASTER_RETRIEVE = "after_master_retrieve"

STAGES = (AFTER_MASTER_PERSIST, BEFORE_MASTER_DELETE, AFTER_MASTER_RETRIEVE)

# handler(conn, master, created) -> result recorded in the StageReport
StageHandler = Callable[[TransactionClient, dict, bool], Awaitable[Any]]


class StageReport(BaseModel):
    """Results of one stage run, keyed by handler name."""

    stage: str
    master_id: Any = None
    results: dict[str, Any] = Field(default_factory=dict)


class MasterDetailPipeline:
    """Ordered stage handlers for one master type."""

    def __init__(self, master_def: MasterDef) -> None:
        self.master_def = master_def
        self.readers: dict[str, DetailRowReader] = {}
        self.services: dict[str, DetailRowService] = {}
        self._handlers: dict[str, list[tuple[str, StageHandler]]] = {
            stage: [] for stage in STAGES
        }

    @classmethod
    def from_config(
        cls,
        master_def: MasterDef,
        services: dict[str, DetailRowService] | None = None,
    ) -> "MasterDetailPipeline":
        """Build a pipeline with reconcile/cascade/join handlers per detail.

        Args:
            master_def: Master descriptor with its detail collections.
            services: Optional row services keyed by detail name; details
                without an entry get a ``TableDetailService``.
        """
        services = services or {}
        unknown = sorted(set(services) - {d.name for d in master_def.details})
        if unknown:
            raise ConfigError(
                f"Master '{master_def.name}' has no details named {unknown}"
            )

        pipeline = cls(master_def)
        for detail_def in master_def.details:
            pipeline.add_detail(detail_def, services.get(detail_def.name))
        return pipeline

    def add_detail(
        self,
        detail_def: DetailDef,
        service: DetailRowService | None = None,
    ) -> None:
        """Register the three standard handlers for one detail collection."""
        reader = DetailRowReader(detail_def)
        service = service or TableDetailService(detail_def)
        self.readers[detail_def.name] = reader
        self.services[detail_def.name] = service
        pk = self.master_def.pk

        async def reconcile(conn: TransactionClient, master: dict, created: bool) -> Any:
            return await reconcile_details(
                conn,
                detail_def,
                service,
                reader,
                master.get(pk),
                master.get(detail_def.collection),
                created=created,
            )

        async def cascade(conn: TransactionClient, master: dict, created: bool) -> Any:
            return await cascade_delete_details(
                conn, detail_def, service, reader, master[pk]
            )

        async def join(conn: TransactionClient, master: dict, created: bool) -> Any:
            await attach_details(conn, master, detail_def, reader, master_pk=pk)
            return len(master.get(detail_def.collection) or [])

        self.register(AFTER_MASTER_PERSIST, detail_def.name, reconcile)
        self.register(BEFORE_MASTER_DELETE, detail_def.name, cascade)
        self.register(AFTER_MASTER_RETRIEVE, detail_def.name, join)

    def register(self, stage: str, name: str, handler: StageHandler) -> None:
        """Append a handler to a stage.

        Raises:
            ConfigError: If *stage* is not a known stage name.
        """
        if stage not in self._handlers:
            raise ConfigError(
                f"Unknown pipeline stage '{stage}'. Stages: {', '.join(STAGES)}"
            )
        self._handlers[stage].append((name, handler))

    def handlers(self, stage: str) -> list[str]:
        """Names of the handlers registered on *stage*, in run order."""
        return [name for name, _ in self._handlers[stage]]

    async def run(
        self,
        stage: str,
        conn: TransactionClient,
        master: dict,
        *,
        created: bool = False,
    ) -> StageReport:
        """Run every handler of *stage* sequentially, in registration order."""
        if stage not in self._handlers:
            raise ConfigError(f"Unknown pipeline stage '{stage}'")

        report = StageReport(stage=stage, master_id=master.get(self.master_def.pk))
        for name, handler in self._handlers[stage]:
            logger.debug("Running %s handler '%s' for %s", stage, name, self.master_def.name)
            report.results[name] = await handler(conn, master, created)
        return report


class MasterStore:
    """Save/get/delete masters with their details in one transaction each.

    Args:
        client: Database client providing ``transaction()``.
        master_def: Master descriptor.
        pipeline: Pipeline to run at the stage points (default: built from
            *master_def* with table-backed services).
    """

    def __init__(
        self,
        client: DatabaseClient,
        master_def: MasterDef,
        pipeline: MasterDetailPipeline | None = None,
    ) -> None:
        self.client = client
        self.master_def = master_def
        self.pipeline = pipeline or MasterDetailPipeline.from_config(master_def)

    def _master_row(self, master: dict) -> dict:
        """Native master columns: detail collections and metadata removed."""
        collections = {d.collection for d in self.master_def.details}
        return {
            k: v
            for k, v in master.items()
            if k not in collections and not k.startswith("_")
        }

    async def save(self, master: dict) -> tuple[dict, StageReport]:
        """Insert or update a master, then reconcile its detail lists.

        A master whose primary key is None is inserted and storage assigns
        the key; otherwise it is updated.  Detail lists that are absent (or
        None) on *master* are left untouched.

        Returns:
            Tuple of (stored master with details re-read, persist StageReport).

        Raises:
            NotFoundError: If updating a master that does not exist.
            DetailSyncError: Any reconciliation failure; nothing is committed.
        """
        pk = self.master_def.pk
        table = self.master_def.table
        row = self._master_row(master)
        master_id = row.pop(pk, None)
        created = master_id is None

        async with self.client.transaction() as tx:
            if created:
                stored = await tx.insert(table, row)
            else:
                stored = await tx.update(table, row, {pk: master_id})

            # Identifier resolved strictly before any detail is touched
            submitted = {**master, pk: stored[pk]}
            report = await self.pipeline.run(
                AFTER_MASTER_PERSIST, tx, submitted, created=created
            )
            await self.pipeline.run(AFTER_MASTER_RETRIEVE, tx, stored)

        logger.info(
            "Saved %s %r (%s)",
            self.master_def.name,
            stored[pk],
            "created" if created else "updated",
        )
        return stored, report

    async def get(self, master_id: Any) -> dict | None:
        """Read a master and attach its detail rows, or return None."""
        pk = self.master_def.pk
        async with self.client.transaction() as tx:
            rows = await tx.select(self.master_def.table, "*", filters={pk: master_id})
            if not rows:
                return None
            master = rows[0]
            await self.pipeline.run(AFTER_MASTER_RETRIEVE, tx, master)
        return master

    async def delete(self, master_id: Any) -> StageReport:
        """Cascade-delete the detail rows of a master, then the master itself.

        Raises:
            NotFoundError: If no master has *master_id*.
            DetailSyncError: Any detail delete failure; nothing is committed.
        """
        pk = self.master_def.pk
        table = self.master_def.table
        async with self.client.transaction() as tx:
            rows = await tx.select(table, pk, filters={pk: master_id})
            if not rows:
                raise NotFoundError(f"No {table} row with {pk}={master_id!r}")

            report = await self.pipeline.run(BEFORE_MASTER_DELETE, tx, {pk: master_id})
            await tx.delete(table, {pk: master_id})

        logger.info("Deleted %s %r", self.master_def.name, master_id)
        return report

    async def plan(self, master: dict) -> dict[str, DetailDiff]:
        """Dry run: diff each submitted detail list without writing anything.

        Collections absent from *master* are omitted from the result.
        """
        master_id = master.get(self.master_def.pk)
        plans: dict[str, DetailDiff] = {}
        for detail_def in self.master_def.details:
            details = master.get(detail_def.collection)
            if details is None:
                continue
            plans[detail_def.name] = await plan_details(
                self.client,
                detail_def,
                self.pipeline.readers[detail_def.name],
                master_id,
                details,
                created=master_id is None,
            )
        return plans
