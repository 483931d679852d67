"""Shared fixtures: movie/cast descriptors and a stateful in-memory client.

``InMemoryClient`` implements the ``DatabaseClient`` protocol over plain
lists of dicts.  ``transaction()`` snapshots all tables and restores them
when an exception escapes the block, so rollback behavior is observable.
Unique constraints and per-row failures can be configured per test.
"""

import copy
from contextlib import asynccontextmanager
from typing import Any

import pytest

from detail_sync.config.models import DetailDef, JoinField, MasterDef
from detail_sync.errors import ConstraintViolationError, NotFoundError


class InMemoryClient:
    """Dict-backed ``DatabaseClient`` with transactions, joins, and failures.

    Attributes:
        tables: table name -> list of rows in storage order.
        unique: table name -> list of column tuples that must be unique.
        fail_on: ``(operation, table, row_id)`` -> exception to raise.
        calls: ``(operation, table, row_id)`` log of every write.
        commits / rollbacks: transaction outcome counters.
    """

    def __init__(self, tables: dict[str, list[dict]] | None = None) -> None:
        self.tables: dict[str, list[dict]] = copy.deepcopy(tables or {})
        self._next_ids: dict[str, int] = {
            name: max((r["id"] for r in rows), default=0) + 1
            for name, rows in self.tables.items()
        }
        self.unique: dict[str, list[tuple[str, ...]]] = {}
        self.fail_on: dict[tuple[str, str, Any], Exception] = {}
        self.calls: list[tuple[str, str, Any]] = []
        self.commits = 0
        self.rollbacks = 0
        self.closed = False

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def transaction(self):
        snapshot = copy.deepcopy((self.tables, self._next_ids))
        try:
            yield self
        except BaseException:
            self.tables, self._next_ids = snapshot
            self.rollbacks += 1
            raise
        else:
            self.commits += 1

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def _rows(self, table: str) -> list[dict]:
        return self.tables.setdefault(table, [])

    @staticmethod
    def _matches(row: dict, filters: dict[str, Any] | None) -> bool:
        return all(row.get(k) == v for k, v in (filters or {}).items())

    def _check_failure(self, operation: str, table: str, row_id: Any) -> None:
        error = self.fail_on.get((operation, table, row_id))
        if error is not None:
            raise error

    def _check_unique(self, table: str, candidate: dict) -> None:
        for columns in self.unique.get(table, []):
            key = tuple(candidate.get(c) for c in columns)
            for row in self._rows(table):
                if row is candidate or row.get("id") == candidate.get("id"):
                    continue
                if tuple(row.get(c) for c in columns) == key:
                    raise ConstraintViolationError(
                        f"duplicate key value violates unique constraint on "
                        f"{table}{columns}"
                    )

    async def select(
        self,
        table: str,
        columns: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        joins: list[JoinField] | None = None,
    ) -> list[dict]:
        rows = [dict(r) for r in self._rows(table) if self._matches(r, filters)]

        if order_by:
            column, _, direction = order_by.partition(" ")
            rows.sort(
                key=lambda r: r.get(column), reverse=direction.strip().lower() == "desc"
            )

        if columns.strip() != "*":
            wanted = [c.strip() for c in columns.split(",")]
            rows = [{c: r.get(c) for c in wanted} for r in rows]

        for join in joins or []:
            targets = {t.get(join.target_pk): t for t in self._rows(join.table)}
            for row in rows:
                target = targets.get(row.get(join.foreign_key))
                row[join.name] = target.get(join.column) if target else None

        return rows

    async def insert(self, table: str, data: dict) -> dict:
        row = {k: v for k, v in data.items() if not k.startswith("_")}
        if row.get("id") is None:
            row["id"] = self._next_ids.get(table, 1)
        self._next_ids[table] = max(self._next_ids.get(table, 1), row["id"]) + 1
        self._check_failure("insert", table, row.get("id"))
        self._check_unique(table, row)
        self._rows(table).append(row)
        self.calls.append(("insert", table, row["id"]))
        return dict(row)

    async def update(self, table: str, data: dict, filters: dict[str, Any]) -> dict:
        for row in self._rows(table):
            if self._matches(row, filters):
                self._check_failure("update", table, row.get("id"))
                candidate = {**row, **{k: v for k, v in data.items() if not k.startswith("_")}}
                self._check_unique(table, candidate)
                row.update(candidate)
                self.calls.append(("update", table, row.get("id")))
                return dict(row)
        raise NotFoundError(f"No rows in {table} matched filters: {filters}")

    async def delete(self, table: str, filters: dict[str, Any]) -> int:
        remaining = []
        deleted = 0
        for row in self._rows(table):
            if self._matches(row, filters):
                self._check_failure("delete", table, row.get("id"))
                self.calls.append(("delete", table, row.get("id")))
                deleted += 1
            else:
                remaining.append(row)
        self.tables[table] = remaining
        return deleted

    async def execute(self, sql: str, params: dict | None = None) -> None:
        raise NotImplementedError("InMemoryClient does not run SQL")

    async def close(self) -> None:
        self.closed = True

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------

    def ids(self, table: str, **filters: Any) -> set:
        return {r["id"] for r in self._rows(table) if self._matches(r, filters)}

    def row(self, table: str, row_id: Any) -> dict | None:
        for r in self._rows(table):
            if r["id"] == row_id:
                return r
        return None


# ------------------------------------------------------------------
# Descriptors
# ------------------------------------------------------------------


@pytest.fixture
def cast_def() -> DetailDef:
    return DetailDef(
        name="cast",
        table="movie_cast",
        master_field="movie_id",
        joins=[
            JoinField(
                name="actor_name",
                table="people",
                column="name",
                foreign_key="person_id",
            ),
        ],
    )


@pytest.fixture
def movie_def(cast_def: DetailDef) -> MasterDef:
    return MasterDef(name="movie", table="movies", details=[cast_def])


# ------------------------------------------------------------------
# Seeded client: The Matrix (id=2) with cast rows 11, 12, 13
# ------------------------------------------------------------------


def seed_tables() -> dict[str, list[dict]]:
    return {
        "people": [
            {"id": 1, "name": "Keanu Reeves"},
            {"id": 2, "name": "Laurence Fishburne"},
            {"id": 3, "name": "Carrie-Anne Moss"},
            {"id": 4, "name": "Hugo Weaving"},
        ],
        "movies": [
            {"id": 1, "title": "Speed"},
            {"id": 2, "title": "The Matrix"},
        ],
        "movie_cast": [
            {"id": 10, "movie_id": 1, "person_id": 1, "character": "Jack Traven"},
            {"id": 11, "movie_id": 2, "person_id": 1, "character": "Neo"},
            {"id": 12, "movie_id": 2, "person_id": 2, "character": "Morpheus"},
            {"id": 13, "movie_id": 2, "person_id": 3, "character": "Trinity"},
        ],
    }


@pytest.fixture
def client() -> InMemoryClient:
    return InMemoryClient(seed_tables())
