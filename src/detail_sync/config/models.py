"""Pydantic models for connection profiles and master/detail descriptors.

Descriptors are declared once (usually in ``detail-sync.toml``) and
resolved at startup.  Nothing inspects entity classes at runtime: the
descriptor alone says which table holds a detail collection, which column
links it to its master, and which display fields are pulled in by join.

Usage:
    from detail_sync.config.models import DetailDef, JoinField, MasterDef

    movie = MasterDef(
        name="movie",
        table="movies",
        details=[
            DetailDef(
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
            ),
        ],
    )
"""

import re
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from detail_sync.errors import ConfigError


# ============================================================================
# Connection Profiles
# ============================================================================


class DatabaseProfile(BaseModel):
    """Database connection profile from detail-sync.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    provider: Literal["postgres"] = "postgres"  # asyncpg adapter only
    jsonb_columns: list[str] = Field(default_factory=list)
    datetime_columns: list[str] = Field(default_factory=list)  # ISO strings parsed back on write


# ============================================================================
# Master/Detail Descriptors
# ============================================================================


class JoinField(BaseModel):
    """A denormalized detail field sourced by join from a third table.

    Rendered as ``LEFT JOIN {table} ON {table}.{target_pk} = detail.{foreign_key}``
    with ``{table}.{column} AS {name}`` added to the select list.
    """

    name: str                # output field name on the detail row
    table: str               # table the value is read from
    column: str              # column in that table
    foreign_key: str         # column in the detail table pointing at it
    target_pk: str = "id"    # key column in the joined table


_ORDER_BY = re.compile(r"^\w+(\s+(asc|desc))?$", re.IGNORECASE)


class DetailDef(BaseModel):
    """Descriptor of one detail collection owned by a master.

    Joined field names must not repeat a native column of the detail table:
    the joined value would replace that column on read and be stripped on
    write.  Key, foreign-key and ordering columns are checked here; the remaining columns are
    checked against the live table by ``validate_schema(..., masters=...)``.
    ``order_by`` is a bare column name, optionally followed by ASC or DESC.
    """

    name: str
    table: str
    pk: str = "id"
    master_field: str                                   # FK column to the master
    collection: str = ""                                # key on the master dict (defaults to name)
    joins: list[JoinField] = Field(default_factory=list)
    order_by: str | None = None                         # "column [ASC|DESC]"; None keeps storage order

    @model_validator(mode="after")
    def _check_fields(self) -> "DetailDef":
        if not self.collection:
            self.collection = self.name

        if self.order_by is not None and not _ORDER_BY.match(self.order_by.strip()):
            raise ValueError(
                f"Detail '{self.name}': order_by '{self.order_by}' must be a column "
                f"name, optionally followed by ASC or DESC"
            )

        native = {self.pk, self.master_field, *(j.foreign_key for j in self.joins)}
        if self.order_by:
            native.add(self.order_by.split()[0])
        seen: set[str] = set()
        for join in self.joins:
            if join.name in seen:
                raise ValueError(
                    f"Detail '{self.name}': duplicate joined field '{join.name}'"
                )
            if join.name in native:
                raise ValueError(
                    f"Detail '{self.name}': joined field '{join.name}' "
                    f"shadows a native column"
                )
            seen.add(join.name)
        return self

    @property
    def order_column(self) -> str | None:
        """Column named by ``order_by``, without its direction."""
        return self.order_by.split()[0] if self.order_by else None

    @property
    def joined_field_names(self) -> list[str]:
        """Names of fields that are not native columns of the detail table."""
        return [j.name for j in self.joins]


class MasterDef(BaseModel):
    """Descriptor of a master table and the detail collections it owns."""

    name: str
    table: str
    pk: str = "id"
    details: list[DetailDef] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_collections(self) -> "MasterDef":
        collections = [d.collection for d in self.details]
        duplicates = sorted({c for c in collections if collections.count(c) > 1})
        if duplicates:
            raise ValueError(
                f"Master '{self.name}': duplicate detail collections {duplicates}"
            )
        return self

    def get_detail(self, name: str) -> DetailDef:
        """Look up a detail descriptor by name."""
        for detail in self.details:
            if detail.name == name:
                return detail
        raise ConfigError(
            f"Master '{self.name}' has no detail '{name}'. "
            f"Available: {', '.join(d.name for d in self.details) or '(none)'}"
        )


class SyncConfig(BaseModel):
    """Complete configuration from detail-sync.toml."""

    profiles: dict[str, DatabaseProfile] = Field(default_factory=dict)
    masters: list[MasterDef] = Field(default_factory=list)

    def get_master(self, name: str) -> MasterDef:
        """Look up a master descriptor by name."""
        for master in self.masters:
            if master.name == name:
                return master
        raise ConfigError(
            f"Master '{name}' not configured. "
            f"Available: {', '.join(m.name for m in self.masters) or '(none)'}"
        )
