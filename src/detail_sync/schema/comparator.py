"""Schema comparison using set operations.

Derives the tables and columns that master/detail descriptors rely on and
compares them against the columns found in the database.  Pure logic --
no I/O, no database connections.

Usage:
    from detail_sync.schema.comparator import expected_columns_for, validate_schema
    from detail_sync.schema.introspector import SchemaIntrospector

    async with SchemaIntrospector(database_url) as introspector:
        actual_columns = await introspector.get_column_names()

    result = validate_schema(actual_columns, expected_columns_for(config.masters))
    if not result.valid:
        print(result.format_report())
"""

from detail_sync.config.models import MasterDef
from detail_sync.schema.models import ColumnDiff, SchemaValidationResult


def expected_columns_for(masters: list[MasterDef]) -> dict[str, set[str]]:
    """Collect every table/column referenced by master/detail descriptors.

    Includes master primary keys, detail primary and foreign keys, the
    ``order_by`` column, each join's local foreign key, and the joined
    table's key and display column.

    Examples:
        >>> from detail_sync.config.models import DetailDef, MasterDef
        >>> movie = MasterDef(name="movie", table="movies", details=[
        ...     DetailDef(name="cast", table="movie_cast", master_field="movie_id"),
        ... ])
        >>> sorted(expected_columns_for([movie])["movie_cast"])
        ['id', 'movie_id']
    """
    expected: dict[str, set[str]] = {}

    for master in masters:
        expected.setdefault(master.table, set()).add(master.pk)
        for detail in master.details:
            columns = expected.setdefault(detail.table, set())
            columns.update({detail.pk, detail.master_field})
            if detail.order_column:
                columns.add(detail.order_column)
            for join in detail.joins:
                columns.add(join.foreign_key)
                expected.setdefault(join.table, set()).update(
                    {join.target_pk, join.column}
                )

    return expected


def find_shadowing_joins(
    actual_columns: dict[str, set[str]],
    masters: list[MasterDef],
) -> list[ColumnDiff]:
    """Find joined fields named like an existing column of their detail table.

    Such a join would replace the native value in ``SELECT detail.*, ... AS name``
    and the native column would then be dropped on write.

    Examples:
        >>> from detail_sync.config.models import DetailDef, JoinField, MasterDef
        >>> movie = MasterDef(name="movie", table="movies", details=[
        ...     DetailDef(name="cast", table="movie_cast", master_field="movie_id",
        ...               joins=[JoinField(name="character", table="people",
        ...                                column="name", foreign_key="person_id")]),
        ... ])
        >>> [d.column for d in find_shadowing_joins({"movie_cast": {"character"}}, [movie])]
        ['character']
    """
    shadowing: list[ColumnDiff] = []
    for master in masters:
        for detail in master.details:
            native = actual_columns.get(detail.table, set())
            for join in detail.joins:
                if join.name in native:
                    shadowing.append(
                        ColumnDiff(
                            table=detail.table,
                            column=join.name,
                            message=(
                                f"Joined field '{join.name}' of detail '{detail.name}' "
                                f"shadows column '{detail.table}.{join.name}'"
                            ),
                        )
                    )
    return shadowing


def validate_schema(
    actual_columns: dict[str, set[str]],
    expected_columns: dict[str, set[str]],
    masters: list[MasterDef] | None = None,
) -> SchemaValidationResult:
    """Validate actual database schema against expected columns.

    Performs pure set operations to find:
    - Missing tables: Tables in *expected_columns* but not in *actual_columns*
    - Missing columns: Columns in *expected_columns* but not in the actual table
    - Extra tables: Tables in *actual_columns* but not in *expected_columns*
      (warning only -- does not affect ``valid`` status)
    - Shadowing joins: joined field names that collide with a real column
      of their detail table (only when *masters* is given)

    Args:
        actual_columns: Dict mapping table name to set of column names,
            as returned by ``introspector.get_column_names()``.
        expected_columns: Dict mapping table name to set of expected column
            names, usually from ``expected_columns_for()``.
        masters: Descriptors whose joined field names are checked against
            *actual_columns*.

    Returns:
        ``SchemaValidationResult``.

    Examples:
        >>> result = validate_schema(
        ...     {"movies": {"id"}},
        ...     {"movies": {"id", "title"}},
        ... )
        >>> result.valid
        False
        >>> result.missing_columns[0].column
        'title'
    """
    actual_tables: set[str] = set(actual_columns.keys())
    expected_tables: set[str] = set(expected_columns.keys())

    # Tables in expected but not in actual
    missing_tables: list[str] = sorted(expected_tables - actual_tables)

    # Tables in actual but not in expected (warning only)
    extra_tables: list[str] = sorted(actual_tables - expected_tables)

    # Columns missing from tables that exist in both actual and expected
    missing_columns: list[ColumnDiff] = []
    common_tables: set[str] = expected_tables & actual_tables

    for table_name in sorted(common_tables):
        missing_cols: set[str] = expected_columns[table_name] - actual_columns[table_name]

        for col_name in sorted(missing_cols):
            missing_columns.append(
                ColumnDiff(
                    table=table_name,
                    column=col_name,
                    message=f"Column '{col_name}' missing from table '{table_name}'",
                )
            )

    shadowing_joins = find_shadowing_joins(actual_columns, masters or [])

    is_valid: bool = not (missing_tables or missing_columns or shadowing_joins)

    return SchemaValidationResult(
        valid=is_valid,
        missing_tables=missing_tables,
        missing_columns=missing_columns,
        extra_tables=extra_tables,
        shadowing_joins=shadowing_joins,
    )
