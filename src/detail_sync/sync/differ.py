"""Keyed collection differ.

Compares persisted detail rows against a client-submitted replacement
list by primary key.  Pure logic -- no I/O, inputs are never mutated.

Usage:
    from detail_sync.sync.differ import diff_details

    old = [{"id": 11, "role": "Neo"}, {"id": 13, "role": "Trinity"}]
    new = [{"id": 11, "role": "Neo"}, {"id": None, "role": "Oracle"}]

    diff = diff_details(old, new)
    diff.removed   # [{"id": 13, ...}]
    diff.added     # [{"id": None, "role": "Oracle"}]
    diff.retained  # [{"id": 11, ...}]
"""

from collections import Counter

from detail_sync.errors import DuplicateDetailIdError
from detail_sync.sync.models import DetailDiff


def find_duplicate_ids(rows: list[dict], pk: str = "id") -> list:
    """Return non-null identifiers that occur more than once, in first-seen order."""
    counts = Counter(row.get(pk) for row in rows if row.get(pk) is not None)
    return [key for key, count in counts.items() if count > 1]


def diff_details(
    old_rows: list[dict],
    new_rows: list[dict],
    pk: str = "id",
) -> DetailDiff:
    """Classify submitted detail rows as removed, added, or retained.

    - Removed: old rows whose identifier appears nowhere among the
      non-null identifiers of *new_rows*.
    - Added: new rows with a null identifier, or with an identifier that
      matches no old row (stale or foreign identifiers are re-created
      rather than rejected).
    - Retained: new rows whose identifier matches an old row.  They are
      always re-submitted as updates; no field-level dirty checking.

    Args:
        old_rows: Rows currently persisted for the master (identifiers set).
        new_rows: Client-supplied replacement list (identifiers may be None).
        pk: Primary key field name.

    Returns:
        ``DetailDiff`` with three disjoint groups in input order.

    Raises:
        DuplicateDetailIdError: If *new_rows* repeats a non-null identifier.

    Examples:
        >>> diff = diff_details([{"id": 1}], [])
        >>> [r["id"] for r in diff.removed]
        [1]

        >>> diff = diff_details([], [{"id": None}, {"id": None}])
        >>> len(diff.added), len(diff.removed)
        (2, 0)
    """
    duplicates = find_duplicate_ids(new_rows, pk)
    if duplicates:
        raise DuplicateDetailIdError(duplicates)

    old_ids = {row[pk] for row in old_rows}
    submitted_ids = {row.get(pk) for row in new_rows if row.get(pk) is not None}

    added: list[dict] = []
    retained: list[dict] = []
    for row in new_rows:
        row_id = row.get(pk)
        if row_id is not None and row_id in old_ids:
            retained.append(row)
        else:
            added.append(row)

    # Nothing persisted yet (master just created) -> nothing to remove
    if not old_rows:
        removed: list[dict] = []
    else:
        removed = [row for row in old_rows if row[pk] not in submitted_ids]

    return DetailDiff(removed=removed, added=added, retained=retained)
