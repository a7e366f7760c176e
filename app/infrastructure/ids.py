"""Human-readable sequential identifiers (``U00001``, ``C00042``, ``UP00007``...).

The next id is derived by scanning the existing ids of a prefix, so two
concurrent creations can compute the same value; the unique indexes created by
``StudioStore.ensure_indexes`` turn that race into a duplicate-key error.
"""
import re

from pymongo.collection import Collection

ID_DIGITS = 5


def format_id(prefix: str, number: int) -> str:
    return f"{prefix}{number:0{ID_DIGITS}d}"


def next_sequential_id(collection: Collection, field: str, prefix: str) -> str:
    """Return ``<prefix><max+1>`` over every ``field`` value shaped ``<prefix><digits>``.

    Args:
        collection: Collection holding the ids
        field: Document key of the id (e.g. ``"accountId"``)
        prefix: Letter prefix (e.g. ``"U"``)

    Returns:
        The next id, zero-padded to five digits; ``<prefix>00001`` when none exist

    Example:
        >>> next_sequential_id(db["classes"], "classId", "C")
        'C00001'
    """
    pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
    highest = 0
    cursor = collection.find({field: {"$regex": pattern.pattern}}, {field: 1, "_id": 0})
    for doc in cursor:
        match = pattern.match(str(doc.get(field, "")))
        if match:
            highest = max(highest, int(match.group(1)))
    return format_id(prefix, highest + 1)
