"""Turn a RawContext into a row for its own table."""

from collections import Counter
from dataclasses import dataclass
from typing import Any, Mapping

from hit_loader.errors import MetadataFieldCollisionError
from hit_loader.naming import rename_keys, resolve_schema

ROOT_TABLE = "events"


@dataclass(frozen=True)
class NormalizedContext:
    table: str
    schema: str
    row: Mapping[str, Any]


def _metadata(meta, owner):
    row = meta.as_row()
    row.update({
        "root_id": owner.insert_id,
        "root_tstamp": owner.timestamp,
        "ref_root": ROOT_TABLE,
        "ref_tree": [ROOT_TABLE, meta.name],
        "ref_parent": ROOT_TABLE,
    })
    return row


def normalize_context(raw, owner):
    """Snake_case the document keys and merge schema and lineage metadata.

    Metadata keys come first in the row. A document key that equals a
    metadata key after renaming, or two document keys that rename to the
    same key, raise MetadataFieldCollisionError.
    """
    table, meta = resolve_schema(raw.schema)
    row = _metadata(meta, owner)

    renamed = rename_keys(raw.document)
    counts = Counter(key for key, _ in renamed)
    collisions = {key for key, count in counts.items() if count > 1 or key in row}
    if collisions:
        raise MetadataFieldCollisionError(raw.schema, collisions)

    row.update(renamed)
    return NormalizedContext(table=table, schema=raw.schema, row=row)
