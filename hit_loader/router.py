"""Decompose a batch of raw records and group the rows by destination table."""

import logging
from dataclasses import dataclass, field

from hit_loader.contexts import extract_contexts
from hit_loader.errors import (
    InvalidJsonError,
    InvalidSchemaIdError,
    MalformedRecordError,
    MetadataFieldCollisionError,
)
from hit_loader.normalizer import normalize_context

logger = logging.getLogger(__name__)


@dataclass
class Batch:
    records: int = 0
    events: list = field(default_factory=list)
    tables: dict = field(default_factory=dict)
    rejected_records: int = 0
    rejected_contexts: int = 0


def decompose_record(raw, parser):
    """Parse one record into (Event, [NormalizedContext], dropped_count).

    A context with a bad schema identifier or colliding keys is logged and
    dropped; the event and its other contexts survive. Record-level errors
    (MalformedRecordError, InvalidJsonError) propagate.
    """
    evt = parser.parse(raw)
    normalized = []
    rejected = 0
    for raw_context in extract_contexts(evt):
        try:
            normalized.append(normalize_context(raw_context, evt))
        except InvalidSchemaIdError as exc:
            logger.error("Event %s: dropping context: %s", evt.insert_id, exc)
            rejected += 1
        except MetadataFieldCollisionError as exc:
            logger.error(
                "Event %s: dropping context %s, document keys %s collide with metadata",
                evt.insert_id,
                exc.schema,
                exc.keys,
            )
            rejected += 1
    return evt, normalized, rejected


def route(decomposed):
    """Split (Event, contexts) pairs into the events list and per-table rows.

    Rows keep input order within each table. Rows from different events
    may share a table.
    """
    events = []
    tables = {}
    for evt, contexts in decomposed:
        events.append(evt)
        for context in contexts:
            tables.setdefault(context.table, []).append(context.row)
    return events, tables


def build_batch(records, parser):
    """Decompose every record of a batch, isolating per-record failures."""
    batch = Batch()
    decomposed = []
    for raw in records:
        batch.records += 1
        try:
            evt, contexts, rejected = decompose_record(raw, parser)
        except (MalformedRecordError, InvalidJsonError) as exc:
            logger.warning("Skipping record %d: %s", batch.records, exc)
            batch.rejected_records += 1
            continue
        batch.rejected_contexts += rejected
        decomposed.append((evt, contexts))

    batch.events, batch.tables = route(decomposed)
    logger.info(
        "Decomposed %d records into %d events and %d context tables (%d records, %d contexts rejected)",
        batch.records,
        len(batch.events),
        len(batch.tables),
        batch.rejected_records,
        batch.rejected_contexts,
    )
    return batch
