"""Route rows to date partitions of time-partitioned tables."""

import logging
from dataclasses import dataclass
from typing import Optional

from hit_loader.errors import MissingPartitionValueError

logger = logging.getLogger(__name__)

PARTITION_SEPARATOR = "$"
ROOT_TIMESTAMP_FIELD = "root_tstamp"
DAY = "DAY"


@dataclass(frozen=True)
class TablePartitionSpec:
    table_id: str
    partitioned: bool = False
    field: Optional[str] = None
    granularity: str = DAY

    @classmethod
    def from_table(cls, table, fallback_fields=()):
        """Read partitioning from a bigquery.Table's live metadata.

        Column-partitioned tables name their field directly. For
        ingestion-time partitioned tables, the first of fallback_fields
        that is a TIMESTAMP column (other than root_tstamp) is used.
        Only DAY partitions take a YYYYMMDD decorator; rows for HOUR, MONTH
        and YEAR tables go to the base table.
        """
        partitioning = table.time_partitioning
        if partitioning is None:
            return cls(table_id=table.table_id)

        field = partitioning.field
        if field is None and fallback_fields:
            timestamp_columns = {
                column.name
                for column in table.schema
                if column.field_type == "TIMESTAMP" and column.name != ROOT_TIMESTAMP_FIELD
            }
            field = next((f for f in fallback_fields if f in timestamp_columns), None)

        granularity = partitioning.type_ or DAY
        if granularity != DAY:
            logger.warning(
                "Table %s is partitioned by %s; rows go to the base table",
                table.table_id,
                granularity,
            )

        return cls(table_id=table.table_id, partitioned=True, field=field, granularity=granularity)


def resolve_partition(spec, row):
    """Return the YYYYMMDD suffix for row, or None when the row targets the base table.

    Raises MissingPartitionValueError when the partition field is absent
    from the row or does not start with a YYYY-MM-DD date.
    """
    if not spec.partitioned or spec.field is None or spec.granularity != DAY:
        return None

    value = row.get(spec.field)
    if hasattr(value, "isoformat"):
        value = value.isoformat()
    if not isinstance(value, str) or len(value) < 10:
        raise MissingPartitionValueError(spec.table_id, spec.field, value)

    suffix = value[:10].replace("-", "")
    if len(suffix) != 8 or not suffix.isdigit():
        raise MissingPartitionValueError(spec.table_id, spec.field, value)
    return suffix


def partitioned_table_name(base, suffix):
    if suffix is None:
        return base
    return f"{base}{PARTITION_SEPARATOR}{suffix}"


def partition_rows(spec, rows, unwrap=None):
    """Group rows by destination table name, keeping their order.

    A row whose partition value is missing goes to the base table, where
    BigQuery applies the table's own partitioning rule to it.
    unwrap extracts the column mapping from an insert envelope.
    """
    destinations = {}
    for row in rows:
        columns = unwrap(row) if unwrap else row
        try:
            suffix = resolve_partition(spec, columns)
        except MissingPartitionValueError as exc:
            logger.warning("%s; routing row to base table", exc)
            suffix = None
        destination = partitioned_table_name(spec.table_id, suffix)
        destinations.setdefault(destination, []).append(row)
    return destinations
