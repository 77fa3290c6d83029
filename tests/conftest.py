"""Shared fixtures for loader tests."""

import json
from unittest.mock import MagicMock

import pytest
from google.cloud import bigquery

from hit_loader.config import LoaderConfig
from hit_loader.fields import ENRICHED_EVENT_FIELDS
from hit_loader.parser import EventParser


def make_record(**values):
    """Build an enriched TSV record; unspecified fields are empty."""
    return "\t".join(str(values.get(name, "")) for name in ENRICHED_EVENT_FIELDS.names)


def contexts_json(*entries):
    """Encode (schema, data) pairs as a contexts column."""
    return json.dumps({
        "schema": "iglu:com.snowplowanalytics.snowplow/contexts/jsonschema/1-0-0",
        "data": [{"schema": schema, "data": data} for schema, data in entries],
    })


def unstruct_json(schema, data):
    return json.dumps({
        "schema": "iglu:com.snowplowanalytics.snowplow/unstruct_event/jsonschema/1-0-0",
        "data": {"schema": schema, "data": data},
    })


def make_table(name, schema=(), partition_field=None, partitioned=False, granularity="DAY"):
    table = bigquery.Table(f"test-project.atomic.{name}", schema=list(schema))
    if partitioned or partition_field:
        table.time_partitioning = bigquery.TimePartitioning(type_=granularity, field=partition_field)
    return table


@pytest.fixture
def parser():
    return EventParser(ENRICHED_EVENT_FIELDS)


@pytest.fixture
def config():
    return LoaderConfig(project_id="test-project", dataset="atomic", insert_chunk_size=500)


@pytest.fixture
def bq_client():
    """BigQuery client double: tables registered in client.tables by name."""
    client = MagicMock()
    client.project = "test-project"
    client.tables = {}

    def get_table(path):
        from google.api_core.exceptions import NotFound

        name = path.rsplit(".", 1)[-1]
        if name not in client.tables:
            raise NotFound(f"Table {path} not found")
        return client.tables[name]

    client.get_table.side_effect = get_table
    client.insert_rows_json.return_value = []
    return client
