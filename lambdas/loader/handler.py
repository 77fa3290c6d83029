"""Kinesis to BigQuery Loader Lambda

Consumes enriched events from a Kinesis Data Stream, splits each event into
its atomic row and its context rows, and streams them into BigQuery: events
into the events table, each context schema into its own table, routed to
date partitions where the table is partitioned.
"""

import base64
import binascii
import json
import logging
import os

from hit_loader.bigquery import BigQueryWriter, get_bigquery_client
from hit_loader.config import LoaderConfig
from hit_loader.parser import EventParser
from hit_loader.router import build_batch

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

logger = logging.getLogger()
logger.setLevel(LOG_LEVEL)


def decode_records(records):
    """Decode the TSV payload of each Kinesis record.

    Returns (payloads, undecodable_count).
    """
    payloads = []
    undecodable = 0
    for record in records:
        try:
            payloads.append(base64.b64decode(record["kinesis"]["data"]).decode("utf-8"))
        except (KeyError, binascii.Error, UnicodeDecodeError):
            logger.exception("Could not decode Kinesis record %s", record.get("eventID"))
            undecodable += 1
    return payloads, undecodable


def lambda_handler(event, context):
    """Entry point. Only configuration errors fail the invocation."""
    config = LoaderConfig.from_env()
    parser = EventParser(config.field_schema)
    writer = BigQueryWriter(get_bigquery_client(config), config)

    records = event.get("Records", [])
    payloads, undecodable = decode_records(records)

    batch = build_batch(payloads, parser)
    results = writer.write_batch(batch)

    inserted = sum(r.inserted for r in results)
    rejected = sum(r.rejected for r in results)
    logger.info(
        "Processed %d records: %d rows inserted, %d rows rejected",
        len(records),
        inserted,
        rejected,
    )

    return {
        "statusCode": 200,
        "body": json.dumps({
            "message": f"Successfully processed {len(records)} records.",
            "records": len(records),
            "rejected_records": batch.rejected_records + undecodable,
            "rejected_contexts": batch.rejected_contexts,
            "rows_inserted": inserted,
            "rows_rejected": rejected,
        }),
    }
