#!/usr/bin/env python3
"""Enriched Event Explorer

Run this locally against a file of enriched TSV events to see how each event
is decomposed, before anything is written to BigQuery.
Usage: python3 scripts/explore_events.py events.tsv [--partition-field created_at]
"""

import argparse
import json

from hit_loader.errors import InvalidJsonError, MalformedRecordError
from hit_loader.fields import ENRICHED_EVENT_FIELDS
from hit_loader.parser import EventParser
from hit_loader.partitioning import TablePartitionSpec, partition_rows
from hit_loader.router import decompose_record, route


def explore(path, partition_field=None):
    """Decompose every line of path and print the resulting tables."""
    parser = EventParser(ENRICHED_EVENT_FIELDS)
    decomposed = []

    with open(path, encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                evt, contexts, dropped = decompose_record(line, parser)
            except (MalformedRecordError, InvalidJsonError) as e:
                print(f"Line {lineno}: rejected: {e}")
                continue
            print(f"Line {lineno}: event {evt.insert_id} ({evt.get('event_name')}), "
                  f"{len(contexts)} contexts, {dropped} dropped")
            decomposed.append((evt, contexts))

    events, tables = route(decomposed)

    print(f"\n{'='*60}")
    print(f"events: {len(events)} rows")
    print("=" * 60)

    for table_name, rows in tables.items():
        print(f"\n{'='*60}")
        print(f"{table_name}: {len(rows)} rows")
        print("=" * 60)

        if partition_field:
            spec = TablePartitionSpec(table_name, partitioned=True, field=partition_field)
            for destination, destination_rows in partition_rows(spec, rows).items():
                print(f"  -> {destination}: {len(destination_rows)} rows")

        print(f"\nFirst row:")
        print(json.dumps(rows[0], indent=2, default=str))


def main():
    arg_parser = argparse.ArgumentParser(description=__doc__)
    arg_parser.add_argument("path", help="File with one enriched TSV event per line")
    arg_parser.add_argument("--partition-field", help="Preview partition routing on this field")
    args = arg_parser.parse_args()

    print("Enriched Event Explorer")
    print(f"Decomposing {args.path}\n")

    explore(args.path, args.partition_field)

    print("\nDone! Each table above maps to one BigQuery table in the dataset.")


if __name__ == "__main__":
    main()
