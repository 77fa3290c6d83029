"""BigQuery client construction and batched, partition-aware inserts."""

import json
import logging
import uuid
from dataclasses import dataclass

import boto3
import requests
from botocore.exceptions import ClientError
from google.api_core.exceptions import GoogleAPIError, NotFound
from google.cloud import bigquery
from google.oauth2 import service_account

from hit_loader.errors import ConfigurationError, SinkInsertError, TableNotFoundError
from hit_loader.partitioning import TablePartitionSpec, partition_rows

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────
# Client Singletons (warm start reuse)
# ──────────────────────────────────────────────
_bigquery_client = None
_ssm_client = None


def get_ssm_client():
    global _ssm_client
    if _ssm_client is None:
        _ssm_client = boto3.client("ssm")
    return _ssm_client


def load_credentials_info(ssm_client, param_name):
    """Load the Google service-account JSON stored in SSM Parameter Store."""
    try:
        response = ssm_client.get_parameter(Name=param_name, WithDecryption=True)
    except ssm_client.exceptions.ParameterNotFound as exc:
        raise ConfigurationError(f"SSM parameter {param_name} not found") from exc
    except ClientError as exc:
        raise ConfigurationError(f"Could not read SSM parameter {param_name}: {exc}") from exc

    try:
        return json.loads(response["Parameter"]["Value"])
    except ValueError as exc:
        raise ConfigurationError(f"SSM parameter {param_name} is not valid JSON") from exc


def create_bigquery_client(config, ssm_client=None):
    """Build a BigQuery client from config.

    With GCP_CREDENTIALS_PARAM set, credentials come from SSM and the
    project defaults to the key's project_id. Otherwise Application
    Default Credentials are used and BQ_PROJECT is required.
    """
    project = config.project_id
    credentials = None

    if config.credentials_param:
        info = load_credentials_info(ssm_client or get_ssm_client(), config.credentials_param)
        credentials = service_account.Credentials.from_service_account_info(info)
        project = project or info.get("project_id")

    if not project:
        raise ConfigurationError(
            "No BigQuery project: set BQ_PROJECT or store credentials with a project_id"
        )

    return bigquery.Client(project=project, credentials=credentials, location=config.location)


def get_bigquery_client(config):
    global _bigquery_client
    if _bigquery_client is None:
        _bigquery_client = create_bigquery_client(config)
    return _bigquery_client


# ──────────────────────────────────────────────
# Inserts
# ──────────────────────────────────────────────
@dataclass(frozen=True)
class InsertOptions:
    """Per-call insert options. All default to off.

    raw: rows are {"insertId", "json"} envelopes; the insertIds are sent so
        BigQuery can drop retried duplicates. Otherwise rows are plain
        column mappings and the client generates insert ids.
    skip_invalid_rows: insert the valid rows of a chunk even if some are invalid.
    ignore_unknown_values: drop columns the table does not define instead
        of rejecting the row.
    """

    raw: bool = False
    skip_invalid_rows: bool = False
    ignore_unknown_values: bool = False


@dataclass
class InsertResult:
    table: str
    inserted: int = 0
    rejected: int = 0

    def merge(self, other):
        self.inserted += other.inserted
        self.rejected += other.rejected
        return self


def _unwrap(row):
    return row["json"]


class BigQueryWriter:
    def __init__(self, client, config):
        self.client = client
        self.config = config

    def table_path(self, name):
        return f"{self.client.project}.{self.config.dataset}.{name}"

    def ensure_table(self, name):
        """Fetch the table's current metadata.

        Raises TableNotFoundError when it does not exist, and SinkInsertError
        when the lookup itself fails.
        """
        try:
            return self.client.get_table(self.table_path(name))
        except NotFound as exc:
            raise TableNotFoundError(f"Table {self.table_path(name)} not found") from exc
        except (GoogleAPIError, requests.RequestException) as exc:
            raise SinkInsertError(f"Could not fetch table {self.table_path(name)}: {exc}") from exc

    def partition_spec(self, table):
        return TablePartitionSpec.from_table(table, self.config.partition_fields)

    def _row_id(self, row, destination):
        row_id = row.get("insertId")
        if row_id is None:
            row_id = str(uuid.uuid4())
            logger.warning(
                "Row for %s has no insertId, using generated id %s; it will not be deduplicated",
                destination,
                row_id,
            )
        return row_id

    def _insert_chunk(self, destination, rows, options):
        kwargs = {}
        if options.raw:
            kwargs["row_ids"] = [self._row_id(row, destination) for row in rows]
            rows = [_unwrap(row) for row in rows]

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Inserting into %s with %s: %s",
                destination,
                options,
                json.dumps(rows, default=str),
            )

        try:
            return self.client.insert_rows_json(
                self.table_path(destination),
                rows,
                skip_invalid_rows=options.skip_invalid_rows,
                ignore_unknown_values=options.ignore_unknown_values,
                **kwargs,
            )
        except (GoogleAPIError, requests.RequestException) as exc:
            raise SinkInsertError(f"Insert into {destination} failed: {exc}") from exc

    def insert(self, destination, rows, options=None):
        """Insert rows into one destination in chunks of insert_chunk_size.

        Rejected rows are counted, never raised; a failed chunk does not
        stop the remaining chunks.
        """
        options = options or InsertOptions()
        result = InsertResult(destination)
        size = self.config.insert_chunk_size

        for start in range(0, len(rows), size):
            chunk = rows[start : start + size]
            try:
                errors = self._insert_chunk(destination, chunk, options)
            except SinkInsertError:
                logger.exception(
                    "Insert failed for %d rows starting at %d into %s",
                    len(chunk),
                    start,
                    destination,
                )
                result.rejected += len(chunk)
                continue

            failed = {error.get("index") for error in errors}
            if failed:
                logger.warning(
                    "Insert into %s: %d/%d rows rejected: %s",
                    destination,
                    len(failed),
                    len(chunk),
                    json.dumps(errors, default=str),
                )
            result.inserted += len(chunk) - len(failed)
            result.rejected += len(failed)

        logger.info("Inserted %d row(s) into %s", result.inserted, destination)
        return result

    def write(self, table_name, rows, options=None):
        """Insert rows into table_name, routing each row to its date partition.

        Partitioning is read from the table's metadata on every call. A
        missing table or a failed lookup skips this table only.
        """
        options = options or InsertOptions()
        result = InsertResult(table_name)
        if not rows:
            return result

        try:
            table = self.ensure_table(table_name)
        except TableNotFoundError as exc:
            logger.warning("%s; skipping %d rows", exc, len(rows))
            result.rejected = len(rows)
            return result
        except SinkInsertError:
            logger.exception("Skipping %d rows for %s", len(rows), table_name)
            result.rejected = len(rows)
            return result

        spec = self.partition_spec(table)
        unwrap = _unwrap if options.raw else None
        for destination, destination_rows in partition_rows(spec, rows, unwrap).items():
            result.merge(self.insert(destination, destination_rows, options))
        return result

    def write_batch(self, batch):
        """Write a Batch: events first, then every context table.

        Returns the InsertResults in write order.
        """
        # raw: events carry their event_id as insertId.
        # skip_invalid_rows: an invalid row is rejected on its own instead of
        # failing every other row in its request.
        event_options = InsertOptions(raw=True, skip_invalid_rows=True)
        context_options = InsertOptions(skip_invalid_rows=True)

        results = [
            self.write(
                self.config.events_table,
                [evt.to_insert_row() for evt in batch.events],
                event_options,
            )
        ]
        for table_name, rows in batch.tables.items():
            results.append(self.write(table_name, rows, context_options))
        return results
