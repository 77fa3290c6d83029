"""Environment-driven configuration for the loader."""

import os
from dataclasses import dataclass
from typing import Optional

from hit_loader.errors import ConfigurationError
from hit_loader.fields import ENRICHED_EVENT_FIELDS, FieldSchema


@dataclass(frozen=True)
class LoaderConfig:
    dataset: str = "atomic"
    project_id: Optional[str] = None
    location: Optional[str] = None
    credentials_param: Optional[str] = None
    partition_fields: tuple = ()
    events_table: str = "events"
    insert_chunk_size: int = 500
    field_schema: FieldSchema = ENRICHED_EVENT_FIELDS

    @classmethod
    def from_env(cls, environ=None):
        env = os.environ if environ is None else environ

        raw_fields = env.get("PARTITION_FIELDS", "")
        partition_fields = tuple(f.strip() for f in raw_fields.split(",") if f.strip())

        try:
            chunk_size = int(env.get("INSERT_CHUNK_SIZE", "500"))
        except ValueError as exc:
            raise ConfigurationError(f"INSERT_CHUNK_SIZE must be an integer: {exc}") from exc

        config = cls(
            dataset=env.get("BQ_DATASET", "atomic"),
            project_id=env.get("BQ_PROJECT") or None,
            location=env.get("BQ_LOCATION") or None,
            credentials_param=env.get("GCP_CREDENTIALS_PARAM") or None,
            partition_fields=partition_fields,
            events_table=env.get("EVENTS_TABLE", "events"),
            insert_chunk_size=chunk_size,
        )
        config.validate()
        return config

    def validate(self):
        if not self.dataset:
            raise ConfigurationError("BQ_DATASET must not be empty")
        if not self.events_table:
            raise ConfigurationError("EVENTS_TABLE must not be empty")
        if self.insert_chunk_size < 1:
            raise ConfigurationError("INSERT_CHUNK_SIZE must be positive")
        if not self.field_schema:
            raise ConfigurationError("No field schema configured")
