"""Decode one tab-delimited enriched event into an Event."""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping

from hit_loader.errors import ConfigurationError, MalformedRecordError

FIELD_SEPARATOR = "\t"

ID_FIELD = "event_id"
TIMESTAMP_FIELD = "collector_tstamp"
CONTEXTS_FIELD = "contexts"
UNSTRUCT_FIELD = "unstruct_event"

REQUIRED_FIELDS = (ID_FIELD, TIMESTAMP_FIELD, CONTEXTS_FIELD, UNSTRUCT_FIELD)


def sanitize(value):
    """Empty strings become None so absence can be tested reliably."""
    if value == "":
        return None
    return value


@dataclass(frozen=True)
class Event:
    fields: Mapping[str, Any]

    @property
    def insert_id(self):
        return self.fields[ID_FIELD]

    @property
    def timestamp(self):
        return self.fields[TIMESTAMP_FIELD]

    def __getitem__(self, name):
        return self.fields[name]

    def get(self, name, default=None):
        return self.fields.get(name, default)

    def to_insert_row(self):
        """Envelope accepted by BigQueryWriter when inserting with raw=True."""
        return {"insertId": self.insert_id, "json": dict(self.fields)}


class EventParser:
    def __init__(self, schema):
        if not schema:
            raise ConfigurationError("Field schema is empty")
        missing = [name for name in REQUIRED_FIELDS if name not in schema.names]
        if missing:
            raise ConfigurationError(f"Field schema lacks required fields: {', '.join(missing)}")
        self.schema = schema

    def parse(self, raw):
        """Split a record on tabs and bind each token to its descriptor.

        Raises MalformedRecordError when the record has fewer tokens than the
        schema has fields, or when a token fails its field transform. Extra
        trailing tokens are ignored.
        """
        tokens = raw.rstrip("\r\n").split(FIELD_SEPARATOR)
        if len(tokens) < len(self.schema):
            raise MalformedRecordError(
                f"Record has {len(tokens)} fields, expected {len(self.schema)}"
            )

        result = {}
        for descriptor, token in zip(self.schema, tokens):
            if token == "":
                result[descriptor.name] = None
                continue
            try:
                result[descriptor.name] = sanitize(descriptor.decode(token))
            except ValueError as exc:
                raise MalformedRecordError(
                    f"Field {descriptor.name} has invalid value {token!r}: {exc}"
                ) from exc

        return Event(MappingProxyType(result))
