"""Schema identifier parsing and snake_case naming."""

import re
from dataclasses import dataclass

from hit_loader.errors import InvalidSchemaIdError

SCHEMA_PREFIX = "iglu:"

_CAMEL_BOUNDARY = re.compile(r"([^_])([A-Z])")


def to_snake_case(value):
    """'xCoord' -> 'x_coord'. Already snake_cased strings are unchanged."""
    return _CAMEL_BOUNDARY.sub(r"\1_\2", value).lower()


def rename_keys(document):
    """Snake_case every top-level key, as an ordered list of (key, value) pairs.

    Pairs rather than a dict so that two keys renaming to the same name
    stay visible to the caller.
    """
    return [(to_snake_case(key), value) for key, value in document.items()]


@dataclass(frozen=True)
class SchemaMeta:
    vendor: str
    name: str
    format: str
    version: str

    @property
    def major_version(self):
        return self.version.split("-")[0]

    def as_row(self):
        return {
            "schema_vendor": self.vendor,
            "schema_name": self.name,
            "schema_format": self.format,
            "schema_version": self.version,
        }


def parse_schema_id(schema_id):
    if not isinstance(schema_id, str):
        raise InvalidSchemaIdError(f"Schema identifier must be a string, got {schema_id!r}")
    if schema_id.startswith(SCHEMA_PREFIX):
        schema_id = schema_id[len(SCHEMA_PREFIX):]
    parts = schema_id.split("/")
    if len(parts) < 4 or not all(parts[:4]):
        raise InvalidSchemaIdError(f"Expected vendor/name/format/version, got {schema_id!r}")
    return SchemaMeta(*parts[:4])


def table_name_for(meta):
    """Destination table for a schema: {vendor}_{name}_{major}."""
    joined = "_".join([meta.vendor, meta.name, meta.major_version])
    return to_snake_case(joined.replace(".", "_"))


def resolve_schema(schema_id):
    """Map a schema identifier to (table name, SchemaMeta).

    Minor and patch versions share the table of their major version, and
    the format component does not take part in the name.
    """
    meta = parse_schema_id(schema_id)
    return table_name_for(meta), meta
