"""Exception taxonomy for the loader.

Every error is scoped: a record, a context, a table or a chunk of rows.
Only ConfigurationError aborts an invocation.
"""


class LoaderError(Exception):
    """Base class for all loader errors."""


class ConfigurationError(LoaderError):
    """Missing field schema or destination connection parameters."""


class MalformedRecordError(LoaderError):
    """A raw record has fewer tokens than the field schema, or a field failed its transform."""


class InvalidJsonError(LoaderError):
    """The contexts column is present but is not valid JSON."""


class InvalidSchemaIdError(LoaderError):
    """A schema identifier is not of the form vendor/name/format/version."""


class MetadataFieldCollisionError(LoaderError):
    """A context document key collides with an injected metadata key."""

    def __init__(self, schema, keys):
        self.schema = schema
        self.keys = sorted(keys)
        super().__init__(
            f"Context {schema} has keys colliding with metadata: {', '.join(self.keys)}"
        )


class MissingPartitionValueError(LoaderError):
    """A row lacks a usable value for its table's partition field."""

    def __init__(self, table_id, field, value=None):
        self.table_id = table_id
        self.field = field
        self.value = value
        super().__init__(
            f"Row for {table_id} has no usable value in partition field {field!r}: {value!r}"
        )


class TableNotFoundError(LoaderError):
    """The destination table does not exist in the dataset."""


class SinkInsertError(LoaderError):
    """BigQuery rejected an insert call."""
