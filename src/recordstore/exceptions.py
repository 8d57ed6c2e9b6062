"""Custom exceptions for recordstore."""


class RecordStoreError(Exception):
    """Base exception for all recordstore errors."""

    pass


class StoreError(RecordStoreError):
    """Raised when a record cannot be written (store, upsert or update).

    The message is free-form text meant for logging.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SchemaError(RecordStoreError):
    """Raised when a schema definition is invalid or does not match the table."""

    pass
