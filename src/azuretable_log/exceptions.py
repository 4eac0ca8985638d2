"""Exceptions raised by the Azure Table log handler."""


class AzureTableLogError(Exception):
    """Base class for errors raised by this package."""


class ConfigurationError(AzureTableLogError, ValueError):
    """Raised at construction when required settings are missing or invalid."""


class TransportNotReadyError(AzureTableLogError):
    """Raised when writing or querying before the table has been ensured."""

    def __init__(self, table_name: str, cause: Exception = None):
        self.table_name = table_name
        self.cause = cause
        message = f"table '{table_name}' is not ready"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
