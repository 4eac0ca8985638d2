"""
Azure Table Storage transport for Python logging.

This package provides a logging handler that stores structured log entries
as rows in an Azure table and reads them back:
- AzureTableHandler: logging.Handler that ensures the table, writes and queries rows
- Config: environment-driven settings (account, key, table, partition)
- decode_meta: recover the metadata mapping from a queried row
"""

from azuretable_log.config import Config
from azuretable_log.entity import decode_meta, generate_row_key
from azuretable_log.exceptions import (
    AzureTableLogError,
    ConfigurationError,
    TransportNotReadyError,
)
from azuretable_log.handler import AzureTableHandler

__version__ = "0.1.0"

__all__ = [
    'AzureTableHandler',
    'AzureTableLogError',
    'Config',
    'ConfigurationError',
    'TransportNotReadyError',
    'decode_meta',
    'generate_row_key',
]
