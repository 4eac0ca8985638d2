"""
Configuration settings for the Azure Table log handler.
"""

import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Well-known Azurite account; the key is public and fixed by the emulator.
DEV_STORAGE_ACCOUNT = "devstoreaccount1"
DEV_STORAGE_KEY = (
    "Eby8vdM02xNOcqFlqUwJPLlmEtlCDXJ1OUzFT50uSRZ6IFsuFq2UVErCz4I6tq/"
    "K1SZFPTOtr/KBHBeksoGMGw=="
)


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("true", "1", "yes")


class Config:
    """Configuration class for the project."""

    # Storage account credentials
    AZURE_STORAGE_ACCOUNT = os.getenv("AZURE_STORAGE_ACCOUNT", "")
    AZURE_STORAGE_ACCESS_KEY = os.getenv("AZURE_STORAGE_ACCESS_KEY", "")

    # Local emulator (Azurite)
    USE_DEV_STORAGE = _env_flag("AZURE_TABLE_LOG_USE_DEV_STORAGE")
    DEV_TABLE_ENDPOINT = os.getenv(
        "AZURE_TABLE_LOG_DEV_ENDPOINT", "http://127.0.0.1:10002/devstoreaccount1"
    )

    # Table layout
    STAGE = os.getenv("STAGE", "dev")  # dev, staging, prod
    TABLE_NAME = os.getenv("AZURE_TABLE_LOG_TABLE", "log")
    PARTITION_KEY = os.getenv("AZURE_TABLE_LOG_PARTITION_KEY", STAGE)
    NESTED_META = _env_flag("AZURE_TABLE_LOG_NESTED_META")

    # Logging Configuration
    LOG_LEVEL = os.getenv("AZURE_TABLE_LOG_LEVEL", "INFO")

    @classmethod
    def validate_config(cls) -> Dict[str, Any]:
        """
        Validate configuration settings.

        Returns:
            Dictionary with validation results
        """
        issues = []

        if not cls.USE_DEV_STORAGE:
            if not cls.AZURE_STORAGE_ACCOUNT:
                issues.append("AZURE_STORAGE_ACCOUNT not set")
            if not cls.AZURE_STORAGE_ACCESS_KEY:
                issues.append("AZURE_STORAGE_ACCESS_KEY not set")

        if cls.STAGE not in ["dev", "staging", "prod"]:
            issues.append(f"Invalid STAGE: {cls.STAGE}")

        if not cls.PARTITION_KEY:
            issues.append("AZURE_TABLE_LOG_PARTITION_KEY is empty")

        return {"valid": len(issues) == 0, "issues": issues}

    @classmethod
    def get_table_endpoint(cls, account: Optional[str] = None) -> str:
        """
        Get the table service endpoint for an account.

        Args:
            account: Storage account name, defaults to AZURE_STORAGE_ACCOUNT

        Returns:
            Endpoint URL (the emulator endpoint when dev storage is enabled)
        """
        if cls.USE_DEV_STORAGE and account is None:
            return cls.DEV_TABLE_ENDPOINT
        account = account or cls.AZURE_STORAGE_ACCOUNT
        return f"https://{account}.table.core.windows.net"

    @classmethod
    def get_connection_string(
        cls,
        account: Optional[str] = None,
        key: Optional[str] = None,
        use_dev_storage: Optional[bool] = None,
    ) -> str:
        """
        Build a table service connection string.

        Args:
            account: Storage account name (ignored for dev storage)
            key: Storage account key (ignored for dev storage)
            use_dev_storage: Target the local emulator, defaults to USE_DEV_STORAGE

        Returns:
            Connection string accepted by TableServiceClient.from_connection_string
        """
        if use_dev_storage is None:
            use_dev_storage = cls.USE_DEV_STORAGE

        if use_dev_storage:
            return (
                "DefaultEndpointsProtocol=http;"
                f"AccountName={DEV_STORAGE_ACCOUNT};"
                f"AccountKey={DEV_STORAGE_KEY};"
                f"TableEndpoint={cls.DEV_TABLE_ENDPOINT};"
            )

        account = account or cls.AZURE_STORAGE_ACCOUNT
        key = key or cls.AZURE_STORAGE_ACCESS_KEY
        return (
            "DefaultEndpointsProtocol=https;"
            f"AccountName={account};"
            f"AccountKey={key};"
            "EndpointSuffix=core.windows.net"
        )
