"""
Tests for environment configuration.
"""

from unittest.mock import patch

from azuretable_log.config import DEV_STORAGE_ACCOUNT, Config


def test_dev_connection_string():
    conn_str = Config.get_connection_string(use_dev_storage=True)

    assert f"AccountName={DEV_STORAGE_ACCOUNT};" in conn_str
    assert f"TableEndpoint={Config.DEV_TABLE_ENDPOINT};" in conn_str
    assert conn_str.startswith("DefaultEndpointsProtocol=http;")


def test_account_connection_string():
    conn_str = Config.get_connection_string("myaccount", "bXlrZXk=", use_dev_storage=False)

    assert "AccountName=myaccount;AccountKey=bXlrZXk=;" in conn_str
    assert conn_str.endswith("EndpointSuffix=core.windows.net")


def test_table_endpoint():
    assert (
        Config.get_table_endpoint("myaccount")
        == "https://myaccount.table.core.windows.net"
    )
    with patch.object(Config, "USE_DEV_STORAGE", True):
        assert Config.get_table_endpoint() == Config.DEV_TABLE_ENDPOINT


def test_validate_config_missing_credentials():
    with patch.multiple(
        Config,
        USE_DEV_STORAGE=False,
        AZURE_STORAGE_ACCOUNT="",
        AZURE_STORAGE_ACCESS_KEY="",
        STAGE="dev",
        PARTITION_KEY="dev",
    ):
        result = Config.validate_config()

    assert result["valid"] is False
    assert "AZURE_STORAGE_ACCOUNT not set" in result["issues"]
    assert "AZURE_STORAGE_ACCESS_KEY not set" in result["issues"]


def test_validate_config_dev_storage():
    with patch.multiple(
        Config,
        USE_DEV_STORAGE=True,
        AZURE_STORAGE_ACCOUNT="",
        AZURE_STORAGE_ACCESS_KEY="",
        STAGE="dev",
        PARTITION_KEY="dev",
    ):
        assert Config.validate_config() == {"valid": True, "issues": []}


def test_validate_config_bad_stage():
    with patch.multiple(
        Config, USE_DEV_STORAGE=True, STAGE="qa", PARTITION_KEY="qa"
    ):
        result = Config.validate_config()

    assert result["issues"] == ["Invalid STAGE: qa"]
