"""
Pytest configuration and fixtures for signer tests.

Tests never reach AWS: boto3 sessions are either patched or fed static
credentials through environment variables, and the shared config files are
pointed at paths that do not exist so a developer's ~/.aws does not leak in.
"""

import datetime
import os

import pytest
from unittest.mock import patch

from aws_msk_iam_sasl_signer import Credentials


TEST_REGION = "us-west-2"
TEST_ENDPOINT = "kafka.us-west-2.amazonaws.com"


# ============================================================================
# Credential Fixtures
# ============================================================================

@pytest.fixture
def mock_credentials() -> Credentials:
    """Long-term credentials (no session token)."""
    return Credentials(
        access_key="MOCK-ACCESS-KEY",
        secret_key="MOCK-SECRET-KEY",
    )


@pytest.fixture
def mock_session_credentials() -> Credentials:
    """Temporary credentials with a session token."""
    return Credentials(
        access_key="MOCK-ACCESS-KEY",
        secret_key="MOCK-SECRET-KEY",
        session_token="MOCK-SESSION-TOKEN",
    )


@pytest.fixture
def signing_time() -> datetime.datetime:
    """Fixed signing timestamp."""
    return datetime.datetime(2024, 1, 15, 12, 0, 0, tzinfo=datetime.timezone.utc)


# ============================================================================
# Environment Fixtures
# ============================================================================

@pytest.fixture
def isolated_aws_env(tmp_path):
    """
    Clear AWS environment variables and hide the shared config files.

    Yields:
        dict that tests can fill before resolving credentials
    """
    env = {
        "AWS_CONFIG_FILE": str(tmp_path / "config"),
        "AWS_SHARED_CREDENTIALS_FILE": str(tmp_path / "credentials"),
        "AWS_EC2_METADATA_DISABLED": "true",
    }
    with patch.dict(os.environ, env, clear=True):
        yield os.environ


# ============================================================================
# Live AWS Tests
# ============================================================================

def pytest_addoption(parser):
    parser.addoption(
        "--run-integration",
        action="store_true",
        help="Also sign with the AWS credentials available on this machine",
    )


def pytest_collection_modifyitems(config, items):
    """Tests marked integration need real credentials and stay off by default."""
    if config.getoption("--run-integration"):
        return

    needs_aws = pytest.mark.skip(reason="needs --run-integration")
    for item in items:
        if item.get_closest_marker("integration"):
            item.add_marker(needs_aws)
