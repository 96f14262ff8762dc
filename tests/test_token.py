"""Tests for token finalization and encoding."""

import base64
import platform

import pytest

from aws_msk_iam_sasl_signer import TokenFinalizationError, __version__
from aws_msk_iam_sasl_signer.signing import parse_query
from aws_msk_iam_sasl_signer.token import (
    LIB_NAME,
    USER_AGENT_KEY,
    add_user_agent,
    base64_encode,
    decode_auth_token,
    finalize_token,
    user_agent,
)

SIGNED_URL = "https://kafka.us-west-2.amazonaws.com/?Action=kafka-cluster%3AConnect"


class TestUserAgent:
    """Tests for the user agent tag."""

    def test_user_agent_format(self):
        """Test <lib>/<version>/<python-version>."""
        assert user_agent() == f"{LIB_NAME}/{__version__}/{platform.python_version()}"

    def test_add_user_agent_appends_parameter(self):
        """Test that User-Agent is appended after the existing query."""
        result = add_user_agent(SIGNED_URL)

        assert result.startswith(f"{SIGNED_URL}&{USER_AGENT_KEY}={LIB_NAME}")

    def test_add_user_agent_value(self):
        """Test the decoded User-Agent value."""
        params = parse_query(add_user_agent(SIGNED_URL))

        assert params[USER_AGENT_KEY] == user_agent()
        assert params["Action"] == "kafka-cluster:Connect"

    def test_add_user_agent_keeps_parameter_order(self):
        """Test that existing parameters keep their order."""
        url = "https://kafka.us-west-2.amazonaws.com/?b=2&a=1&X-Amz-Signature=abc"

        result = add_user_agent(url)

        assert result.startswith("https://kafka.us-west-2.amazonaws.com/?b=2&a=1&X-Amz-Signature=abc&User-Agent=")

    def test_add_user_agent_replaces_existing(self):
        """Test that a previous User-Agent is replaced rather than duplicated."""
        result = add_user_agent(f"{SIGNED_URL}&User-Agent=old")

        assert result.count("User-Agent=") == 1
        assert parse_query(result)[USER_AGENT_KEY] == user_agent()

    @pytest.mark.parametrize("url", [":invalidURL:", "", "not a url", "http://[invalid"])
    def test_add_user_agent_invalid_url(self, url):
        """Test that an unparsable URL fails without a partial result."""
        with pytest.raises(TokenFinalizationError, match="failed to parse signed url"):
            add_user_agent(url)


class TestEncoding:
    """Tests for base64 token encoding."""

    def test_base64_encode_is_urlsafe_and_unpadded(self):
        """Test the token alphabet and padding."""
        # Lengths that would need one and two padding characters
        for url in ["https://a/?x=", "https://a/?x=1", "https://abc/?x=1>?"]:
            token = base64_encode(url)

            assert "=" not in token
            assert "+" not in token
            assert "/" not in token

    def test_base64_encode_matches_stdlib(self):
        """Test against the raw URL-safe encoding."""
        expected = base64.urlsafe_b64encode(SIGNED_URL.encode("utf-8")).decode("utf-8").rstrip("=")

        assert base64_encode(SIGNED_URL) == expected

    def test_decode_round_trip(self):
        """Test that decoding returns the original URL."""
        assert decode_auth_token(base64_encode(SIGNED_URL)) == SIGNED_URL

    def test_decode_is_idempotent(self):
        """Test that decoding the same token twice gives the same URL."""
        token = finalize_token(SIGNED_URL)

        assert decode_auth_token(token) == decode_auth_token(token)

    def test_finalize_token(self):
        """Test that finalize_token tags and encodes the URL."""
        token = finalize_token(SIGNED_URL)

        assert decode_auth_token(token) == add_user_agent(SIGNED_URL)

    def test_finalize_token_invalid_url(self):
        """Test that finalization fails on an invalid URL."""
        with pytest.raises(TokenFinalizationError):
            finalize_token(":invalidURL:")
