"""Finalizing a presigned URL into an MSK IAM auth token."""

import base64
import platform
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from ._version import __version__
from .exceptions import TokenFinalizationError

USER_AGENT_KEY = "User-Agent"
LIB_NAME = "aws-msk-iam-sasl-signer-python"


def user_agent() -> str:
    """Client tag appended to every token: ``<lib>/<version>/<python-version>``."""
    return "/".join([LIB_NAME, __version__, platform.python_version()])


def add_user_agent(signed_url: str) -> str:
    """
    Add the User-Agent query parameter to a signed URL.

    Existing parameters keep their order and User-Agent is appended
    (replacing any previous value).

    Args:
        signed_url: Presigned URL

    Returns:
        URL with the User-Agent parameter

    Raises:
        TokenFinalizationError: If the URL cannot be parsed
    """
    try:
        parts = urlsplit(signed_url)
        # Accessing hostname validates bracketed hosts and ports
        hostname = parts.hostname
    except ValueError as e:
        raise TokenFinalizationError(f"failed to parse signed url: {e}") from e
    if not parts.scheme or not hostname:
        raise TokenFinalizationError(f"failed to parse signed url: {signed_url!r}")

    query = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key != USER_AGENT_KEY
    ]
    query.append((USER_AGENT_KEY, user_agent()))

    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


def base64_encode(signed_url: str) -> str:
    """URL-safe base64 of the URL with the padding stripped."""
    encoded = base64.urlsafe_b64encode(signed_url.encode("utf-8"))
    return encoded.decode("utf-8").rstrip("=")


def decode_auth_token(token: str) -> str:
    """Decode a token back into its signed URL."""
    padded = token + "=" * (-len(token) % 4)
    return base64.urlsafe_b64decode(padded.encode("utf-8")).decode("utf-8")


def finalize_token(signed_url: str) -> str:
    """Tag the signed URL with the user agent and encode it as a token."""
    return base64_encode(add_user_agent(signed_url))
