"""
Credential resolution for MSK IAM token generation.

Credentials come from exactly one source per call:
- the default boto3 chain (environment, shared files, container/instance metadata)
- a named profile from the shared config files
- temporary credentials from STS AssumeRole
- a caller-supplied CredentialsProvider

Nothing is cached between calls. In particular, every role-based call creates
a new STS client and a new AssumeRole session; callers that want caching or
refresh should pass their own provider (see BotocoreCredentialsProvider).
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Optional, Protocol, runtime_checkable

import boto3
from botocore.config import Config

from .context import SignerContext, call_with_context
from .exceptions import CredentialsError, OperationCancelledError

logger = logging.getLogger(__name__)

DEFAULT_SESSION_NAME = "MSKSASLDefaultSession"


@dataclass(frozen=True)
class Credentials:
    """AWS credentials used to sign a single token."""
    access_key: str
    secret_key: str = field(repr=False)
    session_token: Optional[str] = field(default=None, repr=False)

    def __post_init__(self):
        # An empty session token means long-term credentials
        if self.session_token == "":
            object.__setattr__(self, "session_token", None)


@runtime_checkable
class CredentialsProvider(Protocol):
    """Anything that can hand out credentials on demand."""

    def retrieve(self, context: Optional[SignerContext] = None) -> Credentials:
        ...


class StaticCredentialsProvider:
    """Provider that always returns the same credentials."""

    def __init__(self, credentials: Credentials):
        self._credentials = credentials

    def retrieve(self, context: Optional[SignerContext] = None) -> Credentials:
        return self._credentials


class BotocoreCredentialsProvider:
    """
    Adapts a botocore credentials object to CredentialsProvider.

    Refreshable botocore credentials (for example from an AssumeRole
    credential source in a profile) refresh themselves when frozen, so this
    is the way to get caching and refresh across token generations.
    """

    def __init__(self, botocore_credentials):
        self._credentials = botocore_credentials

    def retrieve(self, context: Optional[SignerContext] = None) -> Credentials:
        frozen = self._credentials.get_frozen_credentials()
        return Credentials(
            access_key=frozen.access_key,
            secret_key=frozen.secret_key,
            session_token=frozen.token,
        )


@contextmanager
def _credential_errors() -> Iterator[None]:
    """Wrap any resolution failure as a CredentialsError."""
    try:
        yield
    except (OperationCancelledError, CredentialsError):
        raise
    except Exception as e:
        raise CredentialsError(f"failed to load credentials: {e}") from e


def _client_config(
    aws_max_retries: Optional[int] = None,
    context: Optional[SignerContext] = None,
) -> Config:
    """Build the botocore config for STS clients."""
    kwargs = {}
    if aws_max_retries is not None:
        kwargs["retries"] = {
            "max_attempts": aws_max_retries,
            "mode": "standard",
        }
    remaining = context.remaining() if context is not None else None
    if remaining is not None:
        # botocore rejects a zero timeout
        timeout = max(remaining, 0.001)
        kwargs["connect_timeout"] = timeout
        kwargs["read_timeout"] = timeout
    return Config(**kwargs)


def _session_credentials(session: boto3.Session) -> Credentials:
    credentials = session.get_credentials()
    if credentials is None:
        raise CredentialsError("failed to load credentials: no AWS credentials found")

    frozen = credentials.get_frozen_credentials()
    return Credentials(
        access_key=frozen.access_key,
        secret_key=frozen.secret_key,
        session_token=frozen.token,
    )


def _check_credentials(credentials) -> Credentials:
    if not isinstance(credentials, Credentials):
        raise CredentialsError(
            "failed to load credentials: provider returned "
            f"{type(credentials).__name__}, expected Credentials"
        )
    if not credentials.access_key or not credentials.secret_key:
        raise CredentialsError(
            "failed to load credentials: access key id and secret access key are required"
        )
    return credentials


def log_caller_identity(
    credentials: Credentials,
    region: str,
    context: Optional[SignerContext] = None,
    aws_max_retries: Optional[int] = None,
) -> None:
    """
    Log the identity behind the credentials at DEBUG level.

    This makes an extra STS GetCallerIdentity call and is meant for
    troubleshooting only. Failures are logged, never raised.
    """
    if not logger.isEnabledFor(logging.DEBUG):
        return

    try:
        session = boto3.Session(
            aws_access_key_id=credentials.access_key,
            aws_secret_access_key=credentials.secret_key,
            aws_session_token=credentials.session_token,
            region_name=region,
        )
        sts = session.client("sts", config=_client_config(aws_max_retries, context))
        identity = call_with_context(context, sts.get_caller_identity)
        logger.debug(
            "Credentials Identity: {UserId: %s, Account: %s, Arn: %s}",
            identity.get("UserId"),
            identity.get("Account"),
            identity.get("Arn"),
        )
    except Exception as e:
        logger.debug("Failed to retrieve caller identity: %s", e, exc_info=True)


def _finish(
    credentials: Credentials,
    region: str,
    context: Optional[SignerContext],
    aws_debug_creds: bool,
    aws_max_retries: Optional[int] = None,
) -> Credentials:
    if aws_debug_creds:
        log_caller_identity(credentials, region, context, aws_max_retries)
    return credentials


def load_default_credentials(
    region: str,
    context: Optional[SignerContext] = None,
    aws_debug_creds: bool = False,
) -> Credentials:
    """
    Load credentials from the default boto3 credential chain.

    Args:
        region: AWS region the session is scoped to
        context: Optional cancellation/deadline carrier
        aws_debug_creds: Log the caller identity at DEBUG level

    Returns:
        Resolved Credentials

    Raises:
        CredentialsError: If the chain yields no usable credentials
        OperationCancelledError: If the context is cancelled or expires
    """
    logger.debug("Loading credentials from the default chain for %s", region)
    with _credential_errors():
        session = boto3.Session(region_name=region)
        credentials = call_with_context(context, _session_credentials, session)
    return _finish(credentials, region, context, aws_debug_creds)


def load_credentials_from_profile(
    region: str,
    aws_profile: str,
    context: Optional[SignerContext] = None,
    aws_debug_creds: bool = False,
) -> Credentials:
    """
    Load credentials from a named profile in the shared config files.

    Args:
        region: AWS region the session is scoped to
        aws_profile: Profile name
        context: Optional cancellation/deadline carrier
        aws_debug_creds: Log the caller identity at DEBUG level

    Raises:
        CredentialsError: If the profile is missing or has no credentials
    """
    logger.debug("Loading credentials from profile %s", aws_profile)
    with _credential_errors():
        session = boto3.Session(profile_name=aws_profile, region_name=region)
        credentials = call_with_context(context, _session_credentials, session)
    return _finish(credentials, region, context, aws_debug_creds)


def _assume_role(sts, role_arn: str, sts_session_name: str) -> Credentials:
    try:
        response = sts.assume_role(
            RoleArn=role_arn,
            RoleSessionName=sts_session_name,
        )
    except Exception as e:
        raise CredentialsError(
            f"failed to load credentials: unable to assume role, {role_arn}: {e}"
        ) from e

    role_credentials = response["Credentials"]
    return Credentials(
        access_key=role_credentials["AccessKeyId"],
        secret_key=role_credentials["SecretAccessKey"],
        session_token=role_credentials["SessionToken"],
    )


def load_credentials_from_role_arn(
    region: str,
    role_arn: str,
    sts_session_name: Optional[str] = None,
    sts_region: Optional[str] = None,
    aws_max_retries: Optional[int] = None,
    context: Optional[SignerContext] = None,
    aws_debug_creds: bool = False,
) -> Credentials:
    """
    Assume a role and return its temporary credentials.

    A new STS client is created for every call. To reuse and refresh the
    assumed-role session, pass your own provider instead.

    Args:
        region: AWS region used for signing and the ambient session
        role_arn: ARN of the role to assume
        sts_session_name: Role session name (default: MSKSASLDefaultSession)
        sts_region: Region of the STS endpoint (default: region)
        aws_max_retries: Max attempts for the STS call
        context: Optional cancellation/deadline carrier
        aws_debug_creds: Log the caller identity at DEBUG level

    Raises:
        CredentialsError: If the ambient session or AssumeRole fails
    """
    sts_session_name = sts_session_name or DEFAULT_SESSION_NAME
    sts_region = sts_region or region
    logger.debug(
        "Assuming role %s (session %s) via STS in %s",
        role_arn, sts_session_name, sts_region,
    )
    with _credential_errors():
        session = boto3.Session(region_name=region)
        sts = session.client(
            "sts",
            region_name=sts_region,
            config=_client_config(aws_max_retries, context),
        )
        credentials = call_with_context(
            context, _assume_role, sts, role_arn, sts_session_name
        )
    return _finish(credentials, region, context, aws_debug_creds, aws_max_retries)


def load_credentials_from_provider(
    provider: CredentialsProvider,
    region: str,
    context: Optional[SignerContext] = None,
    aws_debug_creds: bool = False,
) -> Credentials:
    """
    Retrieve credentials from a caller-supplied provider.

    The provider's result is passed through unchanged after a shape check;
    its exceptions are wrapped as CredentialsError.
    """
    logger.debug("Loading credentials from %s", type(provider).__name__)
    with _credential_errors():
        credentials = call_with_context(context, provider.retrieve, context)
        credentials = _check_credentials(credentials)
    return _finish(credentials, region, context, aws_debug_creds)
