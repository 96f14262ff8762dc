"""
MSK IAM auth token generation.

One call per credential source. Each call resolves credentials, builds the
Connect request, presigns it, tags it with the user agent and returns the
base64 token together with its expiration time in epoch milliseconds.

Usage:
    from aws_msk_iam_sasl_signer import MSKAuthTokenProvider

    token, expiry_ms = MSKAuthTokenProvider.generate_auth_token("us-west-2")

    # With confluent-kafka's OAUTHBEARER callback
    provider = MSKAuthTokenProvider(SignerOptions(region="us-west-2"))
    consumer = Consumer({..., "oauth_cb": provider})
"""

import datetime
import logging
from typing import Optional

from .config import (
    AssumeRole,
    CredentialSource,
    DefaultChain,
    ExternalProvider,
    NamedProfile,
    SignerOptions,
)
from .context import SignerContext
from .credentials import (
    Credentials,
    CredentialsProvider,
    load_credentials_from_profile,
    load_credentials_from_provider,
    load_credentials_from_role_arn,
    load_default_credentials,
)
from .exceptions import ConfigurationError
from .signing import (
    DEFAULT_EXPIRY_SECONDS,
    RequestSigner,
    build_request,
    endpoint_for_region,
    sign_request,
)
from .token import finalize_token
from .tracing import add_token_span_attributes, traced

logger = logging.getLogger(__name__)

_SOURCE_NAMES = {
    DefaultChain: "default",
    NamedProfile: "profile",
    AssumeRole: "role_arn",
    ExternalProvider: "credentials_provider",
}


def resolve_credentials(
    source: CredentialSource,
    region: str,
    context: Optional[SignerContext] = None,
    aws_debug_creds: bool = False,
    aws_max_retries: Optional[int] = None,
) -> Credentials:
    """Resolve credentials from the selected source."""
    if isinstance(source, NamedProfile):
        return load_credentials_from_profile(
            region, source.name, context=context, aws_debug_creds=aws_debug_creds,
        )
    if isinstance(source, AssumeRole):
        return load_credentials_from_role_arn(
            region,
            source.role_arn,
            sts_session_name=source.session_name,
            sts_region=source.sts_region,
            aws_max_retries=aws_max_retries,
            context=context,
            aws_debug_creds=aws_debug_creds,
        )
    if isinstance(source, ExternalProvider):
        return load_credentials_from_provider(
            source.provider, region, context=context, aws_debug_creds=aws_debug_creds,
        )
    return load_default_credentials(region, context=context, aws_debug_creds=aws_debug_creds)


def construct_auth_token(
    region: str,
    credentials: Credentials,
    signer: Optional[RequestSigner] = None,
    timestamp: Optional[datetime.datetime] = None,
) -> tuple[str, int]:
    """
    Build, sign and encode a token from already-resolved credentials.

    Args:
        region: Signing region
        credentials: Resolved credentials
        signer: Signing primitive (default: botocore)
        timestamp: Signing time (default: now, UTC)

    Returns:
        Tuple of (token, expiration in epoch milliseconds)
    """
    timestamp = timestamp or datetime.datetime.now(datetime.timezone.utc)

    request = build_request(DEFAULT_EXPIRY_SECONDS, endpoint_for_region(region))
    signed = sign_request(request, credentials, region, timestamp, signer=signer)
    token = finalize_token(signed.url)

    expires_at = timestamp + datetime.timedelta(seconds=DEFAULT_EXPIRY_SECONDS)
    return token, int(expires_at.timestamp() * 1000)


def _generate(
    region: str,
    source: CredentialSource,
    context: Optional[SignerContext] = None,
    aws_debug_creds: bool = False,
    aws_max_retries: Optional[int] = None,
) -> tuple[str, int]:
    if not region:
        raise ConfigurationError("region must be provided")

    add_token_span_attributes(
        region=region,
        credential_source=_SOURCE_NAMES[type(source)],
        expiry_seconds=DEFAULT_EXPIRY_SECONDS,
    )

    credentials = resolve_credentials(
        source,
        region,
        context=context,
        aws_debug_creds=aws_debug_creds,
        aws_max_retries=aws_max_retries,
    )
    if context is not None:
        context.raise_if_done()

    token, expiry_ms = construct_auth_token(region, credentials)
    logger.debug("Generated MSK auth token for %s, expires at %d", region, expiry_ms)
    return token, expiry_ms


@traced(name="msk.generate_auth_token")
def generate_auth_token(
    region: str,
    aws_debug_creds: bool = False,
    context: Optional[SignerContext] = None,
) -> tuple[str, int]:
    """
    Generate a token using the default credential chain.

    Args:
        region: AWS region of the MSK cluster
        aws_debug_creds: Log the caller identity at DEBUG level (extra STS call)
        context: Optional cancellation/deadline carrier

    Returns:
        Tuple of (token, expiration in epoch milliseconds)
    """
    return _generate(region, DefaultChain(), context, aws_debug_creds)


@traced(name="msk.generate_auth_token_from_profile")
def generate_auth_token_from_profile(
    region: str,
    aws_profile: str,
    aws_debug_creds: bool = False,
    context: Optional[SignerContext] = None,
) -> tuple[str, int]:
    """Generate a token using credentials from a named profile."""
    return _generate(region, NamedProfile(aws_profile), context, aws_debug_creds)


@traced(name="msk.generate_auth_token_from_role_arn")
def generate_auth_token_from_role_arn(
    region: str,
    role_arn: str,
    sts_session_name: Optional[str] = None,
    sts_region: Optional[str] = None,
    aws_debug_creds: bool = False,
    context: Optional[SignerContext] = None,
    aws_max_retries: Optional[int] = None,
) -> tuple[str, int]:
    """
    Generate a token using temporary credentials from AssumeRole.

    A new STS client and role session are created on every call. For
    long-running clients, prefer a refreshing credentials provider.
    aws_max_retries caps the attempts of the STS calls (botocore default
    when None).
    """
    source = AssumeRole(role_arn, sts_session_name, sts_region)
    return _generate(region, source, context, aws_debug_creds, aws_max_retries)


@traced(name="msk.generate_auth_token_from_credentials_provider")
def generate_auth_token_from_credentials_provider(
    region: str,
    aws_credentials_provider: CredentialsProvider,
    aws_debug_creds: bool = False,
    context: Optional[SignerContext] = None,
) -> tuple[str, int]:
    """Generate a token using credentials from a caller-supplied provider."""
    return _generate(region, ExternalProvider(aws_credentials_provider), context, aws_debug_creds)


@traced(name="msk.generate_auth_token_from_options")
def generate_auth_token_from_options(
    options: SignerOptions,
    context: Optional[SignerContext] = None,
) -> tuple[str, int]:
    """Validate SignerOptions and generate a token from the source they select."""
    source = options.credential_source()
    return _generate(
        options.region,
        source,
        context,
        options.aws_debug_creds,
        options.aws_max_retries,
    )


class MSKAuthTokenProvider:
    """
    Token provider for Kafka clients.

    The static methods mirror the module-level functions. An instance bound
    to SignerOptions can be passed where a client expects a token callback:
    calling it returns (token, expiry in epoch seconds) as confluent-kafka's
    ``oauth_cb`` expects, and ``token()`` returns the bare token as
    kafka-python's AbstractTokenProvider expects.
    """

    generate_auth_token = staticmethod(generate_auth_token)
    generate_auth_token_from_profile = staticmethod(generate_auth_token_from_profile)
    generate_auth_token_from_role_arn = staticmethod(generate_auth_token_from_role_arn)
    generate_auth_token_from_credentials_provider = staticmethod(
        generate_auth_token_from_credentials_provider
    )

    def __init__(self, options: SignerOptions):
        options.validate()
        self.options = options

    def __call__(self, oauth_config: Optional[str] = None) -> tuple[str, float]:
        token, expiry_ms = generate_auth_token_from_options(self.options)
        return token, expiry_ms / 1000

    def token(self) -> str:
        token, _ = generate_auth_token_from_options(self.options)
        return token
