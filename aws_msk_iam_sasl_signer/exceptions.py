"""
Exceptions raised by the MSK IAM SASL signer.

Every stage of token generation raises its own subclass of SignerError and
chains the underlying exception as ``__cause__``, so callers can tell a bad
configuration from bad credentials from a service failure:

    try:
        token, expiry_ms = generate_auth_token("us-west-2")
    except CredentialsError as e:
        log.error("credentials: %s (caused by %r)", e, e.__cause__)
"""


class SignerError(Exception):
    """Base class for all signer errors."""


class ConfigurationError(SignerError):
    """Invalid SignerOptions, reported before any network activity."""


class CredentialsError(SignerError):
    """Credentials could not be resolved from the selected source."""


class RequestBuildError(SignerError):
    """The unsigned request could not be constructed."""


class SigningError(SignerError):
    """The signing primitive rejected the request or the credentials."""


class TokenFinalizationError(SignerError):
    """The signed URL could not be tagged or encoded."""


class OperationCancelledError(SignerError):
    """The caller cancelled the operation through its SignerContext."""


class DeadlineExceededError(OperationCancelledError):
    """The SignerContext deadline passed before the operation finished."""
