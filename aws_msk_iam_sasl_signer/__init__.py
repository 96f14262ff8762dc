"""AWS MSK IAM SASL signer - auth tokens for IAM access to Amazon MSK."""

from ._version import __version__
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
    BotocoreCredentialsProvider,
    Credentials,
    CredentialsProvider,
    StaticCredentialsProvider,
)
from .exceptions import (
    ConfigurationError,
    CredentialsError,
    DeadlineExceededError,
    OperationCancelledError,
    RequestBuildError,
    SignerError,
    SigningError,
    TokenFinalizationError,
)
from .provider import (
    MSKAuthTokenProvider,
    generate_auth_token,
    generate_auth_token_from_credentials_provider,
    generate_auth_token_from_options,
    generate_auth_token_from_profile,
    generate_auth_token_from_role_arn,
)
from .token import decode_auth_token

__all__ = [
    "__version__",
    # Token generation
    "MSKAuthTokenProvider",
    "generate_auth_token",
    "generate_auth_token_from_credentials_provider",
    "generate_auth_token_from_options",
    "generate_auth_token_from_profile",
    "generate_auth_token_from_role_arn",
    "decode_auth_token",
    # Options
    "SignerOptions",
    "CredentialSource",
    "DefaultChain",
    "NamedProfile",
    "AssumeRole",
    "ExternalProvider",
    "SignerContext",
    # Credentials
    "Credentials",
    "CredentialsProvider",
    "StaticCredentialsProvider",
    "BotocoreCredentialsProvider",
    # Errors
    "SignerError",
    "ConfigurationError",
    "CredentialsError",
    "RequestBuildError",
    "SigningError",
    "TokenFinalizationError",
    "OperationCancelledError",
    "DeadlineExceededError",
]
