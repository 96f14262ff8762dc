"""Signer options and the credential source they select."""

import os
from dataclasses import dataclass
from typing import Optional, Union

from dotenv import find_dotenv, load_dotenv

from .credentials import Credentials, CredentialsProvider, StaticCredentialsProvider
from .exceptions import ConfigurationError

ENV_PREFIX = "MSK_SIGNER_"


@dataclass(frozen=True)
class DefaultChain:
    """Use the default boto3 credential chain."""


@dataclass(frozen=True)
class NamedProfile:
    """Use a named profile from the shared config files."""
    name: str


@dataclass(frozen=True)
class AssumeRole:
    """Assume a role through STS."""
    role_arn: str
    session_name: Optional[str] = None
    sts_region: Optional[str] = None


@dataclass(frozen=True)
class ExternalProvider:
    """Delegate to a caller-supplied provider."""
    provider: CredentialsProvider


CredentialSource = Union[DefaultChain, NamedProfile, AssumeRole, ExternalProvider]


def _env_bool(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


@dataclass
class SignerOptions:
    """
    Input options for the signer.

    At most one of aws_profile, role_arn and aws_credentials may be set;
    with none set, the default credential chain is used.
    """

    # Region used for the endpoint host and the signature scope
    region: Optional[str] = None

    # Alternative credential sources (mutually exclusive)
    aws_profile: Optional[str] = None
    role_arn: Optional[str] = None
    aws_credentials: Optional[Union[Credentials, CredentialsProvider]] = None

    # AssumeRole tuning
    sts_session_name: Optional[str] = None
    sts_region: Optional[str] = None

    # Max attempts for STS calls, None keeps the botocore default
    aws_max_retries: Optional[int] = None

    # Log the caller identity at DEBUG level (extra STS call)
    aws_debug_creds: bool = False

    def validate(self) -> None:
        """
        Check the options without modifying them.

        Raises:
            ConfigurationError: If region is missing or several credential
                sources are set
        """
        if not self.region:
            raise ConfigurationError("region must be provided")

        sources = [
            self.aws_profile is not None,
            self.role_arn is not None,
            self.aws_credentials is not None,
        ]
        if sum(sources) > 1:
            raise ConfigurationError(
                "please provide only one of AWS profile, Role ARN and AWS Credentials"
            )

    def credential_source(self) -> CredentialSource:
        """Validate and return the selected credential source."""
        self.validate()

        if self.aws_profile is not None:
            return NamedProfile(self.aws_profile)
        if self.role_arn is not None:
            return AssumeRole(
                role_arn=self.role_arn,
                session_name=self.sts_session_name,
                sts_region=self.sts_region,
            )
        if self.aws_credentials is not None:
            provider = self.aws_credentials
            if isinstance(provider, Credentials):
                provider = StaticCredentialsProvider(provider)
            return ExternalProvider(provider)
        return DefaultChain()

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX) -> "SignerOptions":
        """
        Load options from environment variables (and a .env file if present).

        Region comes from AWS_REGION or AWS_DEFAULT_REGION; the other fields
        from prefixed variables such as MSK_SIGNER_ROLE_ARN.
        """
        load_dotenv(find_dotenv(usecwd=True))

        max_retries = os.getenv(f"{prefix}AWS_MAX_RETRIES")
        try:
            aws_max_retries = int(max_retries) if max_retries else None
        except ValueError as e:
            raise ConfigurationError(
                f"{prefix}AWS_MAX_RETRIES must be an integer, got {max_retries!r}"
            ) from e

        return cls(
            region=os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION"),
            aws_profile=os.getenv(f"{prefix}AWS_PROFILE") or None,
            role_arn=os.getenv(f"{prefix}ROLE_ARN") or None,
            sts_session_name=os.getenv(f"{prefix}STS_SESSION_NAME") or None,
            sts_region=os.getenv(f"{prefix}STS_REGION") or None,
            aws_max_retries=aws_max_retries,
            aws_debug_creds=_env_bool(os.getenv(f"{prefix}AWS_DEBUG_CREDS")),
        )
