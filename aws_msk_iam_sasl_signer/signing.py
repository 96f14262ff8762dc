"""
Request construction and SigV4 presigning for MSK IAM tokens.

The token is a presigned GET of ``https://kafka.<region>.amazonaws.com/``
with the ``kafka-cluster:Connect`` action. The SigV4 computation itself is
done by botocore; this module makes sure it is driven with one timestamp,
one region, and one service name, so the credential scope, X-Amz-Date and
signature always agree.
"""

import datetime
import hashlib
import logging
from dataclasses import dataclass
from typing import Optional, Protocol
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from botocore.auth import SIGV4_TIMESTAMP, SigV4QueryAuth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials as BotocoreCredentials
from botocore.exceptions import NoCredentialsError

from .credentials import Credentials
from .exceptions import RequestBuildError, SigningError

logger = logging.getLogger(__name__)

ACTION_TYPE = "Action"
ACTION_NAME = "kafka-cluster:Connect"
SIGNING_NAME = "kafka-cluster"
EXPIRES_QUERY_KEY = "X-Amz-Expires"
DEFAULT_EXPIRY_SECONDS = 900
ENDPOINT_URL_TEMPLATE = "kafka.{}.amazonaws.com"

# Characters that would change the meaning of the URL if they appeared in the host
_HOST_DELIMITERS = set("/?#@[]\\ ")


@dataclass(frozen=True)
class UnsignedRequest:
    """The GET request handed to the signer."""
    host: str
    query: tuple[tuple[str, str], ...]
    method: str = "GET"
    scheme: str = "https"
    path: str = "/"

    @property
    def url(self) -> str:
        return urlunsplit((self.scheme, self.host, self.path, urlencode(self.query), ""))

    def query_value(self, key: str) -> Optional[str]:
        for name, value in self.query:
            if name == key:
                return value
        return None


@dataclass(frozen=True)
class SignedRequest:
    """Result of presigning: the URL and the headers covered by the signature."""
    url: str
    signed_headers: tuple[str, ...]


def endpoint_for_region(region: str) -> str:
    """Return the MSK endpoint host used in the token for a region."""
    return ENDPOINT_URL_TEMPLATE.format(region)


def build_request(expiry_seconds: int, endpoint_host: str) -> UnsignedRequest:
    """
    Build the unsigned request for the Connect action.

    The query holds exactly Action and X-Amz-Expires, sorted by name.

    Args:
        expiry_seconds: Token lifetime in seconds
        endpoint_host: Host name, e.g. kafka.us-west-2.amazonaws.com

    Returns:
        UnsignedRequest

    Raises:
        RequestBuildError: If the host or the expiry cannot form a valid URL
    """
    if isinstance(expiry_seconds, bool) or not isinstance(expiry_seconds, int) or expiry_seconds <= 0:
        raise RequestBuildError(
            f"failed to build request for signing: invalid expiry {expiry_seconds!r}"
        )
    if not endpoint_host or _HOST_DELIMITERS.intersection(endpoint_host):
        raise RequestBuildError(
            f"failed to build request for signing: invalid endpoint host {endpoint_host!r}"
        )

    query = tuple(sorted({
        ACTION_TYPE: ACTION_NAME,
        EXPIRES_QUERY_KEY: str(expiry_seconds),
    }.items()))
    request = UnsignedRequest(host=endpoint_host, query=query)

    try:
        parsed = urlsplit(request.url)
        hostname = parsed.hostname
    except ValueError as e:
        raise RequestBuildError(f"failed to build request for signing: {e}") from e
    if hostname != endpoint_host.lower() or parsed.port is not None:
        raise RequestBuildError(
            f"failed to build request for signing: invalid endpoint host {endpoint_host!r}"
        )

    return request


def calculate_sha256_hash(text: str) -> str:
    """Hex-encoded SHA-256 of a UTF-8 string."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class RequestSigner(Protocol):
    """Presigning primitive used to turn an UnsignedRequest into a URL."""

    def sign(
        self,
        request: UnsignedRequest,
        credentials: Credentials,
        payload_hash: str,
        service_name: str,
        region: str,
        timestamp: datetime.datetime,
    ) -> SignedRequest:
        ...


class _FixedTimeQueryAuth(SigV4QueryAuth):
    """SigV4QueryAuth that signs with a given timestamp and payload hash."""

    def __init__(self, credentials, service_name, region_name, expires, payload_hash, timestamp):
        super().__init__(credentials, service_name, region_name, expires=expires)
        self._payload_hash = payload_hash
        self._timestamp = timestamp

    def payload(self, request):
        return self._payload_hash

    # Mirrors SigV4Auth.add_auth as of botocore 1.43 with the clock read
    # replaced; test_signing compares the result with stock SigV4QueryAuth.
    def add_auth(self, request):
        if self.credentials is None:
            raise NoCredentialsError()
        # scope(), X-Amz-Date and the signing key all read this value
        request.context["timestamp"] = self._timestamp.strftime(SIGV4_TIMESTAMP)
        self._modify_request_before_signing(request)
        canonical_request = self.canonical_request(request)
        string_to_sign = self.string_to_sign(request, canonical_request)
        signature = self.signature(string_to_sign, request)
        self._inject_signature_to_request(request, signature)
        return self.signed_headers(self.headers_to_sign(request))


class BotocoreRequestSigner:
    """RequestSigner backed by botocore's SigV4 query (presign) auth."""

    def sign(
        self,
        request: UnsignedRequest,
        credentials: Credentials,
        payload_hash: str,
        service_name: str,
        region: str,
        timestamp: datetime.datetime,
    ) -> SignedRequest:
        expires = request.query_value(EXPIRES_QUERY_KEY)
        if expires is None:
            raise ValueError(f"request has no {EXPIRES_QUERY_KEY} parameter")

        # botocore adds X-Amz-Expires itself from the expiry argument
        operation_query = [(k, v) for k, v in request.query if k != EXPIRES_QUERY_KEY]
        url = urlunsplit((
            request.scheme, request.host, request.path, urlencode(operation_query), "",
        ))

        auth = _FixedTimeQueryAuth(
            BotocoreCredentials(
                credentials.access_key,
                credentials.secret_key,
                credentials.session_token,
            ),
            service_name,
            region,
            int(expires),
            payload_hash,
            timestamp.astimezone(datetime.timezone.utc),
        )
        aws_request = AWSRequest(method=request.method, url=url)
        signed_headers = auth.add_auth(aws_request)

        return SignedRequest(
            url=aws_request.url,
            signed_headers=tuple(signed_headers.split(";")),
        )


def sign_request(
    request: UnsignedRequest,
    credentials: Credentials,
    region: str,
    timestamp: datetime.datetime,
    signer: Optional[RequestSigner] = None,
) -> SignedRequest:
    """
    Presign the request for the kafka-cluster signing scope.

    Args:
        request: Request from build_request
        credentials: Resolved credentials
        region: Signing region
        timestamp: Signing time (timezone-aware UTC)
        signer: Signing primitive (default: BotocoreRequestSigner)

    Returns:
        SignedRequest with the presigned URL

    Raises:
        SigningError: If the signer fails
    """
    signer = signer or BotocoreRequestSigner()
    try:
        signed = signer.sign(
            request,
            credentials,
            calculate_sha256_hash(""),
            SIGNING_NAME,
            region,
            timestamp,
        )
    except Exception as e:
        raise SigningError(f"failed to sign request with aws sig v4: {e}") from e

    logger.debug("Signed request for %s at %s", request.host, timestamp.isoformat())
    return signed


def parse_query(url: str) -> dict[str, str]:
    """Return the query parameters of a URL as a dict (last value wins)."""
    return dict(parse_qsl(urlsplit(url).query, keep_blank_values=True))
