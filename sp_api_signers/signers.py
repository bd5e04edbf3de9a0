# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import datetime
import hmac
import logging
from collections.abc import Iterator
from copy import deepcopy
from dataclasses import dataclass
from hashlib import sha256

from ._http import AWSRequest, Field
from ._identity import AWSAuthenticationCredentials
from .canonicalizer import SIGV4_TIMESTAMP_FORMAT, SigV4Canonicalizer
from .exceptions import ConfigurationError, CryptoError
from .interfaces.canonicalizer import Canonicalizer

logger = logging.getLogger(__name__)

SIGV4_DATE_FORMAT: str = "%Y%m%d"


@dataclass(kw_only=True, frozen=True)
class SigningContext:
    """Values derived during a single call to :py:meth:`SigV4Signer.sign`."""

    signing_time: datetime.datetime
    canonical_request_hash: str
    string_to_sign: str
    signed_headers: str
    signature: str


class SigV4Signer:
    """Request signer for applying the AWS Signature Version 4 algorithm to Selling
    Partner API requests.

    The signer only holds read-only configuration, so an instance may be shared
    across threads as long as every call signs its own request.
    """

    ALGORITHM: str = "AWS4-HMAC-SHA256"
    SERVICE_NAME: str = "execute-api"
    TERMINATOR: str = "aws4_request"

    def __init__(
        self,
        credentials: AWSAuthenticationCredentials,
        *,
        canonicalizer: Canonicalizer | None = None,
    ):
        """
        :param credentials: The credentials and region to sign with.
        :param canonicalizer: Produces the canonical request fragments. Defaults to
            :py:class:`SigV4Canonicalizer`.
        """
        if not isinstance(credentials, AWSAuthenticationCredentials):
            raise ConfigurationError(
                "Received unexpected value for credentials. Expected "
                f"AWSAuthenticationCredentials but received {type(credentials)}."
            )
        self._credentials = credentials
        self._canonicalizer = (
            canonicalizer if canonicalizer is not None else SigV4Canonicalizer()
        )

    def sign(self, request: AWSRequest) -> AWSRequest:
        """Generate and apply a SigV4 signature to a copy of the supplied request.

        The supplied request's headers are never modified. A body that is a one-shot
        iterator is read into a list of chunks on the supplied request before signing
        starts, so it can still be sent, or signed again, whether or not signing
        succeeds. Signing the same request again captures a new signing time unless it
        carries its own ``X-Amz-Date``.

        :param request: An AWSRequest to sign prior to sending to the service.
        :returns: A new request with the ``Host``, ``X-Amz-Date``, ``Authorization``
            and, for temporary credentials, ``X-Amz-Security-Token`` headers set.
        """
        credentials = self._credentials
        self._retain_one_shot_body(request=request)
        new_request = deepcopy(request)
        self._apply_security_token(request=new_request)

        signing_time = self._canonicalizer.initialize_headers(new_request)
        canonical_request, signed_headers = self._build_canonical_request(new_request)
        canonical_request_hash = sha256(canonical_request.encode()).hexdigest()

        string_to_sign = self.build_string_to_sign(
            signing_time, canonical_request_hash, credentials.region
        )
        signature = self.calculate_signature(
            string_to_sign, signing_time, credentials.secret_key, credentials.region
        )

        context = SigningContext(
            signing_time=signing_time,
            canonical_request_hash=canonical_request_hash,
            string_to_sign=string_to_sign,
            signed_headers=signed_headers,
            signature=signature,
        )
        logger.debug(
            "Signing %s request. SignedHeaders=%s\nString to sign:\n%s",
            new_request.method,
            context.signed_headers,
            context.string_to_sign,
        )
        return self.add_signature(
            new_request,
            credentials.access_key_id,
            context.signed_headers,
            context.signature,
            credentials.region,
            context.signing_time,
        )

    def canonical_request(self, request: AWSRequest) -> str:
        """The canonical request is a standardized string laying out the components used
        in the SigV4 signing algorithm. This is useful to quickly compare inputs to find
        signature mismatches and unintended variances.

        The SigV4 specification defines the canonical request to be:
            <HTTPMethod>\\n
            <CanonicalURI>\\n
            <CanonicalQueryString>\\n
            <CanonicalHeaders>\\n
            <SignedHeaders>\\n
            <HashedPayload>

        The request should already have been passed through
        :py:meth:`Canonicalizer.initialize_headers`.
        """
        canonical_request, _ = self._build_canonical_request(request)
        return canonical_request

    def _build_canonical_request(self, request: AWSRequest) -> tuple[str, str]:
        canonicalizer = self._canonicalizer
        canonical_path = canonicalizer.extract_canonical_uri_parameters(request)
        canonical_query = canonicalizer.extract_canonical_query_string(request)
        canonical_fields = canonicalizer.extract_canonical_headers(request)
        signed_headers = canonicalizer.extract_signed_headers(request)
        canonical_payload = canonicalizer.hash_request_body(request)
        canonical_request = (
            f"{request.method.upper()}\n"
            f"{canonical_path}\n"
            f"{canonical_query}\n"
            f"{canonical_fields}\n"
            f"{signed_headers}\n"
            f"{canonical_payload}"
        )
        return canonical_request, signed_headers

    def build_string_to_sign(
        self,
        signing_time: datetime.datetime,
        canonical_request_hash: str,
        region: str,
    ) -> str:
        """The string to sign concatenates the formal identifier of the signing
        algorithm, the signing DateTime, the scope of our credentials, and a hash of
        the canonical request.

        The SigV4 specification defines the string to sign as:
            Algorithm \\n
            RequestDateTime \\n
            CredentialScope  \\n
            HashedCanonicalRequest
        """
        return (
            f"{self.ALGORITHM}\n"
            f"{signing_time.strftime(SIGV4_TIMESTAMP_FORMAT)}\n"
            f"{self.credential_scope(signing_time, region)}\n"
            f"{canonical_request_hash}"
        )

    def credential_scope(self, signing_time: datetime.datetime, region: str) -> str:
        # Scope format: <YYYYMMDD>/<AWS Region>/<AWS Service>/aws4_request
        date_stamp = signing_time.strftime(SIGV4_DATE_FORMAT)
        return f"{date_stamp}/{region}/{self.SERVICE_NAME}/{self.TERMINATOR}"

    def calculate_signature(
        self,
        string_to_sign: str,
        signing_time: datetime.datetime,
        secret_key: str,
        region: str,
    ) -> str:
        """Sign the string to sign.

        In SigV4, a signing key is created that is scoped to a specific region and
        service. The date, region, service and resulting signing key are individually
        hashed, then the composite hash is used to sign the string to sign.
        """

        # Components of Signing Key Calculation
        #
        # DateKey              = HMAC-SHA256("AWS4"+"<SecretAccessKey>", "<YYYYMMDD>")
        # DateRegionKey        = HMAC-SHA256(<DateKey>, "<aws-region>")
        # DateRegionServiceKey = HMAC-SHA256(<DateRegionKey>, "<aws-service>")
        # SigningKey = HMAC-SHA256(<DateRegionServiceKey>, "aws4_request")
        try:
            k_date = self._hash(
                key=f"AWS4{secret_key}".encode(),
                value=signing_time.strftime(SIGV4_DATE_FORMAT),
            )
            k_region = self._hash(key=k_date, value=region)
            k_service = self._hash(key=k_region, value=self.SERVICE_NAME)
            k_signing = self._hash(key=k_service, value=self.TERMINATOR)
            return self._hash(key=k_signing, value=string_to_sign).hex()
        except (TypeError, ValueError) as e:
            raise CryptoError("Failed to derive the SigV4 signature.") from e

    def _hash(self, key: bytes, value: str) -> bytes:
        return hmac.new(key=key, msg=value.encode(), digestmod=sha256).digest()

    def add_signature(
        self,
        request: AWSRequest,
        access_key_id: str,
        signed_headers: str,
        signature: str,
        region: str,
        signing_time: datetime.datetime,
    ) -> AWSRequest:
        """Set the ``Authorization`` header, replacing any existing one.

        The header has the form:
            AWS4-HMAC-SHA256 Credential=<access_key>/<scope>,
            SignedHeaders=<signed_headers>, Signature=<signature>
        """
        credential = f"{access_key_id}/{self.credential_scope(signing_time, region)}"
        auth_str = (
            f"{self.ALGORITHM} Credential={credential}, "
            f"SignedHeaders={signed_headers}, Signature={signature}"
        )
        request.fields.set_field(Field(name="Authorization", values=[auth_str]))
        return request

    def _retain_one_shot_body(self, *, request: AWSRequest) -> None:
        # Iterators can only be read once; seekable streams are rewound by the
        # canonicalizer instead.
        body = request.body
        if (
            not isinstance(body, Iterator)
            or isinstance(body, bytes | bytearray)
            or (hasattr(body, "seek") and hasattr(body, "tell"))
        ):
            return
        request.body = list(body)

    def _apply_security_token(self, *, request: AWSRequest) -> None:
        # Use set_field to overwrite rather than append to an existing token.
        session_token = self._credentials.session_token
        if session_token is not None:
            request.fields.set_field(
                Field(name="X-Amz-Security-Token", values=[session_token])
            )
        else:
            request.fields.remove_field("X-Amz-Security-Token")

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(access_key_id="
            f"{self._credentials.access_key_id!r}, region="
            f"{self._credentials.region!r})"
        )
