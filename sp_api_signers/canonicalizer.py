# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import datetime
import io
import logging
from collections.abc import Iterable
from hashlib import sha256
from urllib.parse import parse_qsl, quote

from ._http import AWSRequest, Field
from .exceptions import CanonicalizationError

logger = logging.getLogger(__name__)

HEADERS_EXCLUDED_FROM_SIGNING: tuple[str, ...] = (
    "accept",
    "accept-encoding",
    "authorization",
    "connection",
    "expect",
    "user-agent",
    "x-amzn-trace-id",
)

SIGV4_TIMESTAMP_FORMAT: str = "%Y%m%dT%H%M%SZ"
EMPTY_SHA256_HASH = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


class SigV4Canonicalizer:
    """Converts the parts of an :py:class:`AWSRequest` into the canonical strings the
    AWS Signature Version 4 algorithm hashes.

    The canonicalizer holds no state, so a single instance can be shared by any
    number of signers and threads.
    """

    def initialize_headers(self, request: AWSRequest) -> datetime.datetime:
        """Ensure the ``Host`` and ``X-Amz-Date`` headers are present.

        An ``X-Amz-Date`` already on the request is kept and becomes the signing
        time. Otherwise the current UTC time, truncated to whole seconds, is written.

        :param request: The request to update in place.
        :returns: The signing time.
        :raises CanonicalizationError: If the host is unknown or an existing
            ``X-Amz-Date`` is not of the form ``YYYYMMDDTHHMMSSZ``.
        """
        if "Host" not in request.fields:
            if not request.destination.host:
                raise CanonicalizationError(
                    "Cannot sign a request without a host. Set a host on the "
                    "request destination or supply a Host header."
                )
            request.fields.set_field(
                Field(name="Host", values=[request.destination.host_header])
            )

        existing_date = request.fields.get("X-Amz-Date")
        if existing_date is not None:
            value = existing_date.as_string().strip()
            try:
                parsed = datetime.datetime.strptime(value, SIGV4_TIMESTAMP_FORMAT)
            except ValueError as e:
                raise CanonicalizationError(
                    f"Invalid X-Amz-Date header {value!r}. Expected the format "
                    "YYYYMMDDTHHMMSSZ."
                ) from e
            return parsed.replace(tzinfo=datetime.UTC)

        signing_time = datetime.datetime.now(datetime.UTC).replace(microsecond=0)
        request.fields.set_field(
            Field(
                name="X-Amz-Date",
                values=[signing_time.strftime(SIGV4_TIMESTAMP_FORMAT)],
            )
        )
        logger.debug("Added X-Amz-Date header for signing time %s", signing_time)
        return signing_time

    def extract_canonical_uri_parameters(self, request: AWSRequest) -> str:
        """Build the canonical URI.

        Path labels are substituted first, with their values encoded once. The
        resulting path is normalized and then encoded again as literal text, so an
        encoded ``,`` in a label value is signed as ``%252C``.
        """
        path = request.resolved_path
        if any(_is_control_character(char) for char in path):
            raise CanonicalizationError(
                f"The request path {path!r} contains control characters."
            )
        if not path.startswith("/"):
            path = f"/{path}"
        normalized_path = _remove_dot_segments(path)
        try:
            return quote(string=normalized_path, safe="/")
        except UnicodeEncodeError as e:
            raise CanonicalizationError(
                f"The request path {path!r} cannot be encoded as UTF-8."
            ) from e

    def extract_canonical_query_string(self, request: AWSRequest) -> str:
        query = request.destination.query
        if not query:
            return ""

        try:
            query_params = parse_qsl(qs=query, keep_blank_values=True, errors="strict")
        except ValueError as e:
            raise CanonicalizationError(
                f"Unable to parse the query string {query!r}."
            ) from e
        query_parts = (
            (quote(string=key, safe=""), quote(string=value, safe=""))
            for key, value in query_params
        )
        # key-value pairs must be in sorted order for their encoded forms.
        return "&".join(f"{key}={value}" for key, value in sorted(query_parts))

    def extract_canonical_headers(self, request: AWSRequest) -> str:
        fields = self._normalize_signing_fields(request=request)
        return "".join(f"{name}:{value}\n" for name, value in fields.items())

    def extract_signed_headers(self, request: AWSRequest) -> str:
        return ";".join(self._normalize_signing_fields(request=request))

    def hash_request_body(self, request: AWSRequest) -> str:
        """Compute the hex SHA-256 digest of the request body.

        Seekable bodies are returned to their starting position. Other iterables can
        only be read once, so their contents are buffered and the request body is
        replaced with the buffer.
        """
        body = request.body

        if body is None:
            return EMPTY_SHA256_HASH

        if isinstance(body, bytes | bytearray):
            return sha256(body).hexdigest()

        if not isinstance(body, Iterable):
            raise CanonicalizationError(
                f"Unable to hash a request body of type {type(body)}. The body must "
                "be bytes or an Iterable[bytes]."
            )

        checksum = sha256()
        if hasattr(body, "seek") and hasattr(body, "tell"):
            position = body.tell()
            try:
                for chunk in body:
                    checksum.update(_as_bytes(chunk))
            finally:
                body.seek(position)
        else:
            buffer = io.BytesIO()
            for chunk in body:
                chunk = _as_bytes(chunk)
                buffer.write(chunk)
                checksum.update(chunk)
            buffer.seek(0)
            request.body = buffer
        return checksum.hexdigest()

    def _normalize_signing_fields(self, *, request: AWSRequest) -> dict[str, str]:
        normalized_fields = {
            field.name.lower(): self._format_field_value(field)
            for field in request.fields
            if field.name.lower() not in HEADERS_EXCLUDED_FROM_SIGNING
        }
        return dict(sorted(normalized_fields.items()))

    def _format_field_value(self, field: Field) -> str:
        for value in field.values:
            if not isinstance(value, str):
                raise CanonicalizationError(
                    f"Header {field.name!r} has a non-string value of type "
                    f"{type(value)}."
                )
            if any(_is_control_character(char) for char in value if char != "\t"):
                raise CanonicalizationError(
                    f"Header {field.name!r} contains control characters."
                )
        return ",".join(" ".join(value.split()) for value in field.values)


def _as_bytes(chunk: object) -> bytes:
    if not isinstance(chunk, bytes | bytearray | memoryview):
        raise CanonicalizationError(
            f"Request body chunks must be bytes, but received {type(chunk)}."
        )
    return bytes(chunk)


def _is_control_character(char: str) -> bool:
    return ord(char) < 0x20 or char == "\x7f"


def _remove_dot_segments(path: str) -> str:
    """Removes dot segments from a path per :rfc:`3986#section-5.2.4`, then collapses
    consecutive slashes.

    :param path: The path to modify.
    :returns: The path with dot segments removed.
    """
    output: list[str] = []
    for segment in path.split("/"):
        if segment == ".":
            continue
        elif segment != "..":
            output.append(segment)
        elif output:
            output.pop()
    if path.startswith("/") and (not output or output[0]):
        output.insert(0, "")
    if output and path.endswith(("/.", "/..")):
        output.append("")
    result = "/".join(output)
    while "//" in result:
        result = result.replace("//", "/")
    return result
