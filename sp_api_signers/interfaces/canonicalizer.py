# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .._http import AWSRequest


@runtime_checkable
class Canonicalizer(Protocol):
    """Produces the canonical fragments of a request used by SigV4 signing.

    Every method is a pure function of the request it receives, apart from
    :py:meth:`initialize_headers` which adds the headers that must be signed.
    """

    def initialize_headers(self, request: AWSRequest) -> datetime:
        """Ensure ``host`` and ``x-amz-date`` are present on the request.

        :returns: The UTC signing time, which must be used for every value derived
            during the rest of the signing operation.
        """
        ...

    def extract_canonical_uri_parameters(self, request: AWSRequest) -> str:
        """The URI-encoded absolute path."""
        ...

    def extract_canonical_query_string(self, request: AWSRequest) -> str:
        """The sorted, URI-encoded query string."""
        ...

    def extract_canonical_headers(self, request: AWSRequest) -> str:
        """Newline terminated ``name:value`` lines for every signed header."""
        ...

    def extract_signed_headers(self, request: AWSRequest) -> str:
        """The names of the signed headers joined with ``;``."""
        ...

    def hash_request_body(self, request: AWSRequest) -> str:
        """Lowercase hex SHA-256 of the request body."""
        ...
