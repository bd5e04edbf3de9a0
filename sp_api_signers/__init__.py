# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""SP-API Signers provides stand-alone AWS Signature Version 4 signing for Selling
Partner API requests, for use with any HTTP client."""

from __future__ import annotations

from ._http import AWSRequest, Field, Fields, URI
from ._identity import AWSAuthenticationCredentials
from .canonicalizer import SigV4Canonicalizer
from .exceptions import (
    CanonicalizationError,
    ConfigurationError,
    CryptoError,
    SigningException,
)
from .signers import SigningContext, SigV4Signer

__license__ = "Apache-2.0"
__version__ = "0.1.0"

__all__ = (
    "URI",
    "AWSAuthenticationCredentials",
    "AWSRequest",
    "CanonicalizationError",
    "ConfigurationError",
    "CryptoError",
    "Field",
    "Fields",
    "SigV4Canonicalizer",
    "SigV4Signer",
    "SigningContext",
    "SigningException",
)
