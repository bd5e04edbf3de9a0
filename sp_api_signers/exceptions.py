# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0


class SigningException(Exception):
    """Top-level exception to capture request signing errors."""


class ConfigurationError(SigningException, ValueError):
    """The signer was configured with missing or invalid credentials."""


class CanonicalizationError(SigningException, ValueError):
    """A request component could not be normalized into its canonical form."""


class CryptoError(SigningException):
    """An underlying hash or HMAC primitive failed."""
