# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from dataclasses import dataclass, field

from .exceptions import ConfigurationError

_REQUIRED_CREDENTIAL_FIELDS: tuple[str, ...] = ("access_key_id", "secret_key", "region")


@dataclass(kw_only=True, frozen=True)
class AWSAuthenticationCredentials:
    """Credentials and region used to sign Selling Partner API requests.

    Instances are immutable. To rotate keys, construct a new instance and a new
    signer around it.
    """

    access_key_id: str
    """A unique identifier for an AWS user or role."""

    secret_key: str = field(repr=False)
    """The secret used together with the access key ID to derive signing keys."""

    region: str
    """The AWS region the signature is scoped to, for example ``us-east-1``."""

    session_token: str | None = field(default=None, repr=False)
    """A temporary token identifying the session of temporary credentials."""

    def __post_init__(self) -> None:
        for name in _REQUIRED_CREDENTIAL_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ConfigurationError(
                    f"{name} is required for signing and must be a non-empty string."
                )
        if self.session_token is not None and (
            not isinstance(self.session_token, str) or not self.session_token
        ):
            raise ConfigurationError(
                "session_token must be a non-empty string when provided."
            )
