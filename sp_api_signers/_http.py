# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""HTTP primitives consumed by the canonicalizer and the signer.

These types only describe a request. Sending it is left to whatever HTTP client the
caller uses.
"""

from __future__ import annotations

import re
from collections import Counter, OrderedDict
from collections.abc import Iterable, Iterator, Mapping
from copy import deepcopy
from dataclasses import dataclass, replace
from functools import cached_property
from typing import TypeAlias
from urllib.parse import quote, urlunparse

from .exceptions import CanonicalizationError

DEFAULT_PORTS: dict[str, int] = {"http": 80, "https": 443}

_PATH_LABEL_RE = re.compile(r"\{([^{}]*)\}")

Body: TypeAlias = bytes | bytearray | Iterable[bytes]


class Field:
    """A name-value pair representing a single header of an HTTP request.

    All field names are case insensitive and case-variance must be treated as
    equivalent. Names are preserved as given for transmission.
    """

    def __init__(self, *, name: str, values: Iterable[str] | None = None):
        self.name = name
        self.values: list[str] = list(values) if values is not None else []

    def add(self, value: str) -> None:
        """Append a value to a field."""
        self.values.append(value)

    def set(self, values: list[str]) -> None:
        """Overwrite existing field values."""
        self.values = values

    def remove(self, value: str) -> None:
        """Remove all matching entries from list."""
        try:
            while True:
                self.values.remove(value)
        except ValueError:
            return

    def as_string(self, delimiter: str = ",") -> str:
        """Get delimited string of all values.

        If the ``Field`` has zero values, the empty string is returned. Values are
        joined without quoting, which is the form used when the field is signed.
        """
        return delimiter.join(self.values)

    def as_tuples(self) -> list[tuple[str, str]]:
        """Get list of ``name``, ``value`` tuples where each tuple represents one
        value."""
        return [(self.name, val) for val in self.values]

    def __eq__(self, other: object) -> bool:
        """Name and values must match, in order."""
        if not isinstance(other, Field):
            return False
        return self.name == other.name and self.values == other.values

    def __repr__(self) -> str:
        return f"Field(name={self.name!r}, value={self.values!r})"


class Fields:
    def __init__(self, initial: Iterable[Field] | None = None):
        """Collection of header entries mapped by case-insensitive name.

        :param initial: Initial list of ``Field`` objects. Names must be unique once
        lower-cased; use :py:meth:`Field.add` for repeated headers.
        """
        init_fields = list(initial) if initial is not None else []
        init_field_names = [self._normalize_field_name(fld.name) for fld in init_fields]
        non_unique_names = [
            name for name, num in Counter(init_field_names).items() if num > 1
        ]
        if non_unique_names:
            raise ValueError(
                "Field names of the initial list of fields must be unique. The "
                "following normalized field names appear more than once: "
                f"{', '.join(non_unique_names)}."
            )
        self.entries: OrderedDict[str, Field] = OrderedDict(
            zip(init_field_names, init_fields)
        )

    @classmethod
    def from_mapping(cls, headers: Mapping[str, str | Iterable[str]]) -> Fields:
        """Build ``Fields`` from a plain header mapping.

        Names differing only by case are merged into a single multi-valued field.
        """
        fields = cls()
        for name, value in headers.items():
            values = [value] if isinstance(value, str) else list(value)
            if name in fields:
                for val in values:
                    fields[name].add(val)
            else:
                fields.set_field(Field(name=name, values=values))
        return fields

    def set_field(self, field: Field) -> None:
        """Alias for __setitem__ to utilize the field.name for the entry key."""
        self.__setitem__(field.name, field)

    def __setitem__(self, name: str, field: Field) -> None:
        """Set or override entry for a Field name."""
        normalized_name = self._normalize_field_name(name)
        normalized_field_name = self._normalize_field_name(field.name)
        if normalized_name != normalized_field_name:
            raise ValueError(
                f"Supplied key {name} does not match Field.name "
                f"provided: {normalized_field_name}"
            )
        self.entries[normalized_name] = field

    def get(self, key: str, default: Field | None = None) -> Field | None:
        return self[key] if key in self else default

    def __getitem__(self, name: str) -> Field:
        """Retrieve Field entry."""
        return self.entries[self._normalize_field_name(name)]

    def __delitem__(self, name: str) -> None:
        """Delete entry from collection."""
        del self.entries[self._normalize_field_name(name)]

    def remove_field(self, name: str) -> None:
        """Delete an entry if it exists."""
        self.entries.pop(self._normalize_field_name(name), None)

    def _normalize_field_name(self, name: str) -> str:
        return name.lower()

    def __eq__(self, other: object) -> bool:
        """Entries must match in values and order."""
        if not isinstance(other, Fields):
            return False
        return self.entries == other.entries

    def __iter__(self) -> Iterator[Field]:
        yield from self.entries.values()

    def __len__(self) -> int:
        return len(self.entries)

    def __repr__(self) -> str:
        return f"Fields({self.entries})"

    def __contains__(self, key: str) -> bool:
        return self._normalize_field_name(key) in self.entries


@dataclass(kw_only=True, frozen=True)
class URI:
    """Target location for an :py:class:`AWSRequest`."""

    scheme: str = "https"
    """For example ``http`` or ``https``."""

    host: str
    """The hostname, for example ``sellingpartnerapi-na.amazon.com``."""

    port: int | None = None
    """An explicit port number."""

    path: str | None = None
    """Path component of the URI. May contain ``{label}`` placeholders."""

    query: str | None = None
    """Query component of the URI as string, without the leading ``?``."""

    fragment: str | None = None
    """Part of the URI specification, but never transmitted or signed."""

    @property
    def netloc(self) -> str:
        """Construct netloc string in format ``{host}:{port}``.

        The port is only included if set.
        """
        return self._netloc

    # cached_property does NOT behave like property, it actually allows for setting.
    # Therefore we need a layer of indirection.
    @cached_property
    def _netloc(self) -> str:
        port = f":{self.port}" if self.port is not None else ""
        return f"{self.host}{port}"

    @property
    def host_header(self) -> str:
        """The netloc as sent in a ``Host`` header, omitting the scheme's default
        port."""
        if self.port is not None and DEFAULT_PORTS.get(self.scheme) == self.port:
            return self.host
        return self.netloc

    def build(self) -> str:
        """Construct URI string representation.

        Returns a string of the form ``{scheme}://{host}:{port}{path}?{query}#{fragment}``
        """
        components = (
            self.scheme,
            self.netloc,
            self.path or "",
            "",  # params
            self.query,
            self.fragment,
        )
        return urlunparse(components)


class AWSRequest:
    def __init__(
        self,
        *,
        destination: URI,
        method: str,
        fields: Fields | None = None,
        body: Body | None = None,
        path_parameters: Mapping[str, str] | None = None,
    ):
        """An HTTP request to be signed.

        :param destination: Where the request is sent. Its path may be a template
        such as ``/listings/2021-08-01/items/{sellerId}/{sku}``.
        :param method: The HTTP method, for example ``GET``.
        :param fields: The request headers.
        :param body: Raw body bytes, an iterable of byte chunks, or ``None``.
        :param path_parameters: Values for the placeholders in the destination path.
        """
        self.destination = destination
        self.method = method
        self.fields = fields if fields is not None else Fields()
        self.body = body
        self.path_parameters: dict[str, str] = dict(path_parameters or {})

    @property
    def resolved_path(self) -> str:
        """The destination path with every placeholder substituted."""
        return resolve_path_template(self.destination.path or "", self.path_parameters)

    @property
    def resolved_destination(self) -> URI:
        """The destination with a resolved path, ready to hand to a transport."""
        return replace(self.destination, path=self.resolved_path)

    def __deepcopy__(self, memo: dict[int, AWSRequest] | None = None) -> AWSRequest:
        if memo is None:
            memo = {}

        if id(self) in memo:
            return memo[id(self)]

        # the destination doesn't need to be copied because it's immutable
        # the body can't be copied because it may be an iterator
        new_instance = self.__class__(
            destination=self.destination,
            method=self.method,
            fields=deepcopy(self.fields, memo),
            body=self.body,
            path_parameters=self.path_parameters,
        )
        memo[id(self)] = new_instance
        return new_instance

    def __repr__(self) -> str:
        return (
            f"AWSRequest(method={self.method!r}, destination={self.destination!r}, "
            f"fields={self.fields!r})"
        )


def resolve_path_template(path: str, parameters: Mapping[str, str]) -> str:
    """Substitute ``{label}`` placeholders in ``path``.

    Each value is percent-encoded with no safe characters, so a ``/`` or ``,`` inside
    a value can never be confused with path structure.

    :param path: The path template.
    :param parameters: Values keyed by label name.
    :raises CanonicalizationError: If a label has no value or a brace is unbalanced.
    """

    def _substitute(match: re.Match[str]) -> str:
        label = match.group(1)
        if label not in parameters:
            raise CanonicalizationError(
                f"No value was supplied for the path label {{{label}}} in {path!r}."
            )
        try:
            return quote(str(parameters[label]), safe="")
        except UnicodeEncodeError as e:
            raise CanonicalizationError(
                f"The value for path label {{{label}}} cannot be encoded as UTF-8."
            ) from e

    resolved = _PATH_LABEL_RE.sub(_substitute, path)
    if "{" in resolved or "}" in resolved:
        raise CanonicalizationError(f"Unbalanced braces in path template {path!r}.")
    return resolved
