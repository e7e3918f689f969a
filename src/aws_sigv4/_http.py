# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""Minimal HTTP request model used as the input of the signer.

Transports are expected to translate their own request objects to and from
:py:class:`AWSRequest`.
"""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Iterable, Iterator
from copy import deepcopy
from dataclasses import dataclass
from urllib.parse import urlunsplit

import aws_sigv4.interfaces.http as interfaces_http


class Field(interfaces_http.Field):
    """A header name and every value sent for it.

    Names compare case-insensitively inside :py:class:`Fields` but keep the
    spelling they were given.
    """

    def __init__(self, *, name: str, values: Iterable[str] | None = None):
        self.name = name
        self.values: list[str] = list(values) if values is not None else []

    def add(self, value: str) -> None:
        self.values.append(value)

    def set(self, values: list[str]) -> None:
        self.values = list(values)

    def as_string(self, delimiter: str = ",") -> str:
        """Join the values into a single header line.

        A lone value is returned as is. When there are several, values holding a
        comma or a double quote are quoted so the line can be split again.
        """
        if len(self.values) == 1:
            return self.values[0]
        return delimiter.join(_quote_list_member(value) for value in self.values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Field):
            return False
        return self.name == other.name and self.values == other.values

    def __repr__(self) -> str:
        return f"Field(name={self.name!r}, value={self.values!r})"


class Fields(interfaces_http.Fields):
    """Header fields keyed by lowercased name, in insertion order."""

    def __init__(self, initial: Iterable[interfaces_http.Field] | None = None):
        """Constructor.

        :param initial: Fields to start with. Repeated names (ignoring case) are
            merged into the first occurrence, values kept in the order given.
        """
        self.entries: OrderedDict[str, interfaces_http.Field] = OrderedDict()
        for fld in initial or ():
            self.add_field(fld)

    def set_field(self, field: interfaces_http.Field) -> None:
        """Store ``field`` under its own name, replacing any existing entry."""
        self[field.name] = field

    def add_field(self, field: interfaces_http.Field) -> None:
        """Store ``field``, appending its values to an existing entry of that name.

        The values are copied, so later changes to ``field`` are not reflected.
        """
        if (current := self.get(field.name)) is not None:
            for value in field.values:
                current.add(value)
        else:
            self.set_field(Field(name=field.name, values=field.values))

    def get(
        self, name: str, default: interfaces_http.Field | None = None
    ) -> interfaces_http.Field | None:
        return self.entries.get(name.lower(), default)

    def __setitem__(self, name: str, field: interfaces_http.Field) -> None:
        if name.lower() != field.name.lower():
            raise ValueError(
                f"Supplied key {name} does not match Field.name "
                f"provided: {field.name}"
            )
        self.entries[name.lower()] = field

    def __getitem__(self, name: str) -> interfaces_http.Field:
        return self.entries[name.lower()]

    def __delitem__(self, name: str) -> None:
        del self.entries[name.lower()]

    def __contains__(self, name: str) -> bool:
        return name.lower() in self.entries

    def __iter__(self) -> Iterator[interfaces_http.Field]:
        return iter(self.entries.values())

    def __len__(self) -> int:
        return len(self.entries)

    def __eq__(self, other: object) -> bool:
        """Entries must match in values and order."""
        if not isinstance(other, Fields):
            return False
        return list(self.entries.items()) == list(other.entries.items())

    def __repr__(self) -> str:
        return f"Fields({list(self.entries.values())!r})"


@dataclass(kw_only=True, frozen=True)
class URI(interfaces_http.URI):
    """Target location of an :py:class:`AWSRequest`."""

    scheme: str = "https"
    host: str
    """The hostname, for example ``ec2.us-west-2.amazonaws.com``."""

    port: int | None = None
    path: str | None = None
    query: str | None = None
    """Raw, still percent-encoded query string without the leading ``?``."""

    fragment: str | None = None
    """Never signed or transmitted."""

    @property
    def netloc(self) -> str:
        """``host`` followed by ``:port`` when a port is set."""
        if self.port is None:
            return self.host
        return f"{self.host}:{self.port}"

    def build(self) -> str:
        """Render the URI as a string, e.g. ``https://host:port/path?query``."""
        return urlunsplit(
            (self.scheme, self.netloc, self.path or "", self.query, self.fragment)
        )


class AWSRequest(interfaces_http.Request):
    """A request to be signed in place by :py:class:`~aws_sigv4.SigV4Signer`."""

    def __init__(
        self,
        *,
        destination: URI,
        method: str,
        body: bytes | Iterable[bytes] | None = None,
        fields: Fields | None = None,
    ):
        self.destination = destination
        self.method = method
        self.body = body
        self.fields = fields if fields is not None else Fields()

    def __deepcopy__(self, memo: dict[int, object]) -> AWSRequest:
        # URI is immutable and the body may be a one-shot stream, so both are
        # shared with the copy.
        copied = AWSRequest(
            destination=self.destination,
            method=self.method,
            body=self.body,
            fields=deepcopy(self.fields, memo),
        )
        memo[id(self)] = copied
        return copied

    def __repr__(self) -> str:
        return (
            f"AWSRequest(method={self.method!r}, "
            f"destination={self.destination.build()!r}, fields={self.fields!r})"
        )


def _quote_list_member(value: str) -> str:
    if "," not in value and '"' not in value:
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'
