# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""Structural types for the parts of an HTTP request the signer reads and writes.

Any request object with these shapes can be canonicalized; the concrete classes in
:py:mod:`aws_sigv4._http` are one implementation.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Protocol, runtime_checkable


class Field(Protocol):
    """One header name with all of its values."""

    name: str
    values: list[str]

    def add(self, value: str) -> None: ...

    def set(self, values: list[str]) -> None: ...

    def as_string(self, delimiter: str = ",") -> str:
        """Serialize the values into a single header line."""
        ...


class Fields(Protocol):
    """Headers of a request, looked up by case-insensitive name."""

    def set_field(self, field: Field) -> None:
        """Store ``field`` under its name, replacing any previous entry."""
        ...

    def __setitem__(self, name: str, field: Field) -> None: ...

    def __getitem__(self, name: str) -> Field: ...

    def __delitem__(self, name: str) -> None: ...

    def __contains__(self, name: str) -> bool: ...

    def __iter__(self) -> Iterator[Field]: ...

    def __len__(self) -> int: ...


@runtime_checkable
class URI(Protocol):
    """Where a request is sent."""

    scheme: str
    host: str
    port: int | None
    path: str | None
    query: str | None
    """The raw query string, still percent-encoded."""

    @property
    def netloc(self) -> str:
        """``host`` or ``host:port``."""
        ...

    def build(self) -> str: ...


class Request(Protocol):
    """A request that can be signed."""

    method: str
    destination: URI
    fields: Fields
    body: bytes | Iterable[bytes] | None
