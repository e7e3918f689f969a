# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import io
import re
from collections.abc import Iterable
from hashlib import sha256
from typing import Final, NamedTuple
from urllib.parse import quote, unquote

from .exceptions import MalformedRequestError
from .interfaces.http import URI, Fields, Request
from .interfaces.io import Seekable

HEADERS_EXCLUDED_FROM_SIGNING: Final[tuple[str, ...]] = ("authorization",)
DEFAULT_PORTS: Final[dict[str, int]] = {"http": 80, "https": 443}

EMPTY_SHA256_HASH: Final = (
    "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
)

_INVALID_ESCAPE: Final = re.compile(r"%(?![0-9A-Fa-f]{2})")
_REPEATED_SLASHES: Final = re.compile(r"/{2,}")

type Body = bytes | Iterable[bytes] | None


class CanonicalRequest(NamedTuple):
    text: str
    """The newline separated canonical request that gets hashed."""

    signed_headers: str
    """Semicolon separated names of the headers included in ``text``."""


class PayloadHash(NamedTuple):
    value: str
    """Lowercase hex SHA-256 digest of the body."""

    body: Body
    """The body to send after hashing.

    A one-shot iterable can only be read once, so it is replaced with a buffer
    holding the bytes that were hashed.
    """


class Canonicalizer:
    """Builds the SigV4 canonical form of a request.

    The canonical request is a standardized string laying out the components used
    in the SigV4 signing algorithm. This is useful to quickly compare inputs to find
    signature mismatches and unintended variances::

        <HTTPMethod>\\n
        <CanonicalURI>\\n
        <CanonicalQueryString>\\n
        <CanonicalHeaders>\\n
        <SignedHeaders>\\n
        <HashedPayload>
    """

    def canonical_request(
        self,
        *,
        request: Request,
        payload_hash: str,
        uri_encode_path: bool = True,
    ) -> CanonicalRequest:
        """Render the canonical request.

        :param request: The request to canonicalize. It is not modified.
        :param payload_hash: The hex encoded hash of the payload or a sentinel such
            as ``UNSIGNED-PAYLOAD``.
        :param uri_encode_path: Whether to normalize and percent-encode the path.
            S3 signs the path exactly as sent.
        :raises MalformedRequestError: If the path or query contains invalid
            percent-encoding.
        """
        canonical_path = self.canonical_path(
            path=request.destination.path, uri_encode_path=uri_encode_path
        )
        canonical_query = self.canonical_query(query=request.destination.query)
        headers = self.canonical_headers(
            fields=request.fields, destination=request.destination
        )
        canonical_fields = "".join(f"{key}:{value}\n" for key, value in headers.items())
        signed_headers = ";".join(headers)
        text = (
            f"{request.method.upper()}\n"
            f"{canonical_path}\n"
            f"{canonical_query}\n"
            f"{canonical_fields}\n"
            f"{signed_headers}\n"
            f"{payload_hash}"
        )
        return CanonicalRequest(text=text, signed_headers=signed_headers)

    def canonical_path(self, *, path: str | None, uri_encode_path: bool = True) -> str:
        if not path:
            return "/"

        if not uri_encode_path:
            return _remove_dot_segments(path, remove_consecutive_slashes=False)

        # Encoded slashes and dots are data, so segments are decoded only after
        # dot segments have been removed.
        return "/".join(
            quote(string=_strict_unquote(segment, component="path"), safe="")
            for segment in _remove_dot_segments(path).split("/")
        )

    def canonical_query(self, *, query: str | None) -> str:
        if not query:
            return ""

        query_parts: list[tuple[str, str]] = []
        for pair in query.split("&"):
            if not pair:
                continue
            key, _, value = pair.partition("=")
            query_parts.append(
                (
                    quote(string=_strict_unquote(key, component="query"), safe=""),
                    quote(string=_strict_unquote(value, component="query"), safe=""),
                )
            )
        # key-value pairs must be in sorted order for their encoded forms.
        return "&".join(f"{key}={value}" for key, value in sorted(query_parts))

    def canonical_headers(self, *, fields: Fields, destination: URI) -> dict[str, str]:
        """Map each signed header name to its canonical value, sorted by name."""
        normalized_fields = {
            field.name.lower(): _canonical_field_value(field.values)
            for field in fields
            if field.name.lower() not in HEADERS_EXCLUDED_FROM_SIGNING
        }
        if "host" not in normalized_fields:
            normalized_fields["host"] = _normalize_host_field(uri=destination)

        return dict(sorted(normalized_fields.items()))

    def hash_payload(self, *, body: Body) -> PayloadHash:
        if body is None:
            return PayloadHash(value=EMPTY_SHA256_HASH, body=body)

        if isinstance(body, str):
            return PayloadHash(value=sha256(body.encode()).hexdigest(), body=body)

        if isinstance(body, bytes | bytearray | memoryview):
            return PayloadHash(value=sha256(body).hexdigest(), body=body)

        if not isinstance(body, Iterable):
            raise TypeError(
                "Request bodies must be bytes or an Iterable[bytes], "
                f"got {type(body)}."
            )

        checksum = sha256()
        if isinstance(body, Seekable):
            position = body.tell()
            try:
                for chunk in body:
                    checksum.update(chunk)
            finally:
                body.seek(position)
            return PayloadHash(value=checksum.hexdigest(), body=body)

        buffer = io.BytesIO()
        for chunk in body:
            buffer.write(chunk)
            checksum.update(chunk)
        buffer.seek(0)
        return PayloadHash(value=checksum.hexdigest(), body=buffer)


def _canonical_field_value(values: list[str]) -> str:
    # Trim each value and collapse inner runs of whitespace to a single space.
    return ",".join(" ".join(value.split()) for value in values)


def _normalize_host_field(*, uri: URI) -> str:
    if uri.port is not None and DEFAULT_PORTS.get(uri.scheme) == uri.port:
        return uri.host
    return uri.netloc


def _strict_unquote(value: str, *, component: str) -> str:
    if (match := _INVALID_ESCAPE.search(value)) is not None:
        raise MalformedRequestError(
            f"Invalid percent-encoding at offset {match.start()} of the request "
            f"{component}: {value!r}"
        )
    try:
        return unquote(value, errors="strict")
    except UnicodeDecodeError as e:
        raise MalformedRequestError(
            f"Percent-encoded bytes in the request {component} are not valid "
            f"UTF-8: {value!r}"
        ) from e


def _remove_dot_segments(path: str, remove_consecutive_slashes: bool = True) -> str:
    """Removes dot segments from a path per :rfc:`3986#section-5.2.4`.

    Optionally removes consecutive slashes, true by default.

    :param path: The path to modify.
    :param remove_consecutive_slashes: Whether to remove consecutive slashes.
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
    if remove_consecutive_slashes:
        result = _REPEATED_SLASHES.sub("/", result)
    return result or "/"
