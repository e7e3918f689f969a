# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
from dataclasses import dataclass
from hashlib import sha256
from typing import Final

from ._cache import SIGV4_TERMINATOR
from ._clock import SigningDate
from .exceptions import MalformedRequestError

SIGV4_ALGORITHM: Final = "AWS4-HMAC-SHA256"
DEFAULT_REGION: Final = "us-east-1"
DEFAULT_GOV_REGION: Final = "us-gov-west-1"

_AWS_DNS_SUFFIXES: Final = (".amazonaws.com", ".amazonaws.com.cn")
_S3_REGION_ALIASES: Final = {"external-1": DEFAULT_REGION}


@dataclass(frozen=True)
class CredentialScope:
    """Binds a signature to a date, region and service."""

    date: str
    """The scope date in ``YYYYMMDD`` form."""

    region: str
    service: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "region", self.region.lower())
        object.__setattr__(self, "service", self.service.lower())

    def __str__(self) -> str:
        # Scope format: <YYYYMMDD>/<AWS Region>/<AWS Service>/aws4_request
        return f"{self.date}/{self.region}/{self.service}/{SIGV4_TERMINATOR}"


class StringToSignBuilder:
    """Builds the SigV4 string to sign.

    The string to sign concatenates the formal identifier of the signing algorithm,
    the signing DateTime, the scope of the credentials, and a hash of the canonical
    request. This is another checkpoint that can be used to ensure the signature is
    constructed as intended::

        Algorithm \\n
        RequestDateTime \\n
        CredentialScope  \\n
        HashedCanonicalRequest
    """

    def build(
        self, *, timestamp: SigningDate, scope: CredentialScope, canonical_request: str
    ) -> str:
        return (
            f"{SIGV4_ALGORITHM}\n"
            f"{timestamp.amz_date}\n"
            f"{scope}\n"
            f"{sha256(canonical_request.encode()).hexdigest()}"
        )


def resolve_service_and_region(
    host: str, *, service: str | None = None, region: str | None = None
) -> tuple[str, str]:
    """Determine the signing service and region for a request.

    Explicit values always win. Anything missing is parsed from an AWS host name of
    the form ``service.region.amazonaws.com``. Global endpoints such as
    ``iam.amazonaws.com`` sign for ``us-east-1``, and legacy S3 hosts such as
    ``s3-us-west-2.amazonaws.com`` are understood as well.

    :param host: The request host, optionally with a port.
    :param service: An explicit service name.
    :param region: An explicit region name.
    :raises MalformedRequestError: If a value is missing and the host is not an AWS
        host name.
    """
    if service is not None and region is not None:
        return service, region

    parsed_service, parsed_region = _parse_aws_host(host)
    return service or parsed_service, region or parsed_region


def _parse_aws_host(host: str) -> tuple[str, str]:
    hostname = _strip_port(host).lower().rstrip(".")
    prefix = None
    for suffix in _AWS_DNS_SUFFIXES:
        if hostname.endswith(suffix):
            prefix = hostname[: -len(suffix)]
            break

    if not prefix:
        raise MalformedRequestError(
            f"Unable to determine the signing service and region from host "
            f"{host!r}. Set the service and region explicitly on the signer."
        )

    labels = prefix.split(".")
    service = labels[0]
    region = labels[1] if len(labels) > 1 else None

    # Legacy S3 endpoints put the region after a dash: s3-us-west-2.amazonaws.com
    if service.startswith("s3-") and region is None:
        service, _, region = service.partition("-")
        region = _S3_REGION_ALIASES.get(region, region)

    if region is None:
        return service, DEFAULT_REGION
    if region == "us-gov":
        return service, DEFAULT_GOV_REGION
    return service, region


def _strip_port(host: str) -> str:
    if host.startswith("["):
        return host[1 : host.index("]")] if "]" in host else host
    name, _, port = host.rpartition(":")
    if name and port.isdigit():
        return name
    return host
