# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""AWS SigV4 Signer provides stand-alone AWS Signature Version 4 request signing
for use with HTTP tools such as AioHTTP, Curl, Requests, urllib3, etc."""

from __future__ import annotations

from ._cache import DEFAULT_MAX_CACHE_SIZE, CacheInfo, SigningKeyCache
from ._canonical import Canonicalizer, CanonicalRequest
from ._clock import FixedClock, SigningDate, SystemClock
from ._http import URI, AWSRequest, Field, Fields
from ._identity import AWSCredentialIdentity
from ._scope import CredentialScope, StringToSignBuilder, resolve_service_and_region
from .signers import SigningResult, SigV4Signer, SigV4SigningProperties

__license__ = "Apache-2.0"
__version__ = "0.1.0"

__all__ = (
    "DEFAULT_MAX_CACHE_SIZE",
    "URI",
    "AWSCredentialIdentity",
    "AWSRequest",
    "CacheInfo",
    "CanonicalRequest",
    "Canonicalizer",
    "CredentialScope",
    "Field",
    "Fields",
    "FixedClock",
    "SigV4Signer",
    "SigV4SigningProperties",
    "SigningDate",
    "SigningKeyCache",
    "SigningResult",
    "StringToSignBuilder",
    "SystemClock",
    "resolve_service_and_region",
)
