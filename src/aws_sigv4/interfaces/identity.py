# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from datetime import UTC, datetime
from typing import Protocol, runtime_checkable


@runtime_checkable
class Identity(Protocol):
    """Who a request is made on behalf of."""

    expiration: datetime | None = None
    """When the identity stops being valid, in UTC. ``None`` means never."""

    @property
    def is_expired(self) -> bool:
        if self.expiration is None:
            return False
        return datetime.now(tz=UTC) >= self.expiration


@runtime_checkable
class AWSCredentialsIdentity(Identity, Protocol):
    """An access key pair, optionally with the session token of temporary
    credentials.

    The signer reads these values for a single call and never checks
    :py:attr:`is_expired`; refreshing credentials is up to the caller.
    """

    access_key_id: str
    secret_access_key: str
    session_token: str | None = None
