# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import hmac
import logging
import threading
from hashlib import sha256
from typing import Final, NamedTuple

logger: Final = logging.getLogger(__name__)

DEFAULT_MAX_CACHE_SIZE: Final = 50
SIGV4_TERMINATOR: Final = "aws4_request"

# Every derivation touches four stages, so a smaller cache could never hold one.
_STAGES: Final = 4

type _StageKey = tuple[str, ...]


class CacheInfo(NamedTuple):
    hits: int
    misses: int
    max_size: int
    current_size: int


class SigningKeyCache:
    """Memoizes the SigV4 signing key derivation chain.

    Components of Signing Key Calculation::

        DateKey              = HMAC-SHA256("AWS4"+"<SecretAccessKey>", "<YYYYMMDD>")
        DateRegionKey        = HMAC-SHA256(<DateKey>, "<aws-region>")
        DateRegionServiceKey = HMAC-SHA256(<DateRegionKey>, "<aws-service>")
        SigningKey           = HMAC-SHA256(<DateRegionServiceKey>, "aws4_request")

    Each stage is stored under the inputs consumed up to that point, so a
    ``DateKey`` is shared by every region and service signed with the same secret
    on the same day.

    When storing the stages derived by a call would grow the cache beyond
    ``max_size`` entries, the cache is emptied first and only those stages are kept.
    There is no per-entry eviction.

    Instances are safe to share between threads.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_CACHE_SIZE) -> None:
        self._validate_max_size(max_size)
        self._max_size = max_size
        self._entries: dict[_StageKey, bytes] = {}
        self._hits = 0
        self._misses = 0
        self._lock = threading.Lock()

    @property
    def max_size(self) -> int:
        return self._max_size

    @max_size.setter
    def max_size(self, value: int) -> None:
        self._validate_max_size(value)
        with self._lock:
            self._max_size = value
            if len(self._entries) > value:
                self._entries.clear()

    def derive_signing_key(
        self, secret: str, short_date: str, region: str, service: str
    ) -> bytes:
        """Return the signing key for the given secret and credential scope.

        :param secret: The secret access key.
        :param short_date: The scope date in ``YYYYMMDD`` form.
        :param region: The signing region, e.g. ``us-east-1``.
        :param service: The signing service name, e.g. ``ec2``.
        """
        inputs = (short_date, region, service, SIGV4_TERMINATOR)
        with self._lock:
            batch: dict[_StageKey, bytes] = {}
            key = f"AWS4{secret}".encode()
            stage_key: _StageKey = (secret,)
            for value in inputs:
                stage_key = (*stage_key, value)
                cached = self._entries.get(stage_key)
                if cached is None:
                    self._misses += 1
                    cached = _hmac(key, value)
                    batch[stage_key] = cached
                else:
                    self._hits += 1
                key = cached

            if batch:
                self._store(batch)
            else:
                logger.debug("Signing key cache hit for scope %s.", "/".join(inputs))
            return key

    def _store(self, batch: dict[_StageKey, bytes]) -> None:
        if len(self._entries) + len(batch) > self._max_size:
            logger.debug(
                "Signing key cache would exceed %s entries, clearing %s entries.",
                self._max_size,
                len(self._entries),
            )
            self._entries.clear()
        self._entries.update(batch)

    def clear(self) -> None:
        """Remove every entry and reset the hit and miss counters."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def cache_info(self) -> CacheInfo:
        """Report stage hits and misses along with the current size."""
        with self._lock:
            return CacheInfo(
                hits=self._hits,
                misses=self._misses,
                max_size=self._max_size,
                current_size=len(self._entries),
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __repr__(self) -> str:
        return f"SigningKeyCache(max_size={self._max_size})"

    @staticmethod
    def _validate_max_size(value: int) -> None:
        if value < _STAGES:
            raise ValueError(
                f"max_size must be at least {_STAGES} to hold one signing key "
                f"derivation, got {value}."
            )


def _hmac(key: bytes, value: str) -> bytes:
    return hmac.new(key=key, msg=value.encode(), digestmod=sha256).digest()
