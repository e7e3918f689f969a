# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import hmac
from concurrent.futures import ThreadPoolExecutor
from hashlib import sha256

import pytest
from aws_sigv4 import DEFAULT_MAX_CACHE_SIZE, CacheInfo, SigningKeyCache

SECRET = "wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY"


def derive_uncached(secret: str, date: str, region: str, service: str) -> bytes:
    key = f"AWS4{secret}".encode()
    for value in (date, region, service, "aws4_request"):
        key = hmac.new(key, value.encode(), sha256).digest()
    return key


def test_default_max_size() -> None:
    cache = SigningKeyCache()
    assert cache.max_size == DEFAULT_MAX_CACHE_SIZE == 50
    assert len(cache) == 0


def test_derives_documented_signing_key() -> None:
    # Example signing key from the AWS General Reference.
    cache = SigningKeyCache()
    key = cache.derive_signing_key(SECRET, "20120215", "us-east-1", "iam")
    assert key.hex() == (
        "f4780e2d9f65fa895f9c67b32ce1baf0b0d8a43505a000a1a9e090d414db404d"
    )


def test_cached_key_matches_fresh_derivation() -> None:
    cache = SigningKeyCache()
    first = cache.derive_signing_key(SECRET, "20110909", "us-east-1", "host")
    second = cache.derive_signing_key(SECRET, "20110909", "us-east-1", "host")
    assert first == second
    assert first == derive_uncached(SECRET, "20110909", "us-east-1", "host")


def test_counts_hits_and_misses_per_stage() -> None:
    cache = SigningKeyCache()
    cache.derive_signing_key(SECRET, "20110909", "us-east-1", "host")
    assert cache.cache_info() == CacheInfo(
        hits=0, misses=4, max_size=50, current_size=4
    )

    cache.derive_signing_key(SECRET, "20110909", "us-east-1", "host")
    assert cache.cache_info() == CacheInfo(
        hits=4, misses=4, max_size=50, current_size=4
    )

    # Only the service and terminator stages differ.
    cache.derive_signing_key(SECRET, "20110909", "us-east-1", "iam")
    assert cache.cache_info() == CacheInfo(
        hits=6, misses=6, max_size=50, current_size=6
    )


def test_stages_are_keyed_by_secret() -> None:
    cache = SigningKeyCache()
    a = cache.derive_signing_key("secret-a", "20110909", "us-east-1", "host")
    b = cache.derive_signing_key("secret-b", "20110909", "us-east-1", "host")
    assert a != b
    assert len(cache) == 8


def test_overflow_clears_and_keeps_only_new_stages() -> None:
    cache = SigningKeyCache(max_size=8)
    cache.derive_signing_key("buzz", "20110909", "us-east-1", "host")
    assert len(cache) == 4
    cache.derive_signing_key("baz", "20110909", "us-east-1", "host")
    assert len(cache) == 8
    cache.derive_signing_key("paz", "20110909", "us-east-1", "host")
    assert len(cache) == 4

    # The earlier secrets were evicted along with everything else.
    misses = cache.cache_info().misses
    cache.derive_signing_key("buzz", "20110909", "us-east-1", "host")
    assert cache.cache_info().misses == misses + 4


def test_partial_hit_stores_only_missing_stages() -> None:
    cache = SigningKeyCache(max_size=6)
    cache.derive_signing_key(SECRET, "20110909", "us-east-1", "host")
    cache.derive_signing_key(SECRET, "20110909", "us-east-1", "iam")
    assert len(cache) == 6

    # Two more stages would exceed the limit, so only they are kept.
    cache.derive_signing_key(SECRET, "20110909", "us-east-1", "sts")
    assert len(cache) == 2


@pytest.mark.parametrize("max_size", [-1, 0, 3])
def test_rejects_max_size_below_one_derivation(max_size: int) -> None:
    with pytest.raises(ValueError):
        SigningKeyCache(max_size=max_size)

    cache = SigningKeyCache()
    with pytest.raises(ValueError):
        cache.max_size = max_size
    assert cache.max_size == DEFAULT_MAX_CACHE_SIZE


def test_shrinking_below_current_size_clears() -> None:
    cache = SigningKeyCache()
    cache.derive_signing_key("a", "20110909", "us-east-1", "host")
    cache.derive_signing_key("b", "20110909", "us-east-1", "host")
    cache.max_size = 8
    assert len(cache) == 8
    cache.max_size = 4
    assert len(cache) == 0
    assert cache.max_size == 4


def test_clear_resets_counters() -> None:
    cache = SigningKeyCache()
    cache.derive_signing_key(SECRET, "20110909", "us-east-1", "host")
    cache.clear()
    assert cache.cache_info() == CacheInfo(
        hits=0, misses=0, max_size=50, current_size=0
    )


def test_repr_does_not_leak_secrets() -> None:
    cache = SigningKeyCache(max_size=8)
    cache.derive_signing_key(SECRET, "20110909", "us-east-1", "host")
    assert repr(cache) == "SigningKeyCache(max_size=8)"


def test_concurrent_derivations_agree() -> None:
    cache = SigningKeyCache(max_size=12)
    secrets = [f"secret-{i % 7}" for i in range(300)]

    def derive(secret: str) -> tuple[str, bytes]:
        return secret, cache.derive_signing_key(
            secret, "20110909", "us-east-1", "host"
        )

    with ThreadPoolExecutor(max_workers=8) as executor:
        results = list(executor.map(derive, secrets))

    for secret, key in results:
        assert key == derive_uncached(secret, "20110909", "us-east-1", "host")
    info = cache.cache_info()
    assert info.hits + info.misses == 4 * len(secrets)
    assert len(cache) <= 12
