# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import hmac
import logging
from collections.abc import Callable
from copy import deepcopy
from dataclasses import dataclass
from datetime import datetime
from hashlib import sha256
from typing import Final, TypedDict

from ._cache import DEFAULT_MAX_CACHE_SIZE, SigningKeyCache
from ._canonical import Canonicalizer, PayloadHash
from ._clock import SigningDate, SystemClock
from ._http import AWSRequest, Field, Fields
from ._scope import (
    SIGV4_ALGORITHM,
    CredentialScope,
    StringToSignBuilder,
    resolve_service_and_region,
)
from .exceptions import ClockUnavailableError, MissingCredentialsError
from .interfaces.clock import Clock
from .interfaces.identity import AWSCredentialsIdentity

logger: Final = logging.getLogger(__name__)

UNSIGNED_PAYLOAD: Final = "UNSIGNED-PAYLOAD"

AMZ_DATE_HEADER: Final = "X-Amz-Date"
DATE_HEADER: Final = "Date"
SECURITY_TOKEN_HEADER: Final = "X-Amz-Security-Token"
CONTENT_SHA256_HEADER: Final = "X-Amz-Content-SHA256"
AUTHORIZATION_HEADER: Final = "Authorization"


class SigV4SigningProperties(TypedDict, total=False):
    """Per-request signing options.

    ``region`` and ``service`` take precedence over the values configured on the
    signer. ``date`` pins the signing time in ``YYYYMMDDTHHMMSSZ`` form.
    """

    region: str
    service: str
    date: str
    payload_signing_enabled: bool
    content_checksum_enabled: bool
    uri_encode_path: bool


@dataclass(frozen=True, kw_only=True)
class SigningResult:
    """The intermediate values of a signing pass, for inspection and debugging."""

    timestamp: SigningDate
    credential_scope: CredentialScope
    canonical_request: str
    signed_headers: str
    string_to_sign: str
    signature: str
    authorization: str

    @property
    def region(self) -> str:
        return self.credential_scope.region

    @property
    def service(self) -> str:
        return self.credential_scope.service


class SigV4Signer:
    """Request signer for applying the AWS Signature Version 4 algorithm.

    A signer may be shared between threads. It keeps derived signing keys in a
    :py:class:`~aws_sigv4.SigningKeyCache` for its whole lifetime.
    """

    def __init__(
        self,
        *,
        service_name: str | None = None,
        region_name: str | None = None,
        clock: Clock | None = None,
        cache: SigningKeyCache | None = None,
        max_cache_size: int = DEFAULT_MAX_CACHE_SIZE,
    ) -> None:
        """Constructor.

        :param service_name: Service to sign for instead of the one parsed from the
            request host.
        :param region_name: Region to sign for instead of the one parsed from the
            request host.
        :param clock: Time source for requests without a date header. Defaults to
            the system clock.
        :param cache: Signing key cache to use, for sharing one between signers.
        :param max_cache_size: Capacity of the signing key cache created when
            ``cache`` is not given.
        """
        self.service_name = service_name
        self.region_name = region_name
        self._clock: Clock = clock if clock is not None else SystemClock()
        self._cache = (
            cache if cache is not None else SigningKeyCache(max_size=max_cache_size)
        )
        self._canonicalizer = Canonicalizer()
        self._string_to_sign_builder = StringToSignBuilder()

    @property
    def cache(self) -> SigningKeyCache:
        return self._cache

    @property
    def max_cache_size(self) -> int:
        return self._cache.max_size

    @max_cache_size.setter
    def max_cache_size(self, value: int) -> None:
        self._cache.max_size = value

    def sign(
        self,
        *,
        request: AWSRequest,
        identity: AWSCredentialsIdentity,
        properties: SigV4SigningProperties | None = None,
    ) -> SigningResult:
        """Generate and apply a SigV4 signature to the supplied request.

        The request gains an ``Authorization`` field, an ``X-Amz-Date`` field unless
        it already carries a date, and an ``X-Amz-Security-Token`` field when the
        identity has a session token, replacing or dropping any stale one. If
        signing fails the fields are left as they were, though a one-shot body is
        still replaced by the buffer it was read into.

        :param request: An AWSRequest to sign prior to sending to the service.
        :param identity: A set of credentials representing an AWS Identity or role
            capacity.
        :param properties: Optional SigV4SigningProperties for this request only.
        :raises MissingCredentialsError: If ``identity`` lacks an access key or
            secret.
        :raises MalformedRequestError: If the request host, path, query, or date
            header cannot be interpreted.
        :raises ClockUnavailableError: If the clock fails.
        """
        self._validate_identity(identity=identity)
        if properties is None:
            properties = SigV4SigningProperties()

        # Header changes are made on a copy and only applied once signing succeeds.
        signing_fields = deepcopy(request.fields)
        updates = Fields()
        removals: list[str] = []

        def stage(field: Field) -> None:
            signing_fields.set_field(field)
            updates.set_field(field)

        timestamp = self._resolve_timestamp(
            fields=signing_fields, properties=properties, stage=stage
        )
        service, region = resolve_service_and_region(
            request.destination.host,
            service=properties.get("service", self.service_name),
            region=properties.get("region", self.region_name),
        )
        scope = CredentialScope(
            date=timestamp.short_date, region=region, service=service
        )
        if identity.session_token is not None:
            stage(Field(name=SECURITY_TOKEN_HEADER, values=[identity.session_token]))
        elif SECURITY_TOKEN_HEADER in signing_fields:
            # Left over from signing with temporary credentials.
            del signing_fields[SECURITY_TOKEN_HEADER]
            removals.append(SECURITY_TOKEN_HEADER)

        payload = self._resolve_payload_hash(
            request=request, fields=signing_fields, properties=properties
        )
        try:
            if (
                properties.get("content_checksum_enabled", False)
                and CONTENT_SHA256_HEADER not in signing_fields
            ):
                stage(Field(name=CONTENT_SHA256_HEADER, values=[payload.value]))

            canonical = self._canonicalizer.canonical_request(
                request=AWSRequest(
                    destination=request.destination,
                    method=request.method,
                    body=payload.body,
                    fields=signing_fields,
                ),
                payload_hash=payload.value,
                uri_encode_path=properties.get("uri_encode_path", True),
            )
            string_to_sign = self._string_to_sign_builder.build(
                timestamp=timestamp, scope=scope, canonical_request=canonical.text
            )
            logger.debug("Signing with headers %s.", canonical.signed_headers)
            logger.debug("String to sign:\n%s", string_to_sign)

            signature = self._signature(
                string_to_sign=string_to_sign,
                secret_key=identity.secret_access_key,
                scope=scope,
            )
        finally:
            # Hashing may have drained a one-shot body into the buffer.
            request.body = payload.body

        authorization = self.generate_authorization_field(
            credential=f"{identity.access_key_id}/{scope}",
            signed_headers=canonical.signed_headers.split(";"),
            signature=signature,
        )
        stage(authorization)

        for name in removals:
            del request.fields[name]
        for field in updates:
            request.fields.set_field(field)

        return SigningResult(
            timestamp=timestamp,
            credential_scope=scope,
            canonical_request=canonical.text,
            signed_headers=canonical.signed_headers,
            string_to_sign=string_to_sign,
            signature=signature,
            authorization=authorization.as_string(),
        )

    def generate_authorization_field(
        self, *, credential: str, signed_headers: list[str], signature: str
    ) -> Field:
        """Generate the `Authorization` field.

        :param credential:
            Credential scope string for generating the Authorization header.
            Defined as:
                <access_key>/<date>/<region>/<service>/<request_type>
        :param signed_headers:
            A list of the field names used in signing.
        :param signature:
            Final hash of the SigV4 signing algorithm generated from the
            canonical request and string to sign.
        """
        signed_headers_str = ";".join(signed_headers)
        auth_str = (
            f"{SIGV4_ALGORITHM} Credential={credential}, "
            f"SignedHeaders={signed_headers_str}, Signature={signature}"
        )
        return Field(name=AUTHORIZATION_HEADER, values=[auth_str])

    def _signature(
        self, *, string_to_sign: str, secret_key: str, scope: CredentialScope
    ) -> str:
        """Sign the string to sign with the key scoped to the request's credential
        scope."""
        signing_key = self._cache.derive_signing_key(
            secret_key, scope.date, scope.region, scope.service
        )
        return hmac.new(
            key=signing_key, msg=string_to_sign.encode(), digestmod=sha256
        ).hexdigest()

    def _validate_identity(self, *, identity: AWSCredentialsIdentity) -> None:
        """Check the identity carries usable credentials.

        Expiration is not checked, refreshing credentials is left to the caller.
        """
        if not isinstance(identity, AWSCredentialsIdentity):  # pyright: ignore
            raise MissingCredentialsError(
                "Received unexpected value for identity parameter. Expected "
                f"AWSCredentialIdentity but received {type(identity)}."
            )
        if not identity.access_key_id:
            raise MissingCredentialsError("The identity has an empty access key ID.")
        if not identity.secret_access_key:
            raise MissingCredentialsError(
                "The identity has an empty secret access key."
            )

    def _resolve_timestamp(
        self,
        *,
        fields: Fields,
        properties: SigV4SigningProperties,
        stage: Callable[[Field], None],
    ) -> SigningDate:
        if (amz_date := fields.get(AMZ_DATE_HEADER)) is not None:
            timestamp = SigningDate.parse(amz_date.as_string())
            stage(Field(name=amz_date.name, values=[timestamp.amz_date]))
            return timestamp

        # Requests carrying a legacy Date header are signed with it as-is.
        if (date := fields.get(DATE_HEADER)) is not None:
            return SigningDate.parse(date.as_string())

        if "date" in properties:
            timestamp = SigningDate.parse(properties["date"])
        else:
            timestamp = self._now()
        stage(Field(name=AMZ_DATE_HEADER, values=[timestamp.amz_date]))
        return timestamp

    def _now(self) -> SigningDate:
        try:
            now = self._clock.now()
        except Exception as e:
            raise ClockUnavailableError(
                f"Unable to read the current time from {self._clock!r}."
            ) from e
        if not isinstance(now, datetime) or now.tzinfo is None:
            raise ClockUnavailableError(
                f"Expected a timezone-aware datetime from {self._clock!r}, "
                f"got {now!r}."
            )
        return SigningDate(now)

    def _resolve_payload_hash(
        self,
        *,
        request: AWSRequest,
        fields: Fields,
        properties: SigV4SigningProperties,
    ) -> PayloadHash:
        if (content_sha256 := fields.get(CONTENT_SHA256_HEADER)) is not None:
            return PayloadHash(value=content_sha256.as_string(), body=request.body)

        if not self._should_sha256_sign_payload(
            request=request, properties=properties
        ):
            return PayloadHash(value=UNSIGNED_PAYLOAD, body=request.body)

        return self._canonicalizer.hash_payload(body=request.body)

    def _should_sha256_sign_payload(
        self, *, request: AWSRequest, properties: SigV4SigningProperties
    ) -> bool:
        # All insecure connections should be signed
        if request.destination.scheme != "https":
            return True

        return properties.get("payload_signing_enabled", True)
