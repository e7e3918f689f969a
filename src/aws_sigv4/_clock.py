# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import re
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import format_datetime, parsedate_to_datetime
from typing import Final, Self

from .exceptions import MalformedRequestError
from .interfaces.clock import Clock

SIGV4_TIMESTAMP_FORMAT: str = "%Y%m%dT%H%M%SZ"
SIGV4_DATE_FORMAT: str = "%Y%m%d"

_COMPACT_TIMESTAMP: Final = re.compile(r"\d{8}T\d{6}Z")


@dataclass(frozen=True)
class SigningDate:
    """The instant a request is signed at, in each rendering SigV4 uses."""

    value: datetime

    def __post_init__(self) -> None:
        if self.value.tzinfo is None:
            raise ValueError("SigningDate requires a timezone-aware datetime.")
        # Sub-second precision never reaches the wire.
        object.__setattr__(
            self, "value", self.value.astimezone(UTC).replace(microsecond=0)
        )

    @property
    def amz_date(self) -> str:
        """Compact ISO-8601 form, e.g. ``20110909T233600Z``."""
        return self.value.strftime(SIGV4_TIMESTAMP_FORMAT)

    @property
    def short_date(self) -> str:
        """Date used in the credential scope, e.g. ``20110909``."""
        return self.value.strftime(SIGV4_DATE_FORMAT)

    @property
    def rfc1123(self) -> str:
        """HTTP date form, e.g. ``Fri, 09 Sep 2011 23:36:00 GMT``."""
        return format_datetime(self.value, usegmt=True)

    @classmethod
    def parse(cls, value: str) -> Self:
        """Parse a compact ISO-8601 or an RFC-1123 timestamp.

        :raises MalformedRequestError: If ``value`` is in neither form.
        """
        value = value.strip()
        try:
            # strptime alone would accept single digit fields such as 2336Z.
            if _COMPACT_TIMESTAMP.fullmatch(value):
                parsed = datetime.strptime(value, SIGV4_TIMESTAMP_FORMAT)
                return cls(parsed.replace(tzinfo=UTC))
            parsed = parsedate_to_datetime(value)
        except (TypeError, ValueError) as e:
            raise MalformedRequestError(
                f"Unable to parse {value!r} as a signing timestamp. Expected "
                "the form 20110909T233600Z or Fri, 09 Sep 2011 23:36:00 GMT."
            ) from e
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return cls(parsed)

    def __str__(self) -> str:
        return self.amz_date


class SystemClock(Clock):
    """Reads the wall-clock time."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FixedClock(Clock):
    """Always reports the same instant. Useful for reproducible signatures."""

    def __init__(self, value: datetime | str) -> None:
        if isinstance(value, str):
            value = SigningDate.parse(value).value
        self._value = value

    def now(self) -> datetime:
        return self._value

    def __repr__(self) -> str:
        return f"FixedClock({self._value!r})"
