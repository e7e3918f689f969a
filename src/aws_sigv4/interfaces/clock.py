# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from datetime import datetime
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """A source of the current time used to timestamp signed requests."""

    def now(self) -> datetime:
        """Return the current time as a timezone-aware datetime."""
        ...
