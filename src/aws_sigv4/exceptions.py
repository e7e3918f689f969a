# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0


class SigningError(Exception):
    """Top-level exception to capture signing-related errors."""


class MalformedRequestError(SigningError, ValueError):
    """The request cannot be signed as given.

    Raised for invalid percent-encoding in the path or query, an unparseable date
    header, or a host that service and region cannot be derived from.
    """


class MissingCredentialsError(SigningError, ValueError):
    """The supplied identity is not usable AWS credentials."""


class ClockUnavailableError(SigningError, RuntimeError):
    """The configured clock failed to provide the current time."""
