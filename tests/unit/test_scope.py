# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
from datetime import UTC, datetime
from hashlib import sha256

import pytest
from aws_sigv4 import (
    CredentialScope,
    SigningDate,
    StringToSignBuilder,
    resolve_service_and_region,
)
from aws_sigv4.exceptions import MalformedRequestError


@pytest.mark.parametrize(
    "host,expected",
    [
        ("ec2.us-west-2.amazonaws.com", ("ec2", "us-west-2")),
        ("EC2.US-WEST-2.AMAZONAWS.COM", ("ec2", "us-west-2")),
        ("dynamodb.eu-central-1.amazonaws.com:443", ("dynamodb", "eu-central-1")),
        ("iam.amazonaws.com", ("iam", "us-east-1")),
        ("sts.amazonaws.com.", ("sts", "us-east-1")),
        ("ec2.cn-north-1.amazonaws.com.cn", ("ec2", "cn-north-1")),
        ("s3-us-west-2.amazonaws.com", ("s3", "us-west-2")),
        ("s3-external-1.amazonaws.com", ("s3", "us-east-1")),
        ("s3.amazonaws.com", ("s3", "us-east-1")),
        ("iam.us-gov.amazonaws.com", ("iam", "us-gov-west-1")),
    ],
)
def test_resolve_from_host(host: str, expected: tuple[str, str]) -> None:
    assert resolve_service_and_region(host) == expected


@pytest.mark.parametrize(
    "host", ["www.example.com", "amazonaws.com", ".amazonaws.com", "", "localhost:8000"]
)
def test_resolve_from_unknown_host(host: str) -> None:
    with pytest.raises(MalformedRequestError):
        resolve_service_and_region(host)


def test_explicit_values_skip_host_parsing() -> None:
    assert resolve_service_and_region(
        "www.example.com", service="foo", region="bar"
    ) == ("foo", "bar")


@pytest.mark.parametrize(
    "service,region,expected",
    [
        ("sqs", None, ("sqs", "us-west-2")),
        (None, "eu-west-1", ("ec2", "eu-west-1")),
    ],
)
def test_partial_overrides(
    service: str | None, region: str | None, expected: tuple[str, str]
) -> None:
    resolved = resolve_service_and_region(
        "ec2.us-west-2.amazonaws.com", service=service, region=region
    )
    assert resolved == expected


def test_partial_override_still_needs_aws_host() -> None:
    with pytest.raises(MalformedRequestError):
        resolve_service_and_region("www.example.com", service="foo")


def test_credential_scope() -> None:
    scope = CredentialScope(date="20110909", region="US-East-1", service="IAM")
    assert scope.region == "us-east-1"
    assert scope.service == "iam"
    assert str(scope) == "20110909/us-east-1/iam/aws4_request"


def test_string_to_sign() -> None:
    canonical_request = "GET\n/\n\nhost:example.com\n\nhost\nUNSIGNED-PAYLOAD"
    string_to_sign = StringToSignBuilder().build(
        timestamp=SigningDate(datetime(2011, 9, 9, 23, 36, tzinfo=UTC)),
        scope=CredentialScope(date="20110909", region="us-east-1", service="host"),
        canonical_request=canonical_request,
    )
    assert string_to_sign == (
        "AWS4-HMAC-SHA256\n"
        "20110909T233600Z\n"
        "20110909/us-east-1/host/aws4_request\n"
        f"{sha256(canonical_request.encode()).hexdigest()}"
    )
