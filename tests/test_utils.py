import random

import pytest

from glrunner.utils import (
    build_policy_arn,
    build_role_arn,
    is_dns_label,
    is_iam_name,
    to_yaml,
    wildcard_grants,
)

rng = random.Random(1234)
GENERATED_ACCOUNT_IDS = [str(rng.randint(10**11, 10**12 - 1)) for _ in range(25)] + [
    "000000000000",
    "1",
    "acct",
]


def test_to_yaml() -> None:
    obj = {"key": "value"}
    assert to_yaml(obj) == "key: value\n"

    obj1 = {"key": {"nested_key": "nested_value"}}
    assert to_yaml(obj1) == "key:\n  nested_key: nested_value\n"

    obj2 = {"key": ["value1", "value2"]}
    assert to_yaml(obj2) == "key:\n  - value1\n  - value2\n"


def test_build_role_arn_example() -> None:
    assert (
        build_role_arn("123456789012", "GitLabRunnerRole")
        == "arn:aws:iam::123456789012:role/GitLabRunnerRole"
    )


@pytest.mark.parametrize("account_id", GENERATED_ACCOUNT_IDS)
def test_build_role_arn_format(account_id: str) -> None:
    arn = build_role_arn(account_id, "GitLabRunnerRole")
    assert arn == f"arn:aws:iam::{account_id}:role/GitLabRunnerRole"
    prefix, account, resource = arn.rsplit(":", 2)
    assert prefix == "arn:aws:iam:"
    assert account == account_id
    assert resource == "role/GitLabRunnerRole"


def test_build_arn_rejects_empty() -> None:
    with pytest.raises(ValueError):
        build_role_arn("", "GitLabRunnerRole")
    with pytest.raises(ValueError):
        build_policy_arn("123456789012", "")


def test_build_policy_arn() -> None:
    assert (
        build_policy_arn("123456789012", "GitLabRunnerRolePolicy")
        == "arn:aws:iam::123456789012:policy/GitLabRunnerRolePolicy"
    )


def test_is_dns_label() -> None:
    assert is_dns_label("gitlab-runner")
    assert is_dns_label("a")
    assert not is_dns_label("GitLab")
    assert not is_dns_label("-runner")
    assert not is_dns_label("runner-")
    assert not is_dns_label("a" * 64)


def test_is_iam_name() -> None:
    assert is_iam_name("GitLabRunnerRole", 64)
    assert is_iam_name("role+=,.@-_", 64)
    assert not is_iam_name("role name", 64)
    assert not is_iam_name("a" * 65, 64)


def test_wildcard_grants() -> None:
    document = {
        "Version": "2012-10-17",
        "Statement": [
            {"Effect": "Allow", "Action": ["s3:*", "iam:GetRole"], "Resource": "*"},
            {"Effect": "Allow", "Action": "sqs:*", "Resource": ["arn:aws:sqs:::q"]},
            {"Effect": "Deny", "Action": "ec2:*", "Resource": "*"},
            {"Effect": "Allow", "Action": "*", "Resource": ["*"]},
        ],
    }
    assert wildcard_grants(document) == ["s3:*", "*"]


def test_wildcard_grants_single_statement() -> None:
    document = {
        "Version": "2012-10-17",
        "Statement": {"Effect": "Allow", "Action": "rds:*", "Resource": "*"},
    }
    assert wildcard_grants(document) == ["rds:*"]
