from __future__ import annotations

import json
import re
from io import StringIO
from typing import Any, Dict, List

from ruamel.yaml import YAML

DNS_LABEL_REGEX = r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$"
IAM_NAME_REGEX = r"^[\w+=,.@-]+$"


def to_yaml(obj: Dict[Any, Any]) -> str:
    """
    Converts an dictionary to a YAML string.

    Args:
        obj (dict): The dictionary to be converted.

    Returns:
        str: The YAML string.
    """
    yaml = YAML()
    yaml.indent(mapping=2, sequence=4, offset=2)
    buf = StringIO()
    yaml.dump(obj, buf)
    return buf.getvalue()


def to_json(document: Dict[str, Any]) -> str:
    return json.dumps(document, indent=2)


def is_dns_label(name: str) -> bool:
    """
    Checks whether a name is a valid Kubernetes (DNS-1123) label.

    Args:
        name (str): The name to check.

    Returns:
        bool: True if the name is at most 63 characters, contains only lowercase
        alphanumeric characters or '-', and starts and ends with an alphanumeric character.
    """
    return bool(re.match(DNS_LABEL_REGEX, name)) and len(name) <= 63


def is_iam_name(name: str, max_len: int) -> bool:
    return bool(re.match(IAM_NAME_REGEX, name)) and len(name) <= max_len


def build_role_arn(account_id: str, role_name: str) -> str:
    """
    Builds the ARN of an IAM role created at the default path.

    Args:
        account_id (str): The AWS account id.
        role_name (str): The name of the role.

    Returns:
        str: The role ARN, e.g. arn:aws:iam::123456789012:role/GitLabRunnerRole.

    Raises:
        ValueError: If the account id or role name is empty.
    """
    if not account_id or not role_name:
        raise ValueError("Account id and role name must not be empty")
    return f"arn:aws:iam::{account_id}:role/{role_name}"


def build_policy_arn(account_id: str, policy_name: str) -> str:
    """
    Builds the ARN of a customer managed IAM policy created at the default path.

    Args:
        account_id (str): The AWS account id.
        policy_name (str): The name of the policy.

    Returns:
        str: The policy ARN.
    """
    if not account_id or not policy_name:
        raise ValueError("Account id and policy name must not be empty")
    return f"arn:aws:iam::{account_id}:policy/{policy_name}"


def wildcard_grants(document: Dict[str, Any]) -> List[str]:
    """
    Lists the service-wide wildcard actions ("svc:*" or "*") an IAM policy
    document allows on every resource.

    Args:
        document (Dict[str, Any]): The IAM policy document.

    Returns:
        List[str]: The wildcard actions, in document order.
    """
    grants: List[str] = []
    statements = document.get("Statement", [])
    if isinstance(statements, dict):
        statements = [statements]

    for statement in statements:
        if statement.get("Effect") != "Allow":
            continue
        resources = statement.get("Resource", [])
        if isinstance(resources, str):
            resources = [resources]
        if "*" not in resources:
            continue
        actions = statement.get("Action", [])
        if isinstance(actions, str):
            actions = [actions]
        grants.extend(a for a in actions if a == "*" or a.endswith(":*"))

    return grants
