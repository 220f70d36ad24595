from __future__ import annotations

import json
from typing import Any, Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError

from glrunner.errors import AttachmentError, PolicyCreationError, RoleCreationError
from glrunner.logger import logger
from glrunner.utils import build_policy_arn, wildcard_grants


def _error_code(e: ClientError) -> str:
    return e.response.get("Error", {}).get("Code", "")


def create_role(
    iam_client: Any,
    role_name: str,
    trust_policy: Dict[str, Any],
    description: Optional[str] = None,
    tags: Optional[Dict[str, str]] = None,
    reuse_existing: bool = True,
) -> str:
    """
    Creates an IAM role with the given trust policy.

    If a role with the same name already exists and reuse_existing is set,
    the existing role is returned instead.

    Args:
        iam_client (Any): A boto3 IAM client.
        role_name (str): The name of the role.
        trust_policy (Dict[str, Any]): The trust policy document.
        description (Optional[str]): An optional description of the role.
        tags (Optional[Dict[str, str]]): Tags to put on the role.
        reuse_existing (bool): Whether an existing role counts as success.

    Returns:
        str: The ARN of the role.

    Raises:
        RoleCreationError: If the role cannot be created or read.
    """
    kwargs: Dict[str, Any] = {
        "RoleName": role_name,
        "AssumeRolePolicyDocument": json.dumps(trust_policy),
    }
    if description:
        kwargs["Description"] = description
    if tags:
        kwargs["Tags"] = [{"Key": k, "Value": v} for k, v in tags.items()]

    try:
        response = iam_client.create_role(**kwargs)
        arn = response["Role"]["Arn"]
        logger.info(f"Created IAM role {role_name}")
        return arn
    except ClientError as e:
        if _error_code(e) != "EntityAlreadyExists":
            raise RoleCreationError(f"Failed to create role {role_name}: {e}") from e
        if not reuse_existing:
            raise RoleCreationError(f"Role {role_name} already exists") from e
    except BotoCoreError as e:
        raise RoleCreationError(f"Failed to create role {role_name}: {e}") from e

    try:
        arn = iam_client.get_role(RoleName=role_name)["Role"]["Arn"]
    except (ClientError, BotoCoreError) as e:
        raise RoleCreationError(f"Failed to read existing role {role_name}: {e}") from e
    logger.info(f"IAM role {role_name} already exists, reusing it")
    return arn


def create_policy(
    iam_client: Any,
    account_id: str,
    policy_name: str,
    description: str,
    document: Dict[str, Any],
    reuse_existing: bool = True,
) -> str:
    """
    Creates a customer managed IAM policy.

    Every service-wide wildcard the document allows on all resources is
    logged as a warning.

    Args:
        iam_client (Any): A boto3 IAM client.
        account_id (str): The id of the account the policy lives in.
        policy_name (str): The name of the policy.
        description (str): The description of the policy.
        document (Dict[str, Any]): The permissions policy document.
        reuse_existing (bool): Whether an existing policy counts as success.

    Returns:
        str: The ARN of the policy.

    Raises:
        PolicyCreationError: If the policy cannot be created or read.
    """
    grants = wildcard_grants(document)
    if grants:
        logger.warning(
            f"Policy {policy_name} grants {', '.join(grants)} on all resources"
        )

    try:
        response = iam_client.create_policy(
            PolicyName=policy_name,
            Description=description,
            PolicyDocument=json.dumps(document),
        )
        arn = response["Policy"]["Arn"]
        logger.info(f"Created IAM policy {policy_name}")
        return arn
    except ClientError as e:
        if _error_code(e) != "EntityAlreadyExists":
            raise PolicyCreationError(
                f"Failed to create policy {policy_name}: {e}"
            ) from e
        if not reuse_existing:
            raise PolicyCreationError(f"Policy {policy_name} already exists") from e
    except BotoCoreError as e:
        raise PolicyCreationError(f"Failed to create policy {policy_name}: {e}") from e

    existing_arn = build_policy_arn(account_id, policy_name)
    try:
        arn = iam_client.get_policy(PolicyArn=existing_arn)["Policy"]["Arn"]
    except (ClientError, BotoCoreError) as e:
        raise PolicyCreationError(
            f"Failed to read existing policy {policy_name}: {e}"
        ) from e
    logger.info(f"IAM policy {policy_name} already exists, reusing it")
    return arn


def attach_role_policy(iam_client: Any, role_name: str, policy_arn: str) -> None:
    """
    Attaches a managed policy to a role. Attaching an already attached
    policy succeeds.

    Raises:
        AttachmentError: If the attachment fails.
    """
    try:
        iam_client.attach_role_policy(RoleName=role_name, PolicyArn=policy_arn)
    except (ClientError, BotoCoreError) as e:
        raise AttachmentError(
            f"Failed to attach policy {policy_arn} to role {role_name}: {e}"
        ) from e
    logger.info(f"Attached policy {policy_arn} to role {role_name}")
