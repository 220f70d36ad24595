from __future__ import annotations

from typing import Any, Tuple

import boto3
from botocore.client import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    PartialCredentialsError,
)

from glrunner.constants import DEFAULT_AWS_TIMEOUT
from glrunner.errors import AuthenticationError, IdentityLookupError
from glrunner.logger import logger

# STS error codes that mean the credentials themselves are bad
AUTH_ERROR_CODES = {
    "InvalidClientTokenId",
    "SignatureDoesNotMatch",
    "ExpiredToken",
    "ExpiredTokenException",
    "UnrecognizedClientException",
    "AccessDenied",
    "InvalidAccessKeyId",
}


def client_config(timeout: int = DEFAULT_AWS_TIMEOUT) -> Config:
    # A single attempt per call, failures surface immediately
    return Config(
        connect_timeout=timeout,
        read_timeout=timeout,
        retries={"total_max_attempts": 1, "mode": "standard"},
    )


def create_session(region: str) -> boto3.session.Session:
    return boto3.session.Session(region_name=region)


def get_account_id(sts_client: Any) -> str:
    """
    Resolves the id of the account the credentials belong to.

    Args:
        sts_client (Any): A boto3 STS client.

    Returns:
        str: The AWS account id.

    Raises:
        AuthenticationError: If the credentials are missing, partial or rejected.
        IdentityLookupError: If the identity call fails for any other reason.
    """
    try:
        response = sts_client.get_caller_identity()
    except (NoCredentialsError, PartialCredentialsError) as e:
        raise AuthenticationError(f"No usable AWS credentials: {e}") from e
    except ClientError as e:
        code = e.response.get("Error", {}).get("Code", "")
        if code in AUTH_ERROR_CODES:
            raise AuthenticationError(f"AWS credentials were rejected: {e}") from e
        raise IdentityLookupError(f"Failed to get caller identity: {e}") from e
    except BotoCoreError as e:
        raise IdentityLookupError(f"Failed to get caller identity: {e}") from e

    account_id = response.get("Account")
    if not account_id:
        raise IdentityLookupError("Caller identity has no account id")
    return account_id


def resolve_identity(
    region: str, timeout: int = DEFAULT_AWS_TIMEOUT
) -> Tuple[boto3.session.Session, str]:
    """
    Opens an AWS session in the given region and resolves the caller's account id.

    Args:
        region (str): The region the session is scoped to.
        timeout (int): The connect and read timeout of the identity call.

    Returns:
        Tuple[boto3.session.Session, str]: The session and the account id.
    """
    try:
        session = create_session(region)
        sts_client = session.client("sts", config=client_config(timeout))
    except BotoCoreError as e:
        raise AuthenticationError(f"Failed to open an AWS session: {e}") from e

    account_id = get_account_id(sts_client)
    logger.info(f"Using AWS account {account_id} in {region}")
    return session, account_id
