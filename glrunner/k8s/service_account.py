from __future__ import annotations

from typing import List, Optional

from glrunner.errors import ServiceAccountError
from glrunner.logger import logger
from glrunner.runner import CommandRunner


def _namespaced(args: List[str], namespace: Optional[str]) -> List[str]:
    # Without a namespace, kubectl uses the one of the current context
    if namespace:
        return args + ["--namespace", namespace]
    return args


def create_service_account_command(
    name: str, namespace: Optional[str] = None
) -> List[str]:
    return _namespaced(["kubectl", "create", "serviceaccount", name], namespace)


def annotate_service_account_command(
    name: str, annotation_key: str, annotation_value: str, namespace: Optional[str] = None
) -> List[str]:
    return _namespaced(
        [
            "kubectl",
            "annotate",
            "serviceaccount",
            name,
            f"{annotation_key}={annotation_value}",
        ],
        namespace,
    )


def bind_service_account(
    runner: CommandRunner,
    name: str,
    annotation_key: str,
    role_arn: str,
    namespace: Optional[str] = None,
    reuse_existing: bool = True,
) -> str:
    """
    Creates a Kubernetes service account and annotates it with an IAM role ARN,
    so that pods running under it can assume the role.

    Args:
        runner (CommandRunner): Runs the kubectl commands.
        name (str): The name of the service account.
        annotation_key (str): The annotation carrying the role ARN.
        role_arn (str): The ARN of the IAM role.
        namespace (Optional[str]): The namespace of the service account. If None,
            the namespace of the current kubectl context is used.
        reuse_existing (bool): Whether an existing service account is annotated
            instead of failing.

    Returns:
        str: The annotation value written onto the service account.

    Raises:
        ServiceAccountError: If either kubectl command exits non-zero.
    """
    result = runner.run(create_service_account_command(name, namespace))
    if result.ok:
        logger.info(f"Created service account {name}")
    elif reuse_existing and "already exists" in result.output.lower():
        logger.info(f"Service account {name} already exists, annotating it")
    else:
        raise ServiceAccountError(
            f"Failed to create service account {name}: `{result.command_line}` exited with {result.returncode}",
            output=result.output,
        )

    result = runner.run(
        annotate_service_account_command(name, annotation_key, role_arn, namespace)
    )
    if not result.ok:
        raise ServiceAccountError(
            f"Failed to annotate service account {name}: `{result.command_line}` exited with {result.returncode}",
            output=result.output,
        )

    logger.info(f"Annotated service account {name} with {annotation_key}={role_arn}")
    return role_arn
