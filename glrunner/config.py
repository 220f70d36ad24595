from __future__ import annotations

import copy
import os
import re
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from ruamel.yaml import YAML

from glrunner.constants import (
    DEFAULT_AWS_TIMEOUT,
    DEFAULT_CHART_NAME,
    DEFAULT_CHART_REPO_NAME,
    DEFAULT_CHART_REPO_URL,
    DEFAULT_CHART_VERSION,
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_CONFIG_FILE,
    DEFAULT_POLICY_DESCRIPTION,
    DEFAULT_POLICY_NAME,
    DEFAULT_REGION,
    DEFAULT_RELEASE_NAME,
    DEFAULT_RELEASE_NAMESPACE,
    DEFAULT_ROLE_NAME,
    DEFAULT_SERVICE_ACCOUNT_NAME,
    DEFAULT_VALUES_FILE,
    EKS_SERVICE_PRINCIPAL,
    ROLE_ARN_ANNOTATION,
)
from glrunner.utils import is_dns_label, is_iam_name, to_yaml

CONFIG_VERSION = "1.0"

TRUST_POLICY_DOCUMENT: Dict[str, Any] = {
    "Version": "2012-10-17",
    "Statement": [
        {
            "Effect": "Allow",
            "Principal": {"Service": EKS_SERVICE_PRINCIPAL},
            "Action": "sts:AssumeRole",
        }
    ],
}

# Broad on purpose: this is what the runner jobs have always been granted.
# A warning is logged for each wildcard grant when the policy is created.
PERMISSIONS_POLICY_DOCUMENT: Dict[str, Any] = {
    "Version": "2012-10-17",
    "Statement": [
        {
            "Effect": "Allow",
            "Action": [
                "ec2:*",
                "elasticloadbalancing:*",
                "autoscaling:*",
                "cloudwatch:*",
                "s3:*",
                "sns:*",
                "sqs:*",
                "rds:*",
                "route53:*",
                "iam:PassRole",
                "iam:GetRole",
                "iam:ListInstanceProfiles",
                "iam:ListRoles",
            ],
            "Resource": "*",
        }
    ],
}


class GlrunnerBaseModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


def validate_policy_document(v: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validates the shape of an IAM policy document.

    Args:
        v (Dict[str, Any]): The policy document.

    Returns:
        Dict[str, Any]: The input value if validation is successful.

    Raises:
        ValueError: If the document has no Version or no non-empty Statement list.
    """
    if "Version" not in v:
        raise ValueError("Policy document must have a Version")
    statements = v.get("Statement")
    if not isinstance(statements, list) or not statements:
        raise ValueError("Policy document must have at least one Statement")
    return v


def validate_dns_label(v: str) -> str:
    if not is_dns_label(v):
        raise ValueError(
            f"Invalid name '{v}'. It must contain no more than 63 characters, contain "
            "only lowercase alphanumeric characters or '-', start with an "
            "alphanumeric character, and end with an alphanumeric character."
        )
    return v


class AwsConfig(GlrunnerBaseModel):
    """
    Represents the AWS session settings.
    """

    region: str = Field(
        DEFAULT_REGION, description="The region the AWS session is scoped to."
    )

    @field_validator("region")
    def validate_region(cls, v: str) -> str:
        if not re.match(r"^[a-z]{2}(-[a-z]+)+-\d+$", v):
            raise ValueError(f"Invalid region '{v}'")
        return v


class RoleConfig(GlrunnerBaseModel):
    """
    Represents the IAM role assumed by the runner.
    """

    name: str = Field(DEFAULT_ROLE_NAME, description="The name of the IAM role.")
    description: Optional[str] = Field(
        None, description="An optional description of the IAM role."
    )
    tags: Dict[str, str] = Field(
        default_factory=dict, description="Tags to put on the IAM role."
    )
    trustPolicy: Dict[str, Any] = Field(
        default_factory=lambda: copy.deepcopy(TRUST_POLICY_DOCUMENT),
        description="The trust policy document of the IAM role.",
    )
    reuseExisting: bool = Field(
        True,
        description="Whether an existing role with the same name is reused instead of failing.",
    )

    @field_validator("name")
    def validate_name(cls, v: str) -> str:
        if not is_iam_name(v, 64):
            raise ValueError(f"Invalid IAM role name '{v}'")
        return v

    @field_validator("trustPolicy")
    def validate_trust_policy(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        return validate_policy_document(v)


class PolicyConfig(GlrunnerBaseModel):
    """
    Represents the IAM permissions policy attached to the runner role.
    """

    name: str = Field(DEFAULT_POLICY_NAME, description="The name of the IAM policy.")
    description: str = Field(
        DEFAULT_POLICY_DESCRIPTION, description="The description of the IAM policy."
    )
    document: Dict[str, Any] = Field(
        default_factory=lambda: copy.deepcopy(PERMISSIONS_POLICY_DOCUMENT),
        description="The permissions policy document.",
    )
    reuseExisting: bool = Field(
        True,
        description="Whether an existing policy with the same name is reused instead of failing.",
    )

    @field_validator("name")
    def validate_name(cls, v: str) -> str:
        if not is_iam_name(v, 128):
            raise ValueError(f"Invalid IAM policy name '{v}'")
        return v

    @field_validator("document")
    def validate_document(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        return validate_policy_document(v)


class ServiceAccountConfig(GlrunnerBaseModel):
    """
    Represents the Kubernetes service account bound to the runner role.
    """

    name: str = Field(
        DEFAULT_SERVICE_ACCOUNT_NAME, description="The name of the service account."
    )
    annotationKey: str = Field(
        ROLE_ARN_ANNOTATION,
        description="The annotation that carries the IAM role ARN.",
    )
    namespace: Optional[str] = Field(
        None,
        description="The namespace of the service account. If None, the namespace of the current kubectl context is used.",
    )
    reuseExisting: bool = Field(
        True,
        description="Whether an existing service account with the same name is annotated instead of failing.",
    )

    @field_validator("name")
    def validate_name(cls, v: str) -> str:
        return validate_dns_label(v)

    @field_validator("namespace")
    def validate_namespace(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            validate_dns_label(v)
        return v


class ChartConfig(GlrunnerBaseModel):
    """
    Represents the Helm chart release of the runner.
    """

    repoName: str = Field(
        DEFAULT_CHART_REPO_NAME, description="The local alias of the chart repository."
    )
    repoUrl: str = Field(
        DEFAULT_CHART_REPO_URL, description="The URL of the chart repository."
    )
    name: str = Field(DEFAULT_CHART_NAME, description="The name of the chart.")
    version: str = Field(DEFAULT_CHART_VERSION, description="The chart version.")
    releaseName: str = Field(
        DEFAULT_RELEASE_NAME, description="The name of the release."
    )
    namespace: str = Field(
        DEFAULT_RELEASE_NAMESPACE, description="The namespace of the release."
    )
    valuesFile: str = Field(
        DEFAULT_VALUES_FILE, description="Path to the values file of the release."
    )
    upgradeExisting: bool = Field(
        False,
        description="Whether an existing release is upgraded instead of failing the install.",
    )

    @field_validator("repoUrl")
    def validate_repo_url(cls, v: str) -> str:
        if not re.match(r"^(https?|oci)://", v):
            raise ValueError(f"Invalid chart repository URL '{v}'")
        return v

    @field_validator("releaseName", "namespace")
    def validate_names(cls, v: str) -> str:
        return validate_dns_label(v)


class TimeoutConfig(GlrunnerBaseModel):
    """
    Represents the timeouts, in seconds, of external calls.
    """

    command: int = Field(
        DEFAULT_COMMAND_TIMEOUT,
        description="The timeout of each kubectl or helm invocation.",
    )
    aws: int = Field(
        DEFAULT_AWS_TIMEOUT,
        description="The connect and read timeout of each AWS API call.",
    )

    @field_validator("command", "aws")
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Timeout must be greater than 0")
        return v


class Config(GlrunnerBaseModel):
    """
    Configuration of a provisioning run. Every field defaults to the
    values the runner has always been provisioned with.
    """

    version: str = Field(CONFIG_VERSION, description="The config version.")
    aws: AwsConfig = Field(default_factory=AwsConfig)
    role: RoleConfig = Field(default_factory=RoleConfig)
    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    serviceAccount: ServiceAccountConfig = Field(default_factory=ServiceAccountConfig)
    chart: ChartConfig = Field(default_factory=ChartConfig)
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)


def generate_yaml(config: Config) -> str:
    """
    Generate a YAML string representation of the given config object.

    Args:
        config (Config): The config object to generate YAML from.

    Returns:
        str: The YAML string representation of the config object.
    """
    return to_yaml(config.model_dump(exclude_none=True))


def check_version(version: Any) -> None:
    """
    Checks that a config version can be handled by this tool.

    Args:
        version (Any): The version read from the config.

    Raises:
        ValueError: If the version is malformed, too old or too new.
    """
    if not isinstance(version, str) or not re.match(r"^\d+\.\d+$", version):
        raise ValueError('version must be in the format "x.x"')

    major_version, minor_version = map(int, version.split("."))
    tool_major_version, tool_minor_version = map(int, CONFIG_VERSION.split("."))

    if major_version < tool_major_version:
        raise ValueError(
            f"Invalid configuration: This tool supports versions starting from {tool_major_version}.0."
        )
    elif major_version > tool_major_version:
        raise ValueError(
            "Invalid configuration: Your current tool is too old. Please upgrade your tool to handle this configuration."
        )
    elif minor_version > tool_minor_version:  # No forward compatibility
        raise ValueError(
            f"Invalid configuration: This tool supports versions up to {tool_major_version}.{tool_minor_version}."
            " Please upgrade your tool to handle this configuration."
        )


def parse_yaml(yaml_str: str) -> Config:
    """
    Parse a YAML string and return a Config object.

    Args:
        yaml_str (str): The YAML string to parse.

    Returns:
        Config: The parsed Config object.

    Raises:
        ValueError: If the version field is missing or unsupported, or the
        document is not a mapping.
    """
    yaml = YAML()
    data = yaml.load(yaml_str)
    if not isinstance(data, dict):
        raise ValueError("Invalid configuration: expected a mapping.")

    version = data.get("version", None)
    if version is None:
        raise ValueError("Invalid configuration: The 'version' field is missing.")
    check_version(version)

    return Config(**data)


def load_config(config_file: Optional[str] = None) -> Config:
    """
    Loads the configuration of a provisioning run.

    If no file is given, ./glrunner.yaml is used when it exists. Otherwise
    the built-in defaults apply.

    Args:
        config_file (Optional[str]): Path to the config file.

    Returns:
        Config: The loaded configuration.

    Raises:
        FileNotFoundError: If an explicitly given config file does not exist.
    """
    if not config_file:
        if not os.path.exists(DEFAULT_CONFIG_FILE):
            return Config()
        config_file = DEFAULT_CONFIG_FILE

    config_file = os.path.abspath(os.path.expanduser(config_file))
    if not os.path.exists(config_file):
        raise FileNotFoundError(f"The config file {config_file} does not exist")

    with open(config_file, "r") as file:
        return parse_yaml(file.read())
