from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Tuple

from botocore.exceptions import BotoCoreError

from glrunner.aws.iam import attach_role_policy, create_policy, create_role
from glrunner.aws.session import client_config, resolve_identity
from glrunner.config import Config
from glrunner.errors import (
    AttachmentError,
    AuthenticationError,
    ProvisioningError,
)
from glrunner.helm.chart import (
    check_values_file,
    deploy_chart,
    deploy_commands,
    status_command,
    upgrade_command,
)
from glrunner.k8s.service_account import (
    annotate_service_account_command,
    bind_service_account,
    create_service_account_command,
)
from glrunner.logger import logger
from glrunner.runner import CommandRunner, SubprocessRunner
from glrunner.utils import build_role_arn

SessionFactory = Callable[[str, int], Tuple[Any, str]]


class Stage(Enum):
    RESOLVING = "resolving"
    ROLE_CREATING = "role-creating"
    POLICY_CREATING = "policy-creating"
    POLICY_ATTACHING = "policy-attaching"
    SERVICE_ACCOUNT_BINDING = "service-account-binding"
    CHART_DEPLOYING = "chart-deploying"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PipelineState:
    """
    The identifiers produced by a provisioning run. Each is written once by
    the step that produces it.
    """

    stage: Stage = Stage.RESOLVING
    account_id: Optional[str] = None
    role_arn: Optional[str] = None
    policy_arn: Optional[str] = None
    annotation_value: Optional[str] = None
    failed_stage: Optional[Stage] = None


class Provisioner:
    """
    Runs the provisioning steps in order, stopping at the first failure.

    Already created resources are left in place when a later step fails.
    """

    def __init__(
        self,
        config: Config,
        runner: Optional[CommandRunner] = None,
        session_factory: SessionFactory = resolve_identity,
    ) -> None:
        self.config = config
        self.runner = runner or SubprocessRunner(timeout=config.timeouts.command)
        self.session_factory = session_factory
        self.state = PipelineState()
        self._iam_client: Any = None

    def run(self) -> PipelineState:
        """
        Runs every step.

        Returns:
            PipelineState: The state of the completed run.

        Raises:
            ProvisioningError: The error of the first failing step. The state is
                left in the FAILED stage with failed_stage set.
        """
        # A missing values file fails the run before any resource is created
        try:
            check_values_file(self.config.chart)
        except ProvisioningError as e:
            self._fail(Stage.CHART_DEPLOYING, e)
            raise

        steps = [
            (Stage.RESOLVING, self.resolve_identity),
            (Stage.ROLE_CREATING, self.create_role),
            (Stage.POLICY_CREATING, self.create_policy),
            (Stage.POLICY_ATTACHING, self.attach_policy),
            (Stage.SERVICE_ACCOUNT_BINDING, self.bind_service_account),
            (Stage.CHART_DEPLOYING, self.deploy_chart),
        ]
        for stage, step in steps:
            self.state.stage = stage
            logger.debug(f"Stage: {stage.value}")
            try:
                step()
            except ProvisioningError as e:
                self._fail(stage, e)
                raise

        self.state.stage = Stage.DONE
        return self.state

    def _fail(self, stage: Stage, error: ProvisioningError) -> None:
        self.state.failed_stage = stage
        self.state.stage = Stage.FAILED
        error.stage = stage.value

    def resolve_identity(self) -> None:
        session, account_id = self.session_factory(
            self.config.aws.region, self.config.timeouts.aws
        )
        try:
            self._iam_client = session.client(
                "iam", config=client_config(self.config.timeouts.aws)
            )
        except BotoCoreError as e:
            raise AuthenticationError(f"Failed to create an IAM client: {e}") from e
        self.state.account_id = account_id

    def create_role(self) -> None:
        role = self.config.role
        self.state.role_arn = create_role(
            self._iam_client,
            role.name,
            role.trustPolicy,
            description=role.description,
            tags=role.tags,
            reuse_existing=role.reuseExisting,
        )

    def create_policy(self) -> None:
        assert self.state.account_id
        policy = self.config.policy
        self.state.policy_arn = create_policy(
            self._iam_client,
            self.state.account_id,
            policy.name,
            policy.description,
            policy.document,
            reuse_existing=policy.reuseExisting,
        )

    def attach_policy(self) -> None:
        if not self.state.role_arn or not self.state.policy_arn:
            raise AttachmentError("Role and policy must exist before attaching")
        attach_role_policy(
            self._iam_client, self.config.role.name, self.state.policy_arn
        )

    def bind_service_account(self) -> None:
        assert self.state.role_arn
        sa = self.config.serviceAccount
        # The annotation carries the ARN IAM returned, not one rebuilt from the name
        self.state.annotation_value = bind_service_account(
            self.runner,
            sa.name,
            sa.annotationKey,
            self.state.role_arn,
            namespace=sa.namespace,
            reuse_existing=sa.reuseExisting,
        )

    def deploy_chart(self) -> None:
        deploy_chart(self.runner, self.config.chart)


def describe_plan(config: Config, account_id: str = "<account-id>") -> List[str]:
    """
    Describes, in order, the calls a provisioning run makes.

    Args:
        config (Config): The configuration of the run.
        account_id (str): The account id used to predict the role ARN.

    Returns:
        List[str]: One line per AWS call or command.
    """
    role_arn = build_role_arn(account_id, config.role.name)
    sa = config.serviceAccount
    chart = config.chart

    plan = [
        f"sts:GetCallerIdentity (region {config.aws.region})",
        f"iam:CreateRole {config.role.name}",
        f"iam:CreatePolicy {config.policy.name}",
        f"iam:AttachRolePolicy {config.policy.name} -> {config.role.name}",
        " ".join(create_service_account_command(sa.name, sa.namespace)),
        " ".join(
            annotate_service_account_command(
                sa.name, sa.annotationKey, role_arn, sa.namespace
            )
        ),
    ]
    plan.extend(" ".join(args) for args in deploy_commands(chart))
    if chart.upgradeExisting:
        plan.append(
            f"(if `{' '.join(status_command(chart))}` succeeds: "
            f"{' '.join(upgrade_command(chart))})"
        )
    return plan
