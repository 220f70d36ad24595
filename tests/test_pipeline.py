from typing import Any, List, Tuple
from unittest.mock import MagicMock

import pytest
from moto import mock_aws

from glrunner.config import ChartConfig, Config, RoleConfig
from glrunner.errors import (
    AttachmentError,
    AuthenticationError,
    ChartDeploymentError,
    PolicyCreationError,
    ProvisioningError,
    RoleCreationError,
)
from glrunner.pipeline import PipelineState, Provisioner, Stage, describe_plan

ACCOUNT_ID = "123456789012"


class Recorder:
    """
    Fake AWS session whose IAM client and command runner log every call,
    in order, to a single list.
    """

    def __init__(self, make_runner, account_id: str = ACCOUNT_ID, **failures: Any):
        self.account_id = account_id
        self.calls: List[str] = []
        self.auth_error = failures.pop("auth", None)
        self.iam = MagicMock()
        self.iam.create_role.side_effect = self._create_role
        self.iam.create_policy.side_effect = self._create_policy
        self.iam.attach_role_policy.side_effect = self._attach
        self.iam_failures = failures.pop("iam", {})
        self.commands: List[List[str]] = []
        self.runner = make_runner(failures=failures.pop("commands", {}), calls=self.commands)

    def session_factory(self, region: str, timeout: int) -> Tuple[Any, str]:
        self.calls.append("sts:GetCallerIdentity")
        if self.auth_error:
            raise self.auth_error
        session = MagicMock()
        session.client.return_value = self.iam
        return session, self.account_id

    def _fail(self, name: str) -> None:
        if name in self.iam_failures:
            raise self.iam_failures[name]

    def _create_role(self, RoleName: str, **kwargs: Any) -> Any:
        self.calls.append("iam:CreateRole")
        self._fail("create_role")
        return {"Role": {"Arn": f"arn:aws:iam::{self.account_id}:role/{RoleName}"}}

    def _create_policy(self, PolicyName: str, **kwargs: Any) -> Any:
        self.calls.append("iam:CreatePolicy")
        self._fail("create_policy")
        return {
            "Policy": {"Arn": f"arn:aws:iam::{self.account_id}:policy/{PolicyName}"}
        }

    def _attach(self, **kwargs: Any) -> Any:
        self.calls.append("iam:AttachRolePolicy")
        self._fail("attach_role_policy")
        return {}

    def provisioner(self, config: Config) -> Provisioner:
        return Provisioner(
            config, runner=self.runner, session_factory=self.session_factory
        )

    @property
    def all_calls(self) -> List[str]:
        return self.calls + [" ".join(c[:2]) for c in self.commands]


@pytest.fixture
def config(values_file) -> Config:
    return Config(chart=ChartConfig(valuesFile=values_file))


def test_run(make_runner, config) -> None:
    recorder = Recorder(make_runner)

    state = recorder.provisioner(config).run()

    assert state == PipelineState(
        stage=Stage.DONE,
        account_id=ACCOUNT_ID,
        role_arn=f"arn:aws:iam::{ACCOUNT_ID}:role/GitLabRunnerRole",
        policy_arn=f"arn:aws:iam::{ACCOUNT_ID}:policy/GitLabRunnerRolePolicy",
        annotation_value=f"arn:aws:iam::{ACCOUNT_ID}:role/GitLabRunnerRole",
    )
    assert recorder.all_calls == [
        "sts:GetCallerIdentity",
        "iam:CreateRole",
        "iam:CreatePolicy",
        "iam:AttachRolePolicy",
        "kubectl create",
        "kubectl annotate",
        "helm repo",
        "helm install",
    ]
    recorder.iam.attach_role_policy.assert_called_once_with(
        RoleName="GitLabRunnerRole",
        PolicyArn=f"arn:aws:iam::{ACCOUNT_ID}:policy/GitLabRunnerRolePolicy",
    )


@pytest.mark.parametrize("account_id", ["123456789012", "000000000001", "987654321098"])
def test_annotation_value(make_runner, config, account_id: str) -> None:
    recorder = Recorder(make_runner, account_id=account_id)

    state = recorder.provisioner(config).run()

    expected = f"arn:aws:iam::{account_id}:role/GitLabRunnerRole"
    assert state.annotation_value == expected
    assert recorder.commands[1][-1] == f"eks.amazonaws.com/role-arn={expected}"


def test_annotation_uses_returned_role_arn(make_runner, config) -> None:
    recorder = Recorder(make_runner)
    pathed_arn = f"arn:aws:iam::{ACCOUNT_ID}:role/ci/GitLabRunnerRole"
    recorder.iam.create_role.side_effect = None
    recorder.iam.create_role.return_value = {"Role": {"Arn": pathed_arn}}

    state = recorder.provisioner(config).run()

    assert state.annotation_value == pathed_arn


FAILURES = [
    (
        {"auth": AuthenticationError("no credentials")},
        Stage.RESOLVING,
        AuthenticationError,
        1,
    ),
    (
        {"iam": {"create_role": RoleCreationError("denied")}},
        Stage.ROLE_CREATING,
        RoleCreationError,
        2,
    ),
    (
        {"iam": {"create_policy": PolicyCreationError("malformed")}},
        Stage.POLICY_CREATING,
        PolicyCreationError,
        3,
    ),
    (
        {"iam": {"attach_role_policy": AttachmentError("denied")}},
        Stage.POLICY_ATTACHING,
        AttachmentError,
        4,
    ),
    (
        {"commands": {("kubectl", "create"): (1, "boom")}},
        Stage.SERVICE_ACCOUNT_BINDING,
        ProvisioningError,
        5,
    ),
    (
        {"commands": {("kubectl", "annotate"): (1, "boom")}},
        Stage.SERVICE_ACCOUNT_BINDING,
        ProvisioningError,
        6,
    ),
    (
        {"commands": {("helm", "repo"): (1, "boom")}},
        Stage.CHART_DEPLOYING,
        ProvisioningError,
        7,
    ),
    (
        {"commands": {("helm", "install"): (1, "boom")}},
        Stage.CHART_DEPLOYING,
        ProvisioningError,
        8,
    ),
]


@pytest.mark.parametrize("failures, stage, error, calls_made", FAILURES)
def test_failure_stops_pipeline(
    make_runner,
    config,
    failures: Any,
    stage: Stage,
    error: type,
    calls_made: int,
) -> None:
    recorder = Recorder(make_runner, **failures)
    provisioner = recorder.provisioner(config)

    with pytest.raises(error) as exc_info:
        provisioner.run()

    assert exc_info.value.stage == stage.value
    assert provisioner.state.stage == Stage.FAILED
    assert provisioner.state.failed_stage == stage
    assert len(recorder.all_calls) == calls_made


def test_missing_values_file_creates_nothing(make_runner, tmp_path) -> None:
    recorder = Recorder(make_runner)
    config = Config(chart=ChartConfig(valuesFile=str(tmp_path / "missing.yaml")))
    provisioner = recorder.provisioner(config)

    with pytest.raises(ChartDeploymentError, match="missing.yaml") as exc_info:
        provisioner.run()

    assert exc_info.value.stage == Stage.CHART_DEPLOYING.value
    assert provisioner.state.failed_stage == Stage.CHART_DEPLOYING
    assert provisioner.state.account_id is None
    assert recorder.all_calls == []


def test_attach_requires_role_and_policy(make_runner, config) -> None:
    provisioner = Recorder(make_runner).provisioner(config)

    with pytest.raises(AttachmentError):
        provisioner.attach_policy()


@mock_aws
def test_run_against_moto(make_runner, config) -> None:
    runner = make_runner()

    state = Provisioner(config, runner=runner).run()

    assert state.stage == Stage.DONE
    assert state.account_id == ACCOUNT_ID
    assert state.annotation_value == "arn:aws:iam::123456789012:role/GitLabRunnerRole"
    assert [c[:2] for c in runner.calls] == [
        ["kubectl", "create"],
        ["kubectl", "annotate"],
        ["helm", "repo"],
        ["helm", "install"],
    ]

    # Rerunning reuses the role and policy
    rerun = Provisioner(config, runner=make_runner()).run()
    assert rerun.role_arn == state.role_arn
    assert rerun.policy_arn == state.policy_arn


@mock_aws
def test_run_against_moto_role_exists(make_runner, config) -> None:
    Provisioner(config, runner=make_runner()).run()
    config.role = RoleConfig(reuseExisting=False)
    runner = make_runner()

    with pytest.raises(RoleCreationError):
        Provisioner(config, runner=runner).run()

    assert runner.calls == []


def test_describe_plan(config) -> None:
    plan = describe_plan(config, account_id=ACCOUNT_ID)

    assert plan[:4] == [
        "sts:GetCallerIdentity (region eu-west-1)",
        "iam:CreateRole GitLabRunnerRole",
        "iam:CreatePolicy GitLabRunnerRolePolicy",
        "iam:AttachRolePolicy GitLabRunnerRolePolicy -> GitLabRunnerRole",
    ]
    assert plan[4] == "kubectl create serviceaccount gitlab-runner"
    assert plan[5] == (
        "kubectl annotate serviceaccount gitlab-runner "
        "eks.amazonaws.com/role-arn=arn:aws:iam::123456789012:role/GitLabRunnerRole"
    )
    assert plan[6] == "helm repo add gitlab https://charts.gitlab.io"
    assert plan[7].startswith("helm install --name gitlab-runner --namespace gitlab-runner")
    assert len(plan) == 8
