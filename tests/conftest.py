from typing import Callable, Dict, List, Optional, Tuple

import pytest

from glrunner.logger import setup_logger
from glrunner.runner import CommandResult


class FakeRunner:
    """
    Records commands instead of running them. A command whose arguments start
    with one of the configured prefixes fails with the given exit code and output.
    """

    def __init__(
        self,
        failures: Optional[Dict[Tuple[str, ...], Tuple[int, str]]] = None,
        calls: Optional[List[List[str]]] = None,
    ) -> None:
        self.failures = failures or {}
        self.calls = calls if calls is not None else []

    def run(self, args: List[str]) -> CommandResult:
        self.calls.append(list(args))
        for prefix, (code, output) in self.failures.items():
            if tuple(args[: len(prefix)]) == prefix:
                return CommandResult(list(args), code, stderr=output)
        return CommandResult(list(args), 0, stdout="ok")


@pytest.fixture
def make_runner() -> Callable[..., FakeRunner]:
    return FakeRunner


@pytest.fixture
def values_file(tmp_path) -> str:
    path = tmp_path / "values.yaml"
    path.write_text("gitlabUrl: https://gitlab.example.com/\n")
    return str(path)


@pytest.fixture(autouse=True)
def reset_logger():
    # The CLI rebinds the console handler to the CliRunner's stream
    yield
    setup_logger()
