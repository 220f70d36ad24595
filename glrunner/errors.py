from __future__ import annotations

from typing import Optional


class ProvisioningError(Exception):
    """
    Base class of every error that aborts a provisioning run.

    Each subclass names the step it belongs to, so the message shown to the
    user identifies which step failed and why.
    """

    step: str = "Provisioning"

    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.message = message
        # Combined stdout/stderr of the failing command, if any
        self.output = output
        # Set by the pipeline to the stage that was running
        self.stage: Optional[str] = None

    def __str__(self) -> str:
        if self.output:
            return f"{self.message}\n{self.output.rstrip()}"
        return self.message


class AuthenticationError(ProvisioningError):
    step = "Session setup"


class IdentityLookupError(ProvisioningError):
    step = "Identity lookup"


class RoleCreationError(ProvisioningError):
    step = "Role creation"


class PolicyCreationError(ProvisioningError):
    step = "Policy creation"


class AttachmentError(ProvisioningError):
    step = "Policy attachment"


class ServiceAccountError(ProvisioningError):
    step = "Service account binding"


class ChartDeploymentError(ProvisioningError):
    step = "Chart deployment"
