"""Project directory and repository checkout."""

import posixpath
import shlex

from podhost.capabilities import Capabilities
from podhost.config import OperatorInput, ProvisionConfig
from podhost.sequencer import StepResult


def project_dir(config: ProvisionConfig, operator: OperatorInput) -> str:
    return posixpath.join(config.project.base_dir, operator.project_name)


def checkout_dir(config: ProvisionConfig, operator: OperatorInput) -> str:
    return posixpath.join(project_dir(config, operator), operator.project_name)


def create_project_dir(caps: Capabilities, config: ProvisionConfig, operator: OperatorInput) -> StepResult:
    """Create the project directory and hand it to the provisioning user."""
    shell = caps.shell
    path = shlex.quote(project_dir(config, operator))
    user = shlex.quote(shell.user)

    result = shell.sudo(f"mkdir -p {path}", warn=True)
    if not result.ok:
        return StepResult.from_command(result)

    result = shell.sudo(f"chown {user}:{user} {path}", warn=True)
    return StepResult.from_command(result, f"{project_dir(config, operator)} owned by {shell.user}")


def clone_project(caps: Capabilities, config: ProvisionConfig, operator: OperatorInput) -> StepResult:
    """Clone the operator's GitHub repository over SSH."""
    return caps.vcs.clone(operator.repo_url, checkout_dir(config, operator))
