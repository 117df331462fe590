"""SSH key generation for GitHub access."""

import shlex
from typing import Callable

from rich.console import Console
from rich.panel import Panel

from podhost.capabilities import Capabilities
from podhost.config import OperatorInput, ProvisionConfig
from podhost.sequencer import StepResult

console = Console()


def generate_ssh_key(caps: Capabilities, config: ProvisionConfig, operator: OperatorInput) -> StepResult:
    """Generate an SSH keypair with no passphrase.

    ssh picks the key up from its default path, so no agent is needed. An
    existing key at the same path is left untouched.
    """
    shell = caps.shell
    key_path = shell.expand(config.ssh_key.path)
    quoted = shlex.quote(key_path)

    if shell.file_exists(key_path):
        return StepResult.skip(f"{config.ssh_key.path} already exists")

    ssh_dir = shlex.quote(key_path.rsplit("/", 1)[0])
    shell.run(f"mkdir -p {ssh_dir} && chmod 700 {ssh_dir}", hide=True)
    result = shell.run(
        f"ssh-keygen -t {config.ssh_key.key_type} -C {shlex.quote(operator.email)} -f {quoted} -N ''",
        warn=True,
    )
    if not result.ok:
        return StepResult.from_command(result)

    return StepResult.success(f"generated {config.ssh_key.path}")


def read_public_key(caps: Capabilities, config: ProvisionConfig) -> str | None:
    content = caps.shell.read_file(f"{config.ssh_key.path}.pub")
    if content is None:
        return None
    return content.strip() or None


def github_instructions(config: ProvisionConfig, operator: OperatorInput) -> str:
    if config.ssh_key.github_key_kind == "deploy":
        return (
            "Add this key as a deploy key of "
            f"https://github.com/{operator.github_username}/{operator.project_name}/settings/keys"
        )
    return "Copy the following SSH key and add it to your GitHub account (https://github.com/settings/keys)"


def share_public_key(
    caps: Capabilities,
    config: ProvisionConfig,
    operator: OperatorInput,
    wait: Callable[[str], object] | None = None,
) -> StepResult:
    """Show the public key and wait until the operator has added it to GitHub."""
    pub_key = read_public_key(caps, config)
    if pub_key is None:
        return StepResult.failure(f"{config.ssh_key.path}.pub not found")

    console.print(f"\n[yellow]{github_instructions(config, operator)}:[/yellow]")
    console.print(Panel(pub_key, border_style="dim"))

    if wait is not None:
        wait("Press enter after adding the SSH key to GitHub...")
    return StepResult.success("public key shown")
