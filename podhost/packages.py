"""Base packages, oh-my-zsh and Podman Compose."""

import shlex

from podhost.capabilities import Capabilities, verify
from podhost.config import ProvisionConfig
from podhost.sequencer import StepResult


def refresh_packages(caps: Capabilities) -> StepResult:
    """Refresh the apt package index."""
    return caps.packages.refresh()


def install_base_packages(caps: Capabilities, config: ProvisionConfig) -> StepResult:
    """Install podman and the tools the remaining steps rely on."""
    return caps.packages.install(config.podman.packages)


def install_oh_my_zsh(caps: Capabilities, config: ProvisionConfig) -> StepResult:
    """Install oh-my-zsh without switching the login shell."""
    if caps.shell.dir_exists("~/.oh-my-zsh"):
        return StepResult.skip("~/.oh-my-zsh already exists")

    return caps.installers.run_script(
        config.shell.oh_my_zsh_installer,
        ["--unattended"],
        interpreter="sh",
    )


def create_venv(caps: Capabilities, config: ProvisionConfig) -> StepResult:
    """Create the virtual environment Podman Compose is installed into."""
    venv = config.podman.venv_path
    if caps.shell.file_exists(f"{venv}/bin/activate"):
        return StepResult.skip(f"{venv} already exists")

    result = caps.shell.run(f"python3 -m venv {shlex.quote(caps.shell.expand(venv))}", warn=True)
    return StepResult.from_command(result, f"created {venv}")


def install_podman_compose(caps: Capabilities, config: ProvisionConfig) -> StepResult:
    pip = shlex.quote(caps.shell.expand(f"{config.podman.venv_path}/bin/pip"))
    result = caps.shell.run(f"{pip} install podman-compose", warn=True)
    return StepResult.from_command(result, "podman-compose installed")


def verify_podman_compose(caps: Capabilities, config: ProvisionConfig) -> StepResult:
    binary = shlex.quote(caps.shell.expand(f"{config.podman.venv_path}/bin/podman-compose"))
    return verify(caps.shell, f"{binary} --version")
