"""Interfaces to the external tools the provisioning steps drive.

Each capability wraps one collaborator (package manager, installer scripts,
git, systemd) behind a method that performs the action and returns a
StepResult, so the steps can be exercised with fakes.
"""

import shlex
from typing import Protocol

from podhost.sequencer import StepResult
from podhost.shell import HostShell


class PackageInstaller(Protocol):
    def refresh(self) -> StepResult: ...

    def install(self, packages: list[str]) -> StepResult: ...


class ScriptInstaller(Protocol):
    def run_script(self, url: str, args: list[str] | None = None, interpreter: str = "bash") -> StepResult: ...


class VersionControl(Protocol):
    def clone(self, url: str, dest: str) -> StepResult: ...


class ServiceManager(Protocol):
    def enable_user_service(self, name: str) -> StepResult: ...

    def enable_linger(self, user: str) -> StepResult: ...


class AptInstaller:
    """Installs Debian packages with apt-get."""

    def __init__(self, shell: HostShell):
        self.shell = shell

    def refresh(self) -> StepResult:
        result = self.shell.sudo("apt-get update", warn=True)
        return StepResult.from_command(result, "package index refreshed")

    def install(self, packages: list[str]) -> StepResult:
        if not packages:
            return StepResult.skip("no packages requested")
        pkg_list = " ".join(shlex.quote(p) for p in packages)
        result = self.shell.sudo(
            f"DEBIAN_FRONTEND=noninteractive apt-get install -y {pkg_list}",
            warn=True,
        )
        return StepResult.from_command(result, f"{len(packages)} packages installed")


class CurlInstaller:
    """Downloads an installer script and pipes it into an interpreter."""

    def __init__(self, shell: HostShell):
        self.shell = shell

    def run_script(self, url: str, args: list[str] | None = None, interpreter: str = "bash") -> StepResult:
        command = f"set -o pipefail; curl -fsSL {shlex.quote(url)} | {interpreter} -s"
        if args:
            command += " -- " + " ".join(shlex.quote(a) for a in args)
        result = self.shell.run(command, warn=True)
        return StepResult.from_command(result, f"ran {url.rsplit('/', 1)[-1]}")


class GitClient:
    """Clones repositories with the git command line client."""

    def __init__(self, shell: HostShell, accept_new_host_keys: bool = True):
        self.shell = shell
        self.accept_new_host_keys = accept_new_host_keys

    def clone(self, url: str, dest: str) -> StepResult:
        if self.shell.dir_exists(f"{dest}/.git"):
            return StepResult.skip(f"{dest} is already a git checkout")

        env = ""
        if self.accept_new_host_keys:
            env = "GIT_SSH_COMMAND='ssh -o StrictHostKeyChecking=accept-new' "
        result = self.shell.run(
            f"{env}git clone {shlex.quote(url)} {shlex.quote(self.shell.expand(dest))}",
            warn=True,
        )
        return StepResult.from_command(result, f"cloned into {dest}")


class SystemdServices:
    """Manages per-user systemd services."""

    def __init__(self, shell: HostShell):
        self.shell = shell

    def enable_user_service(self, name: str) -> StepResult:
        # Non-login sessions have no XDG_RUNTIME_DIR, which systemctl --user needs
        prefix = 'XDG_RUNTIME_DIR="${XDG_RUNTIME_DIR:-/run/user/$(id -u)}" systemctl --user'
        for action in ("enable", "start"):
            result = self.shell.run(f"{prefix} {action} {shlex.quote(name)}", warn=True)
            if not result.ok:
                return StepResult.from_command(result)
        return StepResult.success(f"{name} enabled and started")

    def enable_linger(self, user: str) -> StepResult:
        result = self.shell.sudo(f"loginctl enable-linger {shlex.quote(user)}", warn=True)
        return StepResult.from_command(result, f"lingering enabled for {user}")


class Capabilities:
    """The shell plus the collaborators steps are allowed to use."""

    def __init__(
        self,
        shell: HostShell,
        packages: PackageInstaller | None = None,
        installers: ScriptInstaller | None = None,
        vcs: VersionControl | None = None,
        services: ServiceManager | None = None,
        accept_new_host_keys: bool = True,
    ):
        self.shell = shell
        self.packages = packages or AptInstaller(shell)
        self.installers = installers or CurlInstaller(shell)
        self.vcs = vcs or GitClient(shell, accept_new_host_keys)
        self.services = services or SystemdServices(shell)


def verify(shell: HostShell, command: str) -> StepResult:
    """Run a verification command; its first output line becomes the detail."""
    result = shell.run(command, warn=True, hide=True)
    if not result.ok:
        return StepResult.from_command(result)
    output = (result.stdout or "").strip().splitlines()
    return StepResult.success(output[0] if output else "")
