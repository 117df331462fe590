"""Rootless Podman host configuration."""

from podhost.capabilities import Capabilities
from podhost.config import ProvisionConfig
from podhost.sequencer import StepResult


def registries_conf_content(registries: list[str]) -> str:
    quoted = ", ".join(f'"{r}"' for r in registries)
    return f"""[registries.search]
registries = [{quoted}]
"""


def containers_conf_content(cgroup_manager: str) -> str:
    return f"""[engine]
cgroup_manager = "{cgroup_manager}"
"""


def configure_registries(caps: Capabilities, config: ProvisionConfig) -> StepResult:
    """Set the registries short image names are searched in."""
    path = config.podman.registries_conf
    caps.shell.write_file(path, registries_conf_content(config.podman.registries), sudo=True, mode="644")
    return StepResult.success(f"{len(config.podman.registries)} registries in {path}")


def allow_unprivileged_ports(caps: Capabilities, config: ProvisionConfig) -> StepResult:
    """Let rootless containers bind to ports from 80 upwards."""
    start = config.podman.unprivileged_port_start
    line = f"net.ipv4.ip_unprivileged_port_start={start}"
    added = caps.shell.ensure_line(config.podman.sysctl_conf, line, sudo=True)

    result = caps.shell.sudo(f"sysctl -p {config.podman.sysctl_conf}", warn=True)
    if not result.ok:
        return StepResult.from_command(result)
    if not added:
        return StepResult.success(f"{line} already set")
    return StepResult.success(line)


def enable_linger(caps: Capabilities, config: ProvisionConfig) -> StepResult:
    """Keep the user's services running without an open session."""
    return caps.services.enable_linger(caps.shell.user)


def enable_podman_service(caps: Capabilities, config: ProvisionConfig) -> StepResult:
    return caps.services.enable_user_service(config.podman.user_service)


def configure_cgroup_manager(caps: Capabilities, config: ProvisionConfig) -> StepResult:
    path = config.podman.containers_conf
    caps.shell.write_file(path, containers_conf_content(config.podman.cgroup_manager))
    return StepResult.success(f"cgroup_manager = {config.podman.cgroup_manager}")
