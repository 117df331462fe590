"""The provisioning sequence."""

from functools import partial
from typing import Callable

from podhost import hasura, node, packages, podman, project, shellrc, ssh_keys, storage
from podhost.capabilities import Capabilities
from podhost.config import OperatorInput, ProvisionConfig
from podhost.sequencer import Step


def build_plan(
    caps: Capabilities,
    config: ProvisionConfig,
    operator: OperatorInput,
    wait: Callable[[str], object] | None = None,
) -> list[Step]:
    """Build the ordered list of steps for this host.

    Verification steps are critical; everything else is best-effort. Steps
    disabled in the config are left out.
    """

    def step(name: str, func, *args, critical: bool = False) -> Step:
        return Step(name=name, action=partial(func, caps, *args), critical=critical)

    steps = [
        step("Refresh package index", packages.refresh_packages),
        step("Install base packages", packages.install_base_packages, config),
    ]

    if config.shell.install_oh_my_zsh:
        steps.append(step("Install oh-my-zsh", packages.install_oh_my_zsh, config))

    steps += [
        step("Create Podman Compose virtual environment", packages.create_venv, config),
        step("Install Podman Compose", packages.install_podman_compose, config),
        step("Verify Podman Compose", packages.verify_podman_compose, config, critical=True),
        step("Check Podman storage driver", storage.repair_storage_driver, config, critical=True),
        step("Configure shell startup files", shellrc.configure_shell_rc, config),
        step("Generate SSH key", ssh_keys.generate_ssh_key, config, operator),
    ]

    if config.ssh_key.wait_for_github:
        steps.append(step("Add SSH key to GitHub", ssh_keys.share_public_key, config, operator, wait))

    steps += [
        step("Create project directory", project.create_project_dir, config, operator),
        step("Clone project repository", project.clone_project, config, operator),
        step("Install nvm", node.install_nvm, config),
        step("Install Node.js", node.install_node, config, critical=True),
        step("Verify Node.js", node.verify_node, config, critical=True),
        step("Verify npm", node.verify_npm, config, critical=True),
        step("Configure container registries", podman.configure_registries, config),
    ]

    if config.hasura.enabled:
        steps += [
            step("Install Hasura CLI", hasura.install_hasura, config),
            step("Verify Hasura CLI", hasura.verify_hasura, config, critical=True),
        ]

    steps.append(step("Allow rootless binding to low ports", podman.allow_unprivileged_ports, config))

    if config.podman.enable_linger:
        steps.append(step("Enable lingering", podman.enable_linger, config))

    steps += [
        step("Enable Podman user service", podman.enable_podman_service, config),
        step("Configure cgroup manager", podman.configure_cgroup_manager, config),
    ]

    return steps
