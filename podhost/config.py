"""Configuration parsing and validation for podhost-setup."""

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator


class OperatorInput(BaseModel):
    """Values supplied on the command line by the operator."""

    email: str
    project_name: str
    github_username: str

    @field_validator("email", "project_name", "github_username", mode="before")
    @classmethod
    def not_empty(cls, v):
        if v is None or not str(v).strip():
            raise ValueError("must not be empty")
        return str(v).strip()

    @property
    def repo_url(self) -> str:
        return f"git@github.com:{self.github_username}/{self.project_name}.git"


class TargetConfig(BaseModel):
    """Which host to provision.

    With no host set, commands run on the local machine.
    """

    host: str | None = None
    user: str | None = None
    port: int = 22
    key_path: str | None = None
    sudo_password: str | None = None

    @model_validator(mode="after")
    def validate_remote(self):
        if self.host is None and (self.user or self.key_path):
            raise ValueError("user/key_path only apply when host is set")
        return self


class PodmanConfig(BaseModel):
    """Podman, Podman Compose and container engine settings."""

    packages: list[str] = Field(
        default_factory=lambda: [
            "podman",
            "python3-pip",
            "python3-venv",
            "git",
            "dbus",
            "slirp4netns",
            "zsh",
        ]
    )
    venv_path: str = "~/podman_env"
    registries: list[str] = Field(
        default_factory=lambda: ["docker.io", "quay.io", "registry.fedoraproject.org"]
    )
    registries_conf: str = "/etc/containers/registries.conf"
    storage_conf: str = "/etc/containers/storage.conf"
    fuse_overlayfs: str = "/usr/bin/fuse-overlayfs"
    containers_conf: str = "~/.config/containers/containers.conf"
    cgroup_manager: Literal["cgroupfs", "systemd"] = "cgroupfs"
    unprivileged_port_start: int = Field(default=80, ge=0, le=65535)
    sysctl_conf: str = "/etc/sysctl.conf"
    enable_linger: bool = True
    user_service: str = "podman"


class ShellConfig(BaseModel):
    """Shell customization."""

    install_oh_my_zsh: bool = True
    oh_my_zsh_installer: str = (
        "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh"
    )
    rc_files: list[str] = Field(default_factory=lambda: ["~/.bashrc", "~/.zshrc"])
    activate_venv: bool = True
    aliases: dict[str, str] = Field(default_factory=dict)

    @field_validator("aliases")
    @classmethod
    def alias_names(cls, v: dict[str, str]) -> dict[str, str]:
        for name in v:
            if not name or any(c.isspace() or c in "='\"" for c in name):
                raise ValueError(f"Invalid alias name: {name!r}")
        return v


class NodeConfig(BaseModel):
    """nvm and Node.js installation."""

    nvm_version: str = "v0.40.1"
    node_version: str = "lts"
    zsh_autoload: bool = True
    shell_init: bool = False

    @property
    def nvm_installer(self) -> str:
        return f"https://raw.githubusercontent.com/nvm-sh/nvm/{self.nvm_version}/install.sh"

    @property
    def install_args(self) -> str:
        if self.node_version == "lts":
            return "--lts"
        return self.node_version


class HasuraConfig(BaseModel):
    """Hasura GraphQL engine CLI."""

    enabled: bool = True
    installer: str = "https://github.com/hasura/graphql-engine/raw/stable/cli/get.sh"


class ProjectConfig(BaseModel):
    """Where the operator's project is cloned."""

    base_dir: str = "/etc"
    accept_new_host_keys: bool = True


class SSHKeyConfig(BaseModel):
    """SSH key generation for GitHub access."""

    path: str = "~/.ssh/id_ed25519"
    key_type: Literal["ed25519", "rsa", "ecdsa"] = "ed25519"
    wait_for_github: bool = True
    github_key_kind: Literal["account", "deploy"] = "account"


class ProvisionConfig(BaseModel):
    """Main configuration for podhost-setup."""

    target: TargetConfig = Field(default_factory=TargetConfig)
    podman: PodmanConfig = Field(default_factory=PodmanConfig)
    shell: ShellConfig = Field(default_factory=ShellConfig)
    node: NodeConfig = Field(default_factory=NodeConfig)
    hasura: HasuraConfig = Field(default_factory=HasuraConfig)
    project: ProjectConfig = Field(default_factory=ProjectConfig)
    ssh_key: SSHKeyConfig = Field(default_factory=SSHKeyConfig)
    pause_between_steps: bool = False


def load_config(path: str | Path | None = None) -> ProvisionConfig:
    """Load and validate configuration from a YAML file.

    Without a path the defaults are returned.
    """
    if path is None:
        return ProvisionConfig()

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f)

    return ProvisionConfig(**(raw or {}))


def validate_config(config: ProvisionConfig, operator: OperatorInput | None = None) -> list[str]:
    """Perform additional validation checks on the config.

    Returns a list of warnings (empty if all good).
    """
    warnings = []

    if operator is not None and "@" not in operator.email:
        warnings.append(f"Email '{operator.email}' does not look like an address")

    if config.podman.unprivileged_port_start > 80:
        warnings.append(
            f"Unprivileged port start is {config.podman.unprivileged_port_start} - "
            "rootless containers will not be able to bind to 80/443"
        )

    if config.podman.cgroup_manager == "systemd" and not config.podman.enable_linger:
        warnings.append("cgroup_manager 'systemd' without lingering - user services stop on logout")

    if config.shell.install_oh_my_zsh and "~/.zshrc" not in config.shell.rc_files:
        warnings.append("oh-my-zsh is installed but ~/.zshrc is not in shell.rc_files")

    if config.node.zsh_autoload and not config.shell.install_oh_my_zsh:
        warnings.append("node.zsh_autoload needs oh-my-zsh - the zstyle line will be skipped if absent")

    return warnings
