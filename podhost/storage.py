"""Podman storage driver detection and repair.

Rootless Podman falls back to the vfs graph driver when no overlay support
is available, which makes image builds and container starts very slow. When
that happens we switch to the overlay driver with fuse-overlayfs as the
mount program and reset Podman's storage so the new driver takes effect.

See: https://stackoverflow.com/questions/71081234/podman-builds-and-runs-containers-extremely-slow-compared-to-docker
"""

import shlex

from rich.console import Console

from podhost.capabilities import Capabilities, verify
from podhost.config import ProvisionConfig
from podhost.sequencer import StepResult

console = Console()

SLOW_DRIVER = "vfs"


def parse_graph_driver(output: str) -> str | None:
    """Extract the graphDriverName value from `podman info --debug` output."""
    for line in output.splitlines():
        key, sep, value = line.strip().partition(":")
        if sep and key.strip() == "graphDriverName":
            return value.strip().strip('"') or None
    return None


def detect_graph_driver(caps: Capabilities) -> str | None:
    """Return the storage graph driver Podman is using, or None if unknown."""
    result = caps.shell.run("podman info --debug", warn=True, hide=True)
    if not result.ok:
        return None
    return parse_graph_driver(result.stdout)


def storage_conf_content(mount_program: str) -> str:
    return f"""[storage]
driver = "overlay"

[storage.options]
mount_program = "{mount_program}"
"""


def repair_storage_driver(caps: Capabilities, config: ProvisionConfig) -> StepResult:
    """Switch Podman from vfs to overlay with fuse-overlayfs."""
    driver = detect_graph_driver(caps)
    if driver is None:
        return StepResult.skip("could not determine podman graph driver")
    if driver != SLOW_DRIVER:
        return StepResult.skip(f"podman is using {driver}")

    console.print("[yellow]⚠ podman is using vfs instead of fuse-overlayfs. Switching to fuse-overlayfs...[/yellow]")

    installed = caps.packages.install(["fuse-overlayfs"])
    if not installed.ok:
        console.print(f"[yellow]⚠ fuse-overlayfs install reported: {installed.detail}[/yellow]")

    fuse = config.podman.fuse_overlayfs
    check = verify(caps.shell, f"{shlex.quote(fuse)} --version")
    if not check.ok:
        return StepResult.failure(f"fuse-overlayfs installation failed ({check.detail})")

    caps.shell.write_file(config.podman.storage_conf, storage_conf_content(fuse), sudo=True, mode="644")
    console.print(f"[dim]Wrote {config.podman.storage_conf}[/dim]")

    reset = caps.shell.run("podman system reset --force", warn=True)
    if not reset.ok:
        console.print("[yellow]⚠ podman system reset failed - run it by hand before using podman[/yellow]")
        return StepResult.success("storage.conf switched to overlay, reset pending")

    return StepResult.success("switched from vfs to overlay (fuse-overlayfs)")
