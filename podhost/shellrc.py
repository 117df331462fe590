"""Shell startup file configuration."""

import shlex

from rich.console import Console

from podhost.capabilities import Capabilities
from podhost.config import ProvisionConfig
from podhost.sequencer import StepResult

console = Console()

OH_MY_ZSH_SOURCE = "source $ZSH/oh-my-zsh.sh"

# oh-my-zsh reads plugin zstyles when it is sourced, so this goes before that line.
# See: https://stackoverflow.com/questions/73077938/how-to-correctly-setup-plugin-nvm-for-oh-my-zsh
NVM_AUTOLOAD = "zstyle ':omz:plugins:nvm' autoload true"

NVM_INIT_LINES = [
    'export NVM_DIR="$([ -z "${XDG_CONFIG_HOME-}" ] && printf %s "${HOME}/.nvm" || printf %s "${XDG_CONFIG_HOME}/nvm")"',
    '[ -s "$NVM_DIR/nvm.sh" ] && \\. "$NVM_DIR/nvm.sh"',
]


def venv_activation_line(config: ProvisionConfig) -> str:
    return f"source {config.podman.venv_path}/bin/activate"


def alias_lines(aliases: dict[str, str]) -> list[str]:
    return [f"alias {name}={shlex.quote(command)}" for name, command in aliases.items()]


def rc_lines(config: ProvisionConfig) -> list[str]:
    """Lines every existing shell startup file should contain."""
    lines = []
    if config.shell.activate_venv:
        lines.append(venv_activation_line(config))
    lines.extend(alias_lines(config.shell.aliases))
    if config.node.shell_init:
        lines.extend(NVM_INIT_LINES)
    return lines


def configure_shell_rc(caps: Capabilities, config: ProvisionConfig) -> StepResult:
    """Add venv activation, aliases and nvm setup to the shell startup files.

    Only files that already exist are touched, and lines already present are
    not added again.
    """
    shell = caps.shell
    lines = rc_lines(config)
    added = 0
    configured = []

    for rc_file in config.shell.rc_files:
        if not shell.file_exists(rc_file):
            console.print(f"[dim]{rc_file} not found, skipping[/dim]")
            continue
        configured.append(rc_file)

        for line in lines:
            if shell.ensure_line(rc_file, line):
                added += 1

        if rc_file.endswith(".zshrc") and config.node.zsh_autoload:
            try:
                if shell.insert_line_before(rc_file, OH_MY_ZSH_SOURCE, NVM_AUTOLOAD):
                    added += 1
            except LookupError as e:
                console.print(f"[yellow]⚠ nvm autoload not configured: {e}[/yellow]")

    if not configured:
        return StepResult.skip("no shell startup files found")
    return StepResult.success(f"{added} lines added to {', '.join(configured)}")
