"""podhost-setup: provision a Debian host for rootless Podman workloads."""

import argparse
import sys
from datetime import datetime
from typing import Callable

from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from podhost.capabilities import Capabilities
from podhost.config import OperatorInput, ProvisionConfig, load_config, validate_config
from podhost.plan import build_plan
from podhost.project import checkout_dir
from podhost.report import write_summary
from podhost.sequencer import ProvisioningError, Sequencer
from podhost.shell import HostShell
from podhost.ssh_keys import read_public_key

console = Console()

FLAGS = {
    "email": "-e EMAIL",
    "project_name": "-p PROJECT_NAME",
    "github_username": "-g GITHUB_USERNAME",
}


def print_banner():
    """Print the podhost-setup banner."""
    console.print(Panel.fit(
        "[bold cyan]podhost-setup[/bold cyan]\n"
        "[dim]Rootless Podman, Node.js and Hasura on a fresh Debian host[/dim]",
        border_style="blue",
    ))


class UsageParser(argparse.ArgumentParser):
    """Reports bad flags with usage on stdout and exit status 1."""

    def error(self, message):
        self.print_usage(sys.stdout)
        console.print(f"[red]✗ {escape(message)}[/red]")
        sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    parser = UsageParser(
        prog="podhost-setup",
        usage="%(prog)s -e EMAIL -p PROJECT_NAME -g GITHUB_USERNAME [options]",
        description="Provision a Debian host for rootless Podman workloads",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-e", dest="email", metavar="EMAIL", help="Your email address for SSH key generation")
    parser.add_argument("-p", dest="project_name", metavar="PROJECT_NAME", help="The name of your project on GitHub")
    parser.add_argument("-g", dest="github_username", metavar="GITHUB_USERNAME", help="Your GitHub username")
    parser.add_argument(
        "--config",
        "-c",
        help="Path to a YAML configuration file (defaults are used without one)",
    )
    parser.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Do not ask for confirmation before provisioning",
    )
    parser.add_argument(
        "--host",
        help="Provision [user@]host over SSH instead of the local machine",
    )
    parser.add_argument(
        "--ask-sudo-pass",
        "-K",
        action="store_true",
        help="Prompt for the sudo password of the provisioning user",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the steps that would run without changing anything",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show the output of every command",
    )
    parser.add_argument(
        "--output-dir",
        "-o",
        default=".",
        help="Directory for the run summary (default: current directory)",
    )
    return parser


def parse_operator(parser: argparse.ArgumentParser, args: argparse.Namespace) -> OperatorInput:
    """Validate the required flags, printing usage and exiting 1 if any is missing."""
    try:
        return OperatorInput(
            email=args.email,
            project_name=args.project_name,
            github_username=args.github_username,
        )
    except ValidationError as e:
        parser.print_usage(sys.stdout)
        for error in e.errors():
            field = error["loc"][0] if error["loc"] else ""
            console.print(f"[red]✗ {FLAGS.get(field, field)} is required[/red]")
        sys.exit(1)


def load_settings(args: argparse.Namespace, operator: OperatorInput) -> ProvisionConfig:
    """Load the config file and apply command line overrides."""
    if args.config:
        console.print(f"[cyan]Loading config from {args.config}...[/cyan]")
    try:
        config = load_config(args.config)
    except Exception as e:
        console.print(f"[red]✗ Config error: {e}[/red]")
        sys.exit(1)

    if args.host:
        user, _, host = args.host.rpartition("@")
        config.target.host = host
        if user:
            config.target.user = user

    for warning in validate_config(config, operator):
        console.print(f"[yellow]⚠ {warning}[/yellow]")

    return config


def confirm_plan(operator: OperatorInput, ask: Callable[[str], str]) -> bool:
    """Echo the inputs back and accept only y or Y."""
    console.print("\nDoes the following information look correct?")
    console.print(f"  Email: [bold]{operator.email}[/bold]")
    console.print(f"  Project Name: [bold]{operator.project_name}[/bold]")
    console.print(f"  GitHub Username: [bold]{operator.github_username}[/bold]")
    try:
        reply = ask("Continue? y/n: ")
    except EOFError:
        return False
    return reply.strip() in ("y", "Y")


def print_plan(caps: Capabilities, config: ProvisionConfig, operator: OperatorInput) -> None:
    table = Table(title=f"Provisioning plan for {caps.shell.description}")
    table.add_column("#", justify="right")
    table.add_column("Step")
    table.add_column("On failure")
    for index, step in enumerate(build_plan(caps, config, operator), start=1):
        table.add_row(str(index), step.name, "[red]stop[/red]" if step.critical else "continue")
    console.print(table)


def run_provisioning(
    caps: Capabilities,
    config: ProvisionConfig,
    operator: OperatorInput,
    ask: Callable[[str], str],
    output_dir: str = ".",
) -> bool:
    """Run every step and write the summary. Returns False if a critical step failed."""
    def pause():
        ask("[dim]Press enter to continue...[/dim]")

    sequencer = Sequencer(
        build_plan(caps, config, operator, wait=ask),
        pause=pause if config.pause_between_steps else None,
    )

    error = None
    try:
        sequencer.run()
    except ProvisioningError as e:
        error = str(e)
        console.print(f"\n[bold red]Provisioning failed: {e}[/bold red]")
        console.print("[yellow]Some steps may have completed. Check host state.[/yellow]")

    write_summary(
        config,
        operator,
        sequencer.outcomes,
        caps.shell.description,
        output_dir=output_dir,
        public_key=read_public_key(caps, config),
        error=error,
    )

    for failure in sequencer.failures:
        if not failure.critical:
            console.print(f"[yellow]⚠ {failure.name}: {failure.result.detail}[/yellow]")

    return error is None


def main(argv: list[str] | None = None, ask: Callable[[str], str] | None = None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    ask = ask or console.input

    operator = parse_operator(parser, args)

    print_banner()
    start_time = datetime.now()

    config = load_settings(args, operator)

    if args.dry_run:
        print_plan(Capabilities(HostShell(config.target)), config, operator)
        console.print("\n[bold yellow]DRY RUN: Exiting without making changes.[/bold yellow]")
        sys.exit(0)

    if not args.yes and not confirm_plan(operator, ask):
        console.print("[red]Aborted.[/red]")
        sys.exit(1)

    if args.ask_sudo_pass:
        config.target.sudo_password = console.input("sudo password: ", password=True)

    shell = HostShell(config.target, verbose=args.verbose)
    console.print(f"\n[cyan]Connecting to {shell.description}...[/cyan]")
    if not shell.test_connection():
        console.print("[red]✗ Could not run commands on the host[/red]")
        sys.exit(1)

    try:
        caps = Capabilities(shell, accept_new_host_keys=config.project.accept_new_host_keys)
        completed = run_provisioning(caps, config, operator, ask, args.output_dir)
        if not completed:
            sys.exit(1)

        elapsed = datetime.now() - start_time
        console.print("\n" + "=" * 60)
        console.print(Panel.fit(
            f"[bold green]Setup complete![/bold green]\n\n"
            f"Time elapsed: {elapsed.total_seconds():.0f} seconds\n"
            f"Project checkout: {checkout_dir(config, operator)}\n\n"
            "[cyan]You are now ready to use Podman Compose on this host.[/cyan]\n"
            "[dim]Don't forget to add your SSH key to GitHub if you haven't already.[/dim]",
            border_style="green",
        ))

    except Exception as e:
        console.print(f"\n[bold red]Provisioning failed: {e}[/bold red]")
        sys.exit(1)

    finally:
        shell.close()
