"""Run summary generation for podhost-setup."""

from datetime import datetime
from pathlib import Path

from jinja2 import Environment, FileSystemLoader
from rich.console import Console

from podhost.config import OperatorInput, ProvisionConfig
from podhost.project import checkout_dir
from podhost.sequencer import StepOutcome

console = Console()


def render_summary(
    config: ProvisionConfig,
    operator: OperatorInput,
    outcomes: list[StepOutcome],
    target: str,
    public_key: str | None = None,
    error: str | None = None,
) -> str:
    """Render the Markdown summary of a provisioning run."""
    template_dir = Path(__file__).parent / "templates"
    env = Environment(loader=FileSystemLoader(template_dir), trim_blocks=True, lstrip_blocks=True)
    template = env.get_template("summary.md.j2")

    context = {
        "date": datetime.now().strftime("%Y-%m-%d %H:%M"),
        "target": target,
        "project_name": operator.project_name,
        "email": operator.email,
        "github_username": operator.github_username,
        "repo_url": operator.repo_url,
        "checkout_dir": checkout_dir(config, operator),
        "venv_path": config.podman.venv_path,
        "outcomes": outcomes,
        "failures": [o for o in outcomes if not o.result.ok],
        "error": error,
        "public_key": public_key,
        "key_kind": "deploy key" if config.ssh_key.github_key_kind == "deploy" else "account key",
        "aliases": config.shell.aliases,
        "port_start": config.podman.unprivileged_port_start,
        "hasura_enabled": config.hasura.enabled,
    }

    return template.render(**context)


def write_summary(
    config: ProvisionConfig,
    operator: OperatorInput,
    outcomes: list[StepOutcome],
    target: str,
    output_dir: str = ".",
    public_key: str | None = None,
    error: str | None = None,
) -> Path:
    """Write the run summary and return its path."""
    content = render_summary(config, operator, outcomes, target, public_key, error)

    date_str = datetime.now().strftime("%Y%m%d")
    output_path = Path(output_dir) / f"podhost-summary-{operator.project_name}-{date_str}.md"
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(content)

    console.print(f"[green]✓ Summary saved to: {output_path}[/green]")
    return output_path
