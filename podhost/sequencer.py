"""Ordered execution of provisioning steps."""

from typing import Callable

from invoke.exceptions import Failure, ThreadException
from pydantic import BaseModel
from rich.console import Console

console = Console()


class StepResult(BaseModel):
    """Outcome of a single provisioning action."""

    ok: bool
    skipped: bool = False
    detail: str = ""

    @classmethod
    def success(cls, detail: str = "") -> "StepResult":
        return cls(ok=True, detail=detail)

    @classmethod
    def failure(cls, detail: str) -> "StepResult":
        return cls(ok=False, detail=detail)

    @classmethod
    def skip(cls, detail: str) -> "StepResult":
        return cls(ok=True, skipped=True, detail=detail)

    @classmethod
    def from_command(cls, result, detail: str = "") -> "StepResult":
        """Build a result from an invoke command result."""
        if result.ok:
            output = (result.stdout or "").strip().splitlines()
            return cls.success(detail or (output[-1] if output else ""))
        error = (result.stderr or result.stdout or "").strip().splitlines()
        message = error[-1] if error else ""
        return cls.failure(f"exit code {result.exited}" + (f": {message}" if message else ""))


class Step(BaseModel):
    """A named provisioning action.

    A critical step halts the run when it fails; any other step is best-effort.
    """

    name: str
    action: Callable[[], StepResult]
    critical: bool = False


class StepOutcome(BaseModel):
    """What happened when a step ran."""

    name: str
    critical: bool
    result: StepResult

    @property
    def status(self) -> str:
        if self.result.skipped:
            return "skipped"
        return "ok" if self.result.ok else "failed"


class ProvisioningError(RuntimeError):
    """A critical step failed."""

    def __init__(self, step: str, result: StepResult):
        self.step = step
        self.result = result
        super().__init__(f"{step} failed: {result.detail}")


class Sequencer:
    """Runs steps in order, stopping at the first critical failure."""

    def __init__(self, steps: list[Step], pause: Callable[[], None] | None = None):
        self.steps = steps
        self.pause = pause
        self.outcomes: list[StepOutcome] = []

    def _execute(self, step: Step) -> StepResult:
        try:
            return step.action()
        except Failure as e:
            return StepResult.from_command(e.result)
        except (ThreadException, OSError) as e:
            return StepResult.failure(str(e) or repr(e))

    def run(self) -> list[StepOutcome]:
        """Run every step and return the outcomes.

        Raises ProvisioningError when a critical step fails.
        """
        total = len(self.steps)
        for index, step in enumerate(self.steps, start=1):
            console.print(f"\n[bold blue]Step {index}/{total}: {step.name}[/bold blue]")

            result = self._execute(step)
            self.outcomes.append(StepOutcome(name=step.name, critical=step.critical, result=result))

            if result.skipped:
                console.print(f"[dim]Skipped: {result.detail}[/dim]")
            elif result.ok:
                suffix = f" ({result.detail})" if result.detail else ""
                console.print(f"[green]✓ {step.name}{suffix}[/green]")
            elif step.critical:
                console.print(f"[red]✗ {step.name}: {result.detail}[/red]")
                raise ProvisioningError(step.name, result)
            else:
                console.print(f"[yellow]⚠ {step.name} failed, continuing: {result.detail}[/yellow]")

            if self.pause is not None and index < total:
                self.pause()

        return self.outcomes

    @property
    def failures(self) -> list[StepOutcome]:
        return [o for o in self.outcomes if not o.result.ok]
