"""podhost-setup library modules."""

from podhost.config import load_config, validate_config, OperatorInput, ProvisionConfig
from podhost.shell import HostShell
from podhost.capabilities import Capabilities
from podhost.sequencer import Sequencer, Step, StepResult, ProvisioningError
from podhost.plan import build_plan
from podhost.report import write_summary

__all__ = [
    "load_config",
    "validate_config",
    "OperatorInput",
    "ProvisionConfig",
    "HostShell",
    "Capabilities",
    "Sequencer",
    "Step",
    "StepResult",
    "ProvisioningError",
    "build_plan",
    "write_summary",
]
