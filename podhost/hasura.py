"""Hasura GraphQL engine CLI."""

from podhost.capabilities import Capabilities, verify
from podhost.config import ProvisionConfig
from podhost.sequencer import StepResult


def install_hasura(caps: Capabilities, config: ProvisionConfig) -> StepResult:
    return caps.installers.run_script(config.hasura.installer)


def verify_hasura(caps: Capabilities, config: ProvisionConfig) -> StepResult:
    return verify(caps.shell, "hasura version")
