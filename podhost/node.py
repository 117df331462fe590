"""Node.js through nvm."""

from podhost.capabilities import Capabilities, verify
from podhost.config import ProvisionConfig
from podhost.sequencer import StepResult
from podhost.shellrc import NVM_INIT_LINES

# Each command runs in a fresh shell, so nvm has to be loaded every time
LOAD_NVM = "; ".join(NVM_INIT_LINES)


def with_nvm(command: str) -> str:
    return f"{LOAD_NVM}; {command}"


def install_nvm(caps: Capabilities, config: ProvisionConfig) -> StepResult:
    return caps.installers.run_script(config.node.nvm_installer)


def install_node(caps: Capabilities, config: ProvisionConfig) -> StepResult:
    result = caps.shell.run(with_nvm(f"nvm install {config.node.install_args}"), warn=True)
    return StepResult.from_command(result, f"node {config.node.node_version} installed")


def verify_node(caps: Capabilities, config: ProvisionConfig) -> StepResult:
    return verify(caps.shell, with_nvm("node -v"))


def verify_npm(caps: Capabilities, config: ProvisionConfig) -> StepResult:
    return verify(caps.shell, with_nvm("npm -v"))
