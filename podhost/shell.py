"""Command execution on the host being provisioned."""

import shlex
from pathlib import Path

from fabric import Config as FabricConfig
from fabric import Connection
from invoke import Config, Context
from invoke.runners import Result
from rich.console import Console

from podhost.config import TargetConfig

console = Console()


class HostShell:
    """Runs commands on the local machine or, when a host is configured, over SSH."""

    def __init__(self, target: TargetConfig, verbose: bool = False):
        self.target = target
        self.verbose = verbose
        self._connection: Connection | Context | None = None
        self._home: str | None = None
        self._user: str | None = None

    @property
    def is_remote(self) -> bool:
        return self.target.host is not None

    @property
    def description(self) -> str:
        if not self.is_remote:
            return "localhost"
        user = f"{self.target.user}@" if self.target.user else ""
        return f"{user}{self.target.host}:{self.target.port}"

    def _get_overrides(self) -> dict:
        if self.target.sudo_password:
            return {"sudo": {"password": self.target.sudo_password}}
        return {}

    def _get_connect_kwargs(self) -> dict:
        if self.target.key_path:
            key_path = Path(self.target.key_path).expanduser()
            return {"key_filename": str(key_path)}
        return {}

    @property
    def conn(self) -> Connection | Context:
        """Get or create the underlying invoke context or fabric connection."""
        if self._connection is None:
            if self.is_remote:
                self._connection = Connection(
                    host=self.target.host,
                    user=self.target.user,
                    port=self.target.port,
                    connect_kwargs=self._get_connect_kwargs(),
                    config=FabricConfig(overrides=self._get_overrides()),
                )
            else:
                self._connection = Context(config=Config(overrides=self._get_overrides()))
        return self._connection

    def _hide(self, hide: bool | None) -> bool:
        if hide is None:
            return not self.verbose
        return hide

    def test_connection(self) -> bool:
        """Test if we can run commands on the host."""
        try:
            result = self.conn.run("echo 'connection test'", hide=True, in_stream=False)
            return result.ok
        except Exception as e:
            console.print(f"[red]Connection failed: {e}[/red]")
            return False

    def run(self, command: str, hide: bool | None = None, warn: bool = False, **kwargs) -> Result:
        """Run a command as the connecting user."""
        kwargs.setdefault("in_stream", False)
        return self.conn.run(command, hide=self._hide(hide), warn=warn, **kwargs)

    def sudo(self, command: str, hide: bool | None = None, warn: bool = False, **kwargs) -> Result:
        """Run a command with sudo."""
        # If we're root, just run directly
        if self.user == "root":
            return self.run(command, hide=hide, warn=warn, **kwargs)

        kwargs.setdefault("in_stream", False)
        return self.conn.sudo(command, hide=self._hide(hide), warn=warn, **kwargs)

    @property
    def home(self) -> str:
        if self._home is None:
            self._home = self.run('printf %s "$HOME"', hide=True).stdout.strip()
        return self._home

    @property
    def user(self) -> str:
        if self._user is None:
            self._user = self.run("id -un", hide=True).stdout.strip()
        return self._user

    def expand(self, path: str) -> str:
        """Expand a leading ~ to the home directory on the host."""
        if path == "~":
            return self.home
        if path.startswith("~/"):
            return f"{self.home}/{path[2:]}"
        return path

    def file_exists(self, path: str) -> bool:
        result = self.run(f"test -f {shlex.quote(self.expand(path))}", warn=True, hide=True)
        return result.ok

    def dir_exists(self, path: str) -> bool:
        result = self.run(f"test -d {shlex.quote(self.expand(path))}", warn=True, hide=True)
        return result.ok

    def read_file(self, path: str) -> str | None:
        """Return the file's content, or None if it cannot be read."""
        result = self.run(f"cat {shlex.quote(self.expand(path))}", warn=True, hide=True)
        if not result.ok:
            return None
        return result.stdout

    def _shell(self, script: str, sudo: bool) -> Result:
        runner = self.sudo if sudo else self.run
        return runner(f"sh -c {shlex.quote(script)}", hide=True)

    def write_file(self, path: str, content: str, sudo: bool = False, mode: str | None = None) -> None:
        """Write content to a file, creating its parent directory."""
        path = self.expand(path)
        parent = str(Path(path).parent)
        script = f"mkdir -p {shlex.quote(parent)} && printf '%s' {shlex.quote(content)} > {shlex.quote(path)}"
        if mode:
            script += f" && chmod {mode} {shlex.quote(path)}"
        self._shell(script, sudo)

    def ensure_line(self, path: str, line: str, sudo: bool = False) -> bool:
        """Append a line to a file unless an identical line is already there.

        Returns True if the file was changed.
        """
        path = self.expand(path)
        quoted_path = shlex.quote(path)
        result = self.run(f"grep -qxF -- {shlex.quote(line)} {quoted_path}", warn=True, hide=True)
        if result.ok:
            return False

        # Terminate a last line that has no trailing newline before appending
        script = (
            f'if [ -s {quoted_path} ] && [ -n "$(tail -c 1 {quoted_path})" ]; '
            f"then echo >> {quoted_path}; fi; "
            f"printf '%s\\n' {shlex.quote(line)} >> {quoted_path}"
        )
        self._shell(script, sudo)
        return True

    def insert_line_before(self, path: str, anchor: str, line: str, sudo: bool = False) -> bool:
        """Insert a line before the first line starting with anchor, unless already present.

        Raises LookupError if the file is missing or has no such line.
        """
        content = self.read_file(path)
        if content is None:
            raise LookupError(f"{path} does not exist")

        lines = content.splitlines()
        if line in lines:
            return False

        for index, existing in enumerate(lines):
            if existing.strip().startswith(anchor):
                lines.insert(index, line)
                break
        else:
            raise LookupError(f"'{anchor}' not found in {path}")

        self.write_file(path, "\n".join(lines) + "\n", sudo=sudo)
        return True

    def close(self) -> None:
        """Close the SSH connection if one was opened."""
        if self.is_remote and self._connection is not None:
            self._connection.close()
