"""Remote command execution over the system ssh client."""
import os
import shlex
import logging
import subprocess
from typing import List, Optional, Protocol, Tuple

from .config_loader import ConfigError
from .errors import RemoteCommandError
from .models import ServerConfig

logger = logging.getLogger(__name__)


class RemoteExecutor(Protocol):
    """Runs commands on a target host and captures their output.

    Both methods block until the remote command finishes and return
    ``(stdout, stderr)``. A non-zero exit status raises
    :class:`RemoteCommandError` carrying the captured streams.
    """

    def execute_command(self, *argv: str) -> Tuple[str, str]:
        ...

    def execute_shell(self, script: str, sensitive: bool = False) -> Tuple[str, str]:
        ...


class SSHExecutor:
    """RemoteExecutor backed by one ``ssh`` process per command."""

    def __init__(self, hostname: str, username: str, key_file_path: str,
                 port: int = 22, connect_timeout: int = 10, ssh_binary: str = "ssh"):
        self.hostname = hostname
        self.username = username
        self.key_file_path = os.path.expanduser(key_file_path)
        self.port = port
        self.connect_timeout = connect_timeout
        self.ssh_binary = ssh_binary

    @property
    def destination(self) -> str:
        return f"{self.username}@{self.hostname}"

    def _ssh_argv(self, remote_command: str) -> List[str]:
        return [
            self.ssh_binary,
            "-i", self.key_file_path,
            "-p", str(self.port),
            "-o", "BatchMode=yes",
            "-o", f"ConnectTimeout={self.connect_timeout}",
            "-o", "StrictHostKeyChecking=accept-new",
            self.destination,
            remote_command,
        ]

    def _run(self, remote_command: str, display: Optional[str] = None) -> Tuple[str, str]:
        shown = display if display is not None else remote_command
        logger.debug(f"Executing on {self.destination}: {shown}")

        try:
            result = subprocess.run(
                self._ssh_argv(remote_command),
                capture_output=True,
                text=True,
                stdin=subprocess.DEVNULL,
            )
        except OSError as e:
            raise RemoteCommandError(
                f"failed to start ssh for {self.destination}: {e}"
            ) from e

        logger.debug(f"Command on {self.destination} exited with {result.returncode}")
        if result.returncode != 0:
            raise RemoteCommandError(
                f"command on {self.destination} failed with exit status {result.returncode}: {shown}",
                stdout=result.stdout,
                stderr=result.stderr,
                returncode=result.returncode,
            )
        return result.stdout, result.stderr

    def execute_command(self, *argv: str) -> Tuple[str, str]:
        """Run ``argv`` on the remote host, quoting each argument."""
        return self._run(shlex.join(argv))

    def execute_shell(self, script: str, sensitive: bool = False) -> Tuple[str, str]:
        """Run an inline shell script with ``sh -c`` on the remote host.

        With ``sensitive`` set the script body is kept out of logs and error
        messages.
        """
        remote_command = f"sh -c {shlex.quote(script)}"
        display = "sh -c <redacted>" if sensitive else remote_command
        return self._run(remote_command, display=display)


def create_ssh_executor(server: ServerConfig) -> SSHExecutor:
    """
    Build an SSHExecutor for a resolved server profile.

    Raises:
        ConfigError: If the SSH key file does not exist
    """
    key_path = os.path.expanduser(server.ssh_key_file_path)
    if not os.path.isfile(key_path):
        raise ConfigError(f"unable to read private key {key_path}: file not found")

    logger.debug(f"Using {server.ssh_username}@{server.hostname}:{server.ssh_port} with key {key_path}")
    return SSHExecutor(
        hostname=server.hostname,
        username=server.ssh_username,
        key_file_path=key_path,
        port=server.ssh_port,
    )
