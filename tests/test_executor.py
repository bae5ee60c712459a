"""Tests for the ssh-backed remote executor."""
import shlex
import subprocess
from unittest import mock

import pytest

from smtkit.secrets.domains.config_loader import ConfigError
from smtkit.secrets.domains.errors import RemoteCommandError
from smtkit.secrets.domains.executor import SSHExecutor, create_ssh_executor
from smtkit.secrets.domains.models import ServerConfig


def _completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def executor():
    return SSHExecutor("host.example.com", "deploy", "/keys/id", port=2222, connect_timeout=5)


class TestSSHExecutor:
    """Test suite for SSHExecutor."""

    def test_command_is_quoted_for_remote_shell(self, executor):
        """Test argv is joined with shell quoting into a single remote command."""
        with mock.patch("subprocess.run", return_value=_completed(stdout="out\n")) as run:
            stdout, stderr = executor.execute_command("docker", "volume", "ls", "--format", "{{.Name}}")

        assert (stdout, stderr) == ("out\n", "")
        argv = run.call_args[0][0]
        assert argv[0] == "ssh"
        assert argv[argv.index("-i") + 1] == "/keys/id"
        assert argv[argv.index("-p") + 1] == "2222"
        assert "BatchMode=yes" in argv
        assert "ConnectTimeout=5" in argv
        assert argv[-2] == "deploy@host.example.com"
        assert shlex.split(argv[-1]) == ["docker", "volume", "ls", "--format", "{{.Name}}"]

    def test_streams_captured(self, executor):
        with mock.patch("subprocess.run", return_value=_completed()) as run:
            executor.execute_command("true")
        kwargs = run.call_args[1]
        assert kwargs["capture_output"] is True
        assert kwargs["text"] is True
        assert kwargs["stdin"] == subprocess.DEVNULL

    def test_shell_script_runs_under_sh(self, executor):
        script = "echo 'abc' | cat > /tmp/x"
        with mock.patch("subprocess.run", return_value=_completed()) as run:
            executor.execute_shell(script)
        remote = run.call_args[0][0][-1]
        assert shlex.split(remote) == ["sh", "-c", script]

    def test_non_zero_exit_raises_with_stderr(self, executor):
        failed = _completed(returncode=125, stdout="partial", stderr="docker: Error response from daemon")
        with mock.patch("subprocess.run", return_value=failed):
            with pytest.raises(RemoteCommandError) as exc_info:
                executor.execute_command("docker", "volume", "create", "v")
        error = exc_info.value
        assert error.returncode == 125
        assert error.stderr == "docker: Error response from daemon"
        assert error.stdout == "partial"
        assert "125" in str(error)

    def test_sensitive_script_not_in_error(self, executor):
        """Test a failing sensitive script does not leak its body."""
        with mock.patch("subprocess.run", return_value=_completed(returncode=1, stderr="boom")):
            with pytest.raises(RemoteCommandError) as exc_info:
                executor.execute_shell("echo 'c2VjcmV0' | base64 -d", sensitive=True)
        assert "c2VjcmV0" not in str(exc_info.value)
        assert "<redacted>" in str(exc_info.value)

    def test_sensitive_script_not_logged(self, executor, caplog):
        with caplog.at_level("DEBUG"):
            with mock.patch("subprocess.run", return_value=_completed()):
                executor.execute_shell("echo 'c2VjcmV0' | base64 -d", sensitive=True)
        assert "c2VjcmV0" not in caplog.text

    def test_missing_ssh_binary(self, executor):
        with mock.patch("subprocess.run", side_effect=FileNotFoundError("ssh")):
            with pytest.raises(RemoteCommandError) as exc_info:
                executor.execute_command("true")
        assert "failed to start ssh" in str(exc_info.value)


class TestCreateSSHExecutor:
    """Test suite for create_ssh_executor."""

    def test_builds_from_server_config(self, tmp_path):
        key = tmp_path / "id_ed25519"
        key.write_text("key")
        server = ServerConfig("h.example.com", "deploy", str(key), ssh_port=2200)
        executor = create_ssh_executor(server)
        assert executor.destination == "deploy@h.example.com"
        assert executor.port == 2200
        assert executor.key_file_path == str(key)

    def test_missing_key_file(self, tmp_path):
        server = ServerConfig("h", "u", str(tmp_path / "missing"))
        with pytest.raises(ConfigError) as exc_info:
            create_ssh_executor(server)
        assert "unable to read private key" in str(exc_info.value)
