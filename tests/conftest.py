"""Shared fixtures: in-memory remote executor and temporary project files."""
import base64
import json
import re
import shlex
from pathlib import Path

import pytest

from smtkit.secrets.domains.errors import RemoteCommandError
from smtkit.secrets.domains.project import load_project_config

_WRITE_SCRIPT = re.compile(
    r"^echo '(?P<payload>[A-Za-z0-9+/=]*)' \| docker run --rm -i -v (?P<volume>[^:\s]+):/secrets:rw "
    r"alpine sh -c \"base64 -d > /secrets/(?P<name>[A-Z_0-9]+)\"$"
)


class FakeExecutor:
    """In-memory stand-in for a Docker host reached over SSH.

    volumes maps volume name -> {secret name: value}. Every call is recorded
    in ``calls`` as a string. Any call whose text contains one of the
    ``fail_on`` substrings raises RemoteCommandError with ``failure_stderr``.
    """

    def __init__(self, volumes=None):
        self.volumes = volumes if volumes is not None else {}
        self.calls = []
        self.fail_on = []
        self.failure_stderr = "docker: Error response from daemon"

    def _record(self, text):
        self.calls.append(text)
        for marker in self.fail_on:
            if marker in text:
                raise RemoteCommandError(
                    f"command failed with exit status 1: {text}",
                    stdout="",
                    stderr=self.failure_stderr,
                    returncode=1,
                )

    def commands_matching(self, fragment):
        return [c for c in self.calls if fragment in c]

    def execute_command(self, *argv):
        self._record(shlex.join(argv))
        args = list(argv)

        if args == ["true"]:
            return "", ""

        if args[:3] == ["docker", "volume", "ls"]:
            wanted = args[args.index("--filter") + 1].split("=", 1)[1]
            names = [v for v in sorted(self.volumes) if wanted in v]
            return "".join(f"{n}\n" for n in names), ""

        if args[:3] == ["docker", "volume", "create"]:
            self.volumes.setdefault(args[3], {})
            return f"{args[3]}\n", ""

        if args[:2] == ["docker", "run"]:
            mount = args[args.index("-v") + 1]
            volume = mount.split(":", 1)[0]
            files = self.volumes.setdefault(volume, {})
            image_at = args.index("alpine")
            command = args[image_at + 1:]

            if command[:2] == ["ls", "-1"]:
                return "".join(f"{n}\n" for n in sorted(files)), ""
            if command[0] == "cat":
                name = command[1].rsplit("/", 1)[1]
                if name not in files:
                    raise RemoteCommandError(
                        "cat failed", stderr=f"cat: can't open '{command[1]}': No such file or directory",
                        returncode=1,
                    )
                return files[name], ""
            if command[0] == "rm":
                name = command[1].rsplit("/", 1)[1]
                if name not in files:
                    raise RemoteCommandError(
                        "rm failed", stderr=f"rm: can't remove '{command[1]}': No such file or directory",
                        returncode=1,
                    )
                del files[name]
                return "", ""

        raise AssertionError(f"unexpected command: {argv}")

    def execute_shell(self, script, sensitive=False):
        self._record(script)
        match = _WRITE_SCRIPT.match(script)
        if not match:
            raise AssertionError(f"unexpected script: {script}")
        value = base64.b64decode(match.group("payload")).decode("utf-8")
        self.volumes.setdefault(match.group("volume"), {})[match.group("name")] = value
        return "", ""


@pytest.fixture
def fake_executor():
    """Executor for a host that already has an empty 'app-secrets' volume."""
    return FakeExecutor(volumes={"app-secrets": {}})


@pytest.fixture
def write_project(tmp_path):
    """Factory writing smt.json into a temporary project directory."""
    def _write(secrets=None, volume="app-secrets", **extra):
        project_dir = tmp_path / "project"
        project_dir.mkdir(exist_ok=True)
        data = {"name": "app", "docker_secrets_volume": volume, "secrets": list(secrets or [])}
        data.update(extra)
        path = project_dir / "smt.json"
        path.write_text(json.dumps(data, indent=2))
        return path
    return _write


@pytest.fixture
def project(write_project):
    """Loaded project declaring no secrets."""
    return load_project_config(write_project())


def read_registry(path: Path):
    """Secret names currently saved in smt.json."""
    return json.loads(Path(path).read_text())["secrets"]


class ScriptedInput:
    """Input source returning queued answers, then raising EOFError."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.prompts = []

    def __call__(self, prompt=""):
        self.prompts.append(prompt)
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)
