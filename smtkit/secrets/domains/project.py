"""Project file (smt.json) loading and saving.

The project file holds the secrets registry: the ordered list of secret names
the project's services need. Unknown fields are carried through a save
unchanged.
"""
import os
import json
import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from .errors import ProjectConfigError

logger = logging.getLogger(__name__)

PROJECT_CONFIG_NAME = "smt.json"


@dataclass
class ProjectConfig:
    """Parsed smt.json plus the path it came from."""
    path: Path
    name: str = ""
    docker_secrets_volume: str = ""
    secrets: List[str] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def project_dir(self) -> Path:
        return self.path.parent

    def has_secret(self, name: str) -> bool:
        return name in self.secrets

    def add_secret(self, name: str) -> bool:
        """Append a secret name; returns False if it was already registered."""
        if name in self.secrets:
            return False
        self.secrets.append(name)
        return True

    def remove_secret(self, name: str) -> bool:
        """Drop a secret name; returns False if it was not registered."""
        if name not in self.secrets:
            return False
        self.secrets = [s for s in self.secrets if s != name]
        return True


def get_project_config_path(project_path: str) -> Path:
    """
    Resolve a project directory or smt.json path to the absolute smt.json path.

    Raises:
        ProjectConfigError: If the path does not exist, the directory has no
            smt.json, or the file is not named smt.json
    """
    path = Path(project_path).expanduser().resolve()

    if not path.exists():
        raise ProjectConfigError(f"project path '{project_path}' does not exist")

    if path.is_dir():
        config_path = path / PROJECT_CONFIG_NAME
        if not config_path.is_file():
            raise ProjectConfigError(
                f"project path '{project_path}' is not a {PROJECT_CONFIG_NAME} file nor does it contain one"
            )
        return config_path

    if path.name.lower() != PROJECT_CONFIG_NAME:
        raise ProjectConfigError(
            f"path is not a project config file (expected name {PROJECT_CONFIG_NAME}, got {path.name})"
        )
    return path


def load_project_config(path: Path) -> ProjectConfig:
    """
    Load smt.json.

    Raises:
        ProjectConfigError: If the file cannot be read or parsed, or the
            secrets field is malformed
    """
    path = Path(path)
    try:
        with open(path, 'r') as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        raise ProjectConfigError(f"failed to parse project config {path}: {e}")
    except OSError as e:
        raise ProjectConfigError(f"failed to read project config file {path}: {e}")

    if not isinstance(raw, dict):
        raise ProjectConfigError(f"project config {path} must contain a JSON object")

    secrets = raw.get("secrets") or []
    if not isinstance(secrets, list) or not all(isinstance(s, str) for s in secrets):
        raise ProjectConfigError(f"'secrets' in {path} must be a list of names")

    # Registry is duplicate free; keep first occurrence
    unique: List[str] = []
    for name in secrets:
        if name not in unique:
            unique.append(name)

    return ProjectConfig(
        path=path,
        name=raw.get("name") or "",
        docker_secrets_volume=raw.get("docker_secrets_volume") or "",
        secrets=unique,
        raw=raw,
    )


def save_project_config(project: ProjectConfig) -> None:
    """
    Write the project file, replacing it atomically.

    Raises:
        ProjectConfigError: If the file cannot be written
    """
    data = dict(project.raw)
    data["secrets"] = list(project.secrets)

    directory = project.path.parent
    try:
        fd, tmp_path = tempfile.mkstemp(prefix=".smt-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, 'w') as f:
                json.dump(data, f, indent=2)
                f.write("\n")
            if project.path.exists():
                shutil.copymode(project.path, tmp_path)
            os.replace(tmp_path, project.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
    except OSError as e:
        raise ProjectConfigError(f"failed to save project config {project.path}: {e}")

    project.raw = data
    logger.debug(f"Saved project config {project.path} with secrets {project.secrets}")
