"""Workflow for reconciling the project's secrets registry with the remote volume."""
import base64
import getpass
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from ..domains.errors import (
    ProjectConfigError,
    PromptAbortedError,
    RemoteCommandError,
    SecretNotDeployedError,
    SecretNotRegisteredError,
    ValidationError,
    VolumeDeclinedError,
)
from ..domains.executor import RemoteExecutor
from ..domains.models import SECRET_NAME_PATTERN, SecretAction, SecretsVolume, is_valid_secret_name
from ..domains.project import ProjectConfig, save_project_config
from ..domains.prompts import binary_prompt, capture_secret_value
from ..domains.table import build_comparison_table
from ..domains.volume_store import (
    HELPER_IMAGE,
    ensure_secrets_volume,
    get_secrets_volume,
    secret_path,
    volume_mount,
)

LOCAL_HEADER = "LOCAL"
REMOTE_HEADER = "REMOTE"


def validate_secret_name(name: str) -> None:
    """
    Raises:
        ValidationError: If name is empty or does not match SECRET_NAME_PATTERN
    """
    if not name:
        raise ValidationError("secret name cannot be empty")
    if not is_valid_secret_name(name):
        raise ValidationError(f"invalid secret name {name} (must match /{SECRET_NAME_PATTERN}/)")


@dataclass
class SecretRequest:
    """One validated `smt secrets` invocation.

    value is None when no value was supplied; an empty string is a real value.
    """
    action: SecretAction = SecretAction.LIST
    name: Optional[str] = None
    value: Optional[str] = None

    @classmethod
    def from_flags(
        cls,
        list_: bool = False,
        set_: bool = False,
        remove: bool = False,
        show: bool = False,
        name: Optional[str] = None,
        value: Optional[str] = None,
    ) -> "SecretRequest":
        """
        Build a request from action flags.

        Raises:
            ValidationError: If more than one action is selected, a name is
                missing for set/remove/show, or the name is malformed
        """
        selected = [
            action for action, flag in (
                (SecretAction.LIST, list_),
                (SecretAction.SET, set_),
                (SecretAction.REMOVE, remove),
                (SecretAction.SHOW, show),
            ) if flag
        ]
        if len(selected) > 1:
            raise ValidationError("multiple actions specified; please specify at most one")
        action = selected[0] if selected else SecretAction.LIST

        if not name and action != SecretAction.LIST:
            raise ValidationError("secret name required for specified action")
        if name:
            validate_secret_name(name)

        return cls(action=action, name=name or None, value=value)


class SecretsManager:
    """
    Applies secret actions to a project registry and its remote volume.

    Registry (smt.json) and volume are independent: neither is assumed to
    match the other. For set and remove the registry is saved before the
    remote command runs; a remote failure afterwards is raised as-is and the
    registry change is kept.
    """

    def __init__(
        self,
        executor: RemoteExecutor,
        project: ProjectConfig,
        hostname: str,
        confirm: Callable[[str], bool] = binary_prompt,
        read_sensitive: Callable[[str], str] = getpass.getpass,
        save_project: Callable[[ProjectConfig], None] = save_project_config,
        dry_run: bool = False,
        logger: Optional[logging.Logger] = None,
    ):
        if not project.docker_secrets_volume:
            raise ProjectConfigError(
                f"no Docker secrets volume specified for this project; "
                f"add a docker_secrets_volume entry to {project.path} and try again"
            )

        self.executor = executor
        self.project = project
        self.hostname = hostname
        self.confirm = confirm
        self.read_sensitive = read_sensitive
        self.save_project = save_project
        self.dry_run = dry_run
        self.logger = logger or logging.getLogger(__name__)

    @property
    def volume_name(self) -> str:
        return self.project.docker_secrets_volume

    def resolve_volume(self) -> SecretsVolume:
        """
        Fetch the secrets volume, offering to create it when missing.

        Raises:
            VolumeDeclinedError: If the user declines (or cannot answer) the
                creation prompt
            VolumeError: If a docker command fails
        """
        volume = get_secrets_volume(self.executor, self.volume_name)
        if volume is not None:
            return volume

        prompt = (
            f"Secrets volume {self.volume_name} does not exist on {self.hostname}. "
            f"Do you want to create it?"
        )
        try:
            accepted = self.confirm(prompt)
        except PromptAbortedError:
            accepted = False
        if not accepted:
            raise VolumeDeclinedError(
                f"user declined to create volume {self.volume_name} - cannot proceed with secrets management"
            )

        return ensure_secrets_volume(self.executor, self.volume_name, dry_run=self.dry_run)

    def run(self, request: SecretRequest) -> Optional[str]:
        """
        Resolve the volume and perform the requested action.

        Returns:
            Text to print (comparison table or secret value), or None
        """
        volume = self.resolve_volume()

        if request.action == SecretAction.LIST:
            return self.list_secrets(volume, request.name)
        if request.action == SecretAction.SET:
            self.set_secret(volume, request.name, request.value)
            return None
        if request.action == SecretAction.REMOVE:
            self.remove_secret(volume, request.name)
            return None
        if request.action == SecretAction.SHOW:
            return self.show_secret(volume, request.name)
        raise ValidationError(f"unsupported action {request.action}")

    def list_secrets(self, volume: SecretsVolume, name: Optional[str] = None) -> str:
        """Comparison table of registry (LOCAL) against volume (REMOTE)."""
        local = list(self.project.secrets)
        remote = list(volume.secrets)
        if name:
            local = [s for s in local if s == name]
            remote = [s for s in remote if s == name]
        return build_comparison_table(LOCAL_HEADER, local, REMOTE_HEADER, remote)

    def set_secret(self, volume: SecretsVolume, name: str, value: Optional[str] = None) -> None:
        """
        Register the secret if new, then write its value into the volume.

        Prompts for the value (twice, hidden) when none is given.

        Raises:
            ProjectConfigError: If the registry cannot be saved; nothing
                remote is attempted
            PromptAbortedError: If input ends while reading the value
            RemoteCommandError: If the remote write fails
        """
        if self.project.add_secret(name):
            self.logger.debug(f"Registering secret {name} in {self.project.path}")
            self.save_project(self.project)

        if value is None:
            value = capture_secret_value(self.read_sensitive)

        if name in volume.secrets:
            self.logger.info(f"secret {name} present in deployed service on {self.hostname}; updating")
        else:
            self.logger.info(f"secret {name} not present in deployed service on {self.hostname}; adding")

        if self.dry_run:
            self.logger.info(f"DRY RUN: writing secret {name} to volume {self.volume_name}")
            return

        encoded = base64.b64encode(value.encode("utf-8")).decode("ascii")
        script = (
            f"echo '{encoded}' | docker run --rm -i -v {volume_mount(self.volume_name, writable=True)} "
            f"{HELPER_IMAGE} sh -c \"base64 -d > {secret_path(name)}\""
        )
        try:
            self.executor.execute_shell(script, sensitive=True)
        except RemoteCommandError as e:
            raise RemoteCommandError(
                f"failed to update secret {name} - check error output (stderr: {e.stderr}): {e}",
                stdout=e.stdout, stderr=e.stderr, returncode=e.returncode,
            ) from e

    def remove_secret(self, volume: SecretsVolume, name: str) -> None:
        """
        Unregister the secret and delete its file from the volume.

        Missing on either side is not an error; that side is skipped.

        Raises:
            ProjectConfigError: If the registry cannot be saved
            RemoteCommandError: If the remote delete fails
        """
        if self.project.remove_secret(name):
            self.logger.debug(f"Unregistering secret {name} from {self.project.path}")
            self.save_project(self.project)
        else:
            self.logger.warning(f"secret {name} not present in project config - checking deployed service")

        if name not in volume.secrets:
            self.logger.warning(
                f"secret {name} not present in deployed service on {self.hostname}; skipping removal"
            )
            return

        if self.dry_run:
            self.logger.info(f"DRY RUN: removing secret {name} from volume {self.volume_name}")
            return

        try:
            self.executor.execute_command(
                "docker", "run", "--rm",
                "-v", volume_mount(self.volume_name, writable=True),
                HELPER_IMAGE, "rm", secret_path(name),
            )
        except RemoteCommandError as e:
            raise RemoteCommandError(
                f"failed to remove secret {name} - check error output (stderr: {e.stderr}): {e}",
                stdout=e.stdout, stderr=e.stderr, returncode=e.returncode,
            ) from e
        self.logger.info(f"removed secret {name} from {self.hostname}")

    def show_secret(self, volume: SecretsVolume, name: str) -> str:
        """
        Read a deployed secret's value.

        Raises:
            SecretNotRegisteredError: If the project does not declare the secret
            SecretNotDeployedError: If the volume has no file for the secret
            RemoteCommandError: If the remote read fails
        """
        if not self.project.has_secret(name):
            raise SecretNotRegisteredError(
                f"secret {name} not registered with project - ensure it is added"
            )
        if name not in volume.secrets:
            raise SecretNotDeployedError(
                f"secret {name} not present in deployed service at {self.hostname} - deploy secret first"
            )

        try:
            stdout, _ = self.executor.execute_command(
                "docker", "run", "--rm", "-i",
                "-v", volume_mount(self.volume_name),
                HELPER_IMAGE, "cat", secret_path(name),
            )
        except RemoteCommandError as e:
            raise RemoteCommandError(
                f"failed to retrieve secret {name} - check error output (stderr: {e.stderr}): {e}",
                stdout=e.stdout, stderr=e.stderr, returncode=e.returncode,
            ) from e
        return stdout
