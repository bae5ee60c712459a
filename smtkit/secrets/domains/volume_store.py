"""Docker volume that stores one file per secret on the remote host.

Every access to the volume's contents goes through a throwaway ``alpine``
container (``docker run --rm``) so nothing is left running on the host.
"""
import logging
from typing import List, Optional

from .errors import RemoteCommandError, VolumeError
from .executor import RemoteExecutor
from .models import SecretsVolume

logger = logging.getLogger(__name__)

HELPER_IMAGE = "alpine"
MOUNT_POINT = "/secrets"


def volume_mount(volume_name: str, writable: bool = False) -> str:
    """-v argument mounting the volume at MOUNT_POINT, read-only unless writable."""
    mount = f"{volume_name}:{MOUNT_POINT}"
    return f"{mount}:rw" if writable else f"{mount}:ro"


def secret_path(secret_name: str) -> str:
    return f"{MOUNT_POINT}/{secret_name}"


def _volume_exists(executor: RemoteExecutor, volume_name: str) -> bool:
    try:
        stdout, _ = executor.execute_command(
            "docker", "volume", "ls",
            "--filter", f"name={volume_name}",
            "--format", "{{.Name}}",
        )
    except RemoteCommandError as e:
        raise VolumeError(
            f"failed to retrieve info for Docker volume {volume_name} "
            f"(stdout={e.stdout}, stderr={e.stderr}): {e}"
        ) from e

    # The name filter matches substrings, so compare whole names
    names = [line.strip() for line in stdout.splitlines()]
    return volume_name in names


def _list_entries(executor: RemoteExecutor, volume_name: str) -> List[str]:
    try:
        stdout, _ = executor.execute_command(
            "docker", "run", "--rm", "-a", "stdout",
            "-v", volume_mount(volume_name),
            HELPER_IMAGE, "ls", "-1", MOUNT_POINT,
        )
    except RemoteCommandError as e:
        raise VolumeError(
            f"failed to retrieve secrets - check error output (stderr: {e.stderr}): {e}"
        ) from e
    return [line for line in stdout.split("\n") if line != ""]


def get_secrets_volume(executor: RemoteExecutor, volume_name: str) -> Optional[SecretsVolume]:
    """
    Look up the secrets volume on the host the executor points at.

    Args:
        executor: Remote command executor
        volume_name: Docker volume name

    Returns:
        The volume with its secret names, or None if the volume does not exist

    Raises:
        VolumeError: If a docker command fails
    """
    if not _volume_exists(executor, volume_name):
        logger.debug(f"Docker secrets volume {volume_name} does not exist")
        return None

    entries = _list_entries(executor, volume_name)
    logger.debug(f"Docker secrets volume {volume_name} holds {len(entries)} secret(s)")
    return SecretsVolume(volume_name, entries)


def ensure_secrets_volume(executor: RemoteExecutor, volume_name: str,
                          dry_run: bool = False) -> SecretsVolume:
    """
    Create the secrets volume unless it already exists.

    The returned handle never lists entries; use get_secrets_volume() for that.
    Access is not locked, so if another process created the volume after the
    caller's lookup, files it already holds are reported as missing.
    With dry_run set a missing volume is reported but not created.

    Raises:
        VolumeError: If a docker command fails
    """
    if _volume_exists(executor, volume_name):
        logger.debug(f"Docker secrets volume {volume_name} already exists")
    elif dry_run:
        logger.info(f"DRY RUN: creating Docker secrets volume {volume_name}")
    else:
        logger.info(f"Creating Docker secrets volume {volume_name}")
        try:
            executor.execute_command("docker", "volume", "create", volume_name)
        except RemoteCommandError as e:
            raise VolumeError(
                f"failed to create Docker volume {volume_name} "
                f"(stdout={e.stdout}, stderr={e.stderr}): {e}"
            ) from e

    return SecretsVolume(volume_name, [])
