"""Server profile configuration for smtkit."""
import os
import logging
from pathlib import Path
from typing import Dict, Any, Optional
import yaml

from .models import ServerConfig

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "SMTKIT_CONFIG"
DEFAULT_SERVICE_DIRECTORY = "/usr/local/smt"
DEFAULT_SSH_PORT = 22


class ConfigError(Exception):
    """Configuration error exception."""
    pass


def default_config_path() -> Path:
    """Default XDG location: ~/.config/smtkit/config.yml"""
    return Path.home() / ".config" / "smtkit" / "config.yml"


def get_config_path(explicit_path: Optional[str] = None) -> str:
    """
    Resolve the config file path.

    Priority order:
    1. Path passed on the command line (--config)
    2. SMTKIT_CONFIG environment variable
    3. Default location: ~/.config/smtkit/config.yml

    The file is not required to exist; see load_config().
    """
    if explicit_path:
        logger.debug(f"Using config from command line: {explicit_path}")
        return str(Path(explicit_path).expanduser())

    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        logger.debug(f"Using config from {CONFIG_ENV_VAR}: {env_path}")
        return str(Path(env_path).expanduser())

    return str(default_config_path())


def empty_config() -> Dict[str, Any]:
    return {"default_server": "", "servers": {}}


def _hydrate_server(name: str, entry: Any, config_path: str) -> Dict[str, Any]:
    if entry is None:
        entry = {}
    if not isinstance(entry, dict):
        raise ConfigError(f"Server entry '{name}' in {config_path} must be a mapping")

    entry.setdefault("hostname", "")
    entry.setdefault("ssh_username", "")
    entry.setdefault("ssh_key_file_path", "")
    entry.setdefault("ssh_port", DEFAULT_SSH_PORT)
    if not entry.get("service_directory"):
        entry["service_directory"] = DEFAULT_SERVICE_DIRECTORY

    try:
        entry["ssh_port"] = int(entry["ssh_port"])
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid ssh_port for server '{name}': {entry['ssh_port']}")
    return entry


def load_config(config_path: Optional[str] = None, create: bool = False) -> Dict[str, Any]:
    """
    Load and validate the server profile file.

    Args:
        config_path: Explicit config path (resolved with get_config_path())
        create: Write an empty config file if none exists instead of failing

    Returns:
        Dict containing configuration with keys:
        - default_server: name of the server used when none is given
        - servers: dict of server name -> connection settings

    Raises:
        ConfigError: If config file is missing, invalid or malformed
    """
    config_path = get_config_path(config_path)

    if not os.path.exists(config_path):
        if not create:
            raise ConfigError(
                f"Configuration file not found at: {config_path}\n"
                f"Create it with: smt config set --force --server <name> ..."
            )
        logger.debug(f"Config file does not exist; creating {config_path}")
        config = empty_config()
        save_config(config, config_path)
        return config

    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config at {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file at {config_path}: {e}")

    if config is None:
        config = empty_config()

    if not isinstance(config, dict):
        raise ConfigError(f"Config file at {config_path} must contain a mapping")

    config.setdefault("default_server", "")
    servers = config.get("servers") or {}
    if not isinstance(servers, dict):
        raise ConfigError(f"'servers' in {config_path} must be a mapping of server name to settings")
    config["servers"] = {
        name: _hydrate_server(name, entry, config_path) for name, entry in servers.items()
    }

    logger.debug(f"Configuration loaded from {config_path} ({len(config['servers'])} servers)")
    return config


def save_config(config: Dict[str, Any], config_path: Optional[str] = None) -> None:
    """Write the server profile file, creating its directory if needed."""
    config_path = get_config_path(config_path)
    path = Path(config_path)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            yaml.safe_dump(config, f, default_flow_style=False, sort_keys=True)
    except OSError as e:
        raise ConfigError(f"Failed to write config file at {config_path}: {e}")

    logger.debug(f"Configuration saved to {config_path}")


def resolve_server(
    config: Dict[str, Any],
    server: Optional[str] = None,
    hostname: Optional[str] = None,
    ssh_username: Optional[str] = None,
    ssh_key_file_path: Optional[str] = None,
) -> ServerConfig:
    """
    Build connection settings from a named profile plus command line overrides.

    The default server is used when no name is given. Every override replaces
    the matching profile field; all three connection fields must end up set.

    Raises:
        ConfigError: If no server can be resolved or a required field is missing
    """
    entry: Dict[str, Any] = {}
    if not server:
        server = config.get("default_server") or ""

    if server:
        servers = config.get("servers", {})
        if server not in servers:
            raise ConfigError(f"no server config exists for specified server {server}")
        entry = servers[server]
    elif not (hostname and ssh_username and ssh_key_file_path):
        raise ConfigError("no server specified and no default server in config")

    label = server or "<command line>"
    resolved = ServerConfig(
        hostname=hostname or entry.get("hostname", ""),
        ssh_username=ssh_username or entry.get("ssh_username", ""),
        ssh_key_file_path=ssh_key_file_path or entry.get("ssh_key_file_path", ""),
        ssh_port=entry.get("ssh_port", DEFAULT_SSH_PORT),
        service_directory=entry.get("service_directory", DEFAULT_SERVICE_DIRECTORY),
    )

    if not resolved.hostname:
        raise ConfigError(f"no hostname specified for server {label}")
    if not resolved.ssh_username:
        raise ConfigError(f"no SSH username specified for server {label}")
    if not resolved.ssh_key_file_path:
        raise ConfigError(f"no SSH key file path specified for server {label}")

    logger.debug(f"Resolved server {label}: {resolved.ssh_username}@{resolved.hostname}")
    return resolved
