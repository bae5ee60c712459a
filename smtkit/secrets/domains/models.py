"""Domain models for secret management."""
import re
import enum
from dataclasses import dataclass, field
from typing import List

SECRET_NAME_PATTERN = "^[A-Z_0-9]+$"
_secret_name_re = re.compile(SECRET_NAME_PATTERN)


def is_valid_secret_name(name: str) -> bool:
    return bool(name) and _secret_name_re.match(name) is not None


class SecretAction(enum.Enum):
    """Action performed by a single `smt secrets` invocation."""
    LIST = "list"
    SET = "set"
    REMOVE = "remove"
    SHOW = "show"


@dataclass
class SecretsVolume:
    """Docker volume holding one file per secret."""
    name: str
    secrets: List[str] = field(default_factory=list)


@dataclass
class ServerConfig:
    """Connection profile for a deployment host."""
    hostname: str = ""
    ssh_username: str = ""
    ssh_key_file_path: str = ""
    ssh_port: int = 22
    service_directory: str = "/usr/local/smt"
