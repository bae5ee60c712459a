"""Exceptions raised by secrets management."""
from typing import Optional


class SecretsError(Exception):
    """Base class for secrets management errors."""
    pass


class ValidationError(SecretsError):
    """Invalid request (bad secret name, conflicting actions, etc.)."""
    pass


class PromptAbortedError(SecretsError):
    """Interactive prompt ran out of input before an answer was given."""
    pass


class ProjectConfigError(SecretsError):
    """Project file missing, unreadable or incomplete."""
    pass


class RemoteCommandError(SecretsError):
    """A command on the remote host exited with a non-zero status."""

    def __init__(self, message: str, stdout: str = "", stderr: str = "",
                 returncode: Optional[int] = None):
        super().__init__(message)
        self.stdout = stdout
        self.stderr = stderr
        self.returncode = returncode


class VolumeError(SecretsError):
    """Secrets volume could not be inspected or created."""
    pass


class VolumeDeclinedError(SecretsError):
    """User refused to create a missing secrets volume."""
    pass


class SecretNotRegisteredError(SecretsError):
    """Secret is not declared in the project file."""
    pass


class SecretNotDeployedError(SecretsError):
    """Secret is declared locally but missing from the remote volume."""
    pass
