"""Input validation for CLI arguments."""
import sys

from smtkit.secrets.domains.models import SECRET_NAME_PATTERN, is_valid_secret_name


def validate_secret_name(name: str) -> None:
    """
    Validate secret name matches the volume file naming rules.

    Secret names become file names inside the secrets volume and environment
    variable names inside services, so only: [A-Z0-9_]

    Args:
        name: Secret name to validate

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not name:
        print("Error: Secret name cannot be empty", file=sys.stderr)
        print(f"\nSecret names must match: {SECRET_NAME_PATTERN}", file=sys.stderr)
        sys.exit(2)

    if not is_valid_secret_name(name):
        print(f"Error: Invalid secret name '{name}'", file=sys.stderr)
        print("\nAllowed characters: uppercase letters, numbers, underscores (_)", file=sys.stderr)
        print("Not allowed: lowercase letters, hyphens (-), dots (.), spaces, special characters", file=sys.stderr)
        print("\nExamples of valid names:", file=sys.stderr)
        print("  ✓ DB_PASSWORD", file=sys.stderr)
        print("  ✓ API_KEY_2", file=sys.stderr)
        print("\nExamples of invalid names:", file=sys.stderr)
        print("  ✗ db_password (lowercase)", file=sys.stderr)
        print("  ✗ DB-PASSWORD (contains hyphen)", file=sys.stderr)
        sys.exit(2)


def validate_server_name(name: str) -> None:
    """
    Validate a server profile name is given.

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not name or not name.strip():
        print("Error: --server is required for this command", file=sys.stderr)
        sys.exit(2)
