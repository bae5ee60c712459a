"""CLI entrypoint for smtkit."""
import os
import sys
import argparse
import logging

from .validators import validate_secret_name, validate_server_name

VERSION = "0.1.0"

# Configure logging to stderr; stdout only carries command output
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    stream=sys.stderr
)
logger = logging.getLogger(__name__)


def _apply_log_level(args):
    if getattr(args, "debug", False):
        logging.getLogger().setLevel(logging.DEBUG)


def cmd_version(args):
    """Show version information."""
    print(f"smtkit {VERSION}")


def cmd_secrets(args):
    """List, set, remove or show the project's secrets on its server."""
    from smtkit.secrets.domains.config_loader import load_config, resolve_server
    from smtkit.secrets.domains.errors import ValidationError
    from smtkit.secrets.domains.executor import create_ssh_executor
    from smtkit.secrets.domains.models import SecretAction
    from smtkit.secrets.domains.project import get_project_config_path, load_project_config
    from smtkit.secrets.workflows.secret_operations import SecretRequest, SecretsManager

    if args.name:
        validate_secret_name(args.name)

    try:
        request = SecretRequest.from_flags(
            list_=args.list,
            set_=args.set,
            remove=args.remove,
            show=args.show,
            name=args.name,
            value=args.value,
        )
    except ValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    config = load_config(args.config, create=True)
    server = resolve_server(
        config,
        server=args.server,
        hostname=args.hostname,
        ssh_username=args.ssh_username,
        ssh_key_file_path=args.ssh_key_file,
    )

    project_path = get_project_config_path(args.path or os.getcwd())
    logger.debug(f"Using project config {project_path}")
    project = load_project_config(project_path)

    executor = create_ssh_executor(server)
    manager = SecretsManager(
        executor,
        project,
        server.hostname,
        dry_run=args.dry_run,
        logger=logging.getLogger("smtkit.secrets"),
    )

    output = manager.run(request)
    if output is not None:
        if request.action == SecretAction.LIST:
            print(output, end="")
        else:
            print(output)


def _print_server(name, entry):
    print(f"{name}:")
    print(f"    hostname:                 {entry.get('hostname', '')}")
    print(f"    ssh_username:             {entry.get('ssh_username', '')}")
    print(f"    ssh_key_file_path:        {entry.get('ssh_key_file_path', '')}")
    print(f"    ssh_port:                 {entry.get('ssh_port', '')}")
    print(f"    remote_service_directory: {entry.get('service_directory', '')}")
    print()


def cmd_config_show(args):
    """Show server profiles."""
    from smtkit.secrets.domains.config_loader import load_config, get_config_path

    config = load_config(args.config)
    servers = config["servers"]

    print(f"Config path: {get_config_path(args.config)}")
    print(f"Default server: {config.get('default_server') or '(none)'}\n")

    if args.server:
        if args.server not in servers:
            print(f"Error: server {args.server} not found", file=sys.stderr)
            sys.exit(1)
        _print_server(args.server, servers[args.server])
        return

    if not servers:
        print("No servers configured. Add one with: smt config set --server <name> ...")
        return

    for name in sorted(servers):
        _print_server(name, servers[name])


def _ask(label, current):
    """Prompt for a profile field, keeping the current value on empty input."""
    suffix = f" [{current}]" if current else ""
    try:
        answer = input(f"{label}{suffix}: ").strip()
    except EOFError:
        answer = ""
    return answer or current


def cmd_config_set(args):
    """Create or update a server profile."""
    from smtkit.secrets.domains.config_loader import load_config, save_config, DEFAULT_SSH_PORT

    validate_server_name(args.server)

    config = load_config(args.config, create=args.force)
    entry = dict(config["servers"].get(args.server) or {})
    is_new = args.server not in config["servers"]

    fields = (
        ("hostname", args.hostname, "Hostname"),
        ("ssh_username", args.ssh_username, "SSH username"),
        ("ssh_key_file_path", args.ssh_key_file, "SSH key file path"),
        ("service_directory", args.remote_service_directory, "Remote service directory"),
    )
    for key, value, label in fields:
        if value:
            entry[key] = value
        elif is_new:
            entry[key] = _ask(label, entry.get(key, ""))

    if args.ssh_port is not None:
        entry["ssh_port"] = args.ssh_port
    entry.setdefault("ssh_port", DEFAULT_SSH_PORT)

    config["servers"][args.server] = entry
    if args.set_default or not config.get("default_server"):
        config["default_server"] = args.server

    save_config(config, args.config)
    action = "Added" if is_new else "Updated"
    print(f"{action} server {args.server}")
    if config["default_server"] == args.server:
        print(f"Default server: {args.server}")


def cmd_config_delete(args):
    """Delete a server profile."""
    from smtkit.secrets.domains.config_loader import load_config, save_config

    validate_server_name(args.server)

    config = load_config(args.config)
    if args.server not in config["servers"]:
        logger.warning(f"server {args.server} not found; nothing to delete")
        return

    if config.get("default_server") == args.server:
        logger.warning(f"deleting default server {args.server} - default server is now unset")
        config["default_server"] = ""

    del config["servers"][args.server]
    save_config(config, args.config)
    print(f"Deleted server {args.server}")


def cmd_config_validate(args):
    """Check a server profile by running a no-op command over SSH."""
    from smtkit.secrets.domains.config_loader import load_config, resolve_server
    from smtkit.secrets.domains.executor import create_ssh_executor

    config = load_config(args.config)
    server = resolve_server(config, server=args.server)
    executor = create_ssh_executor(server)

    print(f"Connecting to {server.ssh_username}@{server.hostname}:{server.ssh_port}...")
    executor.execute_command("true")
    print(f"Success: connected to {server.hostname}")


def build_parser():
    parser = argparse.ArgumentParser(
        prog="smt",
        description="smtkit - manage service secrets stored in a Docker volume on a remote server",
        epilog="""
Exit codes:
  0 - Success
  1 - Runtime error (connection, remote command, missing secret, etc.)
  2 - Usage error (invalid arguments, invalid secret name, conflicting actions, etc.)

Environment variables:
  SMTKIT_CONFIG - Path to the server config file (overridden by --config)

Configuration:
  Default location: ~/.config/smtkit/config.yml
  Project file: smt.json in the project directory
        """
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        help="Path to server config file (default: $SMTKIT_CONFIG or ~/.config/smtkit/config.yml)"
    )
    common.add_argument(
        "--debug",
        action="store_true",
        help="Set log level to debug"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser(
        "version",
        help="Show version information",
        description="Display the current version of smtkit"
    )

    secrets_parser = subparsers.add_parser(
        "secrets",
        parents=[common],
        help="Manage project secrets",
        description="""
Manage the secrets a project declares in smt.json and their values in the
project's Docker secrets volume on the server.

Actions (at most one; --list is the default):
  --list    Compare secrets declared locally with those deployed remotely
  --set     Declare a secret and write its value (prompted if --value is omitted)
  --remove  Remove a secret locally and remotely
  --show    Print a deployed secret's value

Local changes to smt.json are saved before the remote server is touched and
are kept if the remote command fails.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    secrets_parser.add_argument("--list", action="store_true", help="(action) (default) List secrets without values")
    secrets_parser.add_argument("--set", action="store_true", help="(action) Set a secret entry to a new value")
    secrets_parser.add_argument("--remove", action="store_true", help="(action) Remove a secret entry")
    secrets_parser.add_argument("--show", action="store_true", help="(action) Show a secret entry's value")
    secrets_parser.add_argument("--name", help="Name of the secret to show/modify (format: [A-Z0-9_]+)")
    secrets_parser.add_argument("--value", help="Value of the secret to set (prompted when omitted)")
    secrets_parser.add_argument("--path", help="Project directory or smt.json path (default: current directory)")
    secrets_parser.add_argument("--server", help="Server profile name (default: default_server from config)")
    secrets_parser.add_argument("--hostname", help="Hostname of the server. Overrides property in config.")
    secrets_parser.add_argument("--ssh-username", help="Username for the SSH connection. Overrides property in config.")
    secrets_parser.add_argument("--ssh-key-file", help="Path to the SSH private key. Overrides property in config.")
    secrets_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Update smt.json but only log remote changes instead of making them"
    )

    config_parser = subparsers.add_parser(
        "config",
        help="Server profile management",
        description="Manage server connection profiles"
    )
    config_subparsers = config_parser.add_subparsers(dest="config_command")

    show_parser = config_subparsers.add_parser(
        "show",
        parents=[common],
        help="Show server profiles",
        description="Display one server profile, or all of them"
    )
    show_parser.add_argument("--server", help="Server profile to show")

    set_parser = config_subparsers.add_parser(
        "set",
        parents=[common],
        help="Create or update a server profile",
        description="""
Create or update a server profile. Fields not given on the command line are
prompted for when the profile is new. The first profile becomes the default.
        """
    )
    set_parser.add_argument("--server", help="Server profile name")
    set_parser.add_argument("--hostname", help="Hostname of the server")
    set_parser.add_argument("--ssh-username", help="Username for the SSH connection")
    set_parser.add_argument("--ssh-key-file", help="Path to the SSH private key")
    set_parser.add_argument("--ssh-port", type=int, help="SSH port (default: 22)")
    set_parser.add_argument("--remote-service-directory", help="Base directory for services on the server")
    set_parser.add_argument("--set-default", action="store_true", help="Make this the default server")
    set_parser.add_argument("--force", action="store_true", help="Create the config file if it does not exist")

    delete_parser = config_subparsers.add_parser(
        "delete",
        parents=[common],
        help="Delete a server profile",
        description="Delete a server profile (unsets the default if it was the default)"
    )
    delete_parser.add_argument("--server", help="Server profile name")

    validate_parser = config_subparsers.add_parser(
        "validate",
        parents=[common],
        help="Check a server profile by connecting to it",
        description="Dial the server over SSH and run a no-op command"
    )
    validate_parser.add_argument("--server", help="Server profile to check (default: default_server)")

    return parser, config_parser


def main(argv=None):
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Runtime errors (connection, remote command, secret not found, etc.)
        2 - Usage errors (invalid arguments, invalid secret name format, etc.)
    """
    parser, config_parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(2)

    _apply_log_level(args)

    try:
        if args.command == "version":
            cmd_version(args)
        elif args.command == "secrets":
            cmd_secrets(args)
        elif args.command == "config":
            if args.config_command == "show":
                cmd_config_show(args)
            elif args.config_command == "set":
                cmd_config_set(args)
            elif args.config_command == "delete":
                cmd_config_delete(args)
            elif args.config_command == "validate":
                cmd_config_validate(args)
            else:
                config_parser.print_help()
                sys.exit(2)
        else:
            parser.print_help()
            sys.exit(2)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
