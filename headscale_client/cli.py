"""
Headscale CLI - Small command-line interface.

This layer provides user-facing commands on top of the SDK layer. It handles:
- Argument parsing
- TTY detection for pretty vs compact JSON
- Exit codes derived from operation outcomes
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from typing import Any

from headscale_client.core.client import DEFAULT_TIMEOUT, ClientError, ValidationError
from headscale_client.core.types import Outcome, PreAuthKeyConfig
from headscale_client.sdk import HeadscaleClient

# =============================================================================
# Output Helpers
# =============================================================================


def is_tty() -> bool:
    """Check if stdout is a TTY (human) or pipe (machine)."""
    return sys.stdout.isatty()


def json_output(data: Any, pretty: bool = False) -> None:
    """Print JSON output."""
    indent = 2 if pretty or is_tty() else None
    print(json.dumps(data, indent=indent, default=str))


def error_output(error: ClientError) -> None:
    """Print error and exit."""
    json_output(error.to_dict())
    sys.exit(1)


def success_output(data: Any) -> None:
    """Print success output."""
    json_output(data)


def outcome_output(outcome: Outcome[Any]) -> None:
    """Print an outcome; exit non-zero unless it is a confirmed success."""
    json_output(outcome.to_dict())
    if not outcome.ok:
        sys.exit(1)


# =============================================================================
# CLI Commands
# =============================================================================


def cmd_users_list(client: HeadscaleClient, _args: argparse.Namespace) -> None:
    """List users."""
    users = client.users.list()
    success_output({"data": [u.to_dict() for u in users], "total_count": len(users)})


def cmd_users_get(client: HeadscaleClient, args: argparse.Namespace) -> None:
    """Get a user by name."""
    outcome_output(client.users.get(args.name))


def cmd_users_create(client: HeadscaleClient, args: argparse.Namespace) -> None:
    """Create a user."""
    outcome_output(client.users.create(args.name))


def cmd_users_delete(client: HeadscaleClient, args: argparse.Namespace) -> None:
    """Delete a user."""
    outcome_output(client.users.delete(args.name))


def _parse_expiration(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise ValidationError(f"Invalid expiration timestamp: {value}") from e


def cmd_preauthkeys_create(client: HeadscaleClient, args: argparse.Namespace) -> None:
    """Create a pre-auth key."""
    config = PreAuthKeyConfig(
        user=args.user,
        reusable=args.reusable,
        ephemeral=args.ephemeral,
        expiration=_parse_expiration(args.expiration),
        tags=tuple(args.tags or ()),
    )
    outcome_output(client.preauthkeys.create(config))


# =============================================================================
# Main CLI
# =============================================================================


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="headscale-client",
        description="Headscale client - manage users and pre-auth keys over the Headscale API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment:
  HEADSCALE_URL       Server URL (default http://127.0.0.1:8080)
  HEADSCALE_API_KEY   API key created with 'headscale apikeys create'

Examples:
  headscale-client users create alice
  headscale-client preauthkeys create alice --reusable --tag server
  headscale-client users list | jq '.data[].name'
""",
    )
    parser.add_argument("--url", help="Server URL (overrides HEADSCALE_URL)")
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT, help="Request timeout in seconds")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log requests to stderr")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # ========== Users ==========
    users = subparsers.add_parser("users", help="List and manage users")
    users.set_defaults(func=lambda _c, _a: users.print_help())
    users_sub = users.add_subparsers(dest="subcommand")

    u_list = users_sub.add_parser("list", help="List users")
    u_list.set_defaults(func=cmd_users_list)

    u_get = users_sub.add_parser("get", help="Get user details")
    u_get.add_argument("name", help="User name")
    u_get.set_defaults(func=cmd_users_get)

    u_create = users_sub.add_parser("create", help="Create a user")
    u_create.add_argument("name", help="User name")
    u_create.set_defaults(func=cmd_users_create)

    u_delete = users_sub.add_parser("delete", help="Delete a user")
    u_delete.add_argument("name", help="User name")
    u_delete.set_defaults(func=cmd_users_delete)

    # ========== Pre-Auth Keys ==========
    keys = subparsers.add_parser("preauthkeys", help="Create pre-auth keys")
    keys.set_defaults(func=lambda _c, _a: keys.print_help())
    keys_sub = keys.add_subparsers(dest="subcommand")

    k_create = keys_sub.add_parser("create", help="Create a pre-auth key")
    k_create.add_argument("user", help="Owning user name")
    k_create.add_argument("--reusable", action="store_true", help="Allow the key to register several nodes")
    k_create.add_argument("--ephemeral", action="store_true", help="Nodes registered with the key are ephemeral")
    k_create.add_argument("--expiration", "-e", help="Expiration as ISO 8601 timestamp")
    k_create.add_argument("--tag", "-t", dest="tags", action="append", help="ACL tag (repeatable)")
    k_create.set_defaults(func=cmd_preauthkeys_create)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(0)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    client = HeadscaleClient(base_url=args.url, timeout=args.timeout)

    try:
        args.func(client, args)
    except ClientError as e:
        error_output(e)


if __name__ == "__main__":
    main()
