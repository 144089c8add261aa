"""CLI entrypoint for product-describer."""
import sys
import shutil
import asyncio
import argparse
import logging
from pathlib import Path

from .. import VERSION
from ..errors import DescriberError, NotFound, RemoteError
from ..generation.domains.models import CredentialMissing, Failure, parse_features
from ..notifications.scheduler import CAUTION, ConsoleSink
from ..secrets.domains.config_loader import ConfigError, default_config_path, load_config
from ..secrets.domains.models import CREDENTIAL_NAME, HostContext
from ..secrets.domains.preferences import clear_preference, get_preference, set_preference
from ..secrets.workflows import secret_operations
from ..session import Session, build_session
from .validators import parse_expires_at, validate_id, validate_secret_value

logger = logging.getLogger(__name__)

MISSING_KEY_HINT = (
    "You must add your OpenAI API key before generating descriptions: "
    "product-describer secrets set --user {user_id} --value <key>"
)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        stream=sys.stderr
    )


def _open_session():
    """Load config and build a session. Returns (config, session)."""
    config = load_config()
    return config, build_session(config, sink=ConsoleSink())


def _host_context(args, config) -> HostContext:
    """Host identity from flags, falling back to the config's host section."""
    host = config.get("host") or {}
    user_id = getattr(args, "user", None) or host.get("user_id")
    if not user_id:
        print("Error: No user given. Pass --user or set host.user_id in config", file=sys.stderr)
        sys.exit(2)
    validate_id(user_id, "user id")

    record_id = getattr(args, "product", None)
    if record_id:
        validate_id(record_id, "product id")
    return HostContext(
        user_id=user_id,
        user_name=getattr(args, "user_name", None) or host.get("user_name"),
        record_id=record_id,
    )


def cmd_version(args):
    """Show version information."""
    print(f"product-describer {VERSION}")


def cmd_config_set_path(args):
    """Set config file path preference."""
    config_path = Path(args.path).resolve()

    if not config_path.exists():
        print(f"Error: Config file does not exist: {config_path}", file=sys.stderr)
        sys.exit(1)

    if not config_path.is_file():
        print(f"Error: Path is not a file: {config_path}", file=sys.stderr)
        sys.exit(1)

    set_preference("config_path", str(config_path))
    print(f"Config path set to: {config_path}")


def cmd_config_show(args):
    """Show current config file path."""
    config_path_pref = get_preference("config_path")

    if config_path_pref:
        config_path = Path(config_path_pref)
        if config_path.exists():
            print(f"Config path: {config_path}")
        else:
            print(f"Config path (from preference, but file not found): {config_path}")
        print("Source: preference")
        return

    default_config = default_config_path()
    print(f"Config path: {default_config}")
    if default_config.exists():
        print("Source: default")
    else:
        print("Source: default (file not found)")


def cmd_config_clear(args):
    """Clear config path preference."""
    clear_preference("config_path")
    print(f"Config path preference cleared. Will use default: {default_config_path()}")


def cmd_config_init(args):
    """Interactive config setup."""
    default_config = default_config_path()

    print("=== product-describer Configuration Setup ===\n")
    print(f"Default config location: {default_config}\n")

    if default_config.exists():
        print(f"Configuration file already exists at: {default_config}")
        response = input("Do you want to use a different config file? (y/N): ").strip().lower()
        if response != 'y':
            print(f"\nUsing existing config at: {default_config}")
            return

    print("Choose an option:")
    print("1. Copy an existing config file to default location")
    print("2. Point to an existing config file at a different location")
    print("3. Cancel (manually create config file later)")

    choice = input("\nEnter choice (1-3): ").strip()

    if choice in ("1", "2"):
        source = Path(input("Enter path to existing config file: ").strip()).expanduser().resolve()
        if not source.is_file():
            print(f"Error: File not found: {source}", file=sys.stderr)
            sys.exit(1)

        if choice == "1":
            default_config.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, default_config)
            print(f"\nConfig copied to: {default_config}")
        else:
            set_preference("config_path", str(source))
            print(f"\nConfig path set to: {source}")
    elif choice == "3":
        print("\nSetup cancelled.")
        print(f"Create your config file at: {default_config}")
        print("Or use: product-describer config set-path <path>")
    else:
        print("Invalid choice.", file=sys.stderr)
        sys.exit(2)


def _describe_expiry(expires_at) -> str:
    return str(expires_at) if expires_at else "never"


def _run_store_call(session: Session, call, failure_message: str):
    """Run one secret store call. A RemoteError becomes a caution notification and exit 1."""
    try:
        return asyncio.run(call)
    except RemoteError as e:
        logger.error(f"{failure_message}: {e.message}")
        session.scheduler.notify(CAUTION, f"{failure_message}: {e.message}")
        sys.exit(1)


def cmd_secrets_set(args):
    """Store the user's generation credential."""
    validate_secret_value(args.value)
    expires_at = parse_expires_at(args.expires_at)
    config, session = _open_session()
    context = _host_context(args, config)

    secret = _run_store_call(
        session,
        secret_operations.store_credential(session.store, context.user_id, args.value, expires_at),
        "Failed to store secret",
    )
    print(f"Secret '{secret.name}' stored, expiration: {_describe_expiry(secret.expires_at)}")


def cmd_secrets_find(args):
    """Show the user's stored credential."""
    config, session = _open_session()
    context = _host_context(args, config)

    try:
        secret = _run_store_call(
            session,
            secret_operations.find_credential(session.store, context.user_id),
            "Failed to find secret",
        )
    except NotFound:
        print(f"Error: Secret '{CREDENTIAL_NAME}' not found for user {context.user_id}", file=sys.stderr)
        sys.exit(1)

    value = secret.payload if args.reveal else secret.masked_payload()
    print(f"Secret '{secret.name}' has value: '{value}', expiration: {_describe_expiry(secret.expires_at)}")


def cmd_secrets_delete(args):
    """Delete the user's stored credential."""
    config, session = _open_session()
    context = _host_context(args, config)

    try:
        secret = _run_store_call(
            session,
            secret_operations.delete_credential(session.store, context.user_id),
            "Failed to delete secret",
        )
    except NotFound:
        print(f"Error: Secret '{CREDENTIAL_NAME}' not found for user {context.user_id}", file=sys.stderr)
        sys.exit(1)
    print(f"Secret '{secret.name}' has been deleted")


def cmd_secrets_list(args):
    """List secrets visible to the user."""
    config, session = _open_session()
    context = _host_context(args, config)

    secrets = _run_store_call(
        session,
        secret_operations.list_user_secrets(session.store, context.user_id, include_payload=args.reveal),
        "Failed to list secrets",
    )
    print(f"{len(secrets)} secret(s) found")
    for index, secret in enumerate(secrets, start=1):
        line = f"Secret {index} name: '{secret.name}', expiration: {_describe_expiry(secret.expires_at)}"
        if args.reveal:
            line += f", value: '{secret.payload or ''}'"
        print(line)


async def _load_for_show(session: Session, context: HostContext):
    record = await session.orchestrator.load_record(context.record_id)
    if record is None:
        return None, None
    return record, await session.orchestrator.fetch_credential(context.user_id)


def cmd_product_show(args):
    """Show the selected product record."""
    config, session = _open_session()
    context = _host_context(args, config)

    record, credential = asyncio.run(_load_for_show(session, context))
    if record is None:
        sys.exit(1)
    if context.user_name:
        print(f"Hi, {context.user_name}")
    print(f"Name: {record.name}")
    print(f"Description: {record.description or ''}")
    if credential is None:
        print(MISSING_KEY_HINT.format(user_id=context.user_id))


async def _run_describe(session: Session, context: HostContext, tags: str,
                        save: bool, edited: str = None):
    orchestrator = session.orchestrator
    record = await orchestrator.load_record(context.record_id)
    if record is None:
        return 1

    result = await orchestrator.describe(context, record.name, parse_features(tags))
    if isinstance(result, CredentialMissing):
        print(f"Store your key with: product-describer secrets set --user {context.user_id} --value <key>",
              file=sys.stderr)
        return 1
    if isinstance(result, Failure):
        return 1

    description = edited if edited is not None else result.text
    print(description)
    if not save:
        return 0

    updated = await orchestrator.save_description(record.id, description)
    return 0 if updated is not None else 1


def cmd_describe(args):
    """Generate a description for the selected product, optionally saving it."""
    config, session = _open_session()
    context = _host_context(args, config)
    if not context.record_id:
        print("Error: --product is required", file=sys.stderr)
        sys.exit(2)

    sys.exit(asyncio.run(_run_describe(session, context, args.tags, args.save, args.edit)))


def cmd_save(args):
    """Persist a reviewed description onto the selected product."""
    config, session = _open_session()
    context = _host_context(args, config)

    updated = asyncio.run(session.orchestrator.save_description(context.record_id, args.description))
    sys.exit(0 if updated is not None else 1)


def _add_user_args(parser):
    parser.add_argument("--user", help="User id the secret is scoped to (default: host.user_id from config)")
    parser.add_argument("--user-name", help="Display name of the user")


def build_parser():
    parser = argparse.ArgumentParser(
        prog="product-describer",
        description="Generate product descriptions with a per-user credential from the secret store",
        epilog="""
Exit codes:
  0 - Success
  1 - Runtime error (authentication, network, secret not found, etc.)
  2 - Usage error (invalid arguments, missing user or product, etc.)

Environment variables:
  GCP_PROJECT - GCP project ID used to resolve the platform API key (overrides config file)

Configuration:
  Default location: ~/.config/product-describer/config.yml
  Custom path: Set with 'product-describer config set-path <path>'
  View current: Run 'product-describer config show'
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("version", help="Show version information")

    # config command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="Manage product-describer configuration"
    )
    config_subparsers = config_parser.add_subparsers(dest="config_command")
    config_set_path_parser = config_subparsers.add_parser(
        "set-path",
        help="Set config file path",
        description="""
Set the configuration file path preference.

This stores the absolute path to your config file in:
~/.config/product-describer/preferences.json
        """
    )
    config_set_path_parser.add_argument("path", help="Path to config file")
    config_subparsers.add_parser("show", help="Show current config path")
    config_subparsers.add_parser("clear", help="Clear config path preference")
    config_subparsers.add_parser("init", help="Interactive config setup")

    # secrets command
    secrets_parser = subparsers.add_parser(
        "secrets",
        help="Manage the user's generation credential",
        description=f"Create, find, delete and list the '{CREDENTIAL_NAME}' secret in the user-scoped secret store"
    )
    secrets_subparsers = secrets_parser.add_subparsers(dest="secrets_command")

    set_parser = secrets_subparsers.add_parser("set", help="Create or replace the credential")
    _add_user_args(set_parser)
    set_parser.add_argument("--value", required=True, help="Credential value")
    set_parser.add_argument("--expires-at", help="Optional expiry as a Unix timestamp in seconds")

    find_parser = secrets_subparsers.add_parser("find", help="Show the stored credential")
    _add_user_args(find_parser)
    find_parser.add_argument("--reveal", action="store_true", help="Print the full value instead of a masked one")

    delete_parser = secrets_subparsers.add_parser("delete", help="Delete the credential")
    _add_user_args(delete_parser)

    list_parser = secrets_subparsers.add_parser("list", help="List secrets visible to the user")
    _add_user_args(list_parser)
    list_parser.add_argument("--reveal", action="store_true", help="Also print each secret's value")

    # product command
    product_parser = subparsers.add_parser("product", help="Product record operations")
    product_subparsers = product_parser.add_subparsers(dest="product_command")
    show_parser = product_subparsers.add_parser("show", help="Show a product")
    _add_user_args(show_parser)
    show_parser.add_argument("--product", required=True, help="Product id")

    # describe command
    describe_parser = subparsers.add_parser(
        "describe",
        help="Generate a product description",
        description="""
Generate an SEO product description from the product name and feature tags.

The generated text is printed for review. With --save it is written to the
product; --edit replaces the generated text before saving.
        """
    )
    _add_user_args(describe_parser)
    describe_parser.add_argument("--product", help="Product id")
    describe_parser.add_argument("--tags", default="", help="Comma-separated feature tags")
    describe_parser.add_argument("--save", action="store_true", help="Save the description to the product")
    describe_parser.add_argument("--edit", help="Replacement text to save instead of the generated one")

    # save command
    save_parser = subparsers.add_parser("save", help="Save a description to a product")
    _add_user_args(save_parser)
    save_parser.add_argument("--product", help="Product id")
    save_parser.add_argument("--description", help="Description text")

    return parser, {
        "config": config_parser,
        "secrets": secrets_parser,
        "product": product_parser,
    }


_CONFIG_COMMANDS = {
    "set-path": cmd_config_set_path,
    "show": cmd_config_show,
    "clear": cmd_config_clear,
    "init": cmd_config_init,
}

_SECRETS_COMMANDS = {
    "set": cmd_secrets_set,
    "find": cmd_secrets_find,
    "delete": cmd_secrets_delete,
    "list": cmd_secrets_list,
}


def main(argv=None):
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Runtime errors (authentication, network, secret not found, etc.)
        2 - Usage errors (invalid arguments, missing user or product, etc.)
    """
    parser, group_parsers = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if not args.command:
        parser.print_help()
        sys.exit(2)

    try:
        if args.command == "version":
            cmd_version(args)
        elif args.command == "config":
            handler = _CONFIG_COMMANDS.get(args.config_command)
            if handler is None:
                group_parsers["config"].print_help()
                sys.exit(2)
            handler(args)
        elif args.command == "secrets":
            handler = _SECRETS_COMMANDS.get(args.secrets_command)
            if handler is None:
                group_parsers["secrets"].print_help()
                sys.exit(2)
            handler(args)
        elif args.command == "product":
            if args.product_command != "show":
                group_parsers["product"].print_help()
                sys.exit(2)
            cmd_product_show(args)
        elif args.command == "describe":
            cmd_describe(args)
        elif args.command == "save":
            cmd_save(args)
        else:
            parser.print_help()
            sys.exit(2)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except (ConfigError, FileNotFoundError, DescriberError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
