#!/usr/bin/env python3
"""
markstore - administration commands for the bookmark storage engine.

Provisions the schema, inspects the database and manages tags and
accounts. Browsing and editing bookmarks is left to the applications
built on top of the engine.
"""
import sys
import argparse
import getpass
import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from markstore.config import StoreConfig, get_config, init_config, set_option
from markstore.errors import StoreError, ValidationError
from markstore.records import AccountRecord, TagRecord
from markstore.schema import describe
from markstore.store import Store

logger = logging.getLogger(__name__)


console = Console()


def open_store(args) -> Store:
    """Open the store selected by --db/--url or the configuration."""
    return Store.open(path=args.db, url=args.url, config=get_config())


def output_tags(tags: List[TagRecord], format: str = "table"):
    """Output tags with their bookmark counts."""
    if format == "json":
        print(json.dumps([t.to_dict() for t in tags], indent=2))
        return

    table = Table(title="Tags")
    table.add_column("ID", style="cyan")
    table.add_column("Tag", style="yellow")
    table.add_column("Bookmarks", style="green")

    for tag in tags:
        table.add_row(str(tag.id), tag.name, str(tag.bookmark_count))

    console.print(table)


def output_accounts(accounts: List[AccountRecord], format: str = "table"):
    """Output accounts. Password hashes are never shown."""
    if format == "json":
        print(json.dumps([a.to_dict() for a in accounts], indent=2))
        return

    table = Table(title="Accounts")
    table.add_column("ID", style="cyan")
    table.add_column("Username", style="green")

    for account in accounts:
        table.add_row(str(account.id), account.username)

    console.print(table)


def cmd_init(args):
    """Create the database and its schema."""
    with open_store(args) as store:
        info = store.db.info()
    console.print(f"[green]Database ready:[/green] {info['url']}")
    if not info["fulltext"]:
        console.print("[yellow]Full-text index unavailable; content search uses substring matching[/yellow]")


def cmd_info(args):
    """Show database information."""
    with open_store(args) as store:
        info = store.db.info()

    if args.output == "json":
        print(json.dumps(info, indent=2))
        return

    table = Table(show_header=False, box=None)
    table.add_column("Field", style="cyan bold")
    table.add_column("Value", style="white")
    for key, value in info.items():
        if isinstance(value, list):
            value = ", ".join(value)
        elif isinstance(value, dict):
            value = ", ".join(f"{k}={v}" for k, v in value.items())
        table.add_row(key, str(value))
    console.print(table)


def cmd_schema(args):
    """Show tables, columns and indexes."""
    with open_store(args) as store:
        schema = describe(store.db.engine)

    if args.output == "json":
        print(json.dumps(schema, indent=2))
        return

    for table_name, table_info in schema["tables"].items():
        table = Table(title=table_name)
        table.add_column("Column", style="cyan")
        table.add_column("Type", style="yellow")
        table.add_column("Null", style="white")
        table.add_column("Key", style="green")

        for col in table_info["columns"]:
            key = "PK" if col["primary_key"] else ""
            if col["foreign_keys"]:
                key = " ".join(filter(None, [key, "-> " + ", ".join(col["foreign_keys"])]))
            table.add_row(col["name"], col["type"], "yes" if col["nullable"] else "no", key)

        console.print(table)
        for idx in table_info["indexes"]:
            console.print(f"  index {idx['name']} ({', '.join(idx['columns'])})")

    console.print(f"Full-text index: {'yes' if schema['fulltext'] else 'no'}")


def cmd_tags(args):
    """List tags, optionally pruning the ones no bookmark uses."""
    with open_store(args) as store:
        if args.prune:
            removed = store.tags.prune_orphans()
            if not args.quiet:
                console.print(f"[green]Pruned {removed} unused tag(s)[/green]")
        tags = store.tags.list_with_counts()

    output_tags(tags, args.output)


def cmd_account_add(args):
    """Create an account."""
    password = args.password
    if password is None:
        password = getpass.getpass(f"Password for {args.username}: ")

    with open_store(args) as store:
        account = store.accounts.create(args.username, password)

    if not args.quiet:
        console.print(f"[green]Created account {account.username} (id {account.id})[/green]")


def cmd_account_list(args):
    """List accounts."""
    with open_store(args) as store:
        accounts = store.accounts.list(args.filter or "")

    output_accounts(accounts, args.output)


def cmd_account_delete(args):
    """Delete accounts by username."""
    with open_store(args) as store:
        removed = store.accounts.delete(*args.usernames)

    if args.quiet:
        print(removed)
    else:
        console.print(f"[green]Deleted {removed} account(s)[/green]")


def cmd_config(args):
    """Show or persist settings."""
    config = get_config()

    if args.action == "show":
        if args.key:
            if args.key not in StoreConfig.field_names():
                raise ValidationError(args.key, f"Unknown config key: {args.key}")
            print(getattr(config, args.key))
        else:
            print(json.dumps(asdict(config), indent=2))

    elif args.action == "set":
        if not args.key or args.value is None:
            raise ValidationError("key", "config set needs a key and a value")
        path = set_option(args.key, args.value)
        if not args.quiet:
            console.print(f"[green]Set {args.key} = {args.value} in {path}[/green]")

    elif args.action == "init":
        path = config.save()
        console.print(f"[green]Created config at {path}[/green]")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="markstore",
        description="markstore - bookmark storage engine administration",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  markstore init
  markstore --db bookmarks.db info -o json
  markstore schema
  markstore tags --prune
  markstore account add alice
  markstore account list ali
  markstore account delete alice bob
  markstore config set bcrypt_rounds 12

Configuration:
  Default database: ./markstore.db or from config
  Config file: ~/.config/markstore/config.toml
  Environment: MARKSTORE_DATABASE, MARKSTORE_DATABASE_URL
        """
    )

    # Global options
    parser.add_argument("--db", help="Database file (default: markstore.db)")
    parser.add_argument("--url", help="Database URL (overrides --db)")
    parser.add_argument("--config", help="Config file path")
    parser.add_argument("-q", "--quiet", action="store_true", help="Minimal output")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("-o", "--output", choices=["table", "json"], help="Output format")

    subparsers = parser.add_subparsers(dest="command", required=True, help="Commands")

    init_parser = subparsers.add_parser("init", help="Create the database schema")
    init_parser.set_defaults(func=cmd_init)

    info_parser = subparsers.add_parser("info", help="Show database information")
    info_parser.set_defaults(func=cmd_info)

    schema_parser = subparsers.add_parser("schema", help="Show tables, columns and indexes")
    schema_parser.set_defaults(func=cmd_schema)

    tags_parser = subparsers.add_parser("tags", help="List tags with bookmark counts")
    tags_parser.add_argument("--prune", action="store_true", help="Delete tags no bookmark uses")
    tags_parser.set_defaults(func=cmd_tags)

    config_parser = subparsers.add_parser("config", help="Show or change settings")
    config_parser.add_argument("action", choices=["show", "set", "init"], help="Config action")
    config_parser.add_argument("key", nargs="?", help="Config key")
    config_parser.add_argument("value", nargs="?", help="Config value (for set)")
    config_parser.set_defaults(func=cmd_config)

    account_parser = subparsers.add_parser("account", help="Account management")
    account_subparsers = account_parser.add_subparsers(dest="account_command", required=True)

    account_add = account_subparsers.add_parser("add", help="Create an account")
    account_add.add_argument("username", help="Username")
    account_add.add_argument("--password", help="Password (prompted if omitted)")
    account_add.set_defaults(func=cmd_account_add)

    account_list = account_subparsers.add_parser("list", help="List accounts")
    account_list.add_argument("filter", nargs="?", help="Only usernames containing this text")
    account_list.set_defaults(func=cmd_account_list)

    account_delete = account_subparsers.add_parser("delete", help="Delete accounts")
    account_delete.add_argument("usernames", nargs="+", help="Usernames to delete")
    account_delete.set_defaults(func=cmd_account_delete)

    return parser


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.config:
            get_config(reload=True, config_file=Path(args.config))
        config = init_config(database=args.db, output_format=args.output)
    except StoreError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        sys.exit(1)

    if args.verbose:
        config.log_level = "DEBUG"

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.WARNING),
        format='%(levelname)s: %(name)s: %(message)s'
    )

    if not args.output:
        args.output = config.output_format

    try:
        args.func(args)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except StoreError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
