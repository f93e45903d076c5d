#!/usr/bin/env python3
"""
phpIPAM Address Manager - declarative IP address allocation for phpIPAM.

Usage:
    phpipam-addr plan -m <manifest>
    phpipam-addr apply -m <manifest> [--parallelism=<n>] [--dry-run]
    phpipam-addr refresh
    phpipam-addr show [<name>]
    phpipam-addr destroy [<name>...] [--dry-run] [-y]

Options:
    -h --help           Show this help message
    --version           Show version
    --format=<format>   Output format: table, json, csv [default: table]
    --config=<path>     Path to config file
    --state=<path>      Path to state file
    -v --verbose        Log progress (-vv for debug)

Environment Variables:
    PHPIPAM_SERVER_URL      phpIPAM server URL
    PHPIPAM_APP_ID          phpIPAM API application ID
    PHPIPAM_USERNAME        API user
    PHPIPAM_PASSWORD        API password
    PHPIPAM_TOKEN           Static application token (instead of user/password)
    PHPIPAM_SSL_SKIP_VERIFY Set to 'true' to skip TLS verification
"""

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .address_ops import AddressOperations, load_manifest
from .config import get_config
from .output import get_formatter
from .provider import Provider
from .state import StateStore

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

RESOURCE_COLUMNS = ['name', 'id', 'hostname', 'ip_address', 'section', 'subnet',
                    'index', 'gateway', 'bitmask', 'broadcast']
PLAN_COLUMNS = ['name', 'action', 'id', 'hostname', 'section', 'subnet', 'index', 'changed',
                'error']


def setup_logging(verbosity: int) -> None:
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)


class AddressManager:
    """Main application class."""

    def __init__(self, config_path: Optional[str] = None, output_format: Optional[str] = None,
                 state_path: Optional[str] = None, provider: Optional[Provider] = None):
        """Initialize the manager.

        Args:
            config_path: Path to config file
            output_format: Output format (table, json, csv). If None, uses the config's output_format.
            state_path: Path to state file, overrides the config
            provider: Preconfigured provider. Built from config if None.
        """
        self.config = get_config(config_path, {'state_file': state_path})
        self.provider = provider or Provider(self.config)
        self.store = StateStore(self.config.state_file)
        self.ops = AddressOperations(self.provider.reconciler(), self.store)
        self.formatter = get_formatter(output_format, self.config)

    def plan(self, manifest_path: str) -> bool:
        """Show planned changes."""
        changes = self.ops.plan(load_manifest(manifest_path))
        rows = [c.to_dict() for c in changes]
        self.formatter.output(rows, PLAN_COLUMNS, title=f"Plan ({len(rows)})")

        counts = {action: 0 for action in ('create', 'update', 'replace', 'delete', 'error')}
        for change in changes:
            if change.action in counts:
                counts[change.action] += 1
        if self.formatter.format_type == 'table':
            self.formatter.print_plan_summary(counts)
        return counts['error'] == 0

    def apply(self, manifest_path: str, parallelism: int = 1, dry_run: bool = False) -> bool:
        """Converge phpIPAM to the manifest."""
        results = self.ops.apply(load_manifest(manifest_path), parallelism, dry_run)
        if not results:
            self.formatter.print_info("No changes, addresses are up to date")
            return True
        return self.formatter.print_results(results)

    def refresh(self) -> bool:
        """Re-read all managed addresses."""
        rows = self.ops.refresh()
        self.formatter.output(rows, ['status'] + RESOURCE_COLUMNS,
                              title=f"Managed Addresses ({len(rows)})")
        return True

    def show(self, name: Optional[str] = None) -> bool:
        """Show recorded addresses."""
        rows = self.ops.list_resources(name)
        if name and not rows:
            self.formatter.print_error(f"{name} is not managed")
            return False
        self.formatter.output(rows, RESOURCE_COLUMNS, title=f"Managed Addresses ({len(rows)})")
        return True

    def destroy(self, names: List[str], dry_run: bool = False, assume_yes: bool = False) -> bool:
        """Delete managed addresses."""
        targets = names or self.store.names()
        if not targets:
            self.formatter.print_info("Nothing to destroy")
            return True

        if not dry_run and not assume_yes:
            self.formatter.print_warning(f"About to release {len(targets)} address(es)")
            if not self.formatter.confirm("Are you sure?"):
                self.formatter.print_info("Cancelled")
                return True

        return self.formatter.print_results(self.ops.destroy(targets, dry_run))


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    # Common arguments for all subcommands
    common_parser = argparse.ArgumentParser(add_help=False)
    common_parser.add_argument('-f', '--format', choices=['table', 'json', 'csv'],
                               default=argparse.SUPPRESS, help='Output format (default: table)')
    common_parser.add_argument('--config', default=argparse.SUPPRESS, help='Path to config file')
    common_parser.add_argument('--state', default=argparse.SUPPRESS, help='Path to state file')
    common_parser.add_argument('-v', '--verbose', action='count', default=argparse.SUPPRESS,
                               help='Log progress (-vv for debug)')

    parser = argparse.ArgumentParser(
        prog='phpipam-addr',
        description='phpIPAM Address Manager - declarative IP address allocation for phpIPAM',
        parents=[common_parser]
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    plan = subparsers.add_parser('plan', help='Show planned changes', parents=[common_parser])
    plan.add_argument('-m', '--manifest', required=True, help='Manifest file')

    apply = subparsers.add_parser('apply', help='Converge phpIPAM to the manifest',
                                  parents=[common_parser])
    apply.add_argument('-m', '--manifest', required=True, help='Manifest file')
    apply.add_argument('-p', '--parallelism', type=int, default=1,
                       help='Resources converged concurrently (default: 1)')
    apply.add_argument('--dry-run', action='store_true', help='Dry run mode')

    subparsers.add_parser('refresh', help='Re-read managed addresses', parents=[common_parser])

    show = subparsers.add_parser('show', help='Show managed addresses', parents=[common_parser])
    show.add_argument('name', nargs='?', help='Resource name')

    destroy = subparsers.add_parser('destroy', help='Release managed addresses',
                                    parents=[common_parser])
    destroy.add_argument('names', nargs='*', help='Resource names (default: all)')
    destroy.add_argument('--dry-run', action='store_true', help='Dry run mode')
    destroy.add_argument('-y', '--yes', action='store_true', help='Do not ask for confirmation')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(getattr(args, 'verbose', 0) or 0)

    # Show help if no command
    if not args.command:
        parser.print_help()
        return 0

    # Initialize manager
    try:
        mgr = AddressManager(config_path=getattr(args, 'config', None),
                             output_format=getattr(args, 'format', None),
                             state_path=getattr(args, 'state', None))
    except Exception as e:
        print(f"Error initializing: {e}", file=sys.stderr)
        return 1

    # Route commands
    try:
        if args.command == 'plan':
            ok = mgr.plan(args.manifest)
        elif args.command == 'apply':
            ok = mgr.apply(args.manifest, parallelism=args.parallelism, dry_run=args.dry_run)
        elif args.command == 'refresh':
            ok = mgr.refresh()
        elif args.command == 'show':
            ok = mgr.show(args.name)
        elif args.command == 'destroy':
            ok = mgr.destroy(args.names, dry_run=args.dry_run, assume_yes=args.yes)
        else:
            parser.print_help()
            ok = False

    except KeyboardInterrupt:
        print("\nCancelled")
        return 130
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0 if ok else 1


if __name__ == '__main__':
    sys.exit(main())
