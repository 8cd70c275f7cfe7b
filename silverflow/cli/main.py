"""Main CLI entry point for silverflow."""

import argparse
import sys
from typing import Optional

from .commands import run_workflow, list_workflows


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--workspace',
        type=str,
        help='Workspace root (default: current directory)'
    )
    parser.add_argument(
        '--workflows-dir',
        type=str,
        help='Workflow directory relative to the workspace'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )
    parser.add_argument(
        '--quiet',
        action='store_true',
        help='Suppress non-error output'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose output'
    )
    parser.add_argument(
        '--log-level',
        choices=['debug', 'info', 'warn', 'error'],
        default='warn',
        help='Set log level'
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the silverflow CLI."""
    parser = argparse.ArgumentParser(
        prog='silverflow',
        description='Declarative agent/prompt/shell workflow engine'
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    run_parser = subparsers.add_parser('run', help='Run a workflow')
    run_parser.add_argument(
        'workflow',
        type=str,
        help='Workflow name (name field or file name without extension)'
    )
    run_parser.add_argument(
        '--retry-delay',
        type=int,
        help='Retry delay in milliseconds'
    )
    run_parser.add_argument(
        '--json',
        action='store_true',
        help='Print the run result as JSON'
    )
    add_common_arguments(run_parser)

    list_parser = subparsers.add_parser('list', help='List available workflows')
    add_common_arguments(list_parser)

    return parser


def main(args: Optional[list] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 1

    if parsed_args.command == 'run':
        return run_workflow(parsed_args)
    elif parsed_args.command == 'list':
        return list_workflows(parsed_args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
