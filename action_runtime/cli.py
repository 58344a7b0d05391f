"""
Command-line interface for the action runtime.

Actions are loaded from a Python target of the form
`package.module:attribute`, where the attribute is a list of action
definitions or a callable returning one.

Commands:
- start: run the scheduler in the foreground
- run: trigger one action once
- list: show the actions a target defines
- show-config: print the resolved configuration
"""

import argparse
import importlib
import json
import logging
import os
import signal
import sys
import threading
from pathlib import Path
from typing import Any, List

from action_runtime.config import RuntimeConfig
from action_runtime.models import ActionDefinition
from action_runtime.registry import ActionValidationError, coerce_definition
from action_runtime.runtime import ActionRuntime, UnknownActionError

logger = logging.getLogger(__name__)


def setup_logging(log_file: str = None, verbose: bool = False, level: str = "INFO"):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_formatter = logging.Formatter(
        '%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(console_formatter)

    # Root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)

    # File handler
    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        file_formatter = logging.Formatter(
            '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
        )
        file_handler.setFormatter(file_formatter)
        root_logger.addHandler(file_handler)


def load_definitions(target: str) -> List[Any]:
    """
    Import a `module:attribute` target and return its action definitions.

    Raises:
        ValueError: If the target is malformed or does not resolve to a list
    """
    module_name, sep, attribute = target.partition(':')
    if not sep or not module_name or not attribute:
        raise ValueError(f"Target must look like 'package.module:attribute', got '{target}'")

    # Console scripts do not put the working directory on the path
    cwd = os.getcwd()
    if cwd not in sys.path:
        sys.path.insert(0, cwd)

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ValueError(f"Cannot import module '{module_name}': {e}") from e

    try:
        value = getattr(module, attribute)
    except AttributeError as e:
        raise ValueError(f"Module '{module_name}' has no attribute '{attribute}'") from e

    if callable(value):
        value = value()
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"'{target}' must be a list of action definitions")
    return list(value)


def _build_runtime(args) -> ActionRuntime:
    config = RuntimeConfig.load(args.config)
    setup_logging(
        log_file=args.log_file or config.logging.file,
        verbose=args.verbose,
        level=config.logging.level
    )
    return ActionRuntime(config=config)


def cmd_start(args):
    """Start the scheduler in the foreground."""
    try:
        runtime = _build_runtime(args)
        definitions = load_definitions(args.target)
        runtime.define(definitions)
    except (ValueError, ActionValidationError) as e:
        logger.error(f"Failed to start action runtime: {e}")
        sys.exit(1)

    stop_event = threading.Event()

    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        stop_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    logger.info(f"Running {len(definitions)} action(s). Press Ctrl+C to stop.")
    stop_event.wait()
    runtime.shutdown(wait=True)


def cmd_run(args):
    """Run one action once."""
    try:
        runtime = _build_runtime(args)
        runtime.registry.register(load_definitions(args.target))
        runtime.run(args.name)
    except (ValueError, ActionValidationError) as e:
        logger.error(f"Failed to load actions: {e}")
        sys.exit(1)
    except UnknownActionError as e:
        logger.error(str(e))
        sys.exit(1)


def _describe_interval(definition: ActionDefinition) -> str:
    interval = definition.interval
    if interval is None:
        return "manual only"
    return f"every {interval.every} {interval.unit or 'minutes'}"


def cmd_list(args):
    """List the actions a target defines."""
    try:
        definitions = [coerce_definition(raw) for raw in load_definitions(args.target)]
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"=== Actions ({len(definitions)}) ===\n")
    for definition in definitions:
        if not isinstance(definition, ActionDefinition):
            print(f"? {definition!r}\n")
            continue
        print(f"  {definition.name}")
        print(f"    Description: {definition.description}")
        print(f"    Schedule: {_describe_interval(definition)}")
        hooks = [
            hook for hook in ('on_run', 'on_complete', 'on_error')
            if getattr(definition, hook) is not None
        ]
        if hooks:
            print(f"    Hooks: {', '.join(hooks)}")
        print()


def cmd_show_config(args):
    """Show the resolved configuration."""
    try:
        config = RuntimeConfig.load(args.config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(json.dumps(config.to_dict(), indent=2))
    errors = config.validate()
    if errors:
        print("\nConfiguration errors:")
        for error in errors:
            print(f"  - {error}")
        sys.exit(1)


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog='action-runtime',
        description='Run scheduled and on-demand actions'
    )
    parser.add_argument('--config', type=str, help='Path to configuration file')
    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose output')

    # Same options after the subcommand; suppressed defaults keep the top-level values
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--config', type=str, default=argparse.SUPPRESS,
                        help='Path to configuration file')
    common.add_argument('-v', '--verbose', action='store_true', default=argparse.SUPPRESS,
                        help='Verbose output')

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    # Start command
    start_parser = subparsers.add_parser('start', parents=[common],
                                         help='Run the scheduler in the foreground')
    start_parser.add_argument('target', help="Actions target, e.g. 'myapp.actions:ACTIONS'")
    start_parser.add_argument('--log-file', type=str, help='Log file path')
    start_parser.set_defaults(func=cmd_start)

    # Run command
    run_parser = subparsers.add_parser('run', parents=[common], help='Run one action once')
    run_parser.add_argument('target', help="Actions target, e.g. 'myapp.actions:ACTIONS'")
    run_parser.add_argument('name', help='Action name')
    run_parser.add_argument('--log-file', type=str, help='Log file path')
    run_parser.set_defaults(func=cmd_run)

    # List command
    list_parser = subparsers.add_parser('list', parents=[common], help='List actions')
    list_parser.add_argument('target', help="Actions target, e.g. 'myapp.actions:ACTIONS'")
    list_parser.set_defaults(func=cmd_list)

    # Show config command
    show_config_parser = subparsers.add_parser('show-config', parents=[common],
                                               help='Show configuration')
    show_config_parser.set_defaults(func=cmd_show_config)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == '__main__':
    main()
