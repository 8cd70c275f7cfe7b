"""Run and list command implementations."""

import json
import logging
import signal
import sys
import threading
from argparse import Namespace
from pathlib import Path
from typing import Optional

from silverflow.config import EngineConfig
from silverflow.exceptions import WorkflowValidationError
from silverflow.loader import WorkflowLoader
from silverflow.progress import NullSink, StreamSink
from silverflow.workflow.runner import WorkflowRunner


logger = logging.getLogger(__name__)


def configure_logging(args: Namespace) -> None:
    """Set up logging from --log-level, --debug, --quiet and --verbose."""
    level_name = 'WARNING' if args.log_level == 'warn' else args.log_level.upper()
    log_level = getattr(logging, level_name)
    if args.debug:
        log_level = logging.DEBUG
    elif args.quiet:
        log_level = logging.ERROR
    elif args.verbose:
        log_level = logging.INFO

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def build_config(args: Namespace) -> EngineConfig:
    """Environment configuration with command-line overrides applied."""
    workspace = Path(args.workspace).resolve() if args.workspace else Path.cwd()
    config = EngineConfig.from_env(workspace)
    if args.workflows_dir:
        config.workflows_dir = args.workflows_dir
    if getattr(args, 'retry_delay', None) is not None:
        if args.retry_delay < 0:
            raise ValueError("--retry-delay cannot be negative")
        config.retry_delay_ms = args.retry_delay
    return config


def list_workflows(args: Namespace) -> int:
    """Print name and description of every loadable workflow."""
    configure_logging(args)
    try:
        config = build_config(args)
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 2

    loader = WorkflowLoader(config.workflows_path)
    summaries = loader.list_all()
    if not summaries:
        print(f"No workflows found in {config.workflows_path}")
        return 0

    for summary in summaries:
        line = f"{summary.name} ({summary.file})"
        if summary.description:
            line = f"{line}: {summary.description}"
        print(line)
    return 0


def _invalid_document(loader: WorkflowLoader, name: str) -> Optional[WorkflowValidationError]:
    """Validation error of a document whose filename matches name, if any."""
    for path in loader.discover():
        if path.stem != name:
            continue
        try:
            loader.load(path)
        except WorkflowValidationError as e:
            return e
    return None


def run_workflow(args: Namespace) -> int:
    """
    Run a workflow by name.

    Returns:
        0 when the run passed, 1 when it failed or the workflow was not found,
        2 on configuration or validation errors
    """
    configure_logging(args)

    try:
        config = build_config(args)
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 2

    loader = WorkflowLoader(config.workflows_path)
    workflow = loader.load_by_name(args.workflow)
    if workflow is None:
        invalid = _invalid_document(loader, args.workflow)
        if invalid is not None:
            print(f"Error: workflow '{args.workflow}' is invalid:\n{invalid}", file=sys.stderr)
            return invalid.exit_code
        logger.error(f"Workflow '{args.workflow}' not found in {config.workflows_path}")
        print(f"Error: workflow '{args.workflow}' not found", file=sys.stderr)
        return 1

    logger.info(f"Loaded workflow '{workflow.name}' from {workflow.source}")

    # Ctrl-C stops the run at the next step boundary
    cancel_event = threading.Event()

    def request_cancel(signum, frame):
        logger.warning("Cancellation requested")
        cancel_event.set()

    in_main_thread = threading.current_thread() is threading.main_thread()
    previous_handler = signal.signal(signal.SIGINT, request_cancel) if in_main_thread else None
    try:
        runner = WorkflowRunner(config)
        sink = NullSink() if args.json or args.quiet else StreamSink()
        result = runner.run(workflow, sink=sink, cancel_event=cancel_event)
    finally:
        if in_main_thread:
            signal.signal(signal.SIGINT, previous_handler)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))

    return 0 if result.passed else 1
