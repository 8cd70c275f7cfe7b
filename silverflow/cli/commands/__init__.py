"""CLI command handlers."""

from .run import run_workflow, list_workflows

__all__ = ['run_workflow', 'list_workflows']
