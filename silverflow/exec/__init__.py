"""
Execution module for silverflow.
Handles process execution and retry policies.
"""

from .command_executor import CommandExecutor, CommandResult
from .retry import RetryPolicy

__all__ = [
    "CommandExecutor",
    "CommandResult",
    "RetryPolicy",
]
