"""
Step input resolution.

An input is a bare {{variable}} reference, the name of a built-in git
source, or literal text with {{...}} interpolation.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional

from ..exec.command_executor import CommandExecutor
from ..exceptions import CommandError
from ..variables.substitution import VariableStore

logger = logging.getLogger(__name__)

GIT_DIFF_STAGED = "git_diff_staged"
GIT_DIFF_LAST_COMMIT = "git_diff_last_commit"
COMMIT_MESSAGE_LAST = "commit_message_last"

BUILTIN_SOURCES: Dict[str, List[str]] = {
    GIT_DIFF_STAGED: ['git', 'diff', '--staged'],
    GIT_DIFF_LAST_COMMIT: ['git', 'diff', 'HEAD~1..HEAD'],
    COMMIT_MESSAGE_LAST: ['git', 'log', '-1', '--pretty=%B'],
}

# Stages all modified tracked files
STAGE_TRACKED = ['git', 'add', '-u']


class InputResolver:
    """Resolves a step's declared input to text."""

    def __init__(self, executor: CommandExecutor, cwd: Optional[Path]):
        self.executor = executor
        self.cwd = cwd

    def resolve(self, input_value: Optional[str], variables: VariableStore) -> str:
        """
        Resolve a step's declared input.

        Args:
            input_value: The step's 'input' value
            variables: Current variable store

        Returns:
            Resolved text ('' when no input is declared)
        """
        if not input_value:
            return ""

        reference = variables.resolve_reference(input_value)
        if reference is not None:
            return reference

        command = BUILTIN_SOURCES.get(input_value.strip())
        if command is not None:
            try:
                return self.executor.check_output(command, cwd=self.cwd).strip()
            except CommandError as e:
                logger.warning(f"Could not resolve input '{input_value}': {e}")
                return f"(could not resolve input: {input_value})"

        return variables.interpolate(input_value)

    def stage_tracked_changes(self) -> bool:
        """Run 'git add -u'; returns False if staging failed."""
        try:
            self.executor.check_output(STAGE_TRACKED, cwd=self.cwd)
        except CommandError as e:
            logger.warning(f"Auto-staging failed: {e}")
            return False
        return True
