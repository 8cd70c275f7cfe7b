"""
Built-in git variables.

Seeds a variable store with the remote URL, current branch, hosting
platform, the platform's push command and the last five commit subjects.
"""

import logging
from pathlib import Path
from typing import Optional

from ..exec.command_executor import CommandExecutor
from ..exceptions import CommandError
from .substitution import VariableStore

logger = logging.getLogger(__name__)

REMOTE = "origin"

GIT_REMOTE_URL = "git_remote_url"
GIT_BRANCH = "git_branch"
GIT_PLATFORM = "git_platform"
GIT_PUSH_CMD = "git_push_cmd"
GIT_RECENT_COMMITS = "git_recent_commits"


def detect_platform(remote_url: str) -> str:
    """
    Infer the hosting platform from a remote URL.

    Returns:
        'github', 'gitlab', 'bitbucket', 'gerrit' or 'unknown'
    """
    url = remote_url.lower()
    if 'github' in url:
        return 'github'
    if 'gitlab' in url:
        return 'gitlab'
    if 'bitbucket' in url:
        return 'bitbucket'
    # Gerrit: ssh port 29418, authenticated /a/ HTTP prefix, or a gerrit host
    if ':29418' in url or '/a/' in url or 'gerrit' in url:
        return 'gerrit'
    return 'unknown'


def build_push_command(platform: str, branch: str, remote: str = REMOTE) -> str:
    """Gerrit pushes for review to refs/for/<branch>; everything else pushes the branch."""
    if platform == 'gerrit':
        return f"git push {remote} HEAD:refs/for/{branch}"
    return f"git push {remote} HEAD:{branch}"


def resolve_git_cwd(executor: CommandExecutor, workspace: Optional[Path]) -> Optional[Path]:
    """
    Return the repository root containing the workspace.

    Falls back to the workspace itself when it is not inside a git repository.
    """
    if workspace is None:
        return None
    try:
        root = executor.check_output(['git', 'rev-parse', '--show-toplevel'], cwd=workspace).strip()
    except CommandError:
        return workspace
    return Path(root) if root else workspace


def populate_git_variables(
    variables: VariableStore,
    executor: CommandExecutor,
    cwd: Optional[Path],
) -> None:
    """
    Populate the built-in git variables.

    Args:
        variables: Store to seed
        executor: Command executor used for git introspection
        cwd: Repository working directory
    """
    if cwd is None:
        _set_defaults(variables)
        return

    try:
        remote_url = executor.check_output(['git', 'remote', 'get-url', REMOTE], cwd=cwd).strip()
        variables.set(GIT_REMOTE_URL, remote_url)

        branch = executor.check_output(['git', 'rev-parse', '--abbrev-ref', 'HEAD'], cwd=cwd).strip()
        variables.set(GIT_BRANCH, branch)

        platform = detect_platform(remote_url)
        variables.set(GIT_PLATFORM, platform)
        variables.set(GIT_PUSH_CMD, build_push_command(platform, branch))

        # Used by prompts to infer the project's commit message format
        recent = executor.check_output(['git', 'log', '-5', '--pretty=format:- %s'], cwd=cwd).strip()
        variables.set(GIT_RECENT_COMMITS, recent)
    except CommandError as e:
        logger.debug(f"Git introspection failed, using defaults: {e}")
        _set_defaults(variables)


def _set_defaults(variables: VariableStore) -> None:
    variables.set(GIT_PLATFORM, 'unknown')
    variables.set(GIT_PUSH_CMD, 'git push')
    variables.set(GIT_RECENT_COMMITS, '(no git history)')
