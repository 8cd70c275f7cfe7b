"""
Variable store and built-in git variables.
"""

from .substitution import VariableStore
from .git_context import detect_platform, build_push_command, populate_git_variables

__all__ = ['VariableStore', 'detect_platform', 'build_push_command', 'populate_git_variables']
