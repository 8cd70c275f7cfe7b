"""Declarative workflow engine for agent, prompt and shell pipelines."""

__version__ = "0.1.0"
