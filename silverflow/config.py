"""Engine configuration."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_WORKFLOWS_DIR = os.path.join(".github", "workflows", "silver")
DEFAULT_AGENTS_DIR = os.path.join(".github", "agents")


@dataclass
class EngineConfig:
    """Configuration for the workflow engine.

    Attributes:
        workspace: Workspace root; relative directories resolve against it
        workflows_dir: Directory scanned for workflow definitions
        agents_dir: Directory holding <name>.agent.md persona documents
        shell_timeout_sec: Timeout for shell steps (None = no timeout)
        retry_delay_ms: Delay between retry attempts
        failure_reason_limit: Maximum length of a recorded failure reason
    """

    workspace: Path
    workflows_dir: str = DEFAULT_WORKFLOWS_DIR
    agents_dir: str = DEFAULT_AGENTS_DIR
    shell_timeout_sec: Optional[float] = None
    retry_delay_ms: int = 0
    failure_reason_limit: int = 200

    def __post_init__(self):
        """Validate configuration values."""
        self.workspace = Path(self.workspace)

        if not self.workflows_dir:
            raise ValueError("workflows_dir cannot be empty")

        if not self.agents_dir:
            raise ValueError("agents_dir cannot be empty")

        if self.shell_timeout_sec is not None and self.shell_timeout_sec <= 0:
            raise ValueError("shell_timeout_sec must be positive")

        if self.retry_delay_ms < 0:
            raise ValueError("retry_delay_ms cannot be negative")

        if self.failure_reason_limit <= 0:
            raise ValueError("failure_reason_limit must be positive")

    @property
    def workflows_path(self) -> Path:
        return self.workspace / self.workflows_dir

    @property
    def agents_path(self) -> Path:
        return self.workspace / self.agents_dir

    @classmethod
    def from_env(cls, workspace: Path, environ: Optional[Mapping[str, str]] = None) -> 'EngineConfig':
        """
        Build a configuration from SILVERFLOW_* environment variables.

        Args:
            workspace: Workspace root
            environ: Environment mapping (default: os.environ)

        Returns:
            EngineConfig with environment overrides applied
        """
        env = os.environ if environ is None else environ

        timeout = env.get("SILVERFLOW_SHELL_TIMEOUT")
        delay = env.get("SILVERFLOW_RETRY_DELAY_MS")

        return cls(
            workspace=Path(workspace),
            workflows_dir=env.get("SILVERFLOW_WORKFLOWS_DIR", DEFAULT_WORKFLOWS_DIR),
            agents_dir=env.get("SILVERFLOW_AGENTS_DIR", DEFAULT_AGENTS_DIR),
            shell_timeout_sec=float(timeout) if timeout else None,
            retry_delay_ms=int(delay) if delay else 0,
        )
