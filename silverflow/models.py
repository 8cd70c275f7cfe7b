"""
Workflow data model.

Definitions are produced by the loader and are read-only for the duration of
a run. Results are produced by the runner, one per executed or skipped step.
"""

from dataclasses import dataclass, asdict, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class StepKind(str, Enum):
    """Kinds of step the dispatcher knows how to run."""
    AGENT = "agent"
    PROMPT = "prompt"
    SHELL = "shell"


class RunStatus(str, Enum):
    """Terminal state of a workflow run."""
    COMPLETED_OK = "completed_ok"
    COMPLETED_WITH_FAILURES = "completed_with_failures"
    ABORTED = "aborted"
    CANCELLED = "cancelled"


DEFAULT_FAILURE_POLICY = "abort"


@dataclass(frozen=True)
class StepDefinition:
    """
    One step of a workflow definition.

    Attributes:
        id: Unique identifier within the workflow, referenced by conditions
        kind: Step kind ('agent', 'prompt' or 'shell'); unknown kinds fail at dispatch
        agent_ref: [agent] Persona name, resolved to .github/agents/<name>.agent.md
        prompt_ref: [prompt] Prompt document path relative to the workspace root
        command: [shell] Command line, supports {{variable}} interpolation
        input: Built-in source name, '{{var}}' reference or literal text
        capture_as: Variable name that receives this step's output
        expected_substring: Text required in the output for the step to pass
        failure_policy: 'abort' (default), 'continue' or 'retry(max: N)'
        condition: Boolean expression over earlier steps
        description: Human-readable label shown in progress output
    """
    id: str
    kind: str
    agent_ref: Optional[str] = None
    prompt_ref: Optional[str] = None
    command: Optional[str] = None
    input: Optional[str] = None
    capture_as: Optional[str] = None
    expected_substring: Optional[str] = None
    failure_policy: Optional[str] = None
    condition: Optional[str] = None
    description: Optional[str] = None

    @property
    def effective_failure_policy(self) -> str:
        return (self.failure_policy or DEFAULT_FAILURE_POLICY).strip()

    @property
    def label(self) -> str:
        return self.description or self.id


@dataclass(frozen=True)
class WorkflowDefinition:
    """A named, ordered list of steps."""
    name: str
    description: str = ""
    steps: Tuple[StepDefinition, ...] = ()
    source: Optional[str] = None

    def step_ids(self) -> List[str]:
        return [step.id for step in self.steps]


@dataclass(frozen=True)
class WorkflowSummary:
    """Lightweight listing entry for a workflow document."""
    name: str
    description: str
    file: str


@dataclass
class StepResult:
    """Outcome of one step (final attempt only)."""
    id: str
    passed: bool
    output: str = ""
    skipped: bool = False
    failure_reason: Optional[str] = None

    @classmethod
    def skip(cls, step_id: str) -> 'StepResult':
        """A skipped step never blocks success."""
        return cls(id=step_id, passed=True, output="", skipped=True)

    @classmethod
    def failure(cls, step_id: str, reason: str, output: str = "") -> 'StepResult':
        return cls(id=step_id, passed=False, output=output, skipped=False, failure_reason=reason)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict, omitting None values."""
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class WorkflowRunResult:
    """Aggregate result of one workflow run."""
    workflow_name: str
    passed: bool
    steps: Tuple[StepResult, ...] = field(default_factory=tuple)
    aborted_at_step_id: Optional[str] = None
    cancelled: bool = False

    @property
    def status(self) -> RunStatus:
        if self.aborted_at_step_id is not None:
            return RunStatus.ABORTED
        if self.cancelled:
            return RunStatus.CANCELLED
        if self.passed:
            return RunStatus.COMPLETED_OK
        return RunStatus.COMPLETED_WITH_FAILURES

    @property
    def failed_step_ids(self) -> List[str]:
        return [r.id for r in self.steps if not r.passed and not r.skipped]

    def get(self, step_id: str) -> Optional[StepResult]:
        for result in self.steps:
            if result.id == step_id:
                return result
        return None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "workflow_name": self.workflow_name,
            "passed": self.passed,
            "status": self.status.value,
            "steps": [r.to_dict() for r in self.steps],
        }
        if self.aborted_at_step_id is not None:
            result["aborted_at_step_id"] = self.aborted_at_step_id
        if self.cancelled:
            result["cancelled"] = True
        return result
