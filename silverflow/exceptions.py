"""Silverflow exceptions."""

from typing import List, Optional
from dataclasses import dataclass


@dataclass
class ValidationError:
    """Single validation error."""
    message: str
    path: str = ""
    exit_code: int = 2


class WorkflowValidationError(Exception):
    """Raised when a workflow definition fails validation.

    This exception is raised by the loader when validation errors occur,
    allowing the CLI to catch it and map to appropriate exit codes.
    """

    def __init__(self, errors: List[ValidationError]):
        self.errors = errors
        self.exit_code = 2

        messages = []
        for error in errors:
            if error.path:
                messages.append(f"Validation error: {error.path}: {error.message}")
            else:
                messages.append(f"Validation error: {error.message}")

        super().__init__("\n".join(messages))


class StepConfigurationError(Exception):
    """A step cannot run as declared (unknown kind, missing document, bad condition).

    Configuration errors are recorded as a failed step and never retried.
    """


class ConditionSyntaxError(StepConfigurationError):
    """Raised when a condition expression does not parse."""

    def __init__(self, expression: str, message: str):
        self.expression = expression
        super().__init__(f"Invalid condition '{expression}': {message}")


class ModelUnavailableError(StepConfigurationError):
    """Raised when no language model can be obtained for an LLM step."""

    def __init__(self, message: str = "No model available"):
        super().__init__(message)


class CommandError(Exception):
    """Raised when a checked command exits with a non-zero status."""

    def __init__(self, command, exit_code: int, stderr: str = "", stdout: str = ""):
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        self.stdout = stdout
        detail = stderr.strip() or f"exit code {exit_code}"
        super().__init__(detail)


class ProviderError(Exception):
    """Raised when a provider process fails while producing a response."""

    def __init__(self, provider: str, message: str, exit_code: Optional[int] = None):
        self.provider = provider
        self.exit_code = exit_code
        super().__init__(message)
