"""
Retry policy helpers for step execution.
Parses the failure policy string and re-runs failing step attempts.
"""

import logging
import re
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..models import StepResult

logger = logging.getLogger(__name__)

RETRY_PATTERN = re.compile(r'^retry\s*\(\s*max\s*:\s*(\d+)\s*\)$')

# Failure policies that stop the workflow once attempts are exhausted
ABORT = "abort"
CONTINUE = "continue"


def is_valid_failure_policy(policy: Optional[str]) -> bool:
    """True for None, 'abort', 'continue' and 'retry(max: N)'."""
    if policy is None:
        return True
    text = policy.strip()
    return text in (ABORT, CONTINUE) or bool(RETRY_PATTERN.match(text))


def aborts_on_failure(policy: Optional[str]) -> bool:
    """Whether a failed step with this policy stops the workflow."""
    return (policy or ABORT).strip() != CONTINUE


@dataclass
class RetryPolicy:
    """
    Configuration for step retry behavior.

    Attributes:
        max_retries: Maximum number of retry attempts (0 = no retries)
        delay_ms: Delay between retries in milliseconds
    """
    max_retries: int = 0
    delay_ms: int = 0

    @classmethod
    def from_failure_policy(cls, policy: Optional[str], delay_ms: int = 0) -> 'RetryPolicy':
        """
        Create retry policy from a step's failure policy.

        'retry(max: N)' allows N retries; every other policy allows none.
        """
        if not policy:
            return cls(max_retries=0, delay_ms=delay_ms)

        match = RETRY_PATTERN.match(policy.strip())
        if not match:
            return cls(max_retries=0, delay_ms=delay_ms)

        return cls(max_retries=int(match.group(1)), delay_ms=delay_ms)

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def should_retry(self, result: StepResult, attempt: int) -> bool:
        """
        Determine if a retry should be attempted.

        Args:
            result: Result of the last attempt
            attempt: Current attempt number (0-based)

        Returns:
            True if should retry, False otherwise
        """
        if result.passed:
            return False
        return attempt < self.max_retries

    def wait(self):
        """Wait for the configured delay between retries."""
        if self.delay_ms > 0:
            time.sleep(self.delay_ms / 1000.0)

    def run(
        self,
        attempt_fn: Callable[[], StepResult],
        on_retry: Optional[Callable[[int, int], None]] = None,
    ) -> StepResult:
        """
        Call attempt_fn up to max_retries + 1 times, stopping at the first pass.

        Exceptions raised by attempt_fn propagate without further attempts.

        Args:
            attempt_fn: Performs one attempt and returns its result
            on_retry: Called with (retry_number, max_retries) before each retry

        Returns:
            Result of the last attempt made
        """
        attempt = 0
        result = attempt_fn()

        while self.should_retry(result, attempt):
            attempt += 1
            logger.warning(f"Step '{result.id}' failed, retrying ({attempt}/{self.max_retries})")
            if on_retry:
                on_retry(attempt, self.max_retries)
            self.wait()
            result = attempt_fn()

        return result
