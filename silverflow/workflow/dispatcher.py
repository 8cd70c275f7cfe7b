"""
Step dispatcher.

Resolves a step's input, runs the step as an agent call, a prompt call or a
shell command, and judges the outcome against the step's expected substring.
"""

import logging
import re
from pathlib import Path
from typing import Optional, Tuple

from ..documents import DocumentStore
from ..exceptions import StepConfigurationError
from ..exec.command_executor import CommandExecutor
from ..models import StepDefinition, StepKind, StepResult
from ..progress import ProgressSink
from ..providers.executor import ChatClient
from ..variables.substitution import VariableStore
from .inputs import GIT_DIFF_STAGED, InputResolver

logger = logging.getLogger(__name__)

PASS_MARKER = "[PASS]"
FAIL_MARKER = "[FAIL]"

AGENT_SYSTEM_PREAMBLE = (
    "You are a code reviewer. Apply the instructions below autonomously. "
    "Do NOT ask for more input. Review only what is provided in the input below. "
    f"End your response with exactly `{PASS_MARKER}` or `{FAIL_MARKER}` on its own line."
)

FENCED_BLOCK = re.compile(r'^```[^\n]*\n(.*?)\n?```\s*$', re.DOTALL)
INLINE_CODE = re.compile(r'^`([^`]+)`$')


def strip_code_fences(text: str) -> str:
    """
    Remove a code fence or single-backtick wrapper around model output.

    Handles ```\\ntext\\n``` and ```lang\\ntext\\n```; returns the inner text trimmed.
    """
    stripped = text.strip()
    fenced = FENCED_BLOCK.match(stripped)
    if fenced:
        return fenced.group(1).strip()
    inline = INLINE_CODE.match(stripped)
    if inline:
        return inline.group(1).strip()
    return stripped


def truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit]


class StepDispatcher:
    """
    Runs one attempt of one step.

    Execution errors and expectation mismatches come back as failed
    StepResults. Configuration errors are raised as StepConfigurationError
    so the caller can fail the step without retrying.
    """

    def __init__(
        self,
        executor: CommandExecutor,
        chat_client: ChatClient,
        documents: DocumentStore,
        cwd: Optional[Path],
        sink: ProgressSink,
        shell_timeout_sec: Optional[float] = None,
        failure_reason_limit: int = 200,
    ):
        """
        Initialize the dispatcher for one run.

        Args:
            executor: Command executor for shell steps and git sources
            chat_client: LLM chat boundary
            documents: Persona and prompt document store
            cwd: Repository working directory (None when no workspace is open)
            sink: Progress sink
            shell_timeout_sec: Timeout for shell steps
            failure_reason_limit: Maximum length of a recorded failure reason
        """
        self.executor = executor
        self.chat_client = chat_client
        self.documents = documents
        self.cwd = cwd
        self.sink = sink
        self.shell_timeout_sec = shell_timeout_sec
        self.failure_reason_limit = failure_reason_limit
        self.inputs = InputResolver(executor, cwd)

    def dispatch(self, step: StepDefinition, variables: VariableStore) -> StepResult:
        """
        Run one attempt of a step.

        Args:
            step: Step definition
            variables: Current variable store

        Returns:
            StepResult for this attempt

        Raises:
            StepConfigurationError: If the step cannot run as declared
        """
        self.sink.line(f"Step '{step.id}': {variables.interpolate(step.label)}")

        try:
            kind = StepKind(step.kind)
        except ValueError:
            raise StepConfigurationError(f"Unknown step type: '{step.kind}'")

        if self.cwd is None:
            raise StepConfigurationError("No workspace folder open")

        try:
            input_text, failure = self._resolve_input(step, variables)
            if failure is not None:
                return failure

            if kind == StepKind.AGENT:
                return self._run_agent(step, input_text)
            if kind == StepKind.PROMPT:
                return self._run_prompt(step, input_text, variables)
            return self._run_shell(step, input_text, variables)

        except StepConfigurationError:
            raise
        except Exception as e:
            logger.warning(f"Step '{step.id}' raised: {e}")
            self.sink.line(f"  Step raised: {e}")
            return StepResult.failure(step.id, truncate(str(e) or type(e).__name__, self.failure_reason_limit))

    def _resolve_input(
        self,
        step: StepDefinition,
        variables: VariableStore,
    ) -> Tuple[str, Optional[StepResult]]:
        input_text = self.inputs.resolve(step.input, variables)

        if step.input and step.input.strip() == GIT_DIFF_STAGED and not input_text.strip():
            # Nothing staged: stage tracked modifications once and look again
            if self.inputs.stage_tracked_changes():
                input_text = self.inputs.resolve(step.input, variables)
                if input_text.strip():
                    self.sink.line("  Nothing was staged; auto-staged all modified tracked files (git add -u)")
            if not input_text.strip():
                reason = "No changes to stage (working tree is clean)"
                self.sink.line(f"  {reason}")
                return input_text, StepResult.failure(step.id, reason)

        return input_text, None

    def _run_agent(self, step: StepDefinition, input_text: str) -> StepResult:
        if not step.agent_ref:
            raise StepConfigurationError(f"Step '{step.id}': agent steps require 'agent'")

        document = self.documents.load_agent(step.agent_ref)
        if document is None:
            raise StepConfigurationError(f"Agent document not found: {step.agent_ref}{DocumentStore.AGENT_SUFFIX}")

        if step.input and not input_text.strip():
            reason = f"Input '{step.input}' resolved to empty"
            self.sink.line(f"  {reason}")
            return StepResult.failure(step.id, reason)

        system_text = f"{AGENT_SYSTEM_PREAMBLE}\n\n## Agent Instructions\n{document.body}"
        user_text = f"## Input to Review\n```diff\n{input_text}\n```"

        output = self._stream(system_text, user_text, document.model)
        return self._judge(step, output, step.expected_substring or PASS_MARKER)

    def _run_prompt(self, step: StepDefinition, input_text: str, variables: VariableStore) -> StepResult:
        if not step.prompt_ref:
            raise StepConfigurationError(f"Step '{step.id}': prompt steps require 'prompt'")

        document = self.documents.load_prompt(step.prompt_ref)
        if document is None:
            raise StepConfigurationError(f"Prompt file not found: {step.prompt_ref}")

        prompt = variables.interpolate(document.body)
        if input_text:
            prompt = f"{prompt}\n\n## Input\n{input_text}"

        output = self._stream("", prompt, document.model)
        result = self._judge(step, output, step.expected_substring)

        if step.capture_as:
            # Captured values feed later shell commands as literal text
            result.output = strip_code_fences(output)
            self.sink.line(f"  Output captured to {{{{{step.capture_as}}}}}")

        return result

    def _run_shell(self, step: StepDefinition, input_text: str, variables: VariableStore) -> StepResult:
        if not step.command or not step.command.strip():
            raise StepConfigurationError(f"Step '{step.id}': shell steps require 'command'")

        command = variables.interpolate(step.command)
        self.sink.line(f"  $ {command}")

        result = self.executor.run(
            command,
            cwd=self.cwd,
            timeout_sec=self.shell_timeout_sec,
            input_text=input_text if step.input else None,
        )

        if not result.ok:
            text = result.failure_text()
            self.sink.line(f"  {text}")
            self.sink.line("  FAILED: command failed")
            return StepResult.failure(step.id, truncate(text, self.failure_reason_limit), output=text)

        stdout = result.stdout.strip()
        if stdout:
            self.sink.line(stdout)
        return self._judge(step, stdout, step.expected_substring)

    def _stream(self, system_text: str, user_text: str, model_hint: Optional[str]) -> str:
        chunks = []
        stream = self.chat_client.send_chat_request(system_text, user_text, model_hint)
        try:
            for chunk in stream:
                self.sink.emit(chunk)
                chunks.append(chunk)
        finally:
            # Generators release their provider process on close
            close = getattr(stream, 'close', None)
            if close is not None:
                close()
        self.sink.line()
        return "".join(chunks)

    def _judge(self, step: StepDefinition, output: str, expected: Optional[str]) -> StepResult:
        if expected and expected not in output:
            reason = f"Expected '{expected}' not found in output"
            self.sink.line(f"  FAILED: {reason}")
            return StepResult.failure(step.id, reason, output=output)

        self.sink.line("  PASSED")
        return StepResult(id=step.id, passed=True, output=output)
