"""
Workflow runner.
Executes a workflow's steps in order with conditions, retries and failure policies.
"""

import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional

from ..config import EngineConfig
from ..documents import DocumentStore
from ..exceptions import StepConfigurationError
from ..exec.command_executor import CommandExecutor
from ..exec.retry import RetryPolicy, aborts_on_failure
from ..models import StepDefinition, StepResult, WorkflowDefinition, WorkflowRunResult
from ..progress import NullSink, ProgressSink
from ..providers.executor import ChatClient, ProviderChatClient
from ..variables.git_context import GIT_PLATFORM, GIT_PUSH_CMD, populate_git_variables, resolve_git_cwd
from ..variables.substitution import VariableStore
from .conditions import ConditionEvaluator
from .dispatcher import StepDispatcher

logger = logging.getLogger(__name__)


class WorkflowRunner:
    """
    Main workflow execution engine.

    Each call to run() owns a fresh variable store and result ledger, so
    runs never share state. Step failures are recorded, never raised.
    """

    def __init__(
        self,
        config: EngineConfig,
        command_executor: Optional[CommandExecutor] = None,
        chat_client: Optional[ChatClient] = None,
        documents: Optional[DocumentStore] = None,
    ):
        """
        Initialize workflow runner.

        Args:
            config: Engine configuration
            command_executor: Process execution capability
            chat_client: LLM chat boundary
            documents: Persona and prompt document store
        """
        self.config = config
        self.workspace = config.workspace
        self.command_executor = command_executor or CommandExecutor(config.shell_timeout_sec)
        self.chat_client = chat_client or ProviderChatClient(config.workspace)
        self.documents = documents or DocumentStore(config.workspace, config.agents_path)
        self.condition_evaluator = ConditionEvaluator()

    def run(
        self,
        workflow: WorkflowDefinition,
        sink: Optional[ProgressSink] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> WorkflowRunResult:
        """
        Execute the workflow.

        Args:
            workflow: Loaded workflow definition
            sink: Progress sink (default: discard)
            cancel_event: Checked before each step; when set no new step starts

        Returns:
            Aggregate run result
        """
        sink = sink or NullSink()
        variables = VariableStore()
        ledger: Dict[str, StepResult] = {}
        results: List[StepResult] = []

        cwd = self._resolve_cwd()
        populate_git_variables(variables, self.command_executor, cwd)

        dispatcher = StepDispatcher(
            executor=self.command_executor,
            chat_client=self.chat_client,
            documents=self.documents,
            cwd=cwd,
            sink=sink,
            shell_timeout_sec=self.config.shell_timeout_sec,
            failure_reason_limit=self.config.failure_reason_limit,
        )

        logger.info(f"Running workflow '{workflow.name}' ({len(workflow.steps)} steps)")
        self._emit_header(workflow, variables, sink)

        cancelled = False
        for step in workflow.steps:
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"Workflow '{workflow.name}' cancelled before step '{step.id}'")
                cancelled = True
                break

            result = self._execute_step(step, ledger, variables, dispatcher, sink)

            # Captured after the final attempt so later steps can branch on it
            if step.capture_as and result.output and not result.skipped:
                variables.set(step.capture_as, result.output)

            ledger[step.id] = result
            results.append(result)

            if result.passed:
                continue

            if aborts_on_failure(step.failure_policy):
                logger.error(f"Step '{step.id}' failed, aborting workflow '{workflow.name}'")
                sink.line()
                sink.line(f"Workflow aborted at step '{step.id}'")
                if result.failure_reason:
                    sink.line(f"> {result.failure_reason}")
                return WorkflowRunResult(
                    workflow_name=workflow.name,
                    passed=False,
                    steps=tuple(results),
                    aborted_at_step_id=step.id,
                )

            logger.warning(f"Step '{step.id}' failed, continuing (on_fail=continue)")

        run_result = WorkflowRunResult(
            workflow_name=workflow.name,
            passed=all(r.passed for r in results),
            steps=tuple(results),
            cancelled=cancelled,
        )
        self._emit_summary(run_result, sink)
        return run_result

    def _execute_step(
        self,
        step: StepDefinition,
        ledger: Dict[str, StepResult],
        variables: VariableStore,
        dispatcher: StepDispatcher,
        sink: ProgressSink,
    ) -> StepResult:
        """Evaluate the condition, then dispatch with retries."""
        try:
            should_run = self.condition_evaluator.evaluate(step.condition, ledger)
            if not should_run:
                logger.info(f"Skipping step '{step.id}' (condition not met)")
                sink.line(f"Step '{step.id}' skipped (condition not met)")
                return StepResult.skip(step.id)

            retry_policy = RetryPolicy.from_failure_policy(
                step.failure_policy, delay_ms=self.config.retry_delay_ms
            )

            def on_retry(attempt: int, max_retries: int) -> None:
                sink.line(f"  Retry {attempt}/{max_retries}...")

            result = retry_policy.run(lambda: dispatcher.dispatch(step, variables), on_retry)

        except StepConfigurationError as e:
            # Configuration errors are not retried
            logger.error(f"Step '{step.id}' misconfigured: {e}")
            sink.line(f"  FAILED: {e}")
            return StepResult.failure(step.id, str(e))

        if result.passed:
            logger.info(f"Step '{step.id}' passed")
        else:
            logger.info(f"Step '{step.id}' failed: {result.failure_reason}")
        return result

    def _resolve_cwd(self) -> Optional[Path]:
        if not self.workspace.is_dir():
            logger.warning(f"Workspace not found: {self.workspace}")
            return None
        return resolve_git_cwd(self.command_executor, self.workspace)

    def _emit_header(self, workflow: WorkflowDefinition, variables: VariableStore, sink: ProgressSink) -> None:
        sink.line(f"Workflow: {workflow.name}")
        if workflow.description:
            sink.line(f"> {workflow.description}")
        platform = variables.get(GIT_PLATFORM)
        if platform:
            sink.line(f"> Platform: {platform} (push: {variables.get(GIT_PUSH_CMD)})")
        sink.line(f"{len(workflow.steps)} steps, running now...")
        sink.line()

    def _emit_summary(self, result: WorkflowRunResult, sink: ProgressSink) -> None:
        sink.line()
        if result.cancelled:
            sink.line("Workflow cancelled")
        elif result.passed:
            sink.line("Workflow completed successfully")
        else:
            sink.line(f"Workflow completed with failures: {', '.join(result.failed_step_ids)}")
        logger.info(f"Workflow '{result.workflow_name}' finished: {result.status.value}")
