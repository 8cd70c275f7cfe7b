"""
LLM chat boundary.

ChatClient is the interface the step dispatcher talks to. ProviderChatClient
implements it by running a provider CLI and streaming its stdout.
"""

import logging
import subprocess
import tempfile
from pathlib import Path
from typing import Iterator, Optional

from .types import InputMode, ProviderInvocation
from .registry import ProviderRegistry
from ..exceptions import ModelUnavailableError, ProviderError


logger = logging.getLogger(__name__)


class ChatClient:
    """Streams a model response for a system/user message pair."""

    def send_chat_request(
        self,
        system_text: str,
        user_text: str,
        model_hint: Optional[str] = None,
    ) -> Iterator[str]:
        """
        Send one chat request.

        Args:
            system_text: Instructions for the model (may be empty)
            user_text: The user message
            model_hint: Optional model family or id from document metadata

        Returns:
            Iterator over response text chunks, in order

        Raises:
            ModelUnavailableError: If no model can be obtained
        """
        raise NotImplementedError


def compose_prompt(system_text: str, user_text: str) -> str:
    """Join system and user text into the single prompt a CLI provider accepts."""
    return "\n\n".join(part for part in (system_text, user_text) if part)


class ProviderChatClient(ChatClient):
    """
    Executes provider commands and streams their output.

    Handles argv vs stdin prompt delivery. A provider exiting non-zero raises
    ProviderError after its output has been streamed.
    """

    def __init__(self, workspace: Path, registry: Optional[ProviderRegistry] = None):
        """
        Initialize provider chat client.

        Args:
            workspace: Working directory for provider processes
            registry: Provider registry for template lookup
        """
        self.workspace = workspace
        self.registry = registry or ProviderRegistry()

    def send_chat_request(
        self,
        system_text: str,
        user_text: str,
        model_hint: Optional[str] = None,
    ) -> Iterator[str]:
        provider = self.registry.select(model_hint)
        if provider is None:
            raise ModelUnavailableError()

        invocation = self.registry.build_invocation(
            provider, compose_prompt(system_text, user_text), model_hint
        )
        return self._stream(invocation)

    def _stream(self, invocation: ProviderInvocation) -> Iterator[str]:
        logger.debug(f"Executing provider '{invocation.provider}': {invocation.command[0]}")
        if invocation.input_mode == InputMode.STDIN:
            logger.debug(f"Using stdin mode, prompt size: {len(invocation.prompt or '')} bytes")

        # stderr goes to a file so a chatty provider cannot block on a full pipe
        with tempfile.TemporaryFile(mode='w+') as stderr_file:
            try:
                process = subprocess.Popen(
                    invocation.command,
                    cwd=str(self.workspace),
                    stdin=subprocess.PIPE if invocation.input_mode == InputMode.STDIN else subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=stderr_file,
                    text=True,
                    errors='replace',
                )
            except OSError as e:
                raise ProviderError(invocation.provider, f"Failed to start provider: {e}")

            if invocation.input_mode == InputMode.STDIN:
                try:
                    process.stdin.write(invocation.prompt or "")
                finally:
                    process.stdin.close()

            drained = False
            try:
                for line in process.stdout:
                    yield line
                drained = True
            finally:
                process.stdout.close()
                if not drained and process.poll() is None:
                    # Consumer stopped early: do not leave the provider running
                    process.kill()
                    process.wait()

            exit_code = process.wait()
            if exit_code != 0:
                stderr_file.seek(0)
                stderr = stderr_file.read().strip()
                raise ProviderError(
                    invocation.provider,
                    stderr or f"Provider '{invocation.provider}' exited with code {exit_code}",
                    exit_code=exit_code,
                )
