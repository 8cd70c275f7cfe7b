"""Shared fixtures: scripted command executor and chat client."""

from typing import Dict, List, Optional, Union

import pytest

from silverflow.config import EngineConfig
from silverflow.documents import DocumentStore
from silverflow.exec.command_executor import CommandExecutor, CommandResult
from silverflow.providers.executor import ChatClient
from silverflow.workflow.runner import WorkflowRunner


def command_key(command: Union[str, List[str]]) -> str:
    return command if isinstance(command, str) else " ".join(command)


class FakeCommandExecutor(CommandExecutor):
    """
    Command executor returning scripted results.

    Responses are keyed by the command text (argv joined with spaces). A
    response is a CommandResult, a list of CommandResults consumed one per
    call (the last one repeats), or a callable taking the call count.
    Unscripted git commands fail as if outside a repository.
    """

    def __init__(self):
        super().__init__()
        self.responses: Dict[str, object] = {}
        self.calls: List[dict] = []

    def script(self, command: str, stdout: str = "", stderr: str = "", exit_code: int = 0):
        self.responses[command] = CommandResult(command, exit_code, stdout=stdout, stderr=stderr)

    def script_sequence(self, command: str, results: List[CommandResult]):
        self.responses[command] = list(results)

    def git_repo(self, remote_url: str = "git@github.com:acme/app.git", branch: str = "main"):
        self.script("git rev-parse --show-toplevel", stdout="/repo\n")
        self.script("git remote get-url origin", stdout=f"{remote_url}\n")
        self.script("git rev-parse --abbrev-ref HEAD", stdout=f"{branch}\n")
        self.script("git log -5 --pretty=format:- %s", stdout="- feat: one\n- fix: two")

    def count(self, command: str) -> int:
        return sum(1 for call in self.calls if call['key'] == command)

    def run(self, command, cwd=None, timeout_sec=None, input_text=None) -> CommandResult:
        key = command_key(command)
        self.calls.append({'key': key, 'cwd': cwd, 'input_text': input_text})
        response = self.responses.get(key)

        if response is None:
            if key.startswith("git "):
                return CommandResult(command, 128, stderr="fatal: not a git repository")
            return CommandResult(command, 127, stderr=f"sh: {key}: command not found")

        if isinstance(response, list):
            index = min(self.count(key) - 1, len(response) - 1)
            return response[index]
        if callable(response):
            return response(self.count(key))
        return response


class FakeChatClient(ChatClient):
    """Chat client replaying scripted responses in order; the last one repeats."""

    def __init__(self, responses: Optional[List[Union[str, Exception]]] = None):
        self.responses = list(responses or ["Looks good.\n[PASS]"])
        self.requests: List[dict] = []

    def send_chat_request(self, system_text, user_text, model_hint=None):
        self.requests.append({
            'system_text': system_text,
            'user_text': user_text,
            'model_hint': model_hint,
        })
        index = min(len(self.requests) - 1, len(self.responses) - 1)
        response = self.responses[index]
        if isinstance(response, Exception):
            raise response
        # Stream in two chunks
        middle = len(response) // 2
        return iter([response[:middle], response[middle:]])


@pytest.fixture
def fake_executor():
    return FakeCommandExecutor()


@pytest.fixture
def fake_chat():
    return FakeChatClient()


@pytest.fixture
def workspace(tmp_path):
    """Workspace with agent, prompt and workflow directories."""
    (tmp_path / ".github" / "agents").mkdir(parents=True)
    (tmp_path / ".github" / "prompts").mkdir(parents=True)
    (tmp_path / ".github" / "workflows" / "silver").mkdir(parents=True)
    return tmp_path


@pytest.fixture
def make_runner(workspace, fake_executor, fake_chat):
    """Build a runner over the workspace with fake process and chat capabilities."""

    def _make(executor: Optional[CommandExecutor] = None, chat: Optional[ChatClient] = None,
              **config_overrides) -> WorkflowRunner:
        config = EngineConfig(workspace=workspace, **config_overrides)
        return WorkflowRunner(
            config,
            command_executor=executor or fake_executor,
            chat_client=chat or fake_chat,
            documents=DocumentStore(workspace, config.agents_path),
        )

    return _make
