"""
Test suite for the silverflow command line.
"""

import json
import textwrap

import pytest

from silverflow.cli.main import create_parser, main


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("SILVERFLOW_WORKFLOWS_DIR", "SILVERFLOW_AGENTS_DIR",
                 "SILVERFLOW_SHELL_TIMEOUT", "SILVERFLOW_RETRY_DELAY_MS"):
        monkeypatch.delenv(name, raising=False)


def write_workflow(workspace, filename, content):
    path = workspace / ".github" / "workflows" / "silver" / filename
    path.write_text(textwrap.dedent(content))
    return path


class TestParser:
    def test_run_arguments(self):
        args = create_parser().parse_args(['run', 'review', '--retry-delay', '500', '--json', '--debug'])
        assert args.command == 'run'
        assert args.workflow == 'review'
        assert args.retry_delay == 500
        assert args.json
        assert args.debug

    def test_log_level_choices(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(['list', '--log-level', 'loud'])

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage:" in capsys.readouterr().out


class TestListCommand:
    def test_lists_valid_workflows(self, workspace, capsys):
        write_workflow(workspace, "review.yml", """
            name: review
            description: Review staged changes
            steps:
              - id: s
                type: shell
                command: echo
        """)
        write_workflow(workspace, "broken.yml", "name: broken\n")

        assert main(['list', '--workspace', str(workspace)]) == 0

        out = capsys.readouterr().out
        assert "review (review.yml): Review staged changes" in out
        assert "broken" not in out

    def test_empty_directory(self, workspace, capsys):
        assert main(['list', '--workspace', str(workspace)]) == 0
        assert "No workflows found" in capsys.readouterr().out


class TestRunCommand:
    def test_successful_run_json(self, workspace, capsys):
        write_workflow(workspace, "hello.yml", """
            steps:
              - id: greet
                type: shell
                command: echo hello
        """)

        exit_code = main(['run', 'hello', '--workspace', str(workspace), '--json'])

        data = json.loads(capsys.readouterr().out)
        assert exit_code == 0
        assert data['status'] == 'completed_ok'
        assert data['steps'][0]['output'] == 'hello'

    def test_progress_streams_to_stdout(self, workspace, capsys):
        write_workflow(workspace, "hello.yml", """
            name: greeting
            steps:
              - id: greet
                type: shell
                command: echo hello
        """)

        assert main(['run', 'greeting', '--workspace', str(workspace)]) == 0

        out = capsys.readouterr().out
        assert "Workflow: greeting" in out
        assert "Workflow completed successfully" in out

    def test_failed_run_exit_code(self, workspace, capsys):
        write_workflow(workspace, "fail.yml", """
            steps:
              - id: boom
                type: shell
                command: exit 3
        """)

        assert main(['run', 'fail', '--workspace', str(workspace), '--json']) == 1
        assert json.loads(capsys.readouterr().out)['aborted_at_step_id'] == 'boom'

    def test_unknown_workflow(self, workspace, capsys):
        assert main(['run', 'missing', '--workspace', str(workspace)]) == 1
        assert "workflow 'missing' not found" in capsys.readouterr().err

    def test_invalid_workflow_exit_code(self, workspace, capsys):
        write_workflow(workspace, "broken.yml", """
            steps:
              - id: a
                type: shell
                on_fail: ignore
        """)

        assert main(['run', 'broken', '--workspace', str(workspace)]) == 2
        assert "invalid on_fail 'ignore'" in capsys.readouterr().err

    def test_negative_retry_delay(self, workspace):
        assert main(['run', 'x', '--workspace', str(workspace), '--retry-delay', '-5']) == 2

    def test_workflows_dir_override(self, workspace, capsys):
        custom = workspace / "flows"
        custom.mkdir()
        (custom / "alt.yaml").write_text("steps:\n  - id: a\n    type: shell\n    command: echo alt\n")

        exit_code = main(['run', 'alt', '--workspace', str(workspace), '--workflows-dir', 'flows', '--json'])

        assert exit_code == 0
        assert json.loads(capsys.readouterr().out)['steps'][0]['output'] == 'alt'
