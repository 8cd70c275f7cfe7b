"""
Test suite for workflow loading and validation.
"""

import textwrap

import pytest

from silverflow.exceptions import WorkflowValidationError
from silverflow.loader import WorkflowLoader


def write_workflow(directory, filename, content):
    path = directory / filename
    path.write_text(textwrap.dedent(content))
    return path


@pytest.fixture
def workflows_dir(tmp_path):
    directory = tmp_path / "workflows"
    directory.mkdir()
    return directory


class TestWorkflowParsing:
    """Test document parsing into definitions."""

    def test_full_definition(self, workflows_dir):
        path = write_workflow(workflows_dir, "review.yml", """
            name: review
            description: Review staged changes
            steps:
              - id: lint
                type: shell
                command: make lint
                on_fail: continue
              - id: critic
                type: agent
                agent: critic
                input: git_diff_staged
                expect: "[PASS]"
                on_fail: "retry(max: 2)"
                condition: steps.lint.passed
                description: Critique the diff
              - id: msg
                type: prompt
                prompt: .github/prompts/commit.prompt.md
                output: commit_msg
        """)

        workflow = WorkflowLoader(workflows_dir).load(path)

        assert workflow.name == "review"
        assert workflow.description == "Review staged changes"
        assert workflow.step_ids() == ["lint", "critic", "msg"]
        assert workflow.source == str(path)

        lint, critic, msg = workflow.steps
        assert lint.kind == "shell"
        assert lint.command == "make lint"
        assert lint.effective_failure_policy == "continue"
        assert critic.agent_ref == "critic"
        assert critic.input == "git_diff_staged"
        assert critic.expected_substring == "[PASS]"
        assert critic.failure_policy == "retry(max: 2)"
        assert critic.condition == "steps.lint.passed"
        assert critic.label == "Critique the diff"
        assert msg.prompt_ref == ".github/prompts/commit.prompt.md"
        assert msg.capture_as == "commit_msg"
        assert msg.effective_failure_policy == "abort"
        assert msg.label == "msg"

    def test_long_form_keys(self, workflows_dir):
        path = write_workflow(workflows_dir, "long.yaml", """
            name: long
            steps:
              - id: a
                kind: agent
                agent_ref: critic
                capture_as: verdict
                expected_substring: OK
                failure_policy: continue
        """)

        step = WorkflowLoader(workflows_dir).load(path).steps[0]

        assert step.kind == "agent"
        assert step.agent_ref == "critic"
        assert step.capture_as == "verdict"
        assert step.expected_substring == "OK"
        assert step.failure_policy == "continue"

    def test_boolean_condition_stays_text(self, workflows_dir):
        """Unquoted true/false reach the evaluator as strings."""
        path = write_workflow(workflows_dir, "flags.yml", """
            name: flags
            steps:
              - id: "on"
                type: shell
                command: echo
                condition: true
              - id: later
                type: shell
                command: echo
                condition: false
        """)

        workflow = WorkflowLoader(workflows_dir).load(path)

        assert workflow.steps[0].condition == "true"
        assert workflow.steps[1].condition == "false"

    def test_numeric_values_become_text(self, workflows_dir):
        path = write_workflow(workflows_dir, "nums.yml", """
            steps:
              - id: 1
                type: shell
                command: echo
                expect: 42
        """)

        step = WorkflowLoader(workflows_dir).load(path).steps[0]

        assert step.id == "1"
        assert step.expected_substring == "42"

    def test_name_falls_back_to_filename(self, workflows_dir):
        path = write_workflow(workflows_dir, "nightly.yml", """
            steps:
              - id: a
                type: shell
                command: echo
        """)
        assert WorkflowLoader(workflows_dir).load(path).name == "nightly"

    def test_unknown_kind_accepted_at_load(self, workflows_dir):
        """Unknown kinds fail when the step runs, not when the workflow loads."""
        path = write_workflow(workflows_dir, "odd.yml", """
            steps:
              - id: a
                type: telepathy
        """)
        assert WorkflowLoader(workflows_dir).load(path).steps[0].kind == "telepathy"


class TestWorkflowValidation:
    """Test rejection of malformed documents."""

    def _errors(self, workflows_dir, content):
        path = write_workflow(workflows_dir, "bad.yml", content)
        with pytest.raises(WorkflowValidationError) as exc_info:
            WorkflowLoader(workflows_dir).load(path)
        assert exc_info.value.exit_code == 2
        return str(exc_info.value)

    def test_not_a_mapping(self, workflows_dir):
        assert "must be a YAML object" in self._errors(workflows_dir, "- just\n- a list\n")

    def test_invalid_yaml(self, workflows_dir):
        assert "Failed to load workflow" in self._errors(workflows_dir, "steps: [unclosed\n")

    def test_missing_steps(self, workflows_dir):
        assert "'steps' field is required" in self._errors(workflows_dir, "name: empty\n")

    def test_missing_id(self, workflows_dir):
        message = self._errors(workflows_dir, """
            steps:
              - type: shell
                command: echo
        """)
        assert "missing required 'id'" in message
        assert "steps[0]" in message

    def test_duplicate_id(self, workflows_dir):
        message = self._errors(workflows_dir, """
            steps:
              - id: a
                type: shell
              - id: a
                type: shell
        """)
        assert "Duplicate step id 'a'" in message

    def test_missing_type(self, workflows_dir):
        message = self._errors(workflows_dir, """
            steps:
              - id: a
                command: echo
        """)
        assert "missing required 'type'" in message

    def test_invalid_failure_policy(self, workflows_dir):
        message = self._errors(workflows_dir, """
            steps:
              - id: a
                type: shell
                on_fail: ignore
        """)
        assert "invalid on_fail 'ignore'" in message

    def test_conflicting_alias_keys(self, workflows_dir):
        message = self._errors(workflows_dir, """
            steps:
              - id: a
                type: shell
                kind: agent
        """)
        assert "Conflicting keys" in message

    def test_non_string_field(self, workflows_dir):
        message = self._errors(workflows_dir, """
            steps:
              - id: a
                type: shell
                command: [echo, hi]
        """)
        assert "'command' must be a string" in message

    def test_errors_accumulate(self, workflows_dir):
        message = self._errors(workflows_dir, """
            steps:
              - id: a
              - type: shell
        """)
        assert len(message.splitlines()) == 2


class TestWorkflowDiscovery:
    """Test listing and name lookup."""

    def test_list_all_skips_invalid(self, workflows_dir):
        write_workflow(workflows_dir, "a.yml", """
            name: alpha
            description: First
            steps:
              - id: s
                type: shell
        """)
        write_workflow(workflows_dir, "b.yaml", "name: broken\n")
        write_workflow(workflows_dir, "notes.txt", "not a workflow")

        summaries = WorkflowLoader(workflows_dir).list_all()

        assert [(s.name, s.description, s.file) for s in summaries] == [("alpha", "First", "a.yml")]

    def test_missing_directory_lists_nothing(self, tmp_path):
        assert WorkflowLoader(tmp_path / "absent").list_all() == []

    def test_load_by_name_field(self, workflows_dir):
        write_workflow(workflows_dir, "file-one.yml", """
            name: release
            steps:
              - id: s
                type: shell
        """)
        workflow = WorkflowLoader(workflows_dir).load_by_name("release")
        assert workflow is not None
        assert workflow.name == "release"

    def test_load_by_filename_stem(self, workflows_dir):
        write_workflow(workflows_dir, "quick.yml", """
            name: Quick Check
            steps:
              - id: s
                type: shell
        """)
        workflow = WorkflowLoader(workflows_dir).load_by_name("quick")
        assert workflow.name == "Quick Check"

    def test_name_field_wins_over_stem(self, workflows_dir):
        write_workflow(workflows_dir, "deploy.yml", """
            name: something-else
            steps:
              - id: from_stem
                type: shell
        """)
        write_workflow(workflows_dir, "z.yml", """
            name: deploy
            steps:
              - id: from_name
                type: shell
        """)
        workflow = WorkflowLoader(workflows_dir).load_by_name("deploy")
        assert workflow.step_ids() == ["from_name"]

    def test_unknown_name(self, workflows_dir):
        assert WorkflowLoader(workflows_dir).load_by_name("missing") is None
