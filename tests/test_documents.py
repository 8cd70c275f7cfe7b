"""
Test suite for persona and prompt document resolution.
"""

from silverflow.documents import DocumentStore, parse_document, split_front_matter


class TestFrontMatter:
    def test_front_matter_stripped(self):
        metadata, body = split_front_matter("---\nmodel: gpt-5\ntools: []\n---\n\nYou review code.\n")
        assert metadata == {'model': 'gpt-5', 'tools': []}
        assert body == "You review code."

    def test_no_front_matter(self):
        metadata, body = split_front_matter("  Plain body\n")
        assert metadata == {}
        assert body == "Plain body"

    def test_unparseable_front_matter_ignored(self):
        metadata, body = split_front_matter("---\nkey: [oops\n---\nBody")
        assert metadata == {}
        assert body == "Body"

    def test_model_hint(self):
        assert parse_document("---\nmodel: claude-sonnet\n---\nHi").model == "claude-sonnet"
        assert parse_document("Hi").model is None


class TestDocumentStore:
    """Test name to document resolution in the workspace."""

    def test_load_agent(self, workspace):
        agents = workspace / ".github" / "agents"
        (agents / "critic.agent.md").write_text("---\nmodel: gpt-5\n---\nBe harsh.")
        store = DocumentStore(workspace, agents)

        document = store.load_agent("critic")

        assert document.body == "Be harsh."
        assert document.model == "gpt-5"
        assert document.path == agents / "critic.agent.md"

    def test_missing_agent(self, workspace):
        store = DocumentStore(workspace, workspace / ".github" / "agents")
        assert store.load_agent("ghost") is None
        assert store.load_agent("") is None

    def test_empty_body_treated_as_missing(self, workspace):
        agents = workspace / ".github" / "agents"
        (agents / "blank.agent.md").write_text("---\nmodel: x\n---\n   \n")
        assert DocumentStore(workspace, agents).load_agent("blank") is None

    def test_load_prompt_relative_to_workspace(self, workspace):
        (workspace / ".github" / "prompts" / "commit.prompt.md").write_text("Write a commit message.")
        store = DocumentStore(workspace, workspace / ".github" / "agents")

        document = store.load_prompt(".github/prompts/commit.prompt.md")

        assert document.body == "Write a commit message."

    def test_prompt_outside_workspace_rejected(self, workspace, tmp_path_factory):
        outside = tmp_path_factory.mktemp("outside") / "secret.md"
        outside.write_text("nope")
        store = DocumentStore(workspace, workspace / ".github" / "agents")

        assert store.load_prompt(f"../{outside.parent.name}/secret.md") is None
        assert store.load_prompt("missing.md") is None
