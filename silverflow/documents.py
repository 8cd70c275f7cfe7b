"""
Persona and prompt documents.

Documents are markdown files with an optional leading YAML front matter
block. The block is stripped from the body; its 'model' key, if any, is
reported as a model hint for the LLM call.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

FRONT_MATTER_PATTERN = re.compile(r'^---[ \t]*\n(.*?)\n?---[ \t]*(?:\n|$)', re.DOTALL)


@dataclass(frozen=True)
class Document:
    """Resolved document body plus metadata."""
    body: str
    model: Optional[str] = None
    path: Optional[Path] = None


def split_front_matter(text: str) -> Tuple[Dict[str, Any], str]:
    """
    Separate a leading front matter block from the body.

    Returns:
        Tuple of (metadata dict, stripped body)
    """
    match = FRONT_MATTER_PATTERN.match(text)
    if not match:
        return {}, text.strip()

    body = text[match.end():].strip()
    try:
        metadata = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        logger.debug(f"Ignoring unparseable front matter: {e}")
        return {}, body

    if not isinstance(metadata, dict):
        return {}, body
    return metadata, body


def parse_document(text: str, path: Optional[Path] = None) -> Document:
    metadata, body = split_front_matter(text)
    model = metadata.get('model')
    return Document(body=body, model=str(model).strip() if model else None, path=path)


class DocumentStore:
    """
    Resolves document names to text from the workspace.

    Agents live at <agents_dir>/<name>.agent.md; prompts are paths relative
    to the workspace root.
    """

    AGENT_SUFFIX = ".agent.md"

    def __init__(self, workspace: Path, agents_dir: Path):
        self.workspace = Path(workspace)
        self.agents_dir = Path(agents_dir)

    def agent_path(self, name: str) -> Path:
        return self.agents_dir / f"{name}{self.AGENT_SUFFIX}"

    def prompt_path(self, ref: str) -> Path:
        return self.workspace / ref

    def load_agent(self, name: str) -> Optional[Document]:
        """Load a persona document, or None if it does not exist."""
        if not name:
            return None
        return self._read(self.agent_path(name))

    def load_prompt(self, ref: str) -> Optional[Document]:
        """Load a prompt template document, or None if it does not exist."""
        if not ref:
            return None
        path = self.prompt_path(ref)
        # Prompt references must stay inside the workspace
        try:
            path.resolve().relative_to(self.workspace.resolve())
        except ValueError:
            logger.warning(f"Prompt path escapes workspace: {ref}")
            return None
        return self._read(path)

    def _read(self, path: Path) -> Optional[Document]:
        if not path.is_file():
            return None
        try:
            text = path.read_text(encoding='utf-8')
        except OSError as e:
            logger.warning(f"Could not read {path}: {e}")
            return None
        document = parse_document(text, path)
        if not document.body:
            return None
        return document
