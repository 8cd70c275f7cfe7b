"""
Provider type definitions.

A provider is an agent CLI (claude, codex, gemini) described by a command
template. The LLM chat boundary drives providers through these templates.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Optional, Tuple
from enum import Enum


class InputMode(str, Enum):
    """Provider input mode for prompt delivery."""
    ARGV = "argv"
    STDIN = "stdin"


PROMPT_PLACEHOLDER = "${PROMPT}"


@dataclass
class ProviderTemplate:
    """
    Provider template definition.

    Attributes:
        name: Provider identifier (e.g., 'claude', 'gemini')
        command: Command template array with ${PROMPT} and ${model} placeholders
        defaults: Default parameter values
        input_mode: How to deliver the prompt (argv or stdin)
        families: Model hint prefixes served by this provider
    """
    name: str
    command: List[str]
    defaults: Dict[str, str] = field(default_factory=dict)
    input_mode: InputMode = InputMode.ARGV
    families: Tuple[str, ...] = ()

    @property
    def executable(self) -> Optional[str]:
        return self.command[0] if self.command else None

    def serves(self, model_hint: str) -> bool:
        hint = model_hint.lower()
        return hint == self.name or any(hint.startswith(f) for f in self.families)

    def validate(self) -> List[str]:
        """Return configuration problems; an empty list means the template is usable."""
        if not self.name:
            return ["Provider name cannot be empty"]
        if not self.command:
            return [f"Provider '{self.name}': command cannot be empty"]

        prompt_tokens = [t for t in self.command if PROMPT_PLACEHOLDER in t]
        if self.input_mode == InputMode.STDIN and prompt_tokens:
            return [f"Provider '{self.name}': ${{PROMPT}} not allowed in stdin mode"]
        if self.input_mode == InputMode.ARGV and not prompt_tokens:
            return [f"Provider '{self.name}': argv mode requires a ${{PROMPT}} argument"]
        return []


@dataclass
class ProviderInvocation:
    """
    Resolved provider invocation ready for execution.

    Attributes:
        provider: Provider name
        command: Fully resolved command array
        input_mode: How to deliver prompt
        prompt: Prompt text for stdin mode
    """
    provider: str
    command: List[str]
    input_mode: InputMode
    prompt: Optional[str] = None
