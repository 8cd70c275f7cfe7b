"""
Provider registry for managing provider templates.

Implements template storage, lookup, and model-hint based selection.
"""

import logging
import re
import shutil
from typing import Callable, Dict, List, Optional

from .types import ProviderTemplate, ProviderInvocation, InputMode, PROMPT_PLACEHOLDER


logger = logging.getLogger(__name__)

# Providers tried in order when no hint matches
FALLBACK_ORDER = ("claude", "codex", "gemini")

PARAM_PATTERN = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)\}')


class ProviderRegistry:
    """
    Registry for provider templates.

    A provider is available when its executable is found on PATH.
    """

    def __init__(self, which: Callable[[str], Optional[str]] = shutil.which):
        """
        Initialize registry with the built-in providers.

        Args:
            which: Executable lookup used to decide availability
        """
        self._which = which
        self._providers: Dict[str, ProviderTemplate] = {}
        self._builtin_providers = self._load_builtin_providers()

    def _load_builtin_providers(self) -> Dict[str, ProviderTemplate]:
        """
        Load built-in provider templates.

        Returns:
            Dictionary of built-in provider templates
        """
        return {
            "claude": ProviderTemplate(
                name="claude",
                command=["claude", "-p", PROMPT_PLACEHOLDER, "--model", "${model}"],
                defaults={"model": "claude-sonnet-4-20250514"},
                input_mode=InputMode.ARGV,
                families=("claude",),
            ),
            "codex": ProviderTemplate(
                name="codex",
                command=["codex", "exec", "--model", "${model}"],
                defaults={"model": "gpt-5"},
                input_mode=InputMode.STDIN,
                families=("gpt", "o1", "o3", "o4", "codex"),
            ),
            "gemini": ProviderTemplate(
                name="gemini",
                command=["gemini", "-p", PROMPT_PLACEHOLDER],
                defaults={},
                input_mode=InputMode.ARGV,
                families=("gemini",),
            ),
        }

    def register(self, provider: ProviderTemplate) -> None:
        """
        Register a provider template; registered templates shadow built-ins.

        Raises:
            ValueError: If provider is invalid
        """
        errors = provider.validate()
        if errors:
            raise ValueError(f"Invalid provider template: {'; '.join(errors)}")

        self._providers[provider.name] = provider
        logger.debug(f"Registered provider: {provider.name}")

    def get(self, name: str) -> Optional[ProviderTemplate]:
        return self._providers.get(name) or self._builtin_providers.get(name)

    def list_providers(self) -> List[str]:
        names = list(self._providers.keys())
        names.extend(n for n in self._builtin_providers if n not in self._providers)
        return names

    def is_available(self, provider: ProviderTemplate) -> bool:
        executable = provider.executable
        return bool(executable) and self._which(executable) is not None

    def select(self, model_hint: Optional[str] = None) -> Optional[ProviderTemplate]:
        """
        Pick the provider for a model hint.

        The provider serving the hint wins when available; otherwise the
        first available provider in fallback order, then any registered one.

        Returns:
            Provider template or None if nothing is available
        """
        candidates = [self.get(name) for name in self.list_providers()]

        if model_hint:
            for provider in candidates:
                if provider.serves(model_hint) and self.is_available(provider):
                    return provider
            logger.debug(f"No available provider serves model hint '{model_hint}'")

        ordered = [self.get(n) for n in FALLBACK_ORDER if self.get(n)]
        ordered.extend(p for p in candidates if p not in ordered)
        for provider in ordered:
            if self.is_available(provider):
                return provider
        return None

    def build_invocation(
        self,
        provider: ProviderTemplate,
        prompt: str,
        model_hint: Optional[str] = None,
    ) -> ProviderInvocation:
        """
        Resolve a provider's command template.

        The hint becomes ${model} only when the provider serves it. The prompt
        is substituted last so its content is never scanned for placeholders.
        """
        params = dict(provider.defaults)
        if model_hint and provider.serves(model_hint) and model_hint.lower() != provider.name:
            params["model"] = model_hint

        command = []
        for token in provider.command:
            has_prompt = PROMPT_PLACEHOLDER in token
            processed = token.replace(PROMPT_PLACEHOLDER, "\x00")
            processed = PARAM_PATTERN.sub(lambda m: params.get(m.group(1), ""), processed)
            if has_prompt:
                processed = processed.replace("\x00", prompt)
            command.append(processed)

        # Drop a dangling '--model' flag whose value resolved to nothing
        cleaned = []
        for i, token in enumerate(command):
            if token == "" and i > 0 and command[i - 1].startswith("--"):
                cleaned.pop()
                continue
            cleaned.append(token)

        return ProviderInvocation(
            provider=provider.name,
            command=cleaned,
            input_mode=provider.input_mode,
            prompt=prompt if provider.input_mode == InputMode.STDIN else None,
        )
