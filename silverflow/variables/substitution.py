"""
Variable store and {{name}} interpolation.

Unresolved placeholders are left in place so that a misconfigured pipeline
shows the placeholder text rather than an empty string.
"""

import re
from typing import Dict, Iterator, Optional


class VariableStore:
    """
    Run-scoped key -> string mapping used for output capture and interpolation.

    Substitution is single-pass: text inserted from a variable is never
    scanned again for placeholders.
    """

    # Pattern to match {{name}} placeholders
    VAR_PATTERN = re.compile(r'\{\{([^{}]+)\}\}')

    # An input that is nothing but a single placeholder
    REFERENCE_PATTERN = re.compile(r'^\{\{\s*([^{}]+?)\s*\}\}$')

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = {}
        if initial:
            for key, value in initial.items():
                self.set(key, value)

    def set(self, name: str, value: str) -> None:
        self._values[name.strip()] = "" if value is None else str(value)

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self._values.get(name.strip(), default)

    def __contains__(self, name: str) -> bool:
        return name.strip() in self._values

    def __getitem__(self, name: str) -> str:
        return self._values[name.strip()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def as_dict(self) -> Dict[str, str]:
        return dict(self._values)

    def interpolate(self, text: str) -> str:
        """
        Replace every {{identifier}} with its current value.

        Args:
            text: Text containing {{name}} references

        Returns:
            Text with known variables substituted; unknown ones unchanged
        """
        if not text or '{{' not in text:
            return text

        def replace_var(match):
            name = match.group(1).strip()
            if name in self._values:
                return self._values[name]
            return match.group(0)

        return self.VAR_PATTERN.sub(replace_var, text)

    def resolve_reference(self, text: str) -> Optional[str]:
        """
        Resolve text that is exactly one {{name}} reference.

        Returns:
            The variable value ('' if unset), or None if text is not a bare reference
        """
        match = self.REFERENCE_PATTERN.match(text)
        if not match:
            return None
        return self._values.get(match.group(1), "")
