"""Workflow definition discovery, parsing and validation."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from silverflow.exceptions import ValidationError, WorkflowValidationError
from silverflow.exec.retry import is_valid_failure_policy
from silverflow.models import StepDefinition, WorkflowDefinition, WorkflowSummary

logger = logging.getLogger(__name__)


class PreservingLoader(yaml.SafeLoader):
    """YAML loader that keeps boolean-looking scalars as strings.

    Conditions such as 'true' or 'false' must reach the condition
    evaluator as text, and step ids like 'on' or 'no' must stay strings.
    """
    pass


PreservingLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != 'tag:yaml.org,2002:bool']
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


# StepDefinition attribute -> accepted document keys (first is canonical)
STEP_FIELDS = {
    'id': ('id',),
    'kind': ('type', 'kind'),
    'agent_ref': ('agent', 'agent_ref'),
    'prompt_ref': ('prompt', 'prompt_ref'),
    'command': ('command',),
    'input': ('input',),
    'capture_as': ('output', 'capture_as'),
    'expected_substring': ('expect', 'expected_substring'),
    'failure_policy': ('on_fail', 'failure_policy'),
    'condition': ('condition',),
    'description': ('description',),
}

WORKFLOW_EXTENSIONS = ('.yml', '.yaml')


class WorkflowLoader:
    """Loads workflow definitions from a directory of YAML documents."""

    def __init__(self, workflows_dir: Path):
        """Initialize loader with the directory scanned for definitions."""
        self.workflows_dir = Path(workflows_dir)
        self.errors: List[ValidationError] = []

    def discover(self) -> List[Path]:
        """Return workflow document paths in name order."""
        if not self.workflows_dir.is_dir():
            return []
        return sorted(
            p for p in self.workflows_dir.iterdir()
            if p.is_file() and p.suffix in WORKFLOW_EXTENSIONS
        )

    def list_all(self) -> List[WorkflowSummary]:
        """
        List every loadable workflow.

        Documents that fail to parse or validate are left out.
        """
        summaries = []
        for path in self.discover():
            try:
                workflow = self.load(path)
            except WorkflowValidationError as e:
                logger.debug(f"Skipping invalid workflow {path.name}: {e}")
                continue
            summaries.append(WorkflowSummary(
                name=workflow.name,
                description=workflow.description,
                file=path.name,
            ))
        return summaries

    def load_by_name(self, name: str) -> Optional[WorkflowDefinition]:
        """
        Load a workflow by logical name.

        The document's 'name' field is matched first across all documents,
        then the filename without extension.

        Returns:
            The parsed definition, or None if nothing matches
        """
        by_stem = None
        for path in self.discover():
            try:
                workflow = self.load(path)
            except WorkflowValidationError as e:
                logger.debug(f"Skipping invalid workflow {path.name}: {e}")
                continue
            if workflow.name == name:
                return workflow
            if by_stem is None and path.stem == name:
                by_stem = workflow
        return by_stem

    def load(self, workflow_path: Path) -> WorkflowDefinition:
        """Load and validate one workflow document."""
        workflow_path = Path(workflow_path)
        self.errors = []
        try:
            with open(workflow_path, 'r', encoding='utf-8') as f:
                data = yaml.load(f, Loader=PreservingLoader)
        except (OSError, yaml.YAMLError) as e:
            self._add_error(f"Failed to load workflow: {e}")
            self._raise_validation_errors()

        return self.parse(data, fallback_name=workflow_path.stem, source=str(workflow_path))

    def parse(
        self,
        data: Any,
        fallback_name: str = "workflow",
        source: Optional[str] = None,
    ) -> WorkflowDefinition:
        """
        Validate a decoded document and build a WorkflowDefinition.

        Raises:
            WorkflowValidationError: If the document is not a valid workflow
        """
        self.errors = []

        if data is None or not isinstance(data, dict):
            self._add_error("Workflow must be a YAML object/dictionary")
            self._raise_validation_errors()

        name = data.get('name')
        if name is None or name == "":
            name = fallback_name
        elif not isinstance(name, str):
            self._add_error(f"'name' must be a string, got {type(name).__name__}", 'name')

        description = data.get('description') or ""
        if not isinstance(description, str):
            self._add_error(f"'description' must be a string, got {type(description).__name__}", 'description')
            description = ""

        steps = self._validate_steps(data.get('steps'))

        if self.errors:
            self._raise_validation_errors()

        return WorkflowDefinition(
            name=name,
            description=description,
            steps=tuple(steps),
            source=source,
        )

    def _validate_steps(self, steps: Any) -> List[StepDefinition]:
        """Validate step definitions."""
        if steps is None or steps == []:
            self._add_error("'steps' field is required and must not be empty")
            return []
        if not isinstance(steps, list):
            self._add_error("'steps' must be a list")
            return []

        step_ids = set()
        definitions = []

        for i, step in enumerate(steps):
            path = f"steps[{i}]"
            if not isinstance(step, dict):
                self._add_error(f"Step {i} must be a dictionary", path)
                continue

            values = self._collect_fields(step, path)

            step_id = values.get('id')
            if not step_id:
                self._add_error(f"Step {i} missing required 'id' field", path)
                continue
            if step_id in step_ids:
                self._add_error(f"Duplicate step id '{step_id}'", path)
                continue
            step_ids.add(step_id)

            if not values.get('kind'):
                self._add_error(f"Step '{step_id}' missing required 'type' field", path)
                continue

            if not is_valid_failure_policy(values.get('failure_policy')):
                self._add_error(
                    f"Step '{step_id}': invalid on_fail '{values['failure_policy']}' "
                    f"(expected 'abort', 'continue' or 'retry(max: N)')",
                    path,
                )
                continue

            definitions.append(StepDefinition(**values))

        return definitions

    def _collect_fields(self, step: Dict[str, Any], path: str) -> Dict[str, Optional[str]]:
        values: Dict[str, Optional[str]] = {}
        for attr, keys in STEP_FIELDS.items():
            present = [k for k in keys if k in step]
            if len(present) > 1:
                self._add_error(f"Conflicting keys {present}", path)
            if not present:
                continue
            value = step[present[0]]
            if value is None:
                continue
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                # Numeric ids and literals are accepted as their text
                value = str(value)
            if not isinstance(value, str):
                self._add_error(f"'{present[0]}' must be a string, got {type(value).__name__}", path)
                continue
            values[attr] = value
        return values

    def _add_error(self, message: str, path: str = ""):
        self.errors.append(ValidationError(message=message, path=path))

    def _raise_validation_errors(self):
        errors = self.errors
        self.errors = []
        raise WorkflowValidationError(errors)
