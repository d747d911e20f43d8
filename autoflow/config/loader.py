"""Load a workflow document (YAML or JSON) from disk into a WorkflowGraph.

JSON is a subset of YAML, so both go through yaml.safe_load.
"""

from pathlib import Path
from typing import Union

import yaml

from autoflow.exceptions import WorkflowValidationError
from autoflow.types import WorkflowGraph


def load_workflow_file(path: Union[str, Path]) -> WorkflowGraph:
    """Load a workflow file → WorkflowGraph.

    Args:
        path: Path to a .yaml/.yml/.json workflow document with
              ``nodes``, ``edges`` and ``actions`` keys.

    Raises:
        FileNotFoundError: if the file does not exist.
        WorkflowValidationError: if the document is not a mapping or does not
            match the graph schema.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Workflow file not found: {p}")

    raw = yaml.safe_load(p.read_text())
    if not isinstance(raw, dict):
        raise WorkflowValidationError(
            f"Workflow file {p} must contain a mapping at the top level",
            violations=[f"top-level type: {type(raw).__name__}"],
        )

    try:
        return WorkflowGraph.model_validate(raw)
    except ValueError as exc:
        raise WorkflowValidationError(
            f"Workflow file {p} does not match the graph schema",
            violations=[str(exc)],
        ) from exc
