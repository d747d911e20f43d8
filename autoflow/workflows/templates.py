"""
Template resolution for ``{{path.to.value}}`` tokens.

Paths are dot-separated and walk dict keys, list indices and object
attributes starting from the execution context's template scope.  What a
missing path turns into is an explicit policy (MissingPathPolicy):

  EMPTY  missing/null values become ""      (default)
  KEEP   the original ``{{...}}`` token is left in place
"""

from __future__ import annotations

import json
import re
from typing import Any, Mapping

from autoflow.types import ExecutionContext, MissingPathPolicy

_TEMPLATE_RE = re.compile(r"\{\{([^}]+)\}\}")

_MISSING = object()


def template_scope(context: Any) -> Any:
    """Return the lookup root for *context* (ExecutionContext or plain mapping)."""
    if isinstance(context, ExecutionContext):
        return context.scope()
    return context if context is not None else {}


def lookup_path(path: str, context: Any) -> Any:
    """Navigate a dot-separated path through *context*.

    Returns None for any missing segment.

    Examples::

        lookup_path("trigger.plan", scope)
        lookup_path("steps.node-2.result", scope)
        lookup_path("trigger.items.0.sku", scope)
    """
    value = _walk(path, template_scope(context))
    return None if value is _MISSING else value


def _walk(path: str, root: Any) -> Any:
    val: Any = root
    for part in path.strip().split("."):
        if val is None:
            return _MISSING
        if isinstance(val, Mapping):
            if part not in val:
                return _MISSING
            val = val[part]
        elif isinstance(val, (list, tuple)):
            if not part.isdigit() or int(part) >= len(val):
                return _MISSING
            val = val[int(part)]
        elif isinstance(val, (str, int, float, bool)):
            return _MISSING
        else:
            val = getattr(val, part, _MISSING)
            if val is _MISSING:
                return _MISSING
    return val


def stringify(value: Any) -> str:
    """Render a resolved value the way it is substituted into a template."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value, separators=(",", ":"), default=str)


def resolve_template(
    template: Any,
    context: Any,
    missing: MissingPathPolicy = MissingPathPolicy.EMPTY,
) -> Any:
    """Substitute every ``{{ expr }}`` in *template*.

    Non-string templates are returned unchanged.
    """
    if not isinstance(template, str) or not template:
        return template

    root = template_scope(context)

    def _sub(match: re.Match) -> str:  # type: ignore[type-arg]
        value = _walk(match.group(1), root)
        if value is _MISSING or value is None:
            return match.group(0) if missing == MissingPathPolicy.KEEP else ""
        return stringify(value)

    return _TEMPLATE_RE.sub(_sub, template)


def resolve_value(
    value: Any,
    context: Any,
    missing: MissingPathPolicy = MissingPathPolicy.EMPTY,
) -> Any:
    """Resolve a value that may contain templates, preserving types.

    If the *entire* string is a single ``{{path}}`` token the raw context value
    is returned (None when missing).  Otherwise all tokens are interpolated.
    Dicts and lists are resolved recursively.
    """
    if isinstance(value, str):
        full = _TEMPLATE_RE.fullmatch(value.strip())
        if full:
            return lookup_path(full.group(1), context)
        return resolve_template(value, context, missing)
    if isinstance(value, dict):
        return {k: resolve_value(v, context, missing) for k, v in value.items()}
    if isinstance(value, list):
        return [resolve_value(v, context, missing) for v in value]
    return value
