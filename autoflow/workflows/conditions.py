"""
Condition evaluation for condition nodes.

A ConditionConfig holds a mode ("all" = AND, "any" = OR) and a list of rules.
Each rule resolves ``left`` against the execution context, coerces ``right``
to ``right_type`` and applies one operator.  Rule evaluation never raises to
the caller: a rule that throws counts as false.

validate_condition_config() is the pure static check used when a workflow is
saved; it works on the raw mapping the editor sends.
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from autoflow.exceptions import ConditionConfigError
from autoflow.types import (
    ConditionConfig,
    ConditionMode,
    ConditionRule,
    ConditionValidation,
    MissingPathPolicy,
    Operator,
    RightType,
)
from autoflow.workflows.templates import resolve_value, stringify

logger = logging.getLogger(__name__)

VALID_OPERATORS = tuple(op.value for op in Operator)
VALID_RIGHT_TYPES = tuple(t.value for t in RightType)
_UNARY_OPERATORS = (Operator.EXISTS.value, Operator.NOT_EXISTS.value)

_SENSITIVE_PATTERNS = (
    "password",
    "token",
    "secret",
    "api_key",
    "apikey",
    "auth",
    "credential",
)


# ── Coercion helpers ──────────────────────────────────────────────────────────


_DECIMAL_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)
_RADIX_RE = re.compile(r"0(?:[xX][0-9a-fA-F]+|[oO][0-7]+|[bB][01]+)", re.ASCII)
_RADIX_BASES = {"x": 16, "o": 8, "b": 2}


def to_number(value: Any) -> float:
    """Numeric view of *value*; NaN when it does not parse as a number.

    Strings follow JavaScript ``Number()``: decimal and exponent forms,
    unsigned 0x/0o/0b literals and ``Infinity``.  Digit separators and
    Python's ``inf``/``nan`` spellings are not numbers.
    """
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if _DECIMAL_RE.fullmatch(text):
            return float(text)
        if _RADIX_RE.fullmatch(text):
            return float(int(text[2:], _RADIX_BASES[text[1].lower()]))
        if text in ("Infinity", "+Infinity"):
            return math.inf
        if text == "-Infinity":
            return -math.inf
        return math.nan
    return math.nan


def coerce_value(value: Any, target: Union[RightType, str]) -> Any:
    """Coerce a rule's raw ``right`` to *target*. Invalid coercions keep the raw value."""
    if value is None:
        return None

    target = RightType(target)

    if target == RightType.NUMBER:
        num = to_number(value)
        return value if math.isnan(num) else num

    if target == RightType.BOOLEAN:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.lower() == "true"
        return bool(value)

    if target == RightType.JSON:
        if isinstance(value, str):
            try:
                return json.loads(value)
            except ValueError:
                return value
        return value

    if target == RightType.NULL:
        return None

    return stringify(value)


# ── Operators ─────────────────────────────────────────────────────────────────


def _loose_equal(a: Any, b: Any) -> bool:
    """Equality that compares numerically when both sides parse as numbers."""
    if a is None or b is None:
        return a is b
    if type(a) is type(b) and a == b:
        return True
    a_num, b_num = to_number(a), to_number(b)
    if not math.isnan(a_num) and not math.isnan(b_num):
        return a_num == b_num
    return stringify(a) == stringify(b)


def _contains(left: Any, right: Any) -> bool:
    if isinstance(left, str) and isinstance(right, str):
        return right in left
    if isinstance(left, list):
        return right in left
    if isinstance(left, dict):
        return _compact_json(right) in _compact_json(left)
    return False


def _compact_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), default=str)


def _regex(left: Any, pattern: Any) -> bool:
    if not isinstance(left, str) or not isinstance(pattern, str):
        return False
    try:
        return re.search(pattern, left) is not None
    except re.error as exc:
        logger.warning("Invalid regex pattern %r: %s", pattern, exc)
        return False


def compare(left: Any, operator: Union[Operator, str], right: Any) -> bool:
    """Apply a binary operator to already-resolved operands."""
    op = Operator(operator)

    if op == Operator.EQ:
        return _loose_equal(left, right)
    if op == Operator.NEQ:
        return not _loose_equal(left, right)
    if op in (Operator.GT, Operator.GTE, Operator.LT, Operator.LTE):
        l_num, r_num = to_number(left), to_number(right)
        if math.isnan(l_num) or math.isnan(r_num):
            return False
        if op == Operator.GT:
            return l_num > r_num
        if op == Operator.GTE:
            return l_num >= r_num
        if op == Operator.LT:
            return l_num < r_num
        return l_num <= r_num
    if op == Operator.CONTAINS:
        return _contains(left, right)
    if op == Operator.NOT_CONTAINS:
        return not _contains(left, right)
    if op == Operator.STARTS_WITH:
        return isinstance(left, str) and isinstance(right, str) and left.startswith(right)
    if op == Operator.ENDS_WITH:
        return isinstance(left, str) and isinstance(right, str) and left.endswith(right)
    if op == Operator.REGEX:
        return _regex(left, right)

    logger.warning("Unsupported operator in compare(): %s", op.value)
    return False


# ── Evaluation ────────────────────────────────────────────────────────────────


def evaluate_rule(
    rule: ConditionRule,
    context: Any,
    missing: MissingPathPolicy = MissingPathPolicy.EMPTY,
) -> bool:
    """Evaluate a single rule. May raise; evaluate_condition() guards it."""
    left = resolve_value(rule.left, context, missing)

    if rule.operator == Operator.EXISTS:
        return left is not None
    if rule.operator == Operator.NOT_EXISTS:
        return left is None

    right = coerce_value(rule.right, rule.right_type)
    return compare(left, rule.operator, right)


def decode_condition_config(config: Union[ConditionConfig, Mapping[str, Any], None]) -> ConditionConfig:
    """Turn a raw mapping into a ConditionConfig.

    Raises:
        ConditionConfigError: if the mapping does not match the schema.
    """
    if isinstance(config, ConditionConfig):
        return config
    try:
        return ConditionConfig.model_validate(config or {})
    except ValidationError as exc:
        raise ConditionConfigError(f"Invalid condition config: {exc}") from exc


def evaluate_condition(
    config: Union[ConditionConfig, Mapping[str, Any]],
    context: Any,
    missing: MissingPathPolicy = MissingPathPolicy.EMPTY,
) -> bool:
    """
    Evaluate every rule of *config* against *context* and combine by mode.

    An empty rule list is false, never vacuously true.

    Raises:
        ConditionConfigError: only when *config* itself cannot be decoded.
    """
    cfg = decode_condition_config(config)

    if not cfg.rules:
        logger.warning("Condition has no rules, defaulting to false")
        return False

    def _safe(rule: ConditionRule) -> bool:
        try:
            return bool(evaluate_rule(rule, context, missing))
        except Exception as exc:
            logger.warning("Error evaluating rule %s: %s", mask_sensitive_fields(rule), exc)
            return False

    if cfg.mode == ConditionMode.ALL:
        return all(_safe(rule) for rule in cfg.rules)
    return any(_safe(rule) for rule in cfg.rules)


# ── Static validation ─────────────────────────────────────────────────────────


def validate_condition_config(config: Any) -> ConditionValidation:
    """
    Static check of a condition config as stored by the editor.

    Returns ConditionValidation(valid=True) or the first problem found.
    Pure: no context, no I/O.
    """
    if isinstance(config, ConditionConfig):
        config = config.model_dump(by_alias=True, mode="json")

    if not config or not isinstance(config, Mapping):
        return ConditionValidation(valid=False, error="Config is required")

    mode = config.get("mode")
    if mode not in (ConditionMode.ALL.value, ConditionMode.ANY.value):
        return ConditionValidation(
            valid=False, error=f"Mode must be 'all' or 'any', got: {mode}"
        )

    rules = config.get("rules")
    if not isinstance(rules, list) or not rules:
        return ConditionValidation(valid=False, error="At least one rule is required")

    for i, rule in enumerate(rules):
        if not isinstance(rule, Mapping):
            return ConditionValidation(valid=False, error=f"Rule {i}: must be an object")

        left = rule.get("left")
        if not left or not isinstance(left, str):
            return ConditionValidation(
                valid=False, error=f"Rule {i}: 'left' must be a non-empty string"
            )

        operator = rule.get("operator")
        if not operator:
            return ConditionValidation(valid=False, error=f"Rule {i}: 'operator' is required")
        if operator not in VALID_OPERATORS:
            return ConditionValidation(
                valid=False, error=f"Rule {i}: Invalid operator '{operator}'"
            )

        if operator not in _UNARY_OPERATORS and rule.get("right") is None:
            return ConditionValidation(
                valid=False,
                error=f"Rule {i}: 'right' is required for operator '{operator}'",
            )

        right_type = rule.get("rightType", rule.get("right_type"))
        if right_type and right_type not in VALID_RIGHT_TYPES:
            return ConditionValidation(
                valid=False, error=f"Rule {i}: Invalid 'rightType' '{right_type}'"
            )

    return ConditionValidation(valid=True, error=None)


def mask_sensitive_fields(rule: Union[ConditionRule, Mapping[str, Any]]) -> dict[str, Any]:
    """Copy of *rule* with left/right masked when left mentions a secret-ish name."""
    if isinstance(rule, ConditionRule):
        masked = rule.model_dump(by_alias=True, mode="json")
    else:
        masked = dict(rule)

    left: Optional[str] = masked.get("left")
    if any(p in str(left).lower() for p in _SENSITIVE_PATTERNS):
        masked["left"] = re.sub(r"\{\{.*\}\}", "{{***}}", str(left), count=1)
        masked["right"] = "***"
    return masked
