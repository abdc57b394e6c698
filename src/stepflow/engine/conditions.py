"""
Conditional evaluation for branch nodes.

DOM conditions read the page through the backend; variable conditions
read the VariableStore. Neither kind raises for data problems: a value
that cannot be parsed as a number makes the comparison false. Missing
operands (no selector, no variable name) are configuration errors and do
raise ``ValidationFailure``.
"""

from dataclasses import dataclass
from typing import Any, Optional
import logging
import re

from stepflow.engine.steps import Condition
from stepflow.engine.variables import VariableStore, stringify
from stepflow.exceptions import UnsupportedOperation, ValidationFailure
from stepflow.interfaces.backend import IBackend

logger = logging.getLogger(__name__)


_CURRENCY_CHARS = re.compile(r"[$€£,\s]")
_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_FLOAT_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


@dataclass
class ConditionResult:
    """
    Outcome of one condition evaluation.

    Attributes:
        condition_result: Which branch to take (True = "if")
        effective_selector: Selector after variable substitution (DOM kinds)
        observed: The value that was compared, for logging and tests
    """
    condition_result: bool
    effective_selector: Optional[str] = None
    observed: Any = None

    @property
    def branch(self) -> str:
        return "if" if self.condition_result else "else"


def parse_float(text: Any) -> Optional[float]:
    """
    Read the leading number of a string, like a lenient float parse.

    ``"12abc"`` gives 12.0; ``"abc"`` and ``""`` give None.
    """
    if isinstance(text, bool):
        return None
    if isinstance(text, (int, float)):
        return float(text)
    match = _FLOAT_PREFIX.match(str(text or ""))
    if not match:
        return None
    return float(match.group(1))


def strip_non_numeric(text: str) -> str:
    return _NON_NUMERIC.sub("", text)


def apply_transform(raw: str, condition: Condition) -> str:
    """
    Normalize extracted text before comparison.

    An invalid regular expression leaves the value unchanged.
    """
    if not raw:
        return raw

    kind = condition.transform_type
    if kind == "stripCurrency":
        return _CURRENCY_CHARS.sub("", raw)
    if kind == "stripNonNumeric":
        return strip_non_numeric(raw)
    if kind == "removeChars" and condition.transform_chars:
        for char in condition.transform_chars:
            raw = raw.replace(char, "")
        return raw
    if kind == "regexReplace" and condition.transform_pattern:
        try:
            pattern = re.compile(condition.transform_pattern)
        except re.error as e:
            logger.warning(f"Invalid regex pattern {condition.transform_pattern!r}: {e}")
            return raw
        return pattern.sub(condition.transform_replace or "", raw)
    return raw


def compare_values(operator: str, actual: str, expected: str, parse_as_number: bool) -> bool:
    """
    Compare page text against an expected value.

    With ``parse_as_number`` both sides are stripped to numeric characters
    first and an unparsable side makes the result false. ``contains`` still
    compares the text once both sides parse.
    """
    if parse_as_number:
        a = parse_float(strip_non_numeric(actual))
        b = parse_float(strip_non_numeric(expected))
        if a is None or b is None:
            logger.debug(f"Cannot compare {actual!r} and {expected!r} as numbers")
            return False
        if operator == "contains":
            return expected in actual
        if operator == "greaterThan":
            return a > b
        if operator == "lessThan":
            return a < b
        return a == b

    if operator == "contains":
        return expected in actual
    if operator in ("greaterThan", "lessThan"):
        a = parse_float(actual)
        b = parse_float(expected)
        if a is None or b is None:
            return False
        return a > b if operator == "greaterThan" else a < b
    return actual == expected


def evaluate_variable_condition(condition: Condition, store: VariableStore) -> ConditionResult:
    """Evaluate one of the variable-based condition kinds."""
    if not condition.variable_name:
        raise ValidationFailure(f"{condition.condition_type} requires a variable name")

    name = store.substitute(condition.variable_name)
    value = store.get(name)
    kind = condition.condition_type

    if kind == "variableExists":
        result = value is not None and value != ""
        logger.debug(f"Variable {name} {'exists' if result else 'does not exist'}")
        return ConditionResult(result, observed=value)

    actual = stringify(value)
    expected = store.substitute(condition.expected_value or "")

    if condition.parse_as_number:
        a = parse_float(actual)
        b = parse_float(expected)
        if a is None or b is None:
            logger.warning(f"Cannot parse as number: {name}={actual!r}, expected={expected!r}")
            return ConditionResult(False, observed=value)
        if kind == "variableContains":
            result = expected in actual
        elif kind == "variableEquals":
            result = a == b
        elif kind == "variableGreaterThan":
            result = a > b
        else:
            result = a < b
    else:
        if kind == "variableEquals":
            result = actual == expected
        elif kind == "variableContains":
            result = expected in actual
        elif kind == "variableGreaterThan":
            result = actual > expected
        else:
            result = actual < expected

    logger.debug(f"{kind}: {actual!r} vs {expected!r} = {result}")
    return ConditionResult(result, observed=value)


async def evaluate_dom_condition(
    condition: Condition,
    store: VariableStore,
    backend: Optional[IBackend],
) -> ConditionResult:
    """Evaluate elementExists or valueMatches against the active page."""
    if not condition.selector:
        raise ValidationFailure(f"{condition.condition_type} requires a selector")
    if backend is None:
        raise UnsupportedOperation(f"{condition.condition_type} needs a browser backend")

    selector = store.substitute(condition.selector)

    if condition.condition_type == "elementExists":
        found = await backend.element_exists(selector)
        logger.debug(f"Element {'found' if found else 'not found'}: {selector}")
        return ConditionResult(found, effective_selector=selector, observed=found)

    raw = await backend.element_text(selector) or ""
    transformed = apply_transform(raw, condition)
    expected = store.substitute(condition.expected_value or "")
    result = compare_values(condition.operator, transformed, expected, condition.parse_as_number)
    logger.debug(
        f"valueMatches {selector}: raw={raw!r} transformed={transformed!r} "
        f"{condition.operator} {expected!r} = {result}"
    )
    return ConditionResult(result, effective_selector=selector, observed=transformed)


async def evaluate_condition(
    condition: Condition,
    store: VariableStore,
    backend: Optional[IBackend] = None,
) -> ConditionResult:
    """
    Evaluate any condition kind.

    Raises:
        ValidationFailure: If a required operand is missing
        UnsupportedOperation: For DOM kinds without a backend
    """
    if condition.is_dom:
        return await evaluate_dom_condition(condition, store, backend)
    return evaluate_variable_condition(condition, store)
