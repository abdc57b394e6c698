"""
Variable step handlers.
"""

from typing import Any
import logging

from stepflow.engine.conditions import parse_float
from stepflow.engine.handlers import handles
from stepflow.engine.variables import auto_type, stringify
from stepflow.exceptions import ValidationFailure

logger = logging.getLogger(__name__)


def _number(value: Any, what: str) -> float:
    number = parse_float(value)
    if number is None:
        raise ValidationFailure(f"{what} is not a number: {value!r}")
    return number


def _tidy(number: float) -> Any:
    return int(number) if float(number).is_integer() else number


@handles("setVariable")
async def set_variable(executor, step, ctx) -> Any:
    return ctx.store.set(step.variable_name, step.value)


@handles("getVariable")
async def get_variable(executor, step, ctx) -> Any:
    return ctx.store.get(step.variable_name)


@handles("modifyVariable")
async def modify_variable(executor, step, ctx) -> Any:
    """
    Apply ``operation`` to an existing variable.

    increment and decrement treat a missing variable as 0 and default the
    operand to 1; append concatenates to strings and extends lists.
    """
    name = step.variable_name
    current = ctx.store.get(name)
    operand = auto_type(step.value) if isinstance(step.value, str) else step.value

    if step.operation == "set":
        return ctx.store.set(name, step.value)

    if step.operation in ("increment", "decrement"):
        base = 0 if current in (None, "") else _number(current, f"Variable {name}")
        amount = 1 if operand in (None, "") else _number(operand, "Operand")
        result = base + amount if step.operation == "increment" else base - amount
        ctx.store.set_raw(name, _tidy(result))
        return ctx.store.get(name)

    # append
    if isinstance(current, list):
        updated = current + (operand if isinstance(operand, list) else [operand])
    elif current is None:
        updated = stringify(operand)
    else:
        updated = stringify(current) + stringify(operand)
    ctx.store.set_raw(name, updated)
    logger.debug(f"Appended to {name}")
    return updated
