# calculator_server/core/calculator.py

import math
from typing import Any, Callable, NamedTuple

from calculator_server.core.errors import (
    DivisionByZero,
    InvalidOperand,
    NegativeOperand,
    NonFiniteResult,
)


def parse_operand(value: Any, name: str = "a") -> float:
    """
    Converts a request value into a float.
    Numbers and numeric strings are accepted; booleans, empty values and
    anything that is not a finite number raise InvalidOperand.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidOperand(name)

    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            raise InvalidOperand(name)
    elif isinstance(value, str):
        # float() also takes "1_000", which is not a plain numeric literal
        if "_" in value:
            raise InvalidOperand(name)
        try:
            number = float(value.strip())
        except (ValueError, OverflowError):
            raise InvalidOperand(name)
    else:
        raise InvalidOperand(name)

    if not math.isfinite(number):
        raise InvalidOperand(name)
    return number


# -------------------------------
# Operations
# -------------------------------

def ensure_finite(result: float) -> float:
    if isinstance(result, complex) or not math.isfinite(result):
        raise NonFiniteResult()
    return result


def add(a: float, b: float) -> float:
    return ensure_finite(a + b)


def subtract(a: float, b: float) -> float:
    return ensure_finite(a - b)


def multiply(a: float, b: float) -> float:
    return ensure_finite(a * b)


def divide(a: float, b: float) -> float:
    if b == 0:
        raise DivisionByZero()
    try:
        return ensure_finite(a / b)
    except OverflowError:
        raise NonFiniteResult()


def power(a: float, b: float) -> float:
    try:
        result = a ** b
    except (OverflowError, ZeroDivisionError):
        # 10.0 ** 400 overflows, 0.0 ** -1 divides by zero
        raise NonFiniteResult()

    return ensure_finite(result)


def sqrt(a: float) -> float:
    if a < 0:
        raise NegativeOperand()
    return math.sqrt(a)


class Operation(NamedTuple):
    kind: str
    arity: int
    func: Callable[..., float]


OPERATIONS = {
    "add": Operation("addition", 2, add),
    "subtract": Operation("subtraction", 2, subtract),
    "multiply": Operation("multiplication", 2, multiply),
    "divide": Operation("division", 2, divide),
    "power": Operation("exponentiation", 2, power),
    "sqrt": Operation("square_root", 1, sqrt),
}


def calculate(name: str, a: Any, b: Any = None) -> tuple[str, dict, float]:
    """
    Runs a named operation on raw request operands.
    Returns the operation kind, the parsed operands and the result.
    """
    operation = OPERATIONS[name]
    operands = {"a": parse_operand(a, "a")}
    if operation.arity == 2:
        operands["b"] = parse_operand(b, "b")

    # Nothing non-finite may reach the response or the history table
    result = ensure_finite(operation.func(*operands.values()))
    return operation.kind, operands, result
