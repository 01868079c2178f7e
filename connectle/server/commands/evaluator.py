"""
Calculator expression evaluator.

Evaluates expressions by rewriting the text in place: the right-most innermost
parenthesised group is evaluated recursively and its value spliced back into
the string until no parentheses remain, then the flat string is split at the
right-most operator of each tier.

Observable quirks that clients rely on:
    * ``pi`` and ``e`` are replaced by plain substring substitution, so any
      other word containing the letter ``e`` is corrupted.
    * ``^`` chains are left-associative: ``2^3^4`` is ``(2^3)^4``.
    * A ``-`` is unary at position 0 of a (sub)string or right after another
      operator, so spliced negative values such as ``2*-3`` still evaluate.
    * Only plain decimal numbers are accepted; ``inf`` and ``nan`` are not, and
      a non-finite intermediate result is an error.
"""

import math
import re
from decimal import Decimal

from connectle.common.errors import EvaluationError, ExpressionSyntaxError, DivideByZeroError

# Checked in this order against the text just before '('
FUNCTIONS = (
    ('sin', math.sin),
    ('cos', math.cos),
    ('tan', math.tan),
    ('log', math.log10),
    ('ln', math.log),
    ('sqrt', math.sqrt),
)

# Tiers are tried loosest first; each split happens at the right-most match
OPERATOR_TIERS = ('+-', '*/', '^')
OPERATORS = ''.join(OPERATOR_TIERS)

NUMBER_PATTERN = re.compile(
    r'[+-]?(?:\d+(?:\.\d*)?|\.\d+)'
)


def evaluate(expression: str) -> float:
    """
    Evaluate a calculator expression.

    Raises:
        ExpressionSyntaxError: unbalanced parentheses or an unparsable number
        DivideByZeroError: division by zero
        EvaluationError: math domain errors and overflow
    """
    expression = expression.lower()
    expression = expression.replace('pi', format_number(math.pi))
    expression = expression.replace('e', format_number(math.e))
    expression = ''.join(expression.split()).replace(',', '.')

    while '(' in expression and ')' in expression:
        start = expression.rfind('(')
        end = expression.find(')', start)
        if end == -1:
            raise ExpressionSyntaxError("unbalanced parentheses")

        value = evaluate(expression[start + 1:end])
        prefix = expression[max(0, start - 4):start]

        for name, function in FUNCTIONS:
            if prefix.endswith(name):
                value = _apply(function, value, name)
                start -= len(name)
                break

        expression = expression[:start] + format_number(value) + expression[end + 1:]

    if '(' in expression or ')' in expression:
        raise ExpressionSyntaxError("unbalanced parentheses")

    return _evaluate_flat(expression)


def _evaluate_flat(expression: str) -> float:
    for operators in OPERATOR_TIERS:
        for index in range(len(expression) - 1, -1, -1):
            char = expression[index]
            if char not in operators:
                continue
            # Unary minus: at the start or right after another operator
            if char == '-' and (index == 0 or expression[index - 1] in OPERATORS):
                continue

            left = _evaluate_flat(expression[:index])
            right = _evaluate_flat(expression[index + 1:])
            return _combine(char, left, right)

    return _parse_number(expression)


def _combine(operator: str, left: float, right: float) -> float:
    try:
        if operator == '+':
            result = left + right
        elif operator == '-':
            result = left - right
        elif operator == '*':
            result = left * right
        elif operator == '/':
            if right == 0:
                raise DivideByZeroError("division by zero")
            result = left / right
        else:
            result = math.pow(left, right)
    except OverflowError:
        raise EvaluationError("result is too large")
    except ValueError:
        raise EvaluationError("math domain error")
    return _finite(result, "result is too large")


def _apply(function, value: float, name: str) -> float:
    try:
        result = function(value)
    except ValueError:
        raise EvaluationError(f"math domain error in {name}()")
    except OverflowError:
        raise EvaluationError(f"result of {name}() is too large")
    return _finite(result, f"result of {name}() is too large")


def _finite(value: float, message: str) -> float:
    if not math.isfinite(value):
        raise EvaluationError(message)
    return value


def _parse_number(text: str) -> float:
    if not NUMBER_PATTERN.fullmatch(text):
        raise ExpressionSyntaxError(f"cannot parse number '{text}'")
    return _finite(float(text), f"number '{text}' is too large")


def format_number(value: float) -> str:
    """Plain decimal text that parses back to value, never in exponent notation."""
    if not math.isfinite(value):
        return repr(value)
    if value.is_integer():
        return str(int(value))
    return format(Decimal(repr(value)), 'f')
