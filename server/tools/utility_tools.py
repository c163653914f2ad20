"""
Utility Tools

General-purpose tools: arithmetic evaluation.
"""

import ast
import math
import operator
from decimal import Decimal
from typing import Any, Dict, Union

from observability.logging_config import get_logger
from server.tools.base import BaseTool, ToolParameter

logger = get_logger(__name__)

Number = Union[int, float]

BINARY_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

UNARY_OPERATORS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

# Trigonometric functions take degrees
FUNCTIONS = {
    "sqrt": math.sqrt,
    "abs": abs,
    "sin": lambda x: math.sin(math.radians(x)),
    "cos": lambda x: math.cos(math.radians(x)),
    "tan": lambda x: math.tan(math.radians(x)),
}

CONSTANTS = {
    "pi": math.pi,
    "e": math.e,
}

MAX_EXPONENT = 1000

# Results stay below the interpreter's int-to-str digit limit (4300)
MAX_RESULT_DIGITS = 4000
MAX_RESULT_BITS = int(MAX_RESULT_DIGITS * math.log2(10))

# Above this the K/M form would need float division of huge ints
LARGE_RESULT = 10**15


def evaluate_expression(expression: str) -> Number:
    """
    Evaluate an arithmetic expression without eval().

    Raises:
        ValueError: on syntax errors, unsupported constructs or math errors
    """
    try:
        tree = ast.parse(expression.strip(), mode="eval")
    except SyntaxError as e:
        raise ValueError(f"Invalid expression: {e.msg}") from e

    try:
        return _evaluate(tree.body)
    except (ZeroDivisionError, OverflowError) as e:
        raise ValueError(str(e)) from e


def _evaluate(node: ast.AST) -> Number:
    if isinstance(node, ast.Constant):
        if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
            raise ValueError(f"Unsupported constant: {node.value!r}")
        return node.value

    if isinstance(node, ast.Name):
        if node.id not in CONSTANTS:
            raise ValueError(f"Unknown name: {node.id}")
        return CONSTANTS[node.id]

    if isinstance(node, ast.BinOp) and type(node.op) in BINARY_OPERATORS:
        left = _evaluate(node.left)
        right = _evaluate(node.right)
        if isinstance(node.op, ast.Pow):
            _check_power(left, right)
        return _check_result(BINARY_OPERATORS[type(node.op)](left, right))

    if isinstance(node, ast.UnaryOp) and type(node.op) in UNARY_OPERATORS:
        return UNARY_OPERATORS[type(node.op)](_evaluate(node.operand))

    if isinstance(node, ast.Call):
        if not isinstance(node.func, ast.Name) or node.func.id not in FUNCTIONS:
            raise ValueError("Unsupported function call")
        if len(node.args) != 1 or node.keywords:
            raise ValueError(f"{node.func.id}() takes exactly one argument")
        return FUNCTIONS[node.func.id](_evaluate(node.args[0]))

    raise ValueError(f"Unsupported expression element: {type(node).__name__}")


def _check_power(base: Number, exponent: Number) -> None:
    """Reject powers whose result would be too large to compute quickly."""
    if abs(exponent) > MAX_EXPONENT:
        raise ValueError("Exponent too large")
    if abs(base) > 1 and exponent > 0 and exponent * math.log10(abs(base)) > MAX_RESULT_DIGITS:
        raise ValueError("Result too large")


def _check_result(value: Any) -> Number:
    if isinstance(value, complex):
        raise ValueError("Result is not a real number")
    if isinstance(value, int) and value.bit_length() > MAX_RESULT_BITS:
        raise ValueError("Result too large")
    return value


def format_result(value: Number) -> str:
    """Short human form: 1.50M, 2.30K, or the plain value."""
    if abs(value) >= LARGE_RESULT:
        return f"{Decimal(value):.2e}"
    if value >= 1_000_000:
        return f"{value / 1_000_000:.2f}M"
    if value >= 1_000:
        return f"{value / 1_000:.2f}K"
    return str(value)


class CalculatorTool(BaseTool):
    """Evaluate mathematical expressions."""

    name = "calculate"
    description = "Perform mathematical calculations and evaluate expressions"
    category = "utility"
    parameters = {
        "expression": ToolParameter(
            type="string",
            description='Mathematical expression to evaluate (e.g., "2 + 3 * 4", "sqrt(16)", "sin(30)")',
            required=True,
        ),
        "precision": ToolParameter(
            type="integer",
            description="Number of decimal places for the result",
            default=6,
            minimum=0,
            maximum=15,
        ),
    }

    async def execute(self, params: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        expression = str(params["expression"])
        precision = params.get("precision")
        precision = 6 if precision is None else int(precision)

        try:
            value = evaluate_expression(expression)
        except ValueError as e:
            raise ValueError(f"Calculation error: {e}") from e

        rounded = round(value, precision)
        logger.info("calculation_complete", expression=expression, result=rounded)

        return {
            "type": "calculation_result",
            "data": {
                "expression": expression,
                "result": rounded,
                "precision": precision,
                "formatted": format_result(rounded),
            },
            "message": f"{expression} = {rounded}",
        }
