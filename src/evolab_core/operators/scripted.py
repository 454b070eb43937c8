"""Restricted scripting hook turning override source text into operator functions."""

import builtins
import logging
import math
from pathlib import Path

import libcst as cst

from evolab_core.models import OperatorOverrideError
from evolab_core.operators import OPERATOR_PARAMETERS, OperatorFunction
from evolab_core.operators.policy import check_override_source

LOGGER = logging.getLogger(__name__)

_SAFE_BUILTIN_NAMES = (
    "abs",
    "all",
    "any",
    "bool",
    "dict",
    "divmod",
    "enumerate",
    "float",
    "int",
    "isinstance",
    "len",
    "list",
    "max",
    "min",
    "range",
    "reversed",
    "round",
    "set",
    "sorted",
    "str",
    "sum",
    "tuple",
    "zip",
    "IndexError",
    "ValueError",
)
SAFE_BUILTINS: dict[str, object] = {name: getattr(builtins, name) for name in _SAFE_BUILTIN_NAMES}


def _is_docstring(statement: cst.BaseStatement) -> bool:
    if not isinstance(statement, cst.SimpleStatementLine) or len(statement.body) != 1:
        return False
    expression = statement.body[0]
    return isinstance(expression, cst.Expr) and isinstance(
        expression.value, (cst.SimpleString, cst.ConcatenatedString)
    )


def _check_structure(name: str, source: str) -> None:
    try:
        module = cst.parse_module(source)
    except cst.ParserSyntaxError as exc:
        raise OperatorOverrideError(name, f"parse: {exc.message}") from exc

    functions: dict[str, cst.FunctionDef] = {}
    for index, statement in enumerate(module.body):
        if isinstance(statement, cst.FunctionDef):
            functions[statement.name.value] = statement
            continue
        if index == 0 and _is_docstring(statement):
            continue
        raise OperatorOverrideError(
            name, "only function definitions are allowed at module level"
        )

    definition = functions.get(name)
    if definition is None:
        raise OperatorOverrideError(name, f"source must define a function named {name!r}")

    params = definition.params
    positional = [*params.posonly_params, *params.params]
    expected = OPERATOR_PARAMETERS[name]
    required = [param for param in positional if param.default is None]
    if len(required) > len(expected) or (
        len(positional) < len(expected) and not isinstance(params.star_arg, cst.Param)
    ):
        raise OperatorOverrideError(
            name,
            f"{name} must take {len(expected)} positional parameters ({', '.join(expected)})",
        )


def compile_override(name: str, source: str) -> OperatorFunction:
    if name not in OPERATOR_PARAMETERS:
        raise OperatorOverrideError(
            name, f"unknown operator; expected one of {list(OPERATOR_PARAMETERS)}"
        )

    policy = check_override_source(source)
    if not policy.is_valid:
        raise OperatorOverrideError(name, f"{policy.stage}: {policy.reason}")

    _check_structure(name, source)

    namespace: dict[str, object] = {"__builtins__": SAFE_BUILTINS, "math": math}
    try:
        exec(compile(source, f"<{name}-override>", "exec"), namespace)  # noqa: S102
    except Exception as exc:  # noqa: BLE001
        raise OperatorOverrideError(name, f"exec: {type(exc).__name__}: {exc}") from exc

    function = namespace[name]
    if not callable(function):
        raise OperatorOverrideError(name, f"{name} is not callable")
    LOGGER.debug("Compiled %s override (%d bytes)", name, len(source))
    return function


def load_override_file(name: str, path: Path) -> OperatorFunction:
    try:
        source = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise OperatorOverrideError(name, f"cannot read {path}: {exc}") from exc
    return compile_override(name, source)
