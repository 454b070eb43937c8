import ast
from dataclasses import dataclass

_FORBIDDEN_CALLS = frozenset(
    {
        "__import__",
        "breakpoint",
        "compile",
        "delattr",
        "eval",
        "exec",
        "getattr",
        "globals",
        "input",
        "locals",
        "open",
        "setattr",
        "vars",
    }
)
_FORBIDDEN_NAMES = frozenset({"__builtins__", "__loader__", "__spec__"})
_FORBIDDEN_NODES = (ast.Global, ast.Nonlocal, ast.AsyncFunctionDef, ast.Await, ast.ClassDef)


@dataclass(frozen=True)
class PolicyResult:
    is_valid: bool
    stage: str
    reason: str = ""


class _OverridePolicy(ast.NodeVisitor):
    """Records the first construct an operator override may not use."""

    def __init__(self) -> None:
        self.violation: str | None = None

    def _reject(self, reason: str) -> None:
        if self.violation is None:
            self.violation = reason

    def generic_visit(self, node: ast.AST) -> None:
        if isinstance(node, _FORBIDDEN_NODES):
            self._reject(f"forbidden construct: {type(node).__name__}")
        super().generic_visit(node)

    def visit_Import(self, node: ast.Import | ast.ImportFrom) -> None:
        self._reject("imports are not allowed; math is available by name")

    visit_ImportFrom = visit_Import

    def visit_Name(self, node: ast.Name) -> None:
        if node.id in _FORBIDDEN_NAMES:
            self._reject("forbidden name detected")

    def visit_Attribute(self, node: ast.Attribute) -> None:
        if node.attr.startswith("__") and node.attr.endswith("__"):
            self._reject("forbidden attribute detected")
        self.generic_visit(node)

    def visit_Call(self, node: ast.Call) -> None:
        func = node.func
        called = func.id if isinstance(func, ast.Name) else getattr(func, "attr", None)
        if called in _FORBIDDEN_CALLS:
            self._reject("forbidden call detected")
        self.generic_visit(node)


def check_override_source(source: str) -> PolicyResult:
    try:
        tree = ast.parse(source)
        compile(tree, "<override>", "exec")
    except SyntaxError as exc:
        stage = "parse" if exc.filename in (None, "<unknown>") else "compile"
        return PolicyResult(is_valid=False, stage=stage, reason=str(exc))

    policy = _OverridePolicy()
    policy.visit(tree)
    if policy.violation is not None:
        return PolicyResult(is_valid=False, stage="ast_policy", reason=policy.violation)
    return PolicyResult(is_valid=True, stage="ok")
