"""
RestrictedPython sandbox for agent scripts.

A script is a sequence of Python statements. When the last statement is a
bare expression, its value is the script result (``value + 1``); otherwise
the script may assign ``result``, and a script that does neither yields None.

Allowed: dict, list, str, int, float, bool, range, enumerate, zip, sorted,
len, round, min, max, sum, abs, json.loads/dumps, datetime/date/time/timedelta,
plus whitelisted extra modules.

Blocked: open, exec, eval, __import__, compile, os, subprocess, etc.
"""

import ast
import builtins
import importlib
import json
import logging
import re
from collections.abc import Iterable, Mapping
from datetime import date, datetime, time, timedelta
from types import CodeType
from typing import Any, NamedTuple

from RestrictedPython import compile_restricted
from RestrictedPython.Eval import default_guarded_getitem, default_guarded_getiter
from RestrictedPython.Guards import (
    full_write_guard,
    guarded_iter_unpack_sequence,
    guarded_unpack_sequence,
    safe_builtins,
    safer_getattr,
)

_log = logging.getLogger(__name__)

# Only allow top-level module names (e.g. math, statistics), no submodules
_SAFE_MODULE_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

# Exceptions outside Exception: raising them from a script would bypass the host's error channel
_BLOCKED_BUILTINS = frozenset({"SystemExit", "KeyboardInterrupt", "GeneratorExit", "BaseException"})

_EXPOSED_BUILTINS = ("list", "dict", "set", "tuple", "len", "range", "min", "max", "sum", "abs", "sorted")


class CompiledProgram(NamedTuple):
    source: str
    filename: str
    body: CodeType | None  # statements, run with exec
    expr: CodeType | None  # trailing expression, run with eval


def _make_guard_globals() -> dict[str, Any]:
    """Guards required by RestrictedPython's rewritten bytecode."""
    return {
        "_getattr_": safer_getattr,
        "_getiter_": default_guarded_getiter,
        "_getitem_": default_guarded_getitem,
        "_iter_unpack_sequence_": guarded_iter_unpack_sequence,
        "_unpack_sequence_": guarded_unpack_sequence,
        "_write_": full_write_guard,
    }


def _make_extra_globals() -> dict[str, Any]:
    """Extra safe symbols: json, datetime, date, time, timedelta."""
    return {
        "json": json,
        "datetime": datetime,
        "date": date,
        "time": time,
        "timedelta": timedelta,
    }


def load_extra_modules(names: Iterable[str]) -> dict[str, Any]:
    """Import whitelisted modules by top-level name. Invalid or missing names are skipped with a warning."""
    modules: dict[str, Any] = {}
    for name in (s.strip() for s in names if s.strip()):
        if not _SAFE_MODULE_NAME_RE.match(name):
            _log.warning("Skipping extra script module with invalid name: %r", name)
            continue
        try:
            modules[name] = importlib.import_module(name)
        except ImportError as e:
            _log.warning("Skipping extra script module %r: %s", name, e)
    return modules


def build_base_globals(extra_modules: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """
    Globals shared by every execution: safe builtins, guards, extras
    (json, datetime) and extra modules. Copied per run by build_restricted_globals.
    """
    safe = {k: v for k, v in safe_builtins.items() if k not in _BLOCKED_BUILTINS}
    g: dict[str, Any] = {
        "__builtins__": safe,
        "__name__": "script",
    }
    g.update(_make_guard_globals())
    g.update(_make_extra_globals())
    for name in _EXPOSED_BUILTINS:
        obj = safe.get(name, getattr(builtins, name, None))
        if obj is not None:
            g[name] = obj
    g.update(extra_modules or {})
    return g


def build_restricted_globals(
    base: Mapping[str, Any], bindings: Mapping[str, Any]
) -> dict[str, Any]:
    """Fresh globals dict for one execution: base globals plus the caller's bindings."""
    g = dict(base)
    g.update(bindings)
    return g


def compile_script(script: str, filename: str = "<script>") -> CompiledProgram:
    """
    Compile script with RestrictedPython. Raises SyntaxError on failure.

    A trailing bare expression is split off and compiled in eval mode so the
    program can return its value. Both parts keep the line numbers of the
    original source.
    """
    tree = ast.parse(script, filename, "exec")
    body_tree: ast.Module | None = tree
    expr_tree: ast.Expression | None = None
    if tree.body and isinstance(tree.body[-1], ast.Expr):
        expr_tree = ast.Expression(body=tree.body[-1].value)
        body_tree = ast.Module(body=tree.body[:-1], type_ignores=[]) if len(tree.body) > 1 else None

    body = compile_restricted(body_tree, filename, "exec") if body_tree is not None else None
    expr = compile_restricted(expr_tree, filename, "eval") if expr_tree is not None else None
    if (body_tree is not None and body is None) or (expr_tree is not None and expr is None):
        raise SyntaxError("RestrictedPython: compile failed")
    return CompiledProgram(source=script, filename=filename, body=body, expr=expr)


def run_program(program: CompiledProgram, g: dict[str, Any]) -> Any:
    """Run program against globals g and return its result. Script exceptions propagate."""
    if program.body is not None:
        exec(program.body, g)  # noqa: S102 - restricted environment
    if program.expr is not None:
        return eval(program.expr, g)  # noqa: S307 - restricted environment
    return g.get("result")
