"""Architectural tests for the ordering and access core.

Static inspection only: sources are parsed with ``ast`` and scanned as text,
nothing is imported or executed.
"""

from __future__ import annotations

import ast
import os
import re
from typing import Iterator, List, Tuple

import pytest


_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
PACKAGE_DIR = os.path.join(_ROOT, "bookforge")
ORDERING_MODULE = os.path.join(PACKAGE_DIR, "logic", "ordering.py")
ROUTES_DIR = os.path.join(PACKAGE_DIR, "routes")
SERVICE_MODULES = [
    os.path.join(PACKAGE_DIR, "logic", name)
    for name in ("books.py", "chapters.py", "blocks.py", "collaborators.py")
]

_POSITION_WRITE = re.compile(
    r"(SET\s+[^\"']*\bposition\s*=|INSERT\s+INTO\s+(chapters|blocks)\b)", re.IGNORECASE
)


def _python_files(root: str) -> Iterator[str]:
    for dirpath, _dirs, files in os.walk(root):
        for name in files:
            if name.endswith(".py"):
                yield os.path.join(dirpath, name)


def _parse(path: str) -> ast.AST:
    assert os.path.exists(path), f"Required module missing: {path}"
    with open(path, "r", encoding="utf-8") as f:
        return ast.parse(f.read(), filename=path)


def _string_constants(tree: ast.AST) -> List[str]:
    out: List[str] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Constant) and isinstance(node.value, str):
            out.append(node.value)
        elif isinstance(node, ast.JoinedStr):
            out.append("".join(v.value for v in node.values if isinstance(v, ast.Constant) and isinstance(v.value, str)))
    return out


def _imports(tree: ast.AST) -> List[str]:
    names: List[str] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            names.extend(alias.name for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module:
            names.append(node.module)
    return names


def test_only_the_ordering_engine_writes_positions():
    offenders: List[Tuple[str, str]] = []
    for path in _python_files(PACKAGE_DIR):
        if os.path.normpath(path) == os.path.normpath(ORDERING_MODULE):
            continue
        for literal in _string_constants(_parse(path)):
            if _POSITION_WRITE.search(literal):
                offenders.append((path, literal.strip()[:80]))
    assert not offenders, f"position written outside the ordering engine: {offenders}"


def test_ordering_engine_does_not_manage_transactions():
    tree = _parse(ORDERING_MODULE)
    calls = {
        node.func.attr
        for node in ast.walk(tree)
        if isinstance(node, ast.Call) and isinstance(node.func, ast.Attribute)
    }
    assert not calls & {"begin", "commit", "rollback"}
    assert "bookforge.db.base" not in _imports(tree)


@pytest.mark.parametrize("path", sorted(_python_files(ROUTES_DIR)))
def test_routes_stay_out_of_persistence(path):
    imported = _imports(_parse(path))
    forbidden = [m for m in imported if m.startswith("sqlalchemy") or m.startswith("bookforge.db")]
    forbidden += [m for m in imported if m.startswith("bookforge.logic.repository_") or m == "bookforge.logic.ordering"]
    assert not forbidden, f"{path} reaches below the service layer: {forbidden}"


@pytest.mark.parametrize("path", SERVICE_MODULES)
def test_services_resolve_access_through_the_resolver(path):
    imported = _imports(_parse(path))
    assert "bookforge.logic.access" in imported
    assert "bookforge.db.base" in imported


def test_single_error_to_status_mapping():
    hits = []
    for path in _python_files(PACKAGE_DIR):
        with open(path, "r", encoding="utf-8") as f:
            source = f.read()
        if "application/problem+json" in source:
            hits.append(os.path.normpath(path))
    assert hits == [os.path.normpath(os.path.join(PACKAGE_DIR, "http", "problem.py"))]


def test_modules_log_through_module_loggers():
    for path in _python_files(PACKAGE_DIR):
        tree = _parse(path)
        prints = [
            node.lineno
            for node in ast.walk(tree)
            if isinstance(node, ast.Call) and isinstance(node.func, ast.Name) and node.func.id == "print"
        ]
        assert not prints, f"{path} uses print() at lines {prints}"
