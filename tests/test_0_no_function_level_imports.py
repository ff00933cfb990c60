"""Guard: no function-level imports of complior_tui inside src/.

Modules import each other at module level only, so the import graph is
visible at the top of every file and circular imports fail at load time
rather than halfway through a keypress.

This file is named with `test_0_` so it runs first.
"""

import ast
import os


_SRC_ROOT = os.path.join(os.path.dirname(__file__), "..", "src", "complior_tui")


def _imported_names(node):
    if isinstance(node, ast.Import):
        return [alias.name for alias in node.names]
    if isinstance(node, ast.ImportFrom) and node.level == 0 and node.module:
        return [node.module]
    if isinstance(node, ast.ImportFrom) and node.level > 0:
        return ["." * node.level + (node.module or "")]
    return []


def _find_function_level_imports():
    """Walk all .py files and flag package imports inside functions/methods."""
    violations = []
    for dirpath, _dirs, files in os.walk(_SRC_ROOT):
        for fname in files:
            if not fname.endswith(".py"):
                continue
            path = os.path.join(dirpath, fname)
            with open(path, encoding="utf-8") as f:
                tree = ast.parse(f.read(), filename=path)

            rel = os.path.relpath(path, _SRC_ROOT)
            for node in ast.walk(tree):
                if not isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
                    continue
                for child in ast.walk(node):
                    for name in _imported_names(child):
                        if name.startswith(("complior_tui", ".")):
                            violations.append(f"{rel}:{child.lineno} function-level import of {name}")
    return violations


def test_sources_found():
    assert os.path.isfile(os.path.join(_SRC_ROOT, "__init__.py"))


def test_no_function_level_package_imports():
    violations = _find_function_level_imports()
    assert violations == [], (
        "Move these imports to module level:\n"
        + "\n".join(f"  {v}" for v in sorted(set(violations)))
    )
