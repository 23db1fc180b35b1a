"""Split Python source files into one chunk per top-level function or class."""

from __future__ import annotations

import ast
from dataclasses import dataclass


@dataclass(frozen=True)
class PythonChunk:
    """A top-level Python symbol and its source text."""

    symbol: str
    symbol_type: str
    content: str


def parse_python(src: str) -> list[PythonChunk]:
    """Return one chunk per undecorated top-level function or class.

    Async functions count as functions. Decorated definitions are not
    chunked. Raises SyntaxError when the source does not parse.
    """
    tree = ast.parse(src)
    chunks: list[PythonChunk] = []
    for node in tree.body:
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            symbol_type = "func"
        elif isinstance(node, ast.ClassDef):
            symbol_type = "class"
        else:
            continue
        if node.decorator_list:
            continue
        content = ast.get_source_segment(src, node) or ""
        chunks.append(PythonChunk(node.name, symbol_type, content))
    return chunks