"""
Tree Parser: one file's text -> tree-sitter concrete syntax tree.

A single `SourceParser` is reused sequentially across the files of one walk.
"""

from __future__ import annotations

from tree_sitter import Node
from tree_sitter import Parser
from tree_sitter import Tree
from tree_sitter_language_pack import get_parser

from autocontain.errors import ParseFailure

LANGUAGE = "python"


class SourceParser:
    def __init__(self, language: str = LANGUAGE) -> None:
        self._parser: Parser = get_parser(language)

    def parse(self, content: str, path: str = "<memory>") -> Tree:
        """Parse `content`; raise `ParseFailure` if the grammar rejects any part of it."""
        tree = self._parser.parse(content.encode("utf-8"))
        root = tree.root_node
        if root.type != "module":
            raise ParseFailure(f"{path}: expected a module root, got {root.type}")
        if root.has_error:
            line = _first_error_line(root)
            raise ParseFailure(f"{path}: syntax error near line {line}")
        return tree


def _first_error_line(root: Node) -> int:
    stack: list[Node] = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node.start_point[0] + 1
        stack.extend(reversed(node.children))
    return root.start_point[0] + 1
