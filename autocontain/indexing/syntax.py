"""Small read-only helpers over tree-sitter Python nodes."""

from __future__ import annotations

import inspect

from tree_sitter import Node

UNKNOWN_NAME = "<unknown>"


def node_text(node: Node) -> str:
    return node.text.decode("utf-8", errors="replace")


def definition_name(node: Node) -> str:
    """Identifier in naming position of a class/function definition."""
    name_node = node.child_by_field_name("name")
    if name_node is not None and name_node.type == "identifier":
        return node_text(name_node)
    for child in node.children:
        if child.type == "identifier":
            return node_text(child)
    return UNKNOWN_NAME


def definition_parameters(node: Node) -> str | None:
    params = node.child_by_field_name("parameters")
    if params is None:
        return None
    return node_text(params)


def definition_return_type(node: Node) -> str | None:
    annotation = node.child_by_field_name("return_type")
    if annotation is None:
        return None
    return node_text(annotation)


def definition_docstring(node: Node) -> str | None:
    """
    Docstring of a class/function definition.

    Only the first statement of the definition's own `body` is considered, so a string
    literal belonging to a nested definition is never picked up.
    """
    body = node.child_by_field_name("body")
    if body is None:
        return None
    for statement in body.named_children:
        if statement.type == "comment":
            continue
        if statement.type != "expression_statement" or statement.named_child_count != 1:
            return None
        literal = statement.named_children[0]
        if literal.type != "string":
            return None
        return _string_literal_value(literal)
    return None


def definition_span(node: Node) -> tuple[int, int]:
    return node.start_point[0] + 1, node.end_point[0] + 1


def _string_literal_value(literal: Node) -> str:
    parts = [node_text(child) for child in literal.named_children if child.type == "string_content"]
    if parts:
        return inspect.cleandoc("".join(parts))
    raw = node_text(literal).lstrip("rRbBuUfF")
    for quote in ('"""', "'''", '"', "'"):
        if raw.startswith(quote) and raw.endswith(quote) and len(raw) >= 2 * len(quote):
            return inspect.cleandoc(raw[len(quote) : -len(quote)])
    return inspect.cleandoc(raw)
