"""
Attribute/Method Classifier.

Within one class subtree:
- the constructor (`__init__`) contributes its parameters, minus the leading
  self-reference, as `"name: type"` attributes
- every other method contributes `"name"` or `"name -> return_type"` to the method summary

Nested classes are classified on their own and are not descended into here.
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field

from tree_sitter import Node

from autocontain.indexing.syntax import definition_name
from autocontain.indexing.syntax import definition_return_type
from autocontain.indexing.syntax import node_text

CONSTRUCTOR_NAME = "__init__"
UNKNOWN_TYPE = "unknown"

_OPENERS = "([{"
_CLOSERS = ")]}"
_QUOTES = "'\""
_MARKERS = ("*", "/")


@dataclass(frozen=True)
class ClassMembers:
    attributes: list[str] = field(default_factory=list)
    methods: list[str] = field(default_factory=list)


def classify_class_members(class_node: Node) -> ClassMembers:
    attributes: list[str] = []
    methods: list[str] = []
    stack: list[Node] = list(reversed(class_node.children))
    while stack:
        node = stack.pop()
        if node.type == "class_definition":
            continue
        if node.type == "function_definition":
            name = definition_name(node)
            if name == CONSTRUCTOR_NAME:
                attributes.extend(constructor_attributes(node))
            else:
                return_type = definition_return_type(node)
                methods.append(f"{name} -> {return_type}" if return_type else name)
        stack.extend(reversed(node.children))
    return ClassMembers(attributes=attributes, methods=methods)


def constructor_attributes(function_node: Node) -> list[str]:
    """Attributes from the parsed parameter nodes of `__init__`; comments inside the signature are ignored."""
    params = function_node.child_by_field_name("parameters")
    if params is None:
        return []
    texts = [node_text(child) for child in params.named_children if child.type != "comment"]
    return [_format_attribute(param) for param in texts[1:] if param not in _MARKERS]


def parse_constructor_attributes(parameters: str) -> list[str]:
    """
    `"self, x: int, y"` -> `["x: int", "y: unknown"]`.

    The first parameter is always dropped. Bare `*` and `/` markers are ignored.
    """
    attributes: list[str] = []
    for param in split_parameters(parameters)[1:]:
        if param in _MARKERS:
            continue
        attributes.append(_format_attribute(param))
    return attributes


def split_parameters(parameters: str) -> list[str]:
    """
    Split a parameter list on commas at bracket depth 0.

    `()`, `[]` and `{}` nest; commas inside string literals are ignored. Surrounding
    parentheses of the whole list are optional.
    """
    text = parameters.strip()
    if text.startswith("(") and text.endswith(")") and _closing_index(text, 0) == len(text) - 1:
        text = text[1:-1]

    parts: list[str] = []
    current: list[str] = []
    depth = 0
    quote: str | None = None
    escaped = False
    for ch in text:
        if quote is not None:
            current.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = None
            continue
        if ch in _QUOTES:
            quote = ch
        elif ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth = max(depth - 1, 0)
        elif ch == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    parts.append("".join(current).strip())
    return [p for p in parts if p]


def _format_attribute(param: str) -> str:
    colon = _find_top_level(param, ":")
    equals = _find_top_level(param, "=")
    if colon != -1 and (equals == -1 or colon < equals):
        name = param[:colon].strip()
        annotation = param[colon + 1 :].strip()
        return f"{name}: {annotation or UNKNOWN_TYPE}"
    name = param[:equals].strip() if equals != -1 else param.strip()
    return f"{name}: {UNKNOWN_TYPE}"


def _find_top_level(text: str, target: str) -> int:
    depth = 0
    quote: str | None = None
    for idx, ch in enumerate(text):
        if quote is not None:
            if ch == quote:
                quote = None
            continue
        if ch in _QUOTES:
            quote = ch
        elif ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth = max(depth - 1, 0)
        elif ch == target and depth == 0:
            return idx
    return -1


def _closing_index(text: str, open_idx: int) -> int:
    depth = 0
    quote: str | None = None
    for idx in range(open_idx, len(text)):
        ch = text[idx]
        if quote is not None:
            if ch == quote:
                quote = None
            continue
        if ch in _QUOTES:
            quote = ch
        elif ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth -= 1
            if depth == 0:
                return idx
    return -1
