"""
Entity Extractor.

Walks one parsed file with an explicit work stack (no recursion, so deeply nested
source cannot exhaust the call stack) and returns the classes and functions it
defines, without touching the store.

Ownership rules:
- a function belongs to the nearest enclosing class, if any
- a function nested in a free function (a closure) is recorded as a free function
- a class nested anywhere gets its own class entry
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field

from tree_sitter import Node

from autocontain.indexing.classifier import classify_class_members
from autocontain.indexing.dependencies import extract_call_dependencies
from autocontain.indexing.syntax import definition_docstring
from autocontain.indexing.syntax import definition_name
from autocontain.indexing.syntax import definition_parameters
from autocontain.indexing.syntax import definition_return_type
from autocontain.indexing.syntax import definition_span


@dataclass(frozen=True)
class ExtractedClass:
    name: str
    start_line: int
    end_line: int
    docstring: str | None
    attributes: list[str] = field(default_factory=list)
    methods: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ExtractedFunction:
    name: str
    start_line: int
    end_line: int
    docstring: str | None
    parameters: str | None
    return_type: str | None
    # index into FileEntities.classes, None for free functions
    owner: int | None = None
    dependencies: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class FileEntities:
    path: str
    classes: list[ExtractedClass] = field(default_factory=list)
    functions: list[ExtractedFunction] = field(default_factory=list)


def extract_entities(root: Node, path: str) -> FileEntities:
    """Pre-order, source-ordered extraction of every class and function under `root`."""
    classes: list[ExtractedClass] = []
    functions: list[ExtractedFunction] = []

    stack: list[tuple[Node, int | None]] = [(child, None) for child in reversed(root.children)]
    while stack:
        node, owner = stack.pop()
        child_owner = owner
        if node.type == "class_definition":
            classes.append(_build_class(node))
            child_owner = len(classes) - 1
        elif node.type == "function_definition":
            functions.append(_build_function(node, owner))
        stack.extend((child, child_owner) for child in reversed(node.children))

    return FileEntities(path=path, classes=classes, functions=functions)


def _build_class(node: Node) -> ExtractedClass:
    start_line, end_line = definition_span(node)
    members = classify_class_members(node)
    return ExtractedClass(
        name=definition_name(node),
        start_line=start_line,
        end_line=end_line,
        docstring=definition_docstring(node),
        attributes=members.attributes,
        methods=members.methods,
    )


def _build_function(node: Node, owner: int | None) -> ExtractedFunction:
    start_line, end_line = definition_span(node)
    return ExtractedFunction(
        name=definition_name(node),
        start_line=start_line,
        end_line=end_line,
        docstring=definition_docstring(node),
        parameters=definition_parameters(node),
        return_type=definition_return_type(node),
        owner=owner,
        dependencies=extract_call_dependencies(node),
    )
