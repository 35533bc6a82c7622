"""
Flow Reconstructor.

Turns the stored dependency edges into an indented, human-readable call flow:

  - Function: `main`
    - Purpose: Entry point.
    - Function: `load`
      - Purpose: No description available

Each (function_name, class_id) pair is emitted at most once, so cycles and
diamond-shaped call graphs terminate. Traversal uses an explicit stack; lookup
failures never surface, they degrade to placeholder leaves.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from dataclasses import field
from typing import Protocol

from autocontain.errors import NotFound
from autocontain.errors import StoreFailure
from autocontain.storage.sqlite import CallerKey
from autocontain.storage.sqlite import SqliteStore
from autocontain.storage.sqlite import get_dependencies
from autocontain.storage.sqlite import get_function_description
from autocontain.storage.sqlite import load_dependency_graph
from autocontain.storage.sqlite import load_function_descriptions

logger = logging.getLogger(__name__)

DEFAULT_ENTRY_FUNCTION = "main"
NO_DESCRIPTION = "No description available"
FLOW_HEADER = "The program follows this logic flow:\n\n"
INDENT = "  "


class DependencySource(Protocol):
    """Where the reconstructor reads docstrings and edges from."""

    def describe(self, function_name: str, class_id: int | None) -> str | None: ...

    def dependencies(self, function_name: str, class_id: int | None) -> list[CallerKey]: ...


@dataclass
class StoreDependencySource:
    """One store query per call-graph node."""

    store: SqliteStore
    repo_id: int | None = None

    def describe(self, function_name: str, class_id: int | None) -> str | None:
        return get_function_description(self.store, function_name, class_id, repo_id=self.repo_id)

    def dependencies(self, function_name: str, class_id: int | None) -> list[CallerKey]:
        return get_dependencies(self.store, function_name, class_id, repo_id=self.repo_id)


@dataclass
class PreloadedDependencySource:
    """All edges and docstrings loaded up front; no queries during traversal."""

    graph: dict[CallerKey, list[CallerKey]] = field(default_factory=dict)
    descriptions: dict[CallerKey, str | None] = field(default_factory=dict)

    @classmethod
    def load(cls, store: SqliteStore, repo_id: int | None = None) -> PreloadedDependencySource:
        return cls(
            graph=load_dependency_graph(store, repo_id=repo_id),
            descriptions=load_function_descriptions(store, repo_id=repo_id),
        )

    def describe(self, function_name: str, class_id: int | None) -> str | None:
        key = (function_name, class_id)
        if key not in self.descriptions:
            raise NotFound(f"function not found: {function_name} (class_id={class_id})")
        return self.descriptions[key]

    def dependencies(self, function_name: str, class_id: int | None) -> list[CallerKey]:
        return list(self.graph.get((function_name, class_id), []))


def reconstruct_flow(
    store: SqliteStore,
    entry_function_name: str = DEFAULT_ENTRY_FUNCTION,
    repo_id: int | None = None,
    preload: bool = True,
) -> str:
    """Call flow starting at the free function `entry_function_name`. Never raises on lookups."""
    source: DependencySource
    if preload:
        try:
            source = PreloadedDependencySource.load(store, repo_id=repo_id)
        except StoreFailure as exc:
            logger.error(f"Cannot load dependency graph, emitting placeholder flow: {exc}")
            return _format_node(entry_function_name, NO_DESCRIPTION, level=0)
    else:
        source = StoreDependencySource(store=store, repo_id=repo_id)
    return build_flow(source=source, entry_function_name=entry_function_name)


def format_program_flow(
    store: SqliteStore,
    entry_function_name: str = DEFAULT_ENTRY_FUNCTION,
    repo_id: int | None = None,
) -> str:
    """Flow text with the introductory header used in chat prompts."""
    return FLOW_HEADER + reconstruct_flow(store, entry_function_name=entry_function_name, repo_id=repo_id)


def build_flow(source: DependencySource, entry_function_name: str, entry_class_id: int | None = None) -> str:
    visited: set[CallerKey] = set()
    lines: list[str] = []
    stack: list[tuple[str, int | None, int]] = [(entry_function_name, entry_class_id, 0)]
    while stack:
        function_name, class_id, level = stack.pop()
        key = (function_name, class_id)
        if key in visited:
            continue
        visited.add(key)

        description, lookup_ok = _describe(source, function_name, class_id)
        lines.append(_format_node(function_name, description or NO_DESCRIPTION, level=level))
        if not lookup_ok:
            continue

        try:
            dependencies = source.dependencies(function_name, class_id)
        except StoreFailure as exc:
            logger.warning(f"Dependency lookup failed for {function_name}: {exc}")
            continue
        stack.extend((dep_name, dep_class_id, level + 1) for dep_name, dep_class_id in reversed(dependencies))
    return "".join(lines)


def _describe(source: DependencySource, function_name: str, class_id: int | None) -> tuple[str | None, bool]:
    try:
        return source.describe(function_name, class_id), True
    except NotFound:
        # unindexed callees (builtins, imports) still get an edge lookup
        return None, True
    except StoreFailure as exc:
        logger.warning(f"Description lookup failed for {function_name}: {exc}")
        return None, False


def _format_node(function_name: str, description: str, level: int) -> str:
    indent = INDENT * level
    return f"{indent}- Function: `{function_name}`\n{indent}  - Purpose: {description}\n"
