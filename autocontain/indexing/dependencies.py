from __future__ import annotations

from tree_sitter import Node

from autocontain.indexing.syntax import node_text


def extract_call_dependencies(function_node: Node) -> list[str]:
    """
    Distinct names called as plain identifiers anywhere inside `function_node`.

    Member-access (`obj.run()`) and dynamic targets (`handlers[k]()`) are not resolved.
    First-seen order is kept.
    """
    seen: set[str] = set()
    dependencies: list[str] = []
    stack: list[Node] = [function_node]
    while stack:
        node = stack.pop()
        if node.type == "call":
            target = node.child_by_field_name("function")
            if target is not None and target.type == "identifier":
                name = node_text(target)
                if name not in seen:
                    seen.add(name)
                    dependencies.append(name)
        stack.extend(reversed(node.children))
    return dependencies
