# src/widgetkit/engine/composer/extractor.py

from typing import Any, List, Optional, Set
from .definitions import UiNode

def as_tree(node: Any) -> Any:
    """UiNode 实例先转为 JSON 结构，其它值原样返回。"""
    if isinstance(node, UiNode):
        return node.to_tree()
    return node

def get_schema_ref(node: Any) -> Optional[str]:
    if isinstance(node, dict):
        ref = node.get("schemaRef")
        if isinstance(ref, str) and ref:
            return ref
    return None

def _walk_refs(node: Any, found: List[str], seen: Set[str]) -> None:
    node = as_tree(node)
    if not isinstance(node, dict):
        return

    ref = get_schema_ref(node)
    if ref and ref not in seen:
        seen.add(ref)
        found.append(ref)

    children = node.get("children")
    if isinstance(children, list):
        for child in children:
            _walk_refs(child, found, seen)

def extract_schema_refs_ordered(node: Any) -> List[str]:
    """Distinct referenced widget keys in document (discovery) order."""
    found: List[str] = []
    _walk_refs(node, found, set())
    return found

def extract_schema_refs(node: Any, refs: Optional[Set[str]] = None) -> Set[str]:
    """
    Collect every widget key referenced literally inside one tree.

    Does not follow references into other schemas. Values that are not
    node-shaped contribute nothing.
    """
    if refs is None:
        refs = set()
    refs.update(extract_schema_refs_ordered(node))
    return refs
