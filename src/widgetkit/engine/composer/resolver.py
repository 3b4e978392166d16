# src/widgetkit/engine/composer/resolver.py

import logging
from typing import Any, Dict, List, Optional, Sequence

from .definitions import SchemaRecord, PlaceholderReason, DEFAULT_MAX_DEPTH
from .extractor import as_tree, get_schema_ref
from .store import SchemaStore

logger = logging.getLogger(__name__)

PLACEHOLDER_CLASS = "p-4 bg-red-500/10 border border-red-500/20 rounded"

_PLACEHOLDER_TEXT = {
    PlaceholderReason.MISSING: "Schema not found: {ref}",
    PlaceholderReason.CYCLE: "Circular schema reference: {ref}",
}

def make_placeholder(widget_key: str, reason: PlaceholderReason) -> Dict[str, Any]:
    """替代无法展开的引用节点的无害内容节点（没有 schemaRef，也没有 children）。"""
    return {
        "type": "div",
        "className": PLACEHOLDER_CLASS,
        "text": _PLACEHOLDER_TEXT[reason].format(ref=widget_key),
        "placeholder": {"reason": reason.value, "schemaRef": widget_key},
    }

def is_placeholder(node: Any) -> bool:
    return isinstance(node, dict) and isinstance(node.get("placeholder"), dict)

async def resolve_schema_refs(
    node: Any,
    store: SchemaStore,
    depth: int = 0,
    max_depth: int = DEFAULT_MAX_DEPTH,
    active_path: Optional[Sequence[str]] = None,
) -> Any:
    """
    Replace every reference node in ``node`` with the resolved tree of the
    schema it names and return a new tree.

    ``active_path`` holds the widget keys being expanded on the path from the
    root to this node; a key repeating on it is a cycle. The same key may
    appear any number of times as siblings.

    Dangling references and cycles become placeholders. Only store failures
    propagate.
    """
    path: List[str] = list(active_path or [])
    node = as_tree(node)

    # 深度保护：超过上限直接原样返回，不再展开
    if depth > max_depth:
        if get_schema_ref(node):
            logger.warning(f"Max depth {max_depth} exceeded, leaving '{get_schema_ref(node)}' unexpanded")
        return node

    if not isinstance(node, dict):
        return node

    ref = get_schema_ref(node)
    if ref is None:
        children = node.get("children")
        if not isinstance(children, list):
            return dict(node)
        # 逐个 await：保证文档顺序，也不要求 store 支持并发查询
        resolved_children = []
        for child in children:
            resolved_children.append(await resolve_schema_refs(child, store, depth + 1, max_depth, path))
        return {**node, "children": resolved_children}

    if ref in path:
        logger.warning(f"Circular schema reference detected: {' -> '.join(path + [ref])}")
        return make_placeholder(ref, PlaceholderReason.CYCLE)

    record = await store.lookup(ref)
    if record is None:
        logger.warning(f"Schema not found: {ref}")
        return make_placeholder(ref, PlaceholderReason.MISSING)

    # 引用节点自身的其它字段被丢弃，只保留展开结果
    return await resolve_schema_refs(record.tree, store, depth + 1, max_depth, path + [ref])

async def resolve_schema(
    record: SchemaRecord,
    store: SchemaStore,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Any:
    """Resolve a stored schema's own tree; the schema itself is on the active path."""
    return await resolve_schema_refs(record.tree, store, 0, max_depth, [record.widgetKey])
