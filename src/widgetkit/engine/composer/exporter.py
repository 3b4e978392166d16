# src/widgetkit/engine/composer/exporter.py

import logging
from typing import List, Optional, Set

from .definitions import SchemaRecord
from .extractor import extract_schema_refs_ordered
from .store import SchemaStore

logger = logging.getLogger(__name__)

async def collect_schemas_for_export(
    widget_key: str,
    store: SchemaStore,
    visited: Optional[Set[str]] = None,
) -> List[SchemaRecord]:
    """
    Gather every distinct schema reachable from ``widget_key``, root first.

    Dependencies come from both the declared ``nestedSchemas`` list and the
    references found in the tree, in document order. Unlike the resolver,
    visited tracking is global: each widget key is exported at most once.
    """
    if visited is None:
        visited = set()

    if widget_key in visited:
        return []
    visited.add(widget_key)

    record = await store.lookup(widget_key)
    if record is None:
        logger.warning(f"Skipping missing schema during export: {widget_key}")
        return []

    # 1. 显式声明的 nestedSchemas（保持声明顺序）
    refs_to_process: List[str] = []
    for key in record.nestedSchemas:
        if key and key not in refs_to_process:
            refs_to_process.append(key)

    # 2. 树中字面出现的 schemaRef（文档顺序）
    for key in extract_schema_refs_ordered(record.tree):
        if key not in refs_to_process:
            refs_to_process.append(key)

    result: List[SchemaRecord] = [record]
    for nested_key in refs_to_process:
        result.extend(await collect_schemas_for_export(nested_key, store, visited))

    return result
