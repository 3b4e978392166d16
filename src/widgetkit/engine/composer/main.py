# src/widgetkit/engine/composer/main.py

from typing import Any, List, Union

from .definitions import SchemaRecord, ChannelBinding, ComposedSchema, DEFAULT_MAX_DEPTH
from .resolver import resolve_schema_refs, resolve_schema
from .channels import collect_required_channels
from .exporter import collect_schemas_for_export
from .store import SchemaStore

class SchemaComposerService:
    """
    Schema 组合引擎门面。
    无状态：每次调用都使用自己的 active_path / visited，可被并发调用。
    """

    def __init__(self, store: SchemaStore, max_depth: int = DEFAULT_MAX_DEPTH):
        self.store = store
        self.max_depth = max_depth

    async def resolve(self, root: Union[SchemaRecord, Any]) -> Any:
        if isinstance(root, SchemaRecord):
            return await resolve_schema(root, self.store, self.max_depth)
        return await resolve_schema_refs(root, self.store, 0, self.max_depth)

    async def collect_channels(self, root: Union[SchemaRecord, Any]) -> List[ChannelBinding]:
        return await collect_required_channels(root, self.store, self.max_depth)

    async def compose(self, root: Union[SchemaRecord, Any]) -> ComposedSchema:
        """Resolve the tree and collect its channels in one call."""
        tree = await self.resolve(root)
        channels = await self.collect_channels(root)
        return ComposedSchema(tree=tree, channels=channels)

    async def collect_for_export(self, widget_key: str) -> List[SchemaRecord]:
        return await collect_schemas_for_export(widget_key, self.store)
