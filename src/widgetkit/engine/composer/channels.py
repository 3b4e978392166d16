# src/widgetkit/engine/composer/channels.py

import re
import logging
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Sequence, Union, Iterable

from .definitions import SchemaRecord, ChannelBinding, SELF_ALIAS, DEFAULT_MAX_DEPTH
from .extractor import as_tree, get_schema_ref
from .store import SchemaStore

logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"[^A-Za-z0-9_]")

def slugify_widget_key(widget_key: str) -> str:
    return _SLUG_RE.sub("_", widget_key)

class ChannelContribution(NamedTuple):
    """
    A binding as declared by one schema, before alias hygiene.
    owner is None for the root schema, otherwise the nested widget key.
    """
    channelKey: str
    alias: str
    owner: Optional[str] = None

# ============================================================================
# 1. 别名登记 (Alias hygiene)
# ============================================================================

class AliasRegistry:
    """
    把各 schema 的绑定合并成一张扁平、别名唯一的列表。

    - 完全相同的 (channelKey, alias) 只保留一次；
    - 嵌套 schema 的 self 一律改名为 ``self__<widget key>``；
    - 嵌套别名若已被其它通道占用，改名为 ``<alias>__<widget key>``；
    - 仍冲突时追加数字后缀 ``_2``, ``_3`` ...
    """

    def __init__(self):
        self._claims: Dict[str, str] = {}
        self._bindings: List[ChannelBinding] = []

    @property
    def bindings(self) -> List[ChannelBinding]:
        return list(self._bindings)

    def claim(self, channel_key: str, alias: str, owner: Optional[str] = None) -> Optional[ChannelBinding]:
        """Register one binding; returns None when the same pair is already present."""
        if owner is not None:
            if alias == SELF_ALIAS:
                alias = f"{SELF_ALIAS}__{slugify_widget_key(owner)}"
            elif not self._is_free(alias, channel_key):
                alias = f"{alias}__{slugify_widget_key(owner)}"

        final_alias = self._free_alias(alias, channel_key)
        if final_alias in self._claims:
            return None

        self._claims[final_alias] = channel_key
        binding = ChannelBinding(channelKey=channel_key, alias=final_alias)
        self._bindings.append(binding)
        return binding

    def merge(self, contributions: Iterable[ChannelContribution]) -> List[ChannelBinding]:
        for item in contributions:
            self.claim(item.channelKey, item.alias, item.owner)
        return self.bindings

    def _is_free(self, alias: str, channel_key: str) -> bool:
        return self._claims.get(alias, channel_key) == channel_key

    def _free_alias(self, alias: str, channel_key: str) -> str:
        candidate, n = alias, 2
        while not self._is_free(candidate, channel_key):
            candidate = f"{alias}_{n}"
            n += 1
        return candidate

# ============================================================================
# 2. 收集阶段 (Gather)
# ============================================================================

def _own_contributions(record: SchemaRecord, owner: Optional[str]) -> List[ChannelContribution]:
    items = [ChannelContribution(b.channelKey, b.alias, owner) for b in record.own_bindings()]
    if record.selfChannelKey:
        self_item = ChannelContribution(record.selfChannelKey, SELF_ALIAS, owner)
        # 根 schema 的 self 最先登记，保证它独占保留别名
        if owner is None:
            items.insert(0, self_item)
        else:
            items.append(self_item)
    return items

async def gather_channel_contributions(
    node: Any,
    store: SchemaStore,
    depth: int = 0,
    max_depth: int = DEFAULT_MAX_DEPTH,
    active_path: Optional[Sequence[str]] = None,
) -> List[ChannelContribution]:
    """
    Walk the reference graph below ``node`` and return the raw bindings of every
    referenced schema in pre-order: a schema's own bindings before those of the
    schemas it references, siblings in document order.

    Same depth/cycle/dangling policy as the tree resolver.
    """
    path = list(active_path or [])
    node = as_tree(node)
    if depth > max_depth or not isinstance(node, dict):
        return []

    ref = get_schema_ref(node)
    if ref is None:
        children = node.get("children")
        if not isinstance(children, list):
            return []
        collected: List[ChannelContribution] = []
        for child in children:
            collected.extend(await gather_channel_contributions(child, store, depth + 1, max_depth, path))
        return collected

    if ref in path:
        logger.debug(f"Skipping channels of circular reference '{ref}'")
        return []

    record = await store.lookup(ref)
    if record is None:
        logger.warning(f"Schema not found while collecting channels: {ref}")
        return []

    nested = await gather_channel_contributions(record.tree, store, depth + 1, max_depth, path + [ref])
    return _own_contributions(record, owner=ref) + nested

# ============================================================================
# 3. 对外入口 (Entry points)
# ============================================================================

async def collect_required_channels(
    root: Union[SchemaRecord, Any],
    store: SchemaStore,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> List[ChannelBinding]:
    """
    Return the flattened, alias-unique channel bindings a composed tree needs.

    ``root`` is either a SchemaRecord (its own bindings and self binding come
    first) or a bare tree, in which case only referenced schemas contribute.
    """
    if isinstance(root, SchemaRecord):
        contributions = _own_contributions(root, owner=None)
        contributions += await gather_channel_contributions(
            root.tree, store, 0, max_depth, [root.widgetKey]
        )
    else:
        contributions = await gather_channel_contributions(root, store, 0, max_depth, [])

    return AliasRegistry().merge(contributions)

def build_data_context(
    bindings: Iterable[ChannelBinding],
    session: Mapping[str, Any],
) -> Dict[str, Any]:
    """
    Build the flat data bag for rendering from a session snapshot keyed by
    channel key. Channels without data are left out; the first binding of an
    alias wins.
    """
    context: Dict[str, Any] = {}
    for binding in bindings:
        if binding.alias in context:
            continue
        data = session.get(binding.channelKey)
        if data is None:
            continue
        context[binding.alias] = data
    return context
