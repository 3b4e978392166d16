# src/widgetkit/engine/composer/definitions.py

from __future__ import annotations
from enum import Enum
from typing import Dict, List, Optional, Any
from pydantic import BaseModel, Field, ConfigDict

# 保留别名：只属于最外层 schema 的主数据源
SELF_ALIAS = "self"
DEFAULT_MAX_DEPTH = 10

class PlaceholderReason(str, Enum):
    MISSING = "missing"
    CYCLE = "cycle"

# ============================================================================
# 1. UI 树节点 (UI Node)
# ============================================================================

class UiNode(BaseModel):
    """
    声明式 UI 树的单个节点。
    引擎只关心 type / children / schemaRef，其余字段 (className, style, text,
    format, condition, iterate, events ...) 原样透传。
    """
    type: str = Field("div", description="Element type tag, e.g. 'div', 'text', 'grid'")

    children: Optional[List[UiNode]] = None

    # 指向另一个已存储 schema 的 widget key；设置后该节点即为引用节点
    schemaRef: Optional[str] = Field(None, description="Widget key of the schema this node stands in for")

    model_config = ConfigDict(extra='allow')

    def to_tree(self) -> Dict[str, Any]:
        """
        转为 JSON 结构。只去掉未设置的 children / schemaRef，
        透传字段即使值为 None 也原样保留。
        """
        return _drop_unset_structure(self.model_dump())

UiNode.model_rebuild()

_STRUCTURAL_FIELDS = ("children", "schemaRef")

def _drop_unset_structure(node: Any) -> Any:
    if not isinstance(node, dict):
        return node
    node = {k: v for k, v in node.items() if not (k in _STRUCTURAL_FIELDS and v is None)}
    if isinstance(node.get("children"), list):
        node["children"] = [_drop_unset_structure(child) for child in node["children"]]
    return node

# ============================================================================
# 2. 通道绑定与 Schema 记录 (Channel Binding & Schema Record)
# ============================================================================

class ChannelBinding(BaseModel):
    """A live data channel exposed under a local alias."""
    channelKey: str = Field(..., min_length=1)
    alias: str = Field(..., min_length=1)

    model_config = ConfigDict(frozen=True)

class SchemaRecord(BaseModel):
    """
    引擎视角下的只读 schema 快照。
    一次解析过程中记录被视为不可变，引擎从不修改它。
    """
    widgetKey: str
    tree: Any = Field(None, alias="schema", description="Root UI node (JSON-like)")
    channelKeys: List[str] = Field(default_factory=list)
    channelAliases: List[ChannelBinding] = Field(default_factory=list)
    selfChannelKey: Optional[str] = None
    nestedSchemas: List[str] = Field(default_factory=list)

    # 持久化/导出格式里树字段名为 "schema"
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra='ignore')

    def own_bindings(self) -> List[ChannelBinding]:
        """
        The bindings this schema declares for itself, in declaration order:
        explicit aliases first, then bare channel keys not covered by an alias
        (exposed under the key itself). The self binding is not included.
        """
        bindings = list(self.channelAliases)
        aliased = {b.channelKey for b in bindings}
        for key in self.channelKeys:
            if key and key not in aliased:
                bindings.append(ChannelBinding(channelKey=key, alias=key))
                aliased.add(key)
        return bindings

class ComposedSchema(BaseModel):
    """resolve + collect 的联合结果，渲染层一次性消费。"""
    tree: Any
    channels: List[ChannelBinding] = Field(default_factory=list)
