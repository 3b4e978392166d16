# src/widgetkit/models/schema_project.py

import enum
from sqlalchemy import Column, String, Text, JSON, Enum, DateTime, func
from widgetkit.db.base import Base

class SchemaType(enum.Enum):
    STATIC = "static"    # 固定通道，开发者预设
    DYNAMIC = "dynamic"  # 通道由使用方在放置时指定

class SchemaProject(Base):
    """
    可复用的声明式 UI 描述 (widget schema)。
    通过全局唯一的 widget_key 被其它 schema 的 schemaRef 节点引用。
    """
    __tablename__ = 'wk_schema_projects'

    id = Column(String(64), primary_key=True, comment="schema-<ts>-<rand>")
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    # 引用键，组合与导出都以它为准
    widget_key = Column(String(255), nullable=False, unique=True, index=True, comment="e.g. widget.tickers.live")
    type = Column(Enum(SchemaType, values_callable=lambda e: [m.value for m in e]), nullable=False, default=SchemaType.STATIC)

    # [核心] UI 树 DSL
    tree = Column("schema", JSON, nullable=False, default=dict, comment="Root UI node")

    # 通道依赖
    channel_keys = Column(JSON, nullable=False, default=list, comment="Bare channel keys")
    channel_aliases = Column(JSON, nullable=False, default=list, comment="[{channelKey, alias}]")
    self_channel_key = Column(String(255), nullable=True, comment="Bound as 'self' where this schema is the root")

    # 显式声明的依赖（用于导出完整性，即使树中没有字面引用）
    nested_schemas = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
