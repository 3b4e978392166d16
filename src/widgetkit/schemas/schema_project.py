# src/widgetkit/schemas/schema_project.py

from datetime import datetime
from pydantic import Field, ConfigDict, field_validator
from typing import List, Dict, Any, Optional, Literal

from widgetkit.schemas.common import CamelModel
from widgetkit.engine.composer import UiNode, ChannelBinding

# JSON 中树字段名为 "schema"，Python 侧统一叫 tree

class SchemaProjectBase(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    widget_key: str = Field(..., min_length=1, max_length=255, description="Globally unique reference key")
    type: Literal["static", "dynamic"] = "static"
    tree: UiNode = Field(..., alias="schema")
    channel_keys: List[str] = Field(default_factory=list)
    channel_aliases: List[ChannelBinding] = Field(default_factory=list)
    self_channel_key: Optional[str] = None
    nested_schemas: List[str] = Field(default_factory=list)

    @field_validator("widget_key")
    @classmethod
    def _no_blank_key(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("widgetKey must not be blank")
        return v

class SchemaProjectCreate(SchemaProjectBase):
    id: Optional[str] = Field(None, description="Generated when omitted")

class SchemaProjectUpdate(CamelModel):
    """部分更新；widget_key 变更需保证唯一。"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    widget_key: Optional[str] = Field(None, min_length=1, max_length=255)
    type: Optional[Literal["static", "dynamic"]] = None
    tree: Optional[UiNode] = Field(None, alias="schema")
    channel_keys: Optional[List[str]] = None
    channel_aliases: Optional[List[ChannelBinding]] = None
    self_channel_key: Optional[str] = None
    nested_schemas: Optional[List[str]] = None

class SchemaProjectRead(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    widget_key: str
    type: str
    tree: Dict[str, Any] = Field(..., alias="schema")
    channel_keys: List[str] = Field(default_factory=list)
    channel_aliases: List[ChannelBinding] = Field(default_factory=list)
    self_channel_key: Optional[str] = None
    nested_schemas: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("type", mode="before")
    @classmethod
    def _enum_value(cls, v: Any) -> Any:
        return getattr(v, "value", v)

# --- Export / Import ---

class SchemaExportBundle(CamelModel):
    """导出文件格式：根 schema + 全部嵌套依赖，根在最前。"""
    version: str = "1.0"
    exported_at: datetime
    main_schema: str
    schemas: List[SchemaProjectRead]

class SchemaImportResult(CamelModel):
    created: List[str] = Field(default_factory=list)
    updated: List[str] = Field(default_factory=list)

# --- Preview ---

class SchemaPreviewRequest(CamelModel):
    """
    对未保存的树做组合预览（编辑器实时预览）。
    channel_keys / channel_aliases / self_channel_key 作为根 schema 自身的绑定。
    """
    tree: UiNode = Field(..., alias="schema")
    widget_key: Optional[str] = None
    channel_keys: List[str] = Field(default_factory=list)
    channel_aliases: List[ChannelBinding] = Field(default_factory=list)
    self_channel_key: Optional[str] = None
    session: Optional[Dict[str, Any]] = Field(None, description="Channel snapshot keyed by channel key")

class SchemaPreviewResult(CamelModel):
    resolved: bool = True
    tree: Any = Field(None, alias="schema")
    channels: List[ChannelBinding] = Field(default_factory=list)
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
