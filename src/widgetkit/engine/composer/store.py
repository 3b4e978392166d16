# src/widgetkit/engine/composer/store.py

from typing import Dict, Iterable, Optional, Protocol, Union, Any
from .definitions import SchemaRecord

class SchemaStore(Protocol):
    """
    [依赖倒置] 引擎唯一依赖的外部协作者：按 widget key 查找 schema 记录。
    找不到时返回 None；底层存储不可用时直接抛出异常（唯一向上传播的错误）。
    """
    async def lookup(self, widget_key: str) -> Optional[SchemaRecord]:
        ...

class InMemorySchemaStore:
    """Dict-backed store. Records are stored as immutable snapshots."""

    def __init__(self, records: Optional[Iterable[Union[SchemaRecord, Dict[str, Any]]]] = None):
        self._records: Dict[str, SchemaRecord] = {}
        for record in records or []:
            self.add(record)

    def add(self, record: Union[SchemaRecord, Dict[str, Any]]) -> SchemaRecord:
        if not isinstance(record, SchemaRecord):
            record = SchemaRecord.model_validate(record)
        self._records[record.widgetKey] = record
        return record

    def remove(self, widget_key: str) -> None:
        self._records.pop(widget_key, None)

    async def lookup(self, widget_key: str) -> Optional[SchemaRecord]:
        return self._records.get(widget_key)

    def __contains__(self, widget_key: str) -> bool:
        return widget_key in self._records

    def __len__(self) -> int:
        return len(self._records)
