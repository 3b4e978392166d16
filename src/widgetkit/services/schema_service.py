# src/widgetkit/services/schema_service.py

import time
import random
import string
import logging
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional, Union
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from widgetkit.core.config import settings
from widgetkit.models import SchemaProject, SchemaType
from widgetkit.dao.schema_project_dao import SchemaProjectDao
from widgetkit.engine.composer import (
    SchemaComposerService, SchemaRecord, ChannelBinding, build_data_context
)
from widgetkit.schemas.schema_project import (
    SchemaProjectCreate, SchemaProjectUpdate, SchemaProjectRead,
    SchemaExportBundle, SchemaImportResult, SchemaPreviewRequest, SchemaPreviewResult
)
from widgetkit.services.exceptions import (
    NotFoundError, DuplicateWidgetKeyError, InvalidSchemaBundleError
)

logger = logging.getLogger(__name__)

EXPORT_FORMAT_VERSION = "1.0"

def generate_schema_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"schema-{int(time.time() * 1000)}-{suffix}"

def generate_widget_key(channel_keys: List[str]) -> str:
    """widget.<first channel key>，没有通道时生成 widget.custom.<毫秒时间戳>。"""
    if not channel_keys:
        return f"widget.custom.{int(time.time() * 1000)}"
    return f"widget.{channel_keys[0]}"

def project_to_record(project: SchemaProject) -> SchemaRecord:
    return SchemaRecord(
        widgetKey=project.widget_key,
        tree=project.tree,
        channelKeys=list(project.channel_keys or []),
        channelAliases=[ChannelBinding.model_validate(a) for a in (project.channel_aliases or [])],
        selfChannelKey=project.self_channel_key,
        nestedSchemas=list(project.nested_schemas or []),
    )

class SchemaService:
    """
    Schema 记录的增删改查，同时作为组合引擎的 SchemaStore 实现。
    每个请求一个实例（绑定一个数据库会话）。
    """

    def __init__(self, db: AsyncSession, max_depth: Optional[int] = None):
        self.db = db
        self.dao = SchemaProjectDao(db)
        self.composer = SchemaComposerService(
            store=self,
            max_depth=settings.SCHEMA_RESOLVE_MAX_DEPTH if max_depth is None else max_depth
        )

    # ==========================================================================
    # 1. SchemaStore 协议
    # ==========================================================================

    async def lookup(self, widget_key: str) -> Optional[SchemaRecord]:
        project = await self.dao.get_by_widget_key(widget_key)
        if project is None:
            return None
        return project_to_record(project)

    # ==========================================================================
    # 2. CRUD
    # ==========================================================================

    async def list_schemas(self) -> List[SchemaProject]:
        return await self.dao.get_all_ordered()

    async def get_schema(self, widget_key: str) -> SchemaProject:
        project = await self.dao.get_by_widget_key(widget_key)
        if not project:
            raise NotFoundError(f"Schema not found: {widget_key}")
        return project

    async def create_schema(self, data: SchemaProjectCreate) -> SchemaProject:
        if await self.dao.get_by_widget_key(data.widget_key):
            raise DuplicateWidgetKeyError(f"Widget key '{data.widget_key}' already exists")

        schema_id = data.id
        if not schema_id or await self.dao.get_by_pk(schema_id):
            schema_id = generate_schema_id()

        project = SchemaProject(
            id=schema_id,
            name=data.name,
            description=data.description,
            widget_key=data.widget_key,
            type=SchemaType(data.type),
            tree=data.tree.to_tree(),
            channel_keys=list(data.channel_keys),
            channel_aliases=[a.model_dump() for a in data.channel_aliases],
            self_channel_key=data.self_channel_key,
            nested_schemas=list(data.nested_schemas),
        )
        await self.dao.add(project)
        logger.info(f"Schema created: {project.widget_key} ({project.id})")
        return project

    async def update_schema(self, widget_key: str, update_data: SchemaProjectUpdate) -> SchemaProject:
        project = await self.get_schema(widget_key)
        data = update_data.model_dump(exclude_unset=True)

        new_key = data.get("widget_key")
        if new_key and new_key != project.widget_key and await self.dao.get_by_widget_key(new_key):
            raise DuplicateWidgetKeyError(f"Widget key '{new_key}' already exists")

        if "tree" in data and update_data.tree is not None:
            data["tree"] = update_data.tree.to_tree()
        if "type" in data and data["type"] is not None:
            data["type"] = SchemaType(data["type"])

        for k, v in data.items():
            if v is None and k not in ("description", "self_channel_key"):
                continue
            setattr(project, k, v)

        await self.db.flush()
        await self.db.refresh(project)
        return project

    async def delete_schema(self, widget_key: str) -> None:
        project = await self.get_schema(widget_key)
        await self.dao.remove(project)
        logger.info(f"Schema deleted: {widget_key}")

    async def find_by_channel_key(self, channel_key: str) -> Optional[SchemaProject]:
        return await self.dao.find_by_channel_key(channel_key)

    # ==========================================================================
    # 3. 组合预览 (Composition)
    # ==========================================================================

    async def preview_schema(self, widget_key: str, session: Optional[Dict[str, Any]] = None) -> SchemaPreviewResult:
        project = await self.get_schema(widget_key)
        return await self._compose_preview(project_to_record(project), session)

    async def preview_tree(self, request: SchemaPreviewRequest) -> SchemaPreviewResult:
        """编辑器对未保存的树做实时预览。"""
        record = SchemaRecord(
            widgetKey=request.widget_key or "",
            tree=request.tree.to_tree(),
            channelKeys=request.channel_keys,
            channelAliases=request.channel_aliases,
            selfChannelKey=request.self_channel_key,
        )
        return await self._compose_preview(record, request.session)

    async def _compose_preview(self, record: SchemaRecord, session: Optional[Dict[str, Any]]) -> SchemaPreviewResult:
        try:
            composed = await self.composer.compose(record)
        except SQLAlchemyError as e:
            # 存储不可用：退化为展示未解析的原始树，而不是让渲染路径崩溃
            logger.error(f"Schema resolution unavailable for '{record.widgetKey}': {e}", exc_info=True)
            return SchemaPreviewResult(
                resolved=False,
                tree=record.tree,
                channels=[],
                error=f"Resolution unavailable: {e.__class__.__name__}",
            )

        data = build_data_context(composed.channels, session) if session is not None else None
        return SchemaPreviewResult(resolved=True, tree=composed.tree, channels=composed.channels, data=data)

    # ==========================================================================
    # 4. 导入导出 (Export / Import)
    # ==========================================================================

    async def export_bundle(self, widget_key: str) -> SchemaExportBundle:
        await self.get_schema(widget_key)
        records = await self.composer.collect_for_export(widget_key)

        keys = [r.widgetKey for r in records]
        projects = await self.dao.get_list(where=[SchemaProject.widget_key.in_(keys)])
        by_key = {p.widget_key: p for p in projects}

        schemas = [SchemaProjectRead.model_validate(by_key[k]) for k in keys if k in by_key]
        logger.info(f"Exported {len(schemas)} schemas for {widget_key} ({len(schemas) - 1} nested dependencies)")
        return SchemaExportBundle(
            version=EXPORT_FORMAT_VERSION,
            exported_at=datetime.now(timezone.utc),
            main_schema=widget_key,
            schemas=schemas,
        )

    async def import_bundle(self, payload: Union[Dict[str, Any], Any]) -> SchemaImportResult:
        """
        Accepts an export bundle ({version, schemas: [...]}) or a legacy single
        schema object. Schemas are upserted by widget key.
        """
        items = self._unpack_import_payload(payload)

        try:
            validated = [SchemaProjectCreate.model_validate(item) for item in items]
        except ValidationError as e:
            raise InvalidSchemaBundleError(f"Invalid schema structure: {e}")

        result = SchemaImportResult()
        for data in validated:
            existing = await self.dao.get_by_widget_key(data.widget_key)
            if existing is None:
                await self.create_schema(data)
                result.created.append(data.widget_key)
            else:
                update = SchemaProjectUpdate.model_validate(
                    data.model_dump(exclude={"id"}, by_alias=True)
                )
                await self.update_schema(data.widget_key, update)
                result.updated.append(data.widget_key)
        return result

    @staticmethod
    def _unpack_import_payload(payload: Any) -> List[Dict[str, Any]]:
        if isinstance(payload, dict):
            schemas = payload.get("schemas")
            if isinstance(schemas, list):
                return schemas
            # 旧版单 schema 格式
            if "name" in payload and "schema" in payload:
                return [payload]
        raise InvalidSchemaBundleError("Invalid schema format")
