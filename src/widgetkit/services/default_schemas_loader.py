# src/widgetkit/services/default_schemas_loader.py

import re
import json
import logging
from pathlib import Path
from typing import List, Optional, Literal
from pydantic import Field, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from widgetkit.core.config import settings
from widgetkit.engine.composer import ChannelBinding
from widgetkit.schemas.common import CamelModel
from widgetkit.schemas.schema_project import SchemaProjectCreate, SchemaProjectUpdate
from widgetkit.services.schema_service import SchemaService
from widgetkit.services.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

MANIFEST_FILE = "manifest.json"
_NETWORK_PREFIX_RE = re.compile(r"^(testnet|mainnet)\.")

class DefaultSchemaMeta(CamelModel):
    """manifest.json 中的一项；树本身在 <widget_key>.json 中。"""
    file: str = Field(..., pattern=r"^[^/\\]+\.json$")
    name: str
    description: Optional[str] = None
    type: Literal["static", "dynamic"] = "static"
    channel_keys: List[str] = Field(default_factory=list)
    channel_aliases: List[ChannelBinding] = Field(default_factory=list)
    self_channel_key: Optional[str] = None
    nested_schemas: List[str] = Field(default_factory=list)

    @property
    def widget_key(self) -> str:
        return self.file[: -len(".json")]

class DefaultSchemasLoadResult(CamelModel):
    """各列表为 widget key。"""
    loaded: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)

def apply_network(channel_key: str, network_id: str) -> str:
    """把通道 key 的 testnet./mainnet. 前缀替换为当前网络。"""
    return _NETWORK_PREFIX_RE.sub(f"{network_id}.", channel_key)

class DefaultSchemasLoader:
    """
    首次启动时把内置 schema 写入存储。
    load_all 跳过已存在的 widget key，可重复执行；reload_all 强制按文件覆盖。
    单个树文件损坏只记录到 failed，不影响其余条目。
    """

    def __init__(self, db: AsyncSession, schemas_dir: Optional[Path] = None, network_id: Optional[str] = None):
        self.service = SchemaService(db)
        self.schemas_dir = Path(schemas_dir or settings.DEFAULT_SCHEMAS_DIR)
        self.network_id = network_id or settings.NETWORK_ID

    def load_manifest(self) -> List[DefaultSchemaMeta]:
        path = self.schemas_dir / MANIFEST_FILE
        if not path.exists():
            raise ConfigurationError(f"Default schema manifest not found: {path}")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return [DefaultSchemaMeta.model_validate(item) for item in data]
        except (json.JSONDecodeError, ValidationError) as e:
            raise ConfigurationError(f"Invalid default schema manifest {path}: {e}")

    def build_create(self, meta: DefaultSchemaMeta) -> Optional[SchemaProjectCreate]:
        """
        读取并校验单个树文件。文件不存在返回 None；
        JSON 或结构非法时抛出 JSONDecodeError / ValidationError。
        """
        path = self.schemas_dir / meta.file
        if not path.exists():
            logger.warning(f"Default schema file missing: {path}")
            return None

        tree = json.loads(path.read_text(encoding="utf-8"))
        return SchemaProjectCreate.model_validate({
            "name": meta.name,
            "description": meta.description,
            "widgetKey": meta.widget_key,
            "type": meta.type,
            "schema": tree,
            "channelKeys": [apply_network(k, self.network_id) for k in meta.channel_keys],
            "channelAliases": [
                {"channelKey": apply_network(a.channelKey, self.network_id), "alias": a.alias}
                for a in meta.channel_aliases
            ],
            "selfChannelKey": apply_network(meta.self_channel_key, self.network_id) if meta.self_channel_key else None,
            "nestedSchemas": meta.nested_schemas,
        })

    def _try_build(self, meta: DefaultSchemaMeta) -> Optional[SchemaProjectCreate]:
        # 单个文件损坏只影响它自己
        try:
            return self.build_create(meta)
        except (json.JSONDecodeError, ValidationError):
            logger.error(f"Invalid default schema file {meta.file}, skipped", exc_info=True)
            return None

    async def load_all(self) -> DefaultSchemasLoadResult:
        """Creates default schemas whose widget keys are not stored yet."""
        result = DefaultSchemasLoadResult()
        if not self.schemas_dir.is_dir():
            logger.warning(f"Default schemas directory not found: {self.schemas_dir}")
            return result

        for meta in self.load_manifest():
            if await self.service.dao.get_by_widget_key(meta.widget_key):
                logger.debug(f"Default schema already present: {meta.widget_key}")
                result.skipped.append(meta.widget_key)
                continue

            data = self._try_build(meta)
            if data is None:
                result.failed.append(meta.widget_key)
                continue

            await self.service.create_schema(data)
            result.loaded.append(meta.widget_key)

        logger.info(
            f"Default schemas: {len(result.loaded)} loaded, "
            f"{len(result.skipped)} skipped, {len(result.failed)} failed"
        )
        return result

    async def reload_all(self) -> DefaultSchemasLoadResult:
        """
        Force-reload every default schema from disk. Stored schemas are
        overwritten in place and keep their id and created_at.
        """
        result = DefaultSchemasLoadResult()
        if not self.schemas_dir.is_dir():
            logger.warning(f"Default schemas directory not found: {self.schemas_dir}")
            return result

        for meta in self.load_manifest():
            data = self._try_build(meta)
            if data is None:
                result.failed.append(meta.widget_key)
                continue

            if await self.service.dao.get_by_widget_key(meta.widget_key):
                update = SchemaProjectUpdate.model_validate(data.model_dump(exclude={"id"}, by_alias=True))
                await self.service.update_schema(meta.widget_key, update)
            else:
                await self.service.create_schema(data)
            result.loaded.append(meta.widget_key)

        logger.info(f"Default schemas reloaded: {len(result.loaded)} loaded, {len(result.failed)} failed")
        return result
