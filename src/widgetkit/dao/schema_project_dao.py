# src/widgetkit/dao/schema_project_dao.py

from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, List
from widgetkit.dao.base_dao import BaseDao
from widgetkit.models import SchemaProject

class SchemaProjectDao(BaseDao[SchemaProject]):
    def __init__(self, db_session: AsyncSession):
        super().__init__(SchemaProject, db_session)

    async def get_by_widget_key(self, widget_key: str) -> Optional[SchemaProject]:
        return await self.get_one(where={"widget_key": widget_key})

    async def get_all_ordered(self) -> List[SchemaProject]:
        return await self.get_list(order=[SchemaProject.updated_at.desc(), SchemaProject.id])

    async def find_by_channel_key(self, channel_key: str) -> Optional[SchemaProject]:
        """
        返回第一个在 channel_keys 中声明了该通道的 schema。
        JSON 列的包含查询各数据库方言不一致，这里在内存中过滤。
        """
        for project in await self.get_list(order=[SchemaProject.created_at, SchemaProject.id]):
            if channel_key in (project.channel_keys or []):
                return project
        return None
