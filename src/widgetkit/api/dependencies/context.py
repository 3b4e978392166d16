# src/widgetkit/api/dependencies/context.py

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from widgetkit.db.session import get_db
from widgetkit.services.schema_service import SchemaService

async def get_schema_service(db: AsyncSession = Depends(get_db)) -> SchemaService:
    """每个请求一个 SchemaService，绑定该请求的数据库会话。"""
    return SchemaService(db)

SchemaServiceDep = Depends(get_schema_service)
