# src/widgetkit/api/v1/schemas.py

from fastapi import APIRouter, HTTPException, Body, status
from typing import List, Dict, Any, Optional
from widgetkit.api.dependencies.context import SchemaServiceDep
from widgetkit.schemas.common import JsonResponse, MsgResponse
from widgetkit.schemas.schema_project import (
    SchemaProjectCreate, SchemaProjectUpdate, SchemaProjectRead,
    SchemaExportBundle, SchemaImportResult, SchemaPreviewRequest, SchemaPreviewResult
)
from widgetkit.services.schema_service import SchemaService
from widgetkit.services.exceptions import (
    NotFoundError, DuplicateWidgetKeyError, InvalidSchemaBundleError
)

router = APIRouter()

@router.get("", response_model=JsonResponse[List[SchemaProjectRead]])
async def list_schemas(service: SchemaService = SchemaServiceDep):
    projects = await service.list_schemas()
    return JsonResponse(data=[SchemaProjectRead.model_validate(p) for p in projects])

@router.post("", response_model=JsonResponse[SchemaProjectRead], status_code=status.HTTP_201_CREATED)
async def create_schema(data: SchemaProjectCreate, service: SchemaService = SchemaServiceDep):
    try:
        project = await service.create_schema(data)
        return JsonResponse(data=SchemaProjectRead.model_validate(project))
    except DuplicateWidgetKeyError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

@router.post("/preview", response_model=JsonResponse[SchemaPreviewResult])
async def preview_tree(request: SchemaPreviewRequest, service: SchemaService = SchemaServiceDep):
    """[Editor] 对未保存的树做组合预览"""
    return JsonResponse(data=await service.preview_tree(request))

@router.post("/import", response_model=JsonResponse[SchemaImportResult])
async def import_schemas(payload: Dict[str, Any] = Body(...), service: SchemaService = SchemaServiceDep):
    """导入导出包或旧版单 schema，按 widget key 覆盖"""
    try:
        return JsonResponse(data=await service.import_bundle(payload))
    except InvalidSchemaBundleError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

@router.get("/by-channel", response_model=JsonResponse[Optional[SchemaProjectRead]])
async def find_by_channel(channel_key: str, service: SchemaService = SchemaServiceDep):
    project = await service.find_by_channel_key(channel_key)
    return JsonResponse(data=SchemaProjectRead.model_validate(project) if project else None)

# 含 "/" 的 widget key 使用 path 转换器；带后缀的路由必须先于裸 key 路由注册

@router.post("/{widget_key:path}/preview", response_model=JsonResponse[SchemaPreviewResult])
async def preview_schema(
    widget_key: str,
    session: Optional[Dict[str, Any]] = Body(None, embed=True),
    service: SchemaService = SchemaServiceDep
):
    """解析嵌套引用并收集通道；可选传入通道快照以构建数据上下文"""
    try:
        return JsonResponse(data=await service.preview_schema(widget_key, session))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

@router.get("/{widget_key:path}/export", response_model=JsonResponse[SchemaExportBundle])
async def export_schema(widget_key: str, service: SchemaService = SchemaServiceDep):
    try:
        return JsonResponse(data=await service.export_bundle(widget_key))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

@router.get("/{widget_key:path}", response_model=JsonResponse[SchemaProjectRead])
async def get_schema(widget_key: str, service: SchemaService = SchemaServiceDep):
    try:
        project = await service.get_schema(widget_key)
        return JsonResponse(data=SchemaProjectRead.model_validate(project))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

@router.put("/{widget_key:path}", response_model=JsonResponse[SchemaProjectRead])
async def update_schema(widget_key: str, update_data: SchemaProjectUpdate, service: SchemaService = SchemaServiceDep):
    try:
        project = await service.update_schema(widget_key, update_data)
        return JsonResponse(data=SchemaProjectRead.model_validate(project))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except DuplicateWidgetKeyError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

@router.delete("/{widget_key:path}", response_model=MsgResponse)
async def delete_schema(widget_key: str, service: SchemaService = SchemaServiceDep):
    try:
        await service.delete_schema(widget_key)
        return MsgResponse(msg="Schema deleted")
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
