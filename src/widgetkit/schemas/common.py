# widgetkit/schemas/common.py

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Generic, TypeVar

T = TypeVar('T')

class JsonResponse(BaseModel, Generic[T]):
    data: T
    msg: str = "success"
    status: int = 200

class MsgResponse(BaseModel):
    msg: str = "success"

class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True, # 允许通过 snake_case 构造
        extra='ignore'
    )
