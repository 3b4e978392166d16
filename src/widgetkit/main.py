import logging
import argparse
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from widgetkit.core.config import settings
from widgetkit.db.session import SessionLocal, init_models, engine
from widgetkit.api.router import router
from widgetkit.services.default_schemas_loader import DefaultSchemasLoader
from widgetkit.services.exceptions import ServiceException, ConfigurationError

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- 数据库表结构 (幂等) ---
    await init_models()

    # --- 首次启动写入内置 schema ---
    if settings.LOAD_DEFAULT_SCHEMAS:
        async with SessionLocal() as db_session:
            async with db_session.begin():
                try:
                    result = await DefaultSchemasLoader(db_session).load_all()
                    if result.failed:
                        logger.warning(f"Default schemas failed to load: {', '.join(result.failed)}")
                except ConfigurationError as e:
                    logger.warning(f"Default schemas not loaded: {e.message}")

    yield

    # --- 清理 ---
    await engine.dispose()

app = FastAPI(
    title="widgetkit",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,  # 设置允许的origins来源
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"])

app.include_router(router)

@app.exception_handler(ServiceException)
async def service_exception_handler(request: Request, exc: ServiceException):
    # 处理所有来自服务层的、可预期的业务逻辑错误
    logger.warning(f"Service error on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"status": status.HTTP_400_BAD_REQUEST, "msg": exc.message, "data": None},
    )

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # 重写 FastAPI 默认的 HTTPException 处理器，以匹配我们的响应格式
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": exc.status_code, "msg": exc.detail, "data": None},
        headers=exc.headers,
    )

@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    # 只处理真正未预料到的服务器内部错误
    logger.exception(f"Unhandled error on {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"status": 500, "msg": "Internal Server Error", "data": None},
    )

def run():
    import uvicorn

    parser = argparse.ArgumentParser(description="widgetkit schema composition service")
    parser.add_argument("--host", default=settings.APP_HOST)
    parser.add_argument("--port", type=int, default=settings.APP_PORT)
    args = parser.parse_args()

    logging.basicConfig(level=settings.LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    uvicorn.run("widgetkit.main:app", host=args.host, port=args.port)

if __name__ == "__main__":
    run()
