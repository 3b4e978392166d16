# src/widgetkit/core/config.py
from pathlib import Path
from dotenv import load_dotenv
load_dotenv(".env")
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import Literal

PROJECT_ROOT = Path(__file__).resolve().parents[3]

class Settings(BaseSettings):
    # model_config 会自动加载 .env 文件
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    # 应用配置
    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 8000
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # --- Database ---
    # 生产可用 postgresql+asyncpg://... (pip install widgetkit[postgres])
    DATABASE_URL: str = "sqlite+aiosqlite:///./widgetkit.db"
    DATABASE_URL_TEST: str = "sqlite+aiosqlite:///:memory:"
    DB_ECHO: bool = False

    # --- Schema composition ---
    SCHEMA_RESOLVE_MAX_DEPTH: int = Field(10, ge=0, description="Maximum expansion depth when resolving nested schema references.")

    # --- Default schemas ---
    DEFAULT_SCHEMAS_DIR: Path = Field(
        PROJECT_ROOT / "default_schemas",
        description="Directory holding <widget_key>.json default schema trees."
    )
    LOAD_DEFAULT_SCHEMAS: bool = True
    # 通道 key 的网络前缀 (testnet / mainnet)
    NETWORK_ID: str = "testnet"

    # CORS
    CORS_ORIGINS: list[str] = ["*"]

    @field_validator("NETWORK_ID")
    @classmethod
    def _strip_network(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("NETWORK_ID must not be empty")
        return v

settings = Settings()
