# 环境变量和配置
# pydantic‑settings 读取 .env = core/config.py

from typing import Dict, List, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# 本机直接跑 uvicorn / scripts 时，才会用到 model_config.env_file=".env"

class Settings(BaseSettings):

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_prefix="",
        case_sensitive=False,
    )

    # ========= project config =========
    PROJECT_NAME: str = "Product Row Importer"
    ENVIRONMENT: str = "dev"
    API_PREFIX: str = "/api/v1"
    LOG_LEVEL: str = Field("INFO", alias="LOG_LEVEL")


    # ========= Database =========
    # 默认本地 sqlite 文件；生产可配 postgresql+psycopg://...
    DATABASE_URL: str = Field(
        default="sqlite:///./product_importer.db",
        alias="DATABASE_URL",
    )
    DATABASE_ECHO: bool = Field(False, alias="DATABASE_ECHO")   # 调试可设为 True


    # ========= Store options =========
    # 全店库存管理开关：关闭时只写 stock_status，不碰 quantity / backorders
    STORE_MANAGE_STOCK: bool = Field(True, alias="STORE_MANAGE_STOCK")
    # 不带时区的促销日期按店铺时区解释
    STORE_TIMEZONE: str = Field("UTC", alias="STORE_TIMEZONE")
    # 库存数量的数值约定：默认整数，开启后保留小数
    STOCK_AMOUNT_AS_FLOAT: bool = Field(False, alias="STOCK_AMOUNT_AS_FLOAT")
    # 额外登记的商品类型（tag -> label）；没有绑定实现类的按 simple 处理
    EXTRA_PRODUCT_TYPES: Dict[str, str] = Field(default_factory=dict, alias="EXTRA_PRODUCT_TYPES")


    # ========= Media / uploads =========
    UPLOADS_BASE_URL: str = Field("http://localhost:8000/uploads", alias="UPLOADS_BASE_URL")
    UPLOADS_DIR: str = Field("./uploads", alias="UPLOADS_DIR")
    IMAGE_FETCH_TIMEOUT: int = Field(30, ge=1, alias="IMAGE_FETCH_TIMEOUT")
    IMAGE_MAX_BYTES: int = Field(10 * 1024 * 1024, ge=1024, alias="IMAGE_MAX_BYTES")
    IMAGE_ALLOWED_MIME_TYPES: List[str] = Field(
        default_factory=lambda: ["image/jpeg", "image/png", "image/gif", "image/webp"],
        alias="IMAGE_ALLOWED_MIME_TYPES",
    )


    @property
    def uploads_base_url(self) -> str:
        return self.UPLOADS_BASE_URL.rstrip("/") + "/"


settings = Settings()  # 只从环境读取（含 .env）
