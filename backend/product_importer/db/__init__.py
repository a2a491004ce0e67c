# 导出入口，给脚本/临时建表用

from .session import engine, SessionLocal, get_db, dispose_engine
from product_importer.db.model import *  # 确保把所有模型加载进 Base.metadata
from .base import Base


"""
    空库快速建表：
        python -c "from product_importer.db import create_all; create_all()"
    生产环境请用外部迁移工具管理表结构
"""
def create_all() -> None:
    Base.metadata.create_all(bind=engine)
