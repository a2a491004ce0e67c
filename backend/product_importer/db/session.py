# Engine/Session 工厂 + FastAPI 依赖

from __future__ import annotations
from contextlib import contextmanager
from typing import Any, Dict, Generator, Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from product_importer.core.config import settings


def _engine_kwargs(url: str) -> Dict[str, Any]:
    if url.startswith("sqlite"):
        # sqlite 不支持连接池参数；FastAPI 线程池里复用连接需要关掉同线程检查
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": 10,          # 常驻连接
        "max_overflow": 20,       # 高峰期额外连接
        "pool_pre_ping": True,    # 连接失效探测
        "pool_recycle": 1800,     # 秒；半小时回收一次
    }


# ---- Engine ----
engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DATABASE_ECHO,
    future=True,
    **_engine_kwargs(settings.DATABASE_URL),
)


# ---- Session Factory ----
# 注意：autocommit=False, autoflush=False 更易控事务与 flush 时机
SessionLocal: sessionmaker[Session] = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,  # 提交后对象仍可用（减少再次查询）
    class_=Session,
    future=True,
)


'''
FastAPI 依赖：为每个请求提供独立会话
用法：
from product_importer.db.session import get_db
def endpoint(db: Session = Depends(get_db)): ...
'''
def get_db() -> Generator[Session, None, None]:
    db: Session = SessionLocal()
    try:
        yield db    # 导入器按行 commit/rollback；此处不做隐式提交
    finally:
        db.close()  # 归还连接到连接池


# ---- 脚本里的简便上下文管理器（非 FastAPI 场景）----
@contextmanager
def session_scope() -> Iterator[Session]:

    db: Session = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def dispose_engine() -> None:
    """释放连接池中的所有连接；在 FastAPI 的 shutdown 钩子中调用。"""
    engine.dispose()
