import logging
import sys
from typing import Optional

from product_importer.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DEFAULT_LEVEL = (settings.LOG_LEVEL or "INFO").upper()

# 第三方库默认只留 WARNING；逐行导入时 urllib3 的连接日志会淹没行结果
_NOISY_LOGGERS = ("urllib3", "requests", "sqlalchemy.engine")


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Ensure the root logger has a stdout handler and the desired level, then quiet
    the HTTP / SQL libraries so per-row import outcomes stay readable.
    Uvicorn configures handlers before importing our code, scripts usually do not.
    """
    resolved_level = (level or DEFAULT_LEVEL).upper()
    root_logger = logging.getLogger()

    if not root_logger.handlers:
        logging.basicConfig(
            level=resolved_level,
            format=LOG_FORMAT,
            handlers=[logging.StreamHandler(sys.stdout)],
        )
    else:
        root_logger.setLevel(resolved_level)

    for name in _NOISY_LOGGERS:
        if name == "sqlalchemy.engine" and settings.DATABASE_ECHO:
            continue   # echo 打开时保留 SQL 输出
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.captureWarnings(True)
    return logging.getLogger("product_importer")
