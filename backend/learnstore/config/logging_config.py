"""
structlog 配置
"""
import logging
import sys
import structlog
from structlog.types import EventDict

from learnstore.config.settings import settings


REPOSITORY_LOGGER_NAME = "learnstore.repositories"


def add_app_context(logger, method_name: str, event_dict: EventDict) -> EventDict:
    """添加应用全局上下文"""
    event_dict["environment"] = settings.ENVIRONMENT
    event_dict["service"] = "learnstore"
    return event_dict


def _resolve_level(name: str | None, fallback: int) -> int:
    """日志级别名转数值，未设置或无法识别时返回 fallback"""
    if not name:
        return fallback
    return logging.getLevelNamesMapping().get(name.strip().upper(), fallback)


def setup_logging(json_logs: bool = True):
    """
    初始化日志系统（进程启动时调用一次）

    - 全局级别取 LOG_LEVEL，DEBUG 模式下为 DEBUG
    - Repository logger 单独取 REPOSITORY_LOG_LEVEL
    - SQLAlchemy 自身的日志压到 WARNING，慢查询由 session 模块单独记录
    - json_logs=False 时使用控制台渲染（本地调试）
    """
    root_level = logging.DEBUG if settings.DEBUG else _resolve_level(settings.LOG_LEVEL, logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=root_level)
    logging.getLogger().setLevel(root_level)
    logging.getLogger(REPOSITORY_LOGGER_NAME).setLevel(
        _resolve_level(settings.REPOSITORY_LOG_LEVEL, root_level)
    )

    for name in ("sqlalchemy.engine", "sqlalchemy.pool", "sqlalchemy.dialects", "sqlalchemy.orm"):
        logging.getLogger(name).setLevel(logging.WARNING)

    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            add_app_context,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_repo_logger(repo_name: str, base_logger=None):
    """
    获取绑定了仓储名称的 logger

    Args:
        repo_name: 仓储名称（如 "CourseRepository"）
        base_logger: 可选的基础 logger，未提供时使用仓储默认 logger

    Returns:
        绑定了 repo=<repo_name> 的 structlog logger
    """
    base = base_logger if base_logger is not None else structlog.get_logger(REPOSITORY_LOGGER_NAME)
    return base.bind(repo=repo_name)
