"""
数据库会话管理（SQLModel + AsyncPG）

- 进程级共享的引擎与会话工厂（连接池）
- 连接健康检查（pool_pre_ping）与连接回收
- 慢查询追踪（超过阈值记录 warning 日志）

Repository 在 DBContext 未携带事务时，从 get_session_maker() 返回的工厂打开短会话。
"""
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession, AsyncEngine, create_async_engine, async_sessionmaker
from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlmodel import SQLModel
import structlog
import time

from learnstore.config.settings import settings

logger = structlog.get_logger()

_engine: Optional[AsyncEngine] = None
_session_maker: Optional[async_sessionmaker] = None


def _create_engine(database_url: str) -> AsyncEngine:
    """
    创建数据库引擎（内部函数）

    SQLite（测试/本地）不支持连接池参数，只有其他方言才应用池配置。
    """
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        return create_async_engine(database_url, echo=False)

    return create_async_engine(
        database_url,
        echo=False,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_use_lifo=True,
    )


def attach_slow_query_tracking(engine: AsyncEngine, threshold_ms: Optional[int] = None) -> None:
    """
    为引擎注册慢查询追踪监听器

    Args:
        engine: 异步引擎
        threshold_ms: 慢查询阈值（毫秒），默认取 settings.SLOW_QUERY_THRESHOLD_MS
    """
    threshold = (threshold_ms if threshold_ms is not None else settings.SLOW_QUERY_THRESHOLD_MS) / 1000.0

    @event.listens_for(engine.sync_engine, "before_cursor_execute")
    def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        """SQL 执行前记录时间"""
        conn.info.setdefault("query_start_time", []).append(time.perf_counter())

    @event.listens_for(engine.sync_engine, "after_cursor_execute")
    def after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        """SQL 执行后计算耗时并记录慢查询"""
        starts = conn.info.get("query_start_time")
        if not starts:
            return
        duration = time.perf_counter() - starts.pop()
        if duration > threshold:
            logger.warning(
                "slow_query_detected",
                duration_ms=round(duration * 1000, 2),
                threshold_ms=round(threshold * 1000, 2),
                statement=statement[:500],  # 只记录前 500 个字符
            )


def get_engine() -> AsyncEngine:
    """
    获取进程级数据库引擎（首次调用时创建）

    Returns:
        AsyncEngine: 数据库引擎
    """
    global _engine

    if _engine is None:
        _engine = _create_engine(settings.DATABASE_URL)
        attach_slow_query_tracking(_engine)
        logger.info(
            "db_engine_created",
            backend=make_url(settings.DATABASE_URL).get_backend_name(),
            engine_id=id(_engine),
        )

    return _engine


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker:
    """
    为指定引擎创建会话工厂

    expire_on_commit=False：Repository 在连接池路径下提交后仍返回已加载的实体，
    调用方在会话关闭后读取属性不会触发懒加载。
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_session_maker() -> async_sessionmaker:
    """
    获取进程级会话工厂（连接池）

    Returns:
        async_sessionmaker: 绑定到全局引擎的会话工厂
    """
    global _session_maker

    if _session_maker is None:
        _session_maker = create_session_maker(get_engine())

    return _session_maker


async def init_db(engine: Optional[AsyncEngine] = None):
    """初始化数据库（创建表）"""
    current_engine = engine or get_engine()
    async with current_engine.begin() as conn:
        # 生产环境应使用迁移工具
        if engine is not None or settings.ENVIRONMENT == "development":
            await conn.run_sync(SQLModel.metadata.create_all)
            logger.info("database_tables_created")


async def dispose_engine():
    """释放连接池（进程退出或测试结束时调用）"""
    global _engine, _session_maker

    if _engine is not None:
        await _engine.dispose()
        logger.info("db_engine_disposed", engine_id=id(_engine))
    _engine = None
    _session_maker = None


async def check_db_health() -> dict:
    """
    检查数据库连接健康状态

    执行简单查询验证连接是否可用。

    Returns:
        健康状态信息
    """
    start_time = time.time()
    try:
        async with get_session_maker()() as session:
            # 执行简单查询验证连接
            result = await session.execute(text("SELECT 1"))
            result.scalar()

        latency_ms = round((time.time() - start_time) * 1000, 2)
        return {
            "status": "healthy",
            "latency_ms": latency_ms,
        }
    except Exception as e:
        latency_ms = round((time.time() - start_time) * 1000, 2)
        logger.warning(
            "db_health_check_failed",
            error=str(e),
            error_type=type(e).__name__,
            latency_ms=latency_ms,
        )
        return {
            "status": "unhealthy",
            "error": str(e),
            "error_type": type(e).__name__,
            "latency_ms": latency_ms,
        }
