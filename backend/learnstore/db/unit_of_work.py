"""
Unit of Work 模式实现

调用方用它开启事务并拿到绑定该事务的 DBContext，再把句柄传给各个 Repository。

核心功能:
- 自动管理事务开始、提交、回滚
- 支持嵌套事务（通过 savepoint）
- 异常时自动回滚并重新抛出
- 事务截止时间（写入 DBContext.deadline，由 Repository 在每条语句上执行）

UnitOfWork 不编排 Repository，只负责事务边界。
"""
import time
import structlog
from contextlib import asynccontextmanager
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction, async_sessionmaker

from learnstore.config.settings import settings
from learnstore.db.dbctx import DBContext

logger = structlog.get_logger()


class UnitOfWork:
    """
    工作单元模式

    使用示例:
        ```python
        async with UnitOfWork(session_factory) as uow:
            await course_repo.create(uow.dbc, [course])
            await module_repo.create(uow.dbc, modules)
            # 退出时自动 commit
        ```

    支持嵌套事务:
        ```python
        async with UnitOfWork(session_factory) as uow:
            await course_repo.create(uow.dbc, [course])

            async with uow.nested() as nested_uow:
                await asset_repo.create(nested_uow.dbc, assets)
                # 内部事务可以独立回滚
        ```
    """

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker] = None,
        timeout: Optional[float] = None,
        *,
        session: Optional[AsyncSession] = None,
        is_nested: bool = False,
        parent_dbc: Optional[DBContext] = None,
    ):
        """
        初始化 UnitOfWork

        Args:
            session_factory: 会话工厂，None 表示使用进程级默认工厂
            timeout: 事务截止时间（秒），None 取配置默认值，<= 0 表示不限时
            session: 外部提供的会话（用于嵌套事务）
            is_nested: 是否是嵌套事务
            parent_dbc: 外层事务的 DBContext（嵌套事务沿用其截止时间）
        """
        self._session_factory = session_factory
        self._session = session
        self._parent_dbc = parent_dbc
        self._timeout = timeout if timeout is not None else settings.DB_STATEMENT_TIMEOUT_SECONDS
        self._is_nested = is_nested
        self._savepoint: Optional[AsyncSessionTransaction] = None
        self._dbc: Optional[DBContext] = None
        self._start_time: Optional[float] = None

    @property
    def session(self) -> AsyncSession:
        """获取当前会话"""
        if self._session is None or self._dbc is None:
            raise RuntimeError("UnitOfWork 未初始化，请在 async with 块中使用")
        return self._session

    @property
    def dbc(self) -> DBContext:
        """获取绑定当前事务的 DBContext"""
        if self._dbc is None:
            raise RuntimeError("UnitOfWork 未初始化，请在 async with 块中使用")
        return self._dbc

    def _get_session_factory(self) -> async_sessionmaker:
        if self._session_factory is None:
            from learnstore.db.session import get_session_maker

            self._session_factory = get_session_maker()
        return self._session_factory

    async def __aenter__(self) -> "UnitOfWork":
        """进入上下文：开始事务"""
        self._start_time = time.time()

        if self._is_nested:
            # 嵌套事务：使用 savepoint
            self._savepoint = await self._session.begin_nested()
            logger.debug("uow_savepoint_created", is_nested=True)
        else:
            # 顶层事务：创建新会话
            self._session = self._get_session_factory()()
            await self._session.begin()
            logger.debug("uow_transaction_started", is_nested=False, timeout=self._timeout)

        if self._parent_dbc is not None:
            # 嵌套事务沿用外层的截止时间
            self._dbc = self._parent_dbc.with_tx(self._session)
        else:
            timeout = self._timeout if self._timeout and self._timeout > 0 else None
            self._dbc = DBContext.with_timeout(timeout, tx=self._session)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """退出上下文：提交或回滚事务"""
        duration_ms = int((time.time() - self._start_time) * 1000) if self._start_time else 0

        try:
            if exc_type is not None:
                await self._rollback(exc_type, exc_val, duration_ms)
            else:
                await self._commit(duration_ms)
            return False  # 不抑制异常
        finally:
            self._dbc = None
            if not self._is_nested and self._session is not None:
                await self._session.close()
                self._session = None

    async def _commit(self, duration_ms: int):
        """提交事务"""
        if self._is_nested:
            await self._savepoint.commit()
            logger.debug("uow_savepoint_committed", duration_ms=duration_ms)
        else:
            await self._session.commit()
            logger.debug("uow_transaction_committed", duration_ms=duration_ms)

    async def _rollback(self, exc_type, exc_val, duration_ms: int):
        """回滚事务（嵌套事务只回滚到 savepoint）"""
        if self._is_nested:
            await self._savepoint.rollback()
        else:
            await self._session.rollback()

        logger.warning(
            "uow_rolled_back",
            scope="savepoint" if self._is_nested else "transaction",
            error_type=exc_type.__name__ if exc_type else None,
            error=str(exc_val) if exc_val else None,
            duration_ms=duration_ms,
        )

    @asynccontextmanager
    async def nested(self):
        """
        创建嵌套事务（使用 savepoint）

        Yields:
            UnitOfWork: 嵌套的工作单元
        """
        nested_uow = UnitOfWork(
            self._session_factory,
            session=self.session,
            is_nested=True,
            parent_dbc=self.dbc,
        )

        async with nested_uow:
            yield nested_uow


# 便捷函数
@asynccontextmanager
async def transaction(
    session_factory: Optional[async_sessionmaker] = None,
    timeout: Optional[float] = None,
):
    """
    创建事务上下文并返回绑定事务的 DBContext（便捷函数）

    Example:
        ```python
        async with transaction(session_factory, timeout=10) as dbc:
            await course_repo.create(dbc, [course])
        ```
    """
    async with UnitOfWork(session_factory, timeout=timeout) as uow:
        yield uow.dbc
