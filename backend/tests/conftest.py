"""
测试共享 Fixtures

提供内存 SQLite 数据库、会话工厂、调用方事务与 Repository 集合。
"""
import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from learnstore.db.dbctx import DBContext
from learnstore.db.repository_factory import RepositoryFactory, Repositories
from learnstore.db.session import create_session_maker
import learnstore.models.database  # noqa: F401  注册所有表到 SQLModel.metadata


# ============================================================
# 数据库 Fixtures
# ============================================================

@pytest.fixture
async def engine():
    """创建内存数据库引擎（StaticPool 保证所有会话共享同一个内存库）"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # 创建所有表
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    # 清理
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    """连接池会话工厂"""
    return create_session_maker(engine)


@pytest.fixture
async def tx_session(session_factory):
    """
    调用方事务

    每个用例在一个事务中执行，结束后回滚。
    """
    async with session_factory() as session:
        await session.begin()
        try:
            yield session
        finally:
            await session.rollback()


@pytest.fixture
def dbc(tx_session: AsyncSession) -> DBContext:
    """绑定调用方事务的 DBContext"""
    return DBContext(tx=tx_session)


@pytest.fixture
def pool_dbc() -> DBContext:
    """不带事务的 DBContext（Repository 使用连接池）"""
    return DBContext()


@pytest.fixture
def repos(session_factory) -> Repositories:
    """全部 Repository"""
    return RepositoryFactory(session_factory).create_all_repos()


# ============================================================
# 基础数据 Fixtures
# ============================================================

@pytest.fixture
def user_id() -> uuid.UUID:
    """示例用户 ID（用户表不在本仓库中，直接生成 ID）"""
    return uuid.uuid4()


@pytest.fixture
def material_set_id() -> uuid.UUID:
    """示例资料集 ID"""
    return uuid.uuid4()
