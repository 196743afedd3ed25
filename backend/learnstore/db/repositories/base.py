"""
基础 Repository

提供批量 CRUD 操作，所有具体 Repository 继承此类。

设计原则：
- Repository 只负责数据访问，不包含业务逻辑
- Repository 本身无状态（只持有会话工厂和 logger），可在并发任务间共享
- 每次调用显式传入 DBContext：
  - dbc.tx 不为空：语句在调用方事务中执行，Repository 不提交也不回滚
  - dbc.tx 为空：从连接池打开短会话，单次调用一个事务，结束时提交
- 空输入、未设置的 ID 直接返回空结果，不访问数据库
- 数据库异常原样抛出，不重试、不转换
- 使用 SQLAlchemy 2.0 新语法
"""
from contextlib import asynccontextmanager
from typing import TypeVar, Generic, Type, Optional, List, Any, Iterable, AsyncIterator
import asyncio
import uuid

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy import select, update, delete
from sqlmodel import SQLModel

from learnstore.config.logging_config import get_repo_logger
from learnstore.db.dbctx import DBContext
from learnstore.models.database import is_unset_id, to_naive_utc, utc_now

# 泛型类型变量（必须是 SQLModel 子类）
T = TypeVar('T', bound=SQLModel)


class BaseRepository(Generic[T]):
    """
    基础仓储类，提供通用批量操作

    使用示例：
    ```python
    class CourseRepository(SoftDeleteRepository[Course]):
        def __init__(self, session_factory=None, log=None):
            super().__init__(session_factory, Course, log=log)

        async def get_by_user_ids(self, dbc, user_ids):
            return await self._get_by_column_in(dbc, Course.user_id, user_ids)
    ```
    """

    # create 时为空则填充为当前 UTC 时间的字段
    timestamp_fields: tuple[str, ...] = ("created_at",)

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker],
        model: Type[T],
        *,
        log=None,
    ):
        """
        初始化仓储

        Args:
            session_factory: 连接池会话工厂，None 表示使用进程级默认工厂
            model: SQLModel 模型类
            log: 可选的基础 logger，会绑定 repo=<类名>
        """
        self._session_factory = session_factory
        self.model = model
        self._model_name = model.__name__
        self.log = get_repo_logger(type(self).__name__, log)

    # ============================================================
    # 会话作用域
    # ============================================================

    def _get_session_factory(self) -> async_sessionmaker:
        if self._session_factory is None:
            from learnstore.db.session import get_session_maker

            self._session_factory = get_session_maker()
        return self._session_factory

    @asynccontextmanager
    async def _session_scope(self, dbc: DBContext) -> AsyncIterator[AsyncSession]:
        """
        获取本次调用使用的会话

        调用方事务优先；否则从连接池打开会话并在独立事务中执行。
        """
        if dbc.tx is not None:
            yield dbc.tx
            return

        async with self._get_session_factory()() as session:
            async with session.begin():
                yield session

    @asynccontextmanager
    async def _scope(self, dbc: DBContext) -> AsyncIterator[AsyncSession]:
        """在 DBContext 的截止时间内执行（超时抛出 TimeoutError）"""
        async with asyncio.timeout_at(dbc.deadline):
            async with self._session_scope(dbc) as session:
                yield session

    # ============================================================
    # 辅助方法
    # ============================================================

    @staticmethod
    def _clean_ids(ids: Optional[Iterable[Optional[uuid.UUID]]]) -> List[uuid.UUID]:
        """去重并剔除未设置的 ID（保持原有顺序）"""
        if not ids:
            return []
        return [value for value in dict.fromkeys(ids) if not is_unset_id(value)]

    @staticmethod
    def _clamp_limit(limit: Optional[int], default: int, cap: Optional[int] = None) -> int:
        """
        规范化 limit

        非正数使用默认值；设置了上限时取 min(limit, cap)。
        """
        if limit is None or limit <= 0:
            limit = default
        if cap is not None and limit > cap:
            limit = cap
        return limit

    def _live_filter(self) -> Optional[Any]:
        """存活记录过滤条件（不支持软删除的模型返回 None）"""
        return None

    def _select_live(self):
        """构建只包含存活记录的查询"""
        query = select(self.model)
        live = self._live_filter()
        if live is not None:
            query = query.where(live)
        return query

    def _should_insert(self, row: T) -> bool:
        """create 时过滤记录的钩子（返回 False 的记录被忽略）"""
        return True

    def _normalize(self, row: T) -> None:
        """create 时对单条记录做规范化的钩子"""
        return None

    async def _fetch_all(self, dbc: DBContext, query) -> List[T]:
        async with self._scope(dbc) as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def _execute(self, dbc: DBContext, statement) -> int:
        """执行 UPDATE / DELETE，返回受影响行数"""
        async with self._scope(dbc) as session:
            result = await session.execute(statement)
            return result.rowcount

    # ============================================================
    # 创建
    # ============================================================

    async def create(self, dbc: DBContext, rows: Optional[Iterable[T]]) -> List[T]:
        """
        批量创建记录

        对每条记录：
        1. 未设置 ID 时分配新的 UUID
        2. timestamp_fields 中为空的字段填充为当前 UTC 时间，
           调用方传入的带时区时间换算为无时区的 UTC 时间
        3. 执行模型特定的规范化
        然后一次性写入（单条多行 INSERT）。

        ID 和时间字段直接写回传入的对象，即使写入失败调用方也能看到。

        Args:
            dbc: 数据库上下文
            rows: 实体对象（任意可迭代对象）

        Returns:
            实际写入的实体对象列表
        """
        rows = list(rows or [])
        if not rows:
            return []

        now = utc_now()
        batch: List[T] = []
        for row in rows:
            if row is None or not self._should_insert(row):
                continue
            if is_unset_id(row.id):
                row.id = uuid.uuid4()
            for field in self.timestamp_fields:
                value = getattr(row, field, None)
                setattr(row, field, now if value is None else to_naive_utc(value))
            self._normalize(row)
            batch.append(row)

        if not batch:
            return []

        async with self._scope(dbc) as session:
            session.add_all(batch)
            await session.flush()

        self.log.debug(
            "entities_created_batch",
            model=self._model_name,
            count=len(batch),
            ignored=len(rows) - len(batch),
            in_tx=dbc.in_transaction,
        )

        return batch

    # ============================================================
    # 查询
    # ============================================================

    async def _get_by_column_in(
        self,
        dbc: DBContext,
        column,
        values: Optional[Iterable[Optional[uuid.UUID]]],
        *order_by,
    ) -> List[T]:
        """
        查询指定列取值在集合内的存活记录

        Args:
            dbc: 数据库上下文
            column: 模型列（如 Course.user_id）
            values: ID 集合
            *order_by: 可选排序

        Returns:
            实体对象列表
        """
        keys = self._clean_ids(values)
        if not keys:
            return []

        query = self._select_live().where(column.in_(keys))
        if order_by:
            query = query.order_by(*order_by)

        entities = await self._fetch_all(dbc, query)

        self.log.debug(
            "entities_found_by_column",
            model=self._model_name,
            column=column.key,
            requested_count=len(keys),
            found_count=len(entities),
        )

        return entities

    async def get_by_ids(
        self,
        dbc: DBContext,
        ids: Optional[Iterable[Optional[uuid.UUID]]],
    ) -> List[T]:
        """
        根据多个主键 ID 批量查询存活记录（顺序不保证）

        Args:
            dbc: 数据库上下文
            ids: 主键 ID 集合

        Returns:
            实体对象列表
        """
        return await self._get_by_column_in(dbc, self.model.id, ids)

    # ============================================================
    # 更新
    # ============================================================

    async def _replace_row(
        self,
        dbc: DBContext,
        row: Optional[T],
        *,
        exclude: tuple[str, ...] = ("id", "created_at", "deleted_at"),
    ) -> Optional[T]:
        """
        按主键整行替换一条存活记录

        除 exclude 外的所有列都用 row 上的值覆盖（包括调用方未修改的字段）。
        updated_at 刷新为当前 UTC 时间。

        row 已挂在本次会话上时（调用方事务），UPDATE 之后从存储刷新 row，
        返回的对象即为存储中的当前状态；记录已软删除时不会被修改。
        """
        if row is None or is_unset_id(row.id):
            return None

        if hasattr(row, "updated_at"):
            row.updated_at = utc_now()

        values = {
            column.key: getattr(row, column.key)
            for column in self.model.__table__.columns
            if column.key not in exclude
        }

        statement = update(self.model).where(self.model.id == row.id)
        live = self._live_filter()
        if live is not None:
            statement = statement.where(live)
        statement = statement.values(**values).execution_options(synchronize_session=False)

        async with self._scope(dbc) as session:
            result = await session.execute(statement)
            updated = result.rowcount
            if row in session:
                await session.refresh(row)

        self.log.debug(
            "entity_replaced",
            model=self._model_name,
            id=str(row.id),
            updated=updated,
        )

        return row

    # ============================================================
    # 删除
    # ============================================================

    async def _full_delete_by_column_in(
        self,
        dbc: DBContext,
        column,
        values: Optional[Iterable[Optional[uuid.UUID]]],
    ) -> None:
        """物理删除指定列取值在集合内的记录（包括已软删除的记录）"""
        keys = self._clean_ids(values)
        if not keys:
            return

        deleted = await self._execute(dbc, delete(self.model).where(column.in_(keys)))

        self.log.debug(
            "entities_full_deleted",
            model=self._model_name,
            column=column.key,
            requested_count=len(keys),
            deleted_count=deleted,
        )

    async def full_delete_by_ids(
        self,
        dbc: DBContext,
        ids: Optional[Iterable[Optional[uuid.UUID]]],
    ) -> None:
        """
        根据主键 ID 物理删除记录

        Args:
            dbc: 数据库上下文
            ids: 主键 ID 集合
        """
        await self._full_delete_by_column_in(dbc, self.model.id, ids)


class SoftDeleteRepository(BaseRepository[T]):
    """
    支持软删除的仓储基类

    模型必须包含 created_at / updated_at / deleted_at 字段：
    - 所有读取自动附加 deleted_at IS NULL
    - 软删除把 deleted_at 设为当前 UTC 时间，重复软删除不产生影响
    - 物理删除不区分存活与否
    """

    timestamp_fields: tuple[str, ...] = ("created_at", "updated_at")

    def _live_filter(self) -> Optional[Any]:
        return self.model.deleted_at.is_(None)

    async def _soft_delete_by_column_in(
        self,
        dbc: DBContext,
        column,
        values: Optional[Iterable[Optional[uuid.UUID]]],
    ) -> None:
        """软删除指定列取值在集合内的存活记录"""
        keys = self._clean_ids(values)
        if not keys:
            return

        now = utc_now()
        statement = (
            update(self.model)
            .where(column.in_(keys), self._live_filter())
            .values(deleted_at=now, updated_at=now)
        )
        deleted = await self._execute(dbc, statement)

        self.log.debug(
            "entities_soft_deleted",
            model=self._model_name,
            column=column.key,
            requested_count=len(keys),
            deleted_count=deleted,
        )

    async def soft_delete_by_ids(
        self,
        dbc: DBContext,
        ids: Optional[Iterable[Optional[uuid.UUID]]],
    ) -> None:
        """
        根据主键 ID 软删除记录

        Args:
            dbc: 数据库上下文
            ids: 主键 ID 集合
        """
        await self._soft_delete_by_column_in(dbc, self.model.id, ids)
