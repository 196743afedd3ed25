"""
用户进度事件 Repository

负责 UserProgressionEvent 表的数据访问操作。进度事件只追加，不支持软删除。

所有列表查询都按 occurred_at 降序（最新的在前）。
"""
from typing import Iterable, List, Optional
from sqlalchemy.ext.asyncio import async_sessionmaker
import uuid

from learnstore.db.dbctx import DBContext
from learnstore.models.database import UserProgressionEvent, is_unset_id
from .base import BaseRepository


class UserProgressionEventRepository(BaseRepository[UserProgressionEvent]):
    """用户进度事件数据访问层"""

    timestamp_fields = ("created_at", "updated_at", "occurred_at")

    RECENT_BY_USER_DEFAULT_LIMIT = 500
    RECENT_ALL_DEFAULT_LIMIT = 50000
    BY_USER_AND_PATH_DEFAULT_LIMIT = 5000
    BY_USER_AND_PATH_MAX_LIMIT = 50000

    def __init__(self, session_factory: Optional[async_sessionmaker] = None, log=None):
        super().__init__(session_factory, UserProgressionEvent, log=log)

    async def get_by_user_ids(
        self,
        dbc: DBContext,
        user_ids: Optional[Iterable[uuid.UUID]],
    ) -> List[UserProgressionEvent]:
        return await self._get_by_column_in(dbc, UserProgressionEvent.user_id, user_ids)

    async def list_recent_by_user(
        self,
        dbc: DBContext,
        user_id: Optional[uuid.UUID],
        limit: int = 0,
    ) -> List[UserProgressionEvent]:
        """查询用户最近的进度事件（非正数 limit 取默认 500）"""
        if is_unset_id(user_id):
            return []

        limit = self._clamp_limit(limit, self.RECENT_BY_USER_DEFAULT_LIMIT)
        query = (
            self._select_live()
            .where(UserProgressionEvent.user_id == user_id)
            .order_by(UserProgressionEvent.occurred_at.desc())
            .limit(limit)
        )
        return await self._fetch_all(dbc, query)

    async def list_recent_all(
        self,
        dbc: DBContext,
        limit: int = 0,
    ) -> List[UserProgressionEvent]:
        """
        查询全体用户最近的进度事件

        注意：默认 limit 为 50000，调用方需要自行评估单次读取量。
        """
        limit = self._clamp_limit(limit, self.RECENT_ALL_DEFAULT_LIMIT)
        query = (
            self._select_live()
            .order_by(UserProgressionEvent.occurred_at.desc())
            .limit(limit)
        )
        return await self._fetch_all(dbc, query)

    async def list_by_user_and_path_id(
        self,
        dbc: DBContext,
        user_id: Optional[uuid.UUID],
        path_id: Optional[uuid.UUID],
        limit: int = 0,
    ) -> List[UserProgressionEvent]:
        """
        查询用户在某条学习路径上的进度事件

        Args:
            dbc: 数据库上下文
            user_id: 用户 ID（必填）
            path_id: 学习路径 ID（必填）
            limit: 返回数量（非正数取默认 5000，上限 50000）
        """
        if is_unset_id(user_id) or is_unset_id(path_id):
            return []

        limit = self._clamp_limit(
            limit,
            self.BY_USER_AND_PATH_DEFAULT_LIMIT,
            self.BY_USER_AND_PATH_MAX_LIMIT,
        )
        query = (
            self._select_live()
            .where(
                UserProgressionEvent.user_id == user_id,
                UserProgressionEvent.path_id == path_id,
            )
            .order_by(UserProgressionEvent.occurred_at.desc())
            .limit(limit)
        )
        return await self._fetch_all(dbc, query)
