"""
测验答题记录 Repository

负责 QuizAttempt 表的数据访问操作。
"""
from typing import Iterable, List, Optional
from sqlalchemy.ext.asyncio import async_sessionmaker
import uuid

from learnstore.db.dbctx import DBContext
from learnstore.models.database import QuizAttempt, is_unset_id
from .base import SoftDeleteRepository


class QuizAttemptRepository(SoftDeleteRepository[QuizAttempt]):
    """测验答题记录数据访问层"""

    def __init__(self, session_factory: Optional[async_sessionmaker] = None, log=None):
        super().__init__(session_factory, QuizAttempt, log=log)

    async def get_by_user_id(
        self,
        dbc: DBContext,
        user_id: Optional[uuid.UUID],
    ) -> List[QuizAttempt]:
        """查询用户的全部答题记录（最新的在前）"""
        if is_unset_id(user_id):
            return []

        query = (
            self._select_live()
            .where(QuizAttempt.user_id == user_id)
            .order_by(QuizAttempt.created_at.desc())
        )
        return await self._fetch_all(dbc, query)

    async def get_by_lesson_ids(
        self,
        dbc: DBContext,
        lesson_ids: Optional[Iterable[uuid.UUID]],
    ) -> List[QuizAttempt]:
        return await self._get_by_column_in(dbc, QuizAttempt.lesson_id, lesson_ids)
