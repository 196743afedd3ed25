"""
主题掌握度 Repository

负责 TopicMastery 表的数据访问操作。

注意：
- update 是整行替换：调用方传入的对象上所有字段都会覆盖数据库中的值，
  只修改了部分字段的"半成品"对象会把其余字段写成对象上的默认值
"""
from typing import Iterable, List, Optional
from sqlalchemy.ext.asyncio import async_sessionmaker
import uuid

from learnstore.db.dbctx import DBContext
from learnstore.models.database import TopicMastery, is_unset_id
from .base import SoftDeleteRepository


class TopicMasteryRepository(SoftDeleteRepository[TopicMastery]):
    """主题掌握度数据访问层"""

    timestamp_fields = ("created_at", "updated_at", "last_update")

    def __init__(self, session_factory: Optional[async_sessionmaker] = None, log=None):
        super().__init__(session_factory, TopicMastery, log=log)

    async def get_by_user_ids(
        self,
        dbc: DBContext,
        user_ids: Optional[Iterable[uuid.UUID]],
    ) -> List[TopicMastery]:
        return await self._get_by_column_in(dbc, TopicMastery.user_id, user_ids)

    async def get_by_user_id_and_topics(
        self,
        dbc: DBContext,
        user_id: Optional[uuid.UUID],
        topics: Optional[Iterable[str]],
    ) -> List[TopicMastery]:
        """
        查询用户在指定主题集合上的掌握度

        Args:
            dbc: 数据库上下文
            user_id: 用户 ID
            topics: 主题列表

        Returns:
            存活的掌握度记录；用户 ID 未设置或主题为空时返回空列表
        """
        topic_list = list(dict.fromkeys(topics or []))
        if is_unset_id(user_id) or not topic_list:
            return []

        query = self._select_live().where(
            TopicMastery.user_id == user_id,
            TopicMastery.topic.in_(topic_list),
        )
        return await self._fetch_all(dbc, query)

    async def update(self, dbc: DBContext, row: Optional[TopicMastery]) -> Optional[TopicMastery]:
        """
        按 ID 整行更新一条掌握度记录，并刷新 updated_at

        row 为空或 ID 未设置时不做任何操作。已软删除的记录不会被更新。

        Returns:
            传入的对象（updated_at 已刷新）
        """
        return await self._replace_row(dbc, row)
