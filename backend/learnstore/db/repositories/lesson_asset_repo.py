"""
课时资源 Repository

负责 LessonAsset 表（图片、视频、音频、PDF 等资源的存储引用）的数据访问操作。
"""
from typing import Iterable, List, Optional
from sqlalchemy.ext.asyncio import async_sessionmaker
import uuid

from learnstore.db.dbctx import DBContext
from learnstore.models.database import LessonAsset
from .base import SoftDeleteRepository


class LessonAssetRepository(SoftDeleteRepository[LessonAsset]):
    """课时资源数据访问层"""

    def __init__(self, session_factory: Optional[async_sessionmaker] = None, log=None):
        super().__init__(session_factory, LessonAsset, log=log)

    async def get_by_lesson_ids(
        self,
        dbc: DBContext,
        lesson_ids: Optional[Iterable[uuid.UUID]],
    ) -> List[LessonAsset]:
        """查询多个课时的存活资源"""
        return await self._get_by_column_in(dbc, LessonAsset.lesson_id, lesson_ids)

    async def soft_delete_by_lesson_ids(
        self,
        dbc: DBContext,
        lesson_ids: Optional[Iterable[uuid.UUID]],
    ) -> None:
        """软删除多个课时的全部存活资源"""
        await self._soft_delete_by_column_in(dbc, LessonAsset.lesson_id, lesson_ids)

    async def full_delete_by_lesson_ids(
        self,
        dbc: DBContext,
        lesson_ids: Optional[Iterable[uuid.UUID]],
    ) -> None:
        """物理删除多个课时的全部资源（包括已软删除的）"""
        await self._full_delete_by_column_in(dbc, LessonAsset.lesson_id, lesson_ids)
