"""
课程模块 Repository

负责 CourseModule 表的数据访问操作。

模块在课程内按 ordinal 排序；ordinal 唯一性由调用方保证。
"""
from typing import Iterable, List, Optional
from sqlalchemy.ext.asyncio import async_sessionmaker
import uuid

from learnstore.db.dbctx import DBContext
from learnstore.models.database import CourseModule
from .base import SoftDeleteRepository


class CourseModuleRepository(SoftDeleteRepository[CourseModule]):
    """课程模块数据访问层"""

    def __init__(self, session_factory: Optional[async_sessionmaker] = None, log=None):
        super().__init__(session_factory, CourseModule, log=log)

    async def get_by_course_ids(
        self,
        dbc: DBContext,
        course_ids: Optional[Iterable[uuid.UUID]],
    ) -> List[CourseModule]:
        """
        查询多个课程下的存活模块

        Returns:
            按 (course_id, ordinal) 升序排列的模块列表
        """
        return await self._get_by_column_in(
            dbc,
            CourseModule.course_id,
            course_ids,
            CourseModule.course_id.asc(),
            CourseModule.ordinal.asc(),
        )

    async def soft_delete_by_course_ids(
        self,
        dbc: DBContext,
        course_ids: Optional[Iterable[uuid.UUID]],
    ) -> None:
        """软删除多个课程下的全部存活模块"""
        await self._soft_delete_by_column_in(dbc, CourseModule.course_id, course_ids)

    async def full_delete_by_course_ids(
        self,
        dbc: DBContext,
        course_ids: Optional[Iterable[uuid.UUID]],
    ) -> None:
        """物理删除多个课程下的全部模块（包括已软删除的）"""
        await self._full_delete_by_column_in(dbc, CourseModule.course_id, course_ids)
