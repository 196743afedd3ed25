"""
课时 Repository

负责 Lesson 表的数据访问操作。课时在模块内按 ordinal 排序。
"""
from typing import Iterable, List, Optional
from sqlalchemy.ext.asyncio import async_sessionmaker
import uuid

from learnstore.db.dbctx import DBContext
from learnstore.models.database import Lesson
from .base import SoftDeleteRepository


class LessonRepository(SoftDeleteRepository[Lesson]):
    """课时数据访问层"""

    def __init__(self, session_factory: Optional[async_sessionmaker] = None, log=None):
        super().__init__(session_factory, Lesson, log=log)

    async def get_by_module_ids(
        self,
        dbc: DBContext,
        module_ids: Optional[Iterable[uuid.UUID]],
    ) -> List[Lesson]:
        """查询多个模块下的存活课时，按 (module_id, ordinal) 升序"""
        return await self._get_by_column_in(
            dbc,
            Lesson.module_id,
            module_ids,
            Lesson.module_id.asc(),
            Lesson.ordinal.asc(),
        )

    async def soft_delete_by_module_ids(
        self,
        dbc: DBContext,
        module_ids: Optional[Iterable[uuid.UUID]],
    ) -> None:
        await self._soft_delete_by_column_in(dbc, Lesson.module_id, module_ids)

    async def full_delete_by_module_ids(
        self,
        dbc: DBContext,
        module_ids: Optional[Iterable[uuid.UUID]],
    ) -> None:
        await self._full_delete_by_column_in(dbc, Lesson.module_id, module_ids)
