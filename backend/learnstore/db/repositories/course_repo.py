"""
课程 Repository

负责 Course 表的数据访问操作。

职责范围：
- 课程的批量创建与按 ID / 用户 / 资料集查询
- 软删除与物理删除

不包含：
- 模块、课时数据（各自独立 Repository）
- 级联删除（由服务层组合各 Repository 完成）
"""
from typing import Iterable, List, Optional
from sqlalchemy.ext.asyncio import async_sessionmaker
import uuid

from learnstore.db.dbctx import DBContext
from learnstore.models.database import Course
from .base import SoftDeleteRepository


class CourseRepository(SoftDeleteRepository[Course]):
    """课程数据访问层"""

    def __init__(self, session_factory: Optional[async_sessionmaker] = None, log=None):
        super().__init__(session_factory, Course, log=log)

    async def get_by_user_ids(
        self,
        dbc: DBContext,
        user_ids: Optional[Iterable[uuid.UUID]],
    ) -> List[Course]:
        """查询多个用户的全部存活课程"""
        return await self._get_by_column_in(dbc, Course.user_id, user_ids)

    async def get_by_material_set_ids(
        self,
        dbc: DBContext,
        set_ids: Optional[Iterable[uuid.UUID]],
    ) -> List[Course]:
        """查询由指定资料集生成的存活课程"""
        return await self._get_by_column_in(dbc, Course.material_set_id, set_ids)
