"""
决策追踪 Repository

负责 DecisionTrace 表的数据访问操作。决策追踪不支持软删除，除回填 chosen 外只追加。
"""
from datetime import datetime
from typing import Iterable, List, Optional
from sqlalchemy import update
from sqlalchemy.ext.asyncio import async_sessionmaker
import uuid

from learnstore.db.dbctx import DBContext
from learnstore.models.database import DecisionTrace, is_unset_id, to_naive_utc
from .base import BaseRepository


class DecisionTraceRepository(BaseRepository[DecisionTrace]):
    """决策追踪数据访问层"""

    timestamp_fields = ("created_at", "occurred_at")

    LIST_DEFAULT_LIMIT = 200
    LIST_MAX_LIMIT = 2000
    SINCE_DEFAULT_LIMIT = 5000
    SINCE_MAX_LIMIT = 50000

    def __init__(self, session_factory: Optional[async_sessionmaker] = None, log=None):
        super().__init__(session_factory, DecisionTrace, log=log)

    async def get_by_user_ids(
        self,
        dbc: DBContext,
        user_ids: Optional[Iterable[uuid.UUID]],
    ) -> List[DecisionTrace]:
        return await self._get_by_column_in(dbc, DecisionTrace.user_id, user_ids)

    async def list_by_user(
        self,
        dbc: DBContext,
        user_id: Optional[uuid.UUID],
        limit: int = 0,
    ) -> List[DecisionTrace]:
        """
        查询用户最近的决策追踪

        Args:
            dbc: 数据库上下文
            user_id: 用户 ID
            limit: 返回数量（非正数取默认 200，上限 2000）

        Returns:
            按 occurred_at、created_at 降序排列的记录列表
        """
        if is_unset_id(user_id):
            return []

        limit = self._clamp_limit(limit, self.LIST_DEFAULT_LIMIT, self.LIST_MAX_LIMIT)
        query = (
            self._select_live()
            .where(DecisionTrace.user_id == user_id)
            .order_by(DecisionTrace.occurred_at.desc(), DecisionTrace.created_at.desc())
            .limit(limit)
        )
        return await self._fetch_all(dbc, query)

    async def list_by_decision_type_since(
        self,
        dbc: DBContext,
        decision_type: Optional[str],
        since: Optional[datetime] = None,
        limit: int = 0,
    ) -> List[DecisionTrace]:
        """
        查询某类决策在指定时间之后的追踪（供离线评估与训练扫描）

        Args:
            dbc: 数据库上下文
            decision_type: 决策类型（去除首尾空白后为空时返回空列表）
            since: 可选，只查询 occurred_at >= since 的记录（带时区时换算为 UTC）
            limit: 返回数量（非正数取默认 5000，上限 50000）

        Returns:
            按 occurred_at、created_at 升序排列的记录列表
        """
        decision_type = (decision_type or "").strip()
        if not decision_type:
            return []

        limit = self._clamp_limit(limit, self.SINCE_DEFAULT_LIMIT, self.SINCE_MAX_LIMIT)
        query = self._select_live().where(DecisionTrace.decision_type == decision_type)
        if since is not None:
            query = query.where(DecisionTrace.occurred_at >= to_naive_utc(since))
        query = query.order_by(
            DecisionTrace.occurred_at.asc(),
            DecisionTrace.created_at.asc(),
        ).limit(limit)

        return await self._fetch_all(dbc, query)

    async def update_chosen(
        self,
        dbc: DBContext,
        trace_id: Optional[uuid.UUID],
        chosen: Optional[dict],
    ) -> None:
        """
        覆盖一条追踪的 chosen（例如回填决策结果）

        trace_id 未设置时不做任何操作。
        """
        if is_unset_id(trace_id):
            return

        statement = (
            update(DecisionTrace)
            .where(DecisionTrace.id == trace_id)
            .values(chosen=chosen if chosen is not None else {})
        )
        updated = await self._execute(dbc, statement)

        self.log.debug(
            "decision_trace_chosen_updated",
            id=str(trace_id),
            updated=updated,
        )
