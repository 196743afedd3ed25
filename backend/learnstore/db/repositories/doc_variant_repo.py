"""
文档变体 Repository

负责 DocVariantExposure（曝光）和 DocVariantOutcome（评估结果）两张表的数据访问操作。

曝光写入规则：
- user_id / path_id / path_node_id 任一未设置的记录在 create 时被静默忽略
- policy_version / variant_kind / exposure_kind / source 去除首尾空白，
  为空时分别取 "base" / "base" / "base" / "api"

"未评估"曝光：没有任何 outcome 指向它的曝光（LEFT JOIN ... IS NULL），
按 created_at 升序返回，供评估任务先进先出处理。
"""
from datetime import datetime
from typing import Iterable, List, Optional
from sqlalchemy.ext.asyncio import async_sessionmaker
import uuid

from learnstore.db.dbctx import DBContext
from learnstore.models.database import DocVariantExposure, DocVariantOutcome, is_unset_id, to_naive_utc
from .base import BaseRepository


DEFAULT_KIND = "base"
DEFAULT_SOURCE = "api"
DEFAULT_OUTCOME_KIND = "eval_v1"


def _trim_or_default(value: Optional[str], default: str) -> str:
    value = (value or "").strip()
    return value or default


class DocVariantExposureRepository(BaseRepository[DocVariantExposure]):
    """文档变体曝光数据访问层"""

    UNEVALUATED_DEFAULT_LIMIT = 200

    def __init__(self, session_factory: Optional[async_sessionmaker] = None, log=None):
        super().__init__(session_factory, DocVariantExposure, log=log)

    def _should_insert(self, row: DocVariantExposure) -> bool:
        return not (
            is_unset_id(row.user_id)
            or is_unset_id(row.path_id)
            or is_unset_id(row.path_node_id)
        )

    def _normalize(self, row: DocVariantExposure) -> None:
        row.policy_version = _trim_or_default(row.policy_version, DEFAULT_KIND)
        row.variant_kind = _trim_or_default(row.variant_kind, DEFAULT_KIND)
        row.exposure_kind = _trim_or_default(row.exposure_kind, DEFAULT_KIND)
        row.source = _trim_or_default(row.source, DEFAULT_SOURCE)

    async def get_by_user_ids(
        self,
        dbc: DBContext,
        user_ids: Optional[Iterable[uuid.UUID]],
    ) -> List[DocVariantExposure]:
        return await self._get_by_column_in(dbc, DocVariantExposure.user_id, user_ids)

    async def list_unevaluated_by_user(
        self,
        dbc: DBContext,
        user_id: Optional[uuid.UUID],
        path_id: Optional[uuid.UUID] = None,
        cutoff: Optional[datetime] = None,
        limit: int = 0,
    ) -> List[DocVariantExposure]:
        """
        查询用户尚未产生评估结果的曝光

        Args:
            dbc: 数据库上下文
            user_id: 用户 ID（未设置时返回空列表）
            path_id: 可选，只查询该学习路径的曝光
            cutoff: 可选，只查询 created_at <= cutoff 的曝光（带时区时换算为 UTC）
            limit: 返回数量（非正数取默认 200）

        Returns:
            按 created_at 升序（最早的在前）排列的曝光列表
        """
        if is_unset_id(user_id):
            return []

        limit = self._clamp_limit(limit, self.UNEVALUATED_DEFAULT_LIMIT)
        query = (
            self._select_live()
            .outerjoin(
                DocVariantOutcome,
                DocVariantOutcome.exposure_id == DocVariantExposure.id,
            )
            .where(
                DocVariantExposure.user_id == user_id,
                DocVariantOutcome.id.is_(None),
            )
        )
        if not is_unset_id(path_id):
            query = query.where(DocVariantExposure.path_id == path_id)
        if cutoff is not None:
            query = query.where(DocVariantExposure.created_at <= to_naive_utc(cutoff))

        query = query.order_by(
            DocVariantExposure.created_at.asc(),
            DocVariantExposure.id.asc(),
        ).limit(limit)

        exposures = await self._fetch_all(dbc, query)

        self.log.debug(
            "unevaluated_exposures_listed",
            user_id=str(user_id),
            path_id=str(path_id) if path_id else None,
            count=len(exposures),
            limit=limit,
        )

        return exposures


class DocVariantOutcomeRepository(BaseRepository[DocVariantOutcome]):
    """文档变体评估结果数据访问层"""

    def __init__(self, session_factory: Optional[async_sessionmaker] = None, log=None):
        super().__init__(session_factory, DocVariantOutcome, log=log)

    def _normalize(self, row: DocVariantOutcome) -> None:
        row.policy_version = (row.policy_version or "").strip()
        row.outcome_kind = _trim_or_default(row.outcome_kind, DEFAULT_OUTCOME_KIND)
        if not row.schema_version or row.schema_version <= 0:
            row.schema_version = 1

    async def get_by_exposure_ids(
        self,
        dbc: DBContext,
        exposure_ids: Optional[Iterable[uuid.UUID]],
    ) -> List[DocVariantOutcome]:
        return await self._get_by_column_in(dbc, DocVariantOutcome.exposure_id, exposure_ids)
