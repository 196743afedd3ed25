"""
数据库上下文句柄（DBContext）

每次 Repository 调用都显式传入一个 DBContext：
- tx: 调用方持有的事务会话（AsyncSession）。为空时 Repository 从连接池打开短会话
- deadline: 事件循环时间下的截止时刻。为空表示不限时

取消语义直接使用 asyncio 任务取消（CancelledError 会穿透每个 await），
截止时间到达时语句被中断并抛出 TimeoutError。

句柄是不可变值，Repository 从不保存它；事务的开启、提交、回滚由调用方负责。

使用示例：
```python
# 连接池（每次调用独立提交）
rows = await course_repo.get_by_ids(DBContext(), [course_id])

# 调用方事务
async with session_factory() as session:
    async with session.begin():
        dbc = DBContext.with_timeout(5.0, tx=session)
        await course_repo.create(dbc, [course])
        await module_repo.create(dbc, modules)
```
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession


@dataclass(frozen=True)
class DBContext:
    """数据库上下文句柄"""

    tx: Optional[AsyncSession] = None
    deadline: Optional[float] = None

    @classmethod
    def with_timeout(
        cls,
        seconds: Optional[float],
        tx: Optional[AsyncSession] = None,
    ) -> "DBContext":
        """
        创建带截止时间的句柄

        Args:
            seconds: 从现在起的超时秒数，None 表示不限时
            tx: 可选的调用方事务会话

        Returns:
            DBContext 实例
        """
        if seconds is None:
            return cls(tx=tx)
        loop = asyncio.get_running_loop()
        return cls(tx=tx, deadline=loop.time() + seconds)

    def with_tx(self, tx: Optional[AsyncSession]) -> "DBContext":
        """返回绑定到指定事务的副本（保留截止时间）"""
        return replace(self, tx=tx)

    @property
    def in_transaction(self) -> bool:
        return self.tx is not None

    def remaining(self) -> Optional[float]:
        """距离截止时间的剩余秒数（可能为负），未设置截止时间时返回 None"""
        if self.deadline is None:
            return None
        return self.deadline - asyncio.get_running_loop().time()

    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0
