"""
Repository Factory

统一创建和管理所有 Repository 实例。

设计模式：工厂模式
- 封装 Repository 的创建逻辑
- 所有 Repository 共享同一个会话工厂（连接池）和同一个基础 logger
- Repository 无状态，整个进程共享一组实例即可
"""
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from learnstore.db.repositories.course_repo import CourseRepository
from learnstore.db.repositories.course_module_repo import CourseModuleRepository
from learnstore.db.repositories.lesson_repo import LessonRepository
from learnstore.db.repositories.lesson_asset_repo import LessonAssetRepository
from learnstore.db.repositories.topic_mastery_repo import TopicMasteryRepository
from learnstore.db.repositories.quiz_attempt_repo import QuizAttemptRepository
from learnstore.db.repositories.decision_trace_repo import DecisionTraceRepository
from learnstore.db.repositories.doc_variant_repo import (
    DocVariantExposureRepository,
    DocVariantOutcomeRepository,
)
from learnstore.db.repositories.user_progression_event_repo import UserProgressionEventRepository

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Repositories:
    """全部 Repository 的集合"""

    course: CourseRepository
    course_module: CourseModuleRepository
    lesson: LessonRepository
    lesson_asset: LessonAssetRepository
    topic_mastery: TopicMasteryRepository
    quiz_attempt: QuizAttemptRepository
    decision_trace: DecisionTraceRepository
    doc_variant_exposure: DocVariantExposureRepository
    doc_variant_outcome: DocVariantOutcomeRepository
    user_progression_event: UserProgressionEventRepository


class RepositoryFactory:
    """
    Repository 工厂类

    使用示例：
    ```python
    factory = RepositoryFactory()
    repos = factory.create_all_repos()

    # 连接池（每次调用独立提交）
    courses = await repos.course.get_by_user_ids(DBContext(), [user_id])

    # 调用方事务
    async with factory.create_session() as session:
        async with session.begin():
            dbc = DBContext(tx=session)
            await repos.course.create(dbc, [course])
            await repos.course_module.create(dbc, modules)
    ```
    """

    def __init__(self, session_factory: Optional[async_sessionmaker] = None, log=None):
        """
        初始化 Repository 工厂

        Args:
            session_factory: 会话工厂，None 表示使用进程级默认工厂
            log: 可选的基础 logger
        """
        self._session_factory = session_factory
        self._log = log

    @property
    def session_factory(self) -> async_sessionmaker:
        if self._session_factory is None:
            from learnstore.db.session import get_session_maker

            self._session_factory = get_session_maker()
        return self._session_factory

    # ============================================================
    # 会话管理
    # ============================================================

    @asynccontextmanager
    async def create_session(self) -> AsyncIterator[AsyncSession]:
        """
        创建数据库会话（上下文管理器）

        会话由调用方开启事务并提交；退出时自动关闭。

        Yields:
            AsyncSession: 数据库会话
        """
        async with self.session_factory() as session:
            yield session

    # ============================================================
    # 单个 Repository
    # ============================================================

    def create_course_repo(self) -> CourseRepository:
        return CourseRepository(self._session_factory, log=self._log)

    def create_course_module_repo(self) -> CourseModuleRepository:
        return CourseModuleRepository(self._session_factory, log=self._log)

    def create_lesson_repo(self) -> LessonRepository:
        return LessonRepository(self._session_factory, log=self._log)

    def create_lesson_asset_repo(self) -> LessonAssetRepository:
        return LessonAssetRepository(self._session_factory, log=self._log)

    def create_topic_mastery_repo(self) -> TopicMasteryRepository:
        return TopicMasteryRepository(self._session_factory, log=self._log)

    def create_quiz_attempt_repo(self) -> QuizAttemptRepository:
        return QuizAttemptRepository(self._session_factory, log=self._log)

    def create_decision_trace_repo(self) -> DecisionTraceRepository:
        return DecisionTraceRepository(self._session_factory, log=self._log)

    def create_doc_variant_exposure_repo(self) -> DocVariantExposureRepository:
        return DocVariantExposureRepository(self._session_factory, log=self._log)

    def create_doc_variant_outcome_repo(self) -> DocVariantOutcomeRepository:
        return DocVariantOutcomeRepository(self._session_factory, log=self._log)

    def create_user_progression_event_repo(self) -> UserProgressionEventRepository:
        return UserProgressionEventRepository(self._session_factory, log=self._log)

    # ============================================================
    # 批量创建（便捷方法）
    # ============================================================

    def create_all_repos(self) -> Repositories:
        """
        创建所有 Repository（便捷方法）

        Returns:
            Repositories 实例
        """
        return Repositories(
            course=self.create_course_repo(),
            course_module=self.create_course_module_repo(),
            lesson=self.create_lesson_repo(),
            lesson_asset=self.create_lesson_asset_repo(),
            topic_mastery=self.create_topic_mastery_repo(),
            quiz_attempt=self.create_quiz_attempt_repo(),
            decision_trace=self.create_decision_trace_repo(),
            doc_variant_exposure=self.create_doc_variant_exposure_repo(),
            doc_variant_outcome=self.create_doc_variant_outcome_repo(),
            user_progression_event=self.create_user_progression_event_repo(),
        )


# 全局单例实例
_repository_factory: RepositoryFactory | None = None


def get_repository_factory() -> RepositoryFactory:
    """
    获取 Repository 工厂单例（使用进程级默认会话工厂）

    Returns:
        RepositoryFactory 实例
    """
    global _repository_factory

    if _repository_factory is None:
        _repository_factory = RepositoryFactory()
        logger.info("repository_factory_created")

    return _repository_factory
