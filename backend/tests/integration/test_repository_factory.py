"""
Repository Factory 集成测试

测试 RepositoryFactory 的功能和会话管理。
"""
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from learnstore.db import repository_factory as factory_module
from learnstore.db.dbctx import DBContext
from learnstore.db.repositories import CourseRepository, DocVariantExposureRepository
from learnstore.db.repository_factory import Repositories, RepositoryFactory
from learnstore.models.database import Course


@pytest.fixture
def repo_factory(session_factory) -> RepositoryFactory:
    """创建 Repository 工厂"""
    return RepositoryFactory(session_factory)


class TestRepositoryFactory:
    """RepositoryFactory 测试套件"""

    async def test_create_session(self, repo_factory: RepositoryFactory):
        """测试会话创建"""
        async with repo_factory.create_session() as session:
            assert session is not None
            assert isinstance(session, AsyncSession)

    def test_create_single_repo(self, repo_factory: RepositoryFactory):
        assert isinstance(repo_factory.create_course_repo(), CourseRepository)
        assert isinstance(
            repo_factory.create_doc_variant_exposure_repo(), DocVariantExposureRepository
        )

    def test_create_all_repos(self, repo_factory: RepositoryFactory):
        """测试批量创建所有 Repository"""
        repos = repo_factory.create_all_repos()

        assert isinstance(repos, Repositories)
        assert repos.course is not None
        assert repos.course_module is not None
        assert repos.lesson is not None
        assert repos.lesson_asset is not None
        assert repos.topic_mastery is not None
        assert repos.quiz_attempt is not None
        assert repos.decision_trace is not None
        assert repos.doc_variant_exposure is not None
        assert repos.doc_variant_outcome is not None
        assert repos.user_progression_event is not None

    async def test_caller_transaction_workflow(self, repo_factory: RepositoryFactory, user_id):
        """调用方通过工厂会话开启事务，多个 Repository 共享同一事务"""
        repos = repo_factory.create_all_repos()

        async with repo_factory.create_session() as session:
            async with session.begin():
                dbc = DBContext(tx=session)
                [course] = await repos.course.create(dbc, [Course(user_id=user_id, title="tx")])

        found = await repos.course.get_by_ids(DBContext(), [course.id])
        assert [c.title for c in found] == ["tx"]

    def test_get_repository_factory_singleton(self, monkeypatch):
        monkeypatch.setattr(factory_module, "_repository_factory", None)

        first = factory_module.get_repository_factory()
        second = factory_module.get_repository_factory()

        assert first is second
