"""
连接池路径与调用方事务集成测试

- DBContext 不带事务时，每次调用在独立事务中提交
- UnitOfWork / transaction 正常退出提交，异常退出回滚
"""
import pytest

from learnstore.db.dbctx import DBContext
from learnstore.db.unit_of_work import UnitOfWork, transaction
from learnstore.models.database import Course, CourseModule, TopicMastery


class TestPoolPath:
    """连接池路径测试套件"""

    async def test_create_commits_per_call(self, repos, pool_dbc, session_factory, user_id):
        [course] = await repos.course.create(pool_dbc, [Course(user_id=user_id, title="pool")])

        # 新会话能看到已提交的数据
        async with session_factory() as session:
            found = await repos.course.get_by_ids(DBContext(tx=session), [course.id])
        assert [c.title for c in found] == ["pool"]

    async def test_soft_delete_and_update_commit(self, repos, pool_dbc, user_id):
        [tm] = await repos.topic_mastery.create(
            pool_dbc, [TopicMastery(user_id=user_id, topic="math", mastery=0.2)]
        )

        tm.mastery = 0.6
        await repos.topic_mastery.update(pool_dbc, tm)
        [found] = await repos.topic_mastery.get_by_user_id_and_topics(pool_dbc, user_id, ["math"])
        assert found.mastery == 0.6

        await repos.topic_mastery.soft_delete_by_ids(pool_dbc, [tm.id])
        assert await repos.topic_mastery.get_by_user_ids(pool_dbc, [user_id]) == []

    async def test_with_timeout_context_succeeds(self, repos, user_id):
        dbc = DBContext.with_timeout(5.0)
        [course] = await repos.course.create(dbc, [Course(user_id=user_id)])
        assert len(await repos.course.get_by_ids(dbc, [course.id])) == 1


class TestCallerTransaction:
    """调用方事务测试套件"""

    async def test_unit_of_work_commits(self, repos, session_factory, pool_dbc, user_id):
        async with UnitOfWork(session_factory) as uow:
            [course] = await repos.course.create(uow.dbc, [Course(user_id=user_id)])
            await repos.course_module.create(
                uow.dbc, [CourseModule(course_id=course.id, ordinal=0)]
            )
            assert uow.dbc.in_transaction

        assert len(await repos.course.get_by_ids(pool_dbc, [course.id])) == 1
        assert len(await repos.course_module.get_by_course_ids(pool_dbc, [course.id])) == 1

    async def test_unit_of_work_rolls_back_on_error(self, repos, session_factory, pool_dbc, user_id):
        course = Course(user_id=user_id)

        with pytest.raises(ValueError):
            async with UnitOfWork(session_factory) as uow:
                await repos.course.create(uow.dbc, [course])
                raise ValueError("boom")

        # 回滚后 ID 仍保留在对象上，但存储中没有记录
        assert course.id is not None
        assert await repos.course.get_by_ids(pool_dbc, [course.id]) == []

    async def test_transaction_helper(self, repos, session_factory, pool_dbc, user_id):
        async with transaction(session_factory, timeout=5) as dbc:
            assert dbc.tx is not None
            assert dbc.deadline is not None
            [course] = await repos.course.create(dbc, [Course(user_id=user_id)])

        assert len(await repos.course.get_by_ids(pool_dbc, [course.id])) == 1
