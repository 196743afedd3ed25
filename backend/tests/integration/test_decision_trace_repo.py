"""
DecisionTraceRepository 集成测试
"""
import uuid
from datetime import datetime, timedelta, timezone

from learnstore.models.database import DecisionTrace, utc_now


def _traces(user_id: uuid.UUID, count: int) -> list[DecisionTrace]:
    base = utc_now() - timedelta(minutes=1)
    return [
        DecisionTrace(
            user_id=user_id,
            occurred_at=base + timedelta(seconds=i),
            decision_type=f"t{i}",
            decision_phase="runtime",
            inputs={"step": i},
        )
        for i in range(count)
    ]


class TestDecisionTraceRepository:
    """DecisionTraceRepository 测试套件"""

    async def test_list_by_user_newest_first(self, repos, dbc, user_id):
        """五条追踪间隔 1 秒，limit=3 返回最新的三条"""
        traces = _traces(user_id, 5)
        await repos.decision_trace.create(dbc, traces)

        found = await repos.decision_trace.list_by_user(dbc, user_id, 3)

        assert [t.decision_type for t in found] == ["t4", "t3", "t2"]
        assert found[0].inputs == {"step": 4}

    async def test_list_by_user_non_positive_limit_uses_default(self, repos, dbc, user_id):
        await repos.decision_trace.create(dbc, _traces(user_id, 3))

        assert len(await repos.decision_trace.list_by_user(dbc, user_id, 0)) == 3
        assert len(await repos.decision_trace.list_by_user(dbc, user_id, -5)) == 3

    async def test_list_by_user_scoped_to_user(self, repos, dbc, user_id):
        other_user = uuid.uuid4()
        await repos.decision_trace.create(dbc, _traces(user_id, 2) + _traces(other_user, 4))

        found = await repos.decision_trace.list_by_user(dbc, user_id)
        assert len(found) == 2
        assert all(t.user_id == user_id for t in found)
        assert await repos.decision_trace.list_by_user(dbc, None) == []

    async def test_create_fills_timestamps(self, repos, dbc, user_id):
        trace = DecisionTrace(user_id=user_id, decision_type="route")
        await repos.decision_trace.create(dbc, [trace])

        assert trace.id is not None
        assert trace.created_at is not None
        assert trace.occurred_at == trace.created_at

        [found] = await repos.decision_trace.get_by_user_ids(dbc, [user_id])
        assert found.id == trace.id

    async def test_full_delete_by_ids(self, repos, dbc, user_id):
        [trace] = await repos.decision_trace.create(dbc, _traces(user_id, 1))
        await repos.decision_trace.full_delete_by_ids(dbc, [trace.id])
        assert await repos.decision_trace.get_by_ids(dbc, [trace.id]) == []

    async def test_create_converts_aware_timestamps(self, repos, dbc, tx_session, user_id):
        """带时区的 occurred_at 以无时区 UTC 存储"""
        tz = timezone(timedelta(hours=8))
        occurred = datetime(2026, 3, 1, 20, 0, tzinfo=tz)
        trace = DecisionTrace(user_id=user_id, decision_type="route", occurred_at=occurred)

        await repos.decision_trace.create(dbc, [trace])

        assert trace.occurred_at == datetime(2026, 3, 1, 12, 0)
        assert trace.occurred_at.tzinfo is None
        tx_session.expunge_all()
        [stored] = await repos.decision_trace.get_by_ids(dbc, [trace.id])
        assert stored.occurred_at == datetime(2026, 3, 1, 12, 0)


class TestDecisionTraceByType:
    """按决策类型扫描与 chosen 回填"""

    async def test_list_by_decision_type_since(self, repos, dbc, user_id):
        base = utc_now() - timedelta(hours=2)
        old = DecisionTrace(user_id=user_id, decision_type="runtime_prompt", occurred_at=base)
        first = DecisionTrace(
            user_id=user_id, decision_type="runtime_prompt", occurred_at=base + timedelta(hours=1)
        )
        second = DecisionTrace(
            user_id=uuid.uuid4(),
            decision_type="runtime_prompt",
            occurred_at=base + timedelta(hours=1, seconds=1),
        )
        other_type = DecisionTrace(
            user_id=user_id, decision_type="build_plan", occurred_at=base + timedelta(hours=1)
        )
        await repos.decision_trace.create(dbc, [second, old, other_type, first])

        since = base + timedelta(minutes=30)
        found = await repos.decision_trace.list_by_decision_type_since(dbc, " runtime_prompt ", since)
        assert [t.id for t in found] == [first.id, second.id]

        limited = await repos.decision_trace.list_by_decision_type_since(dbc, "runtime_prompt", since, 1)
        assert [t.id for t in limited] == [first.id]

        everything = await repos.decision_trace.list_by_decision_type_since(dbc, "runtime_prompt")
        assert [t.id for t in everything] == [old.id, first.id, second.id]

    async def test_list_by_decision_type_since_accepts_aware_since(self, repos, dbc, user_id):
        base = utc_now() - timedelta(hours=2)
        [trace] = await repos.decision_trace.create(
            dbc, [DecisionTrace(user_id=user_id, decision_type="runtime_prompt", occurred_at=base)]
        )

        aware_before = (base - timedelta(minutes=1)).replace(tzinfo=timezone.utc)
        aware_after = (base + timedelta(minutes=1)).replace(tzinfo=timezone.utc)

        before = await repos.decision_trace.list_by_decision_type_since(dbc, "runtime_prompt", aware_before)
        after = await repos.decision_trace.list_by_decision_type_since(dbc, "runtime_prompt", aware_after)
        assert [t.id for t in before] == [trace.id]
        assert after == []

    async def test_list_by_decision_type_since_blank_type(self, repos, dbc, user_id):
        await repos.decision_trace.create(dbc, _traces(user_id, 1))
        assert await repos.decision_trace.list_by_decision_type_since(dbc, "  ") == []
        assert await repos.decision_trace.list_by_decision_type_since(dbc, None) == []

    async def test_update_chosen(self, repos, dbc, tx_session, user_id):
        [trace] = await repos.decision_trace.create(
            dbc, [DecisionTrace(user_id=user_id, decision_type="runtime_prompt", chosen={"arm": "a"})]
        )

        await repos.decision_trace.update_chosen(dbc, trace.id, {"arm": "a", "reward": 1.0})

        tx_session.expunge_all()
        [stored] = await repos.decision_trace.get_by_ids(dbc, [trace.id])
        assert stored.chosen == {"arm": "a", "reward": 1.0}
        assert stored.decision_type == "runtime_prompt"

    async def test_update_chosen_unset_id_is_noop(self, repos, dbc, user_id):
        [trace] = await repos.decision_trace.create(
            dbc, [DecisionTrace(user_id=user_id, chosen={"arm": "a"})]
        )

        await repos.decision_trace.update_chosen(dbc, None, {"arm": "b"})
        await repos.decision_trace.update_chosen(dbc, uuid.UUID(int=0), {"arm": "b"})

        [stored] = await repos.decision_trace.get_by_ids(dbc, [trace.id])
        assert stored.chosen == {"arm": "a"}
