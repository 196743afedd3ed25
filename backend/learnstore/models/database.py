"""
数据库模型（SQLModel）

时间处理说明：
- 所有时间字段统一使用 UTC
- 使用 TIMESTAMP WITHOUT TIME ZONE 存储，避免数据库按会话时区转换
- utc_now() 返回无时区信息的 UTC 时间

主键说明：
- 所有主键均为 UUID；None 或全零 UUID 表示"未设置"
- 主键与时间字段默认留空，由 Repository 在 create 时补齐
- 外键列只建索引，不建外键约束（父实体可能来自其他服务）

软删除说明：
- 带 deleted_at 的表支持软删除，deleted_at 为 NULL 表示存活记录
"""
from datetime import datetime, timezone
from typing import Any, Optional
from sqlmodel import SQLModel, Field
from sqlalchemy import DateTime, JSON, Text
import uuid


NIL_UUID = uuid.UUID(int=0)


def utc_now() -> datetime:
    """
    获取当前 UTC 时间（无时区信息）

    返回的 datetime 对象不包含时区信息，但值是 UTC 时间。
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """带时区的时间换算为 UTC 后去掉时区信息；无时区的值原样返回"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def is_unset_id(value: Optional[uuid.UUID]) -> bool:
    """判断 ID 是否未设置（None 或全零 UUID）"""
    return value is None or value == NIL_UUID


# ============================================================
# 公共字段
# ============================================================

class SoftDeleteTimestamps(SQLModel):
    """创建/更新/软删除时间字段（非表模型，供可软删除的表继承）"""

    created_at: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=False),
        nullable=False,
    )
    updated_at: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=False),
        nullable=False,
    )
    # 软删除字段
    deleted_at: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=False),
        nullable=True,
        index=True,
        description="软删除时间，None 表示未删除",
    )


# ============================================================
# 课程结构
# ============================================================

class Course(SoftDeleteTimestamps, table=True):
    """课程表"""
    __tablename__ = "course"

    id: Optional[uuid.UUID] = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(index=True, description="所属用户 ID")
    material_set_id: Optional[uuid.UUID] = Field(
        default=None,
        index=True,
        description="生成课程所用的资料集 ID（可选）",
    )

    title: str = Field(default="")
    description: str = Field(default="", sa_type=Text)
    status: str = Field(default="draft")  # draft, generating, ready, failed

    metadata_json: Optional[Any] = Field(default_factory=dict, sa_type=JSON)


class CourseModule(SoftDeleteTimestamps, table=True):
    """课程模块表（按 ordinal 在课程内排序）"""
    __tablename__ = "course_module"

    id: Optional[uuid.UUID] = Field(default=None, primary_key=True)
    course_id: uuid.UUID = Field(index=True)
    ordinal: int = Field(default=0, description="模块在课程内的序号，同一课程内唯一")

    title: str = Field(default="")
    description: str = Field(default="", sa_type=Text)

    metadata_json: Optional[Any] = Field(default_factory=dict, sa_type=JSON)


class Lesson(SoftDeleteTimestamps, table=True):
    """课时表（按 ordinal 在模块内排序）"""
    __tablename__ = "lesson"

    id: Optional[uuid.UUID] = Field(default=None, primary_key=True)
    module_id: uuid.UUID = Field(index=True)
    ordinal: int = Field(default=0, description="课时在模块内的序号，同一模块内唯一")

    title: str = Field(default="")
    kind: str = Field(default="reading")  # reading, video, quiz, exercise
    content_md: str = Field(default="", sa_type=Text)
    estimated_minutes: int = Field(default=0)

    metadata_json: Optional[Any] = Field(default_factory=dict, sa_type=JSON)


class LessonAsset(SoftDeleteTimestamps, table=True):
    """课时资源表（图片、视频、音频、PDF 等）"""
    __tablename__ = "lesson_asset"

    id: Optional[uuid.UUID] = Field(default=None, primary_key=True)
    lesson_id: uuid.UUID = Field(index=True)

    kind: str = Field(default="")  # image, video, audio, pdf
    storage_key: str = Field(default="", description="对象存储中的 key")

    metadata_json: Optional[Any] = Field(default_factory=dict, sa_type=JSON)


# ============================================================
# 学习者状态
# ============================================================

class TopicMastery(SoftDeleteTimestamps, table=True):
    """主题掌握度表"""
    __tablename__ = "topic_mastery"

    id: Optional[uuid.UUID] = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(index=True)
    topic: str = Field(index=True)

    mastery: float = Field(default=0.0, description="掌握度（0-1）")
    confidence: float = Field(default=0.0, description="置信度（0-1）")
    last_update: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=False),
        nullable=True,
    )

    metadata_json: Optional[Any] = Field(default_factory=dict, sa_type=JSON)


class QuizAttempt(SoftDeleteTimestamps, table=True):
    """测验答题记录表"""
    __tablename__ = "quiz_attempt"

    id: Optional[uuid.UUID] = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(index=True)
    lesson_id: uuid.UUID = Field(index=True)
    question_id: Optional[uuid.UUID] = Field(default=None, index=True)

    is_correct: bool = Field(default=False)
    score: float = Field(default=0.0)
    selected_answer: str = Field(default="", sa_type=Text)

    metadata_json: Optional[Any] = Field(default_factory=dict, sa_type=JSON)


class DecisionTrace(SQLModel, table=True):
    """
    决策追踪表（仅追加，不支持软删除）

    记录运行时策略在某一时刻的输入、候选和最终选择。
    """
    __tablename__ = "decision_trace"

    id: Optional[uuid.UUID] = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(index=True)
    occurred_at: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=False),
        nullable=False,
        index=True,
    )

    decision_type: str = Field(default="", index=True)
    decision_phase: str = Field(default="")  # build, runtime
    decision_mode: str = Field(default="")  # deterministic, stochastic, llm
    graph_version: str = Field(default="")

    inputs: Optional[Any] = Field(default_factory=dict, sa_type=JSON)
    candidates: Optional[Any] = Field(default_factory=list, sa_type=JSON)
    chosen: Optional[Any] = Field(default_factory=dict, sa_type=JSON)

    created_at: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=False),
        nullable=False,
    )


# ============================================================
# 文档变体实验
# ============================================================

class DocVariantExposure(SQLModel, table=True):
    """文档变体曝光表（学习者看到了哪个文档变体）"""
    __tablename__ = "doc_variant_exposure"

    id: Optional[uuid.UUID] = Field(default=None, primary_key=True)
    user_id: Optional[uuid.UUID] = Field(default=None, index=True)
    path_id: Optional[uuid.UUID] = Field(default=None, index=True)
    path_node_id: Optional[uuid.UUID] = Field(default=None, index=True)
    variant_id: Optional[uuid.UUID] = Field(default=None)

    policy_version: str = Field(default="base")
    variant_kind: str = Field(default="base")
    exposure_kind: str = Field(default="base")
    source: str = Field(default="api")

    metadata_json: Optional[Any] = Field(default_factory=dict, sa_type=JSON)

    created_at: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=False),
        nullable=False,
        index=True,
    )


class DocVariantOutcome(SQLModel, table=True):
    """文档变体结果表（对某次曝光的评估结果）"""
    __tablename__ = "doc_variant_outcome"

    id: Optional[uuid.UUID] = Field(default=None, primary_key=True)
    exposure_id: Optional[uuid.UUID] = Field(default=None, index=True)
    user_id: Optional[uuid.UUID] = Field(default=None, index=True)
    path_id: Optional[uuid.UUID] = Field(default=None)
    path_node_id: Optional[uuid.UUID] = Field(default=None)
    variant_id: Optional[uuid.UUID] = Field(default=None)

    policy_version: str = Field(default="")
    schema_version: int = Field(default=1)
    outcome_kind: str = Field(default="eval_v1")

    metrics_json: Optional[Any] = Field(default_factory=dict, sa_type=JSON)

    created_at: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=False),
        nullable=False,
    )


# ============================================================
# 学习进度事件
# ============================================================

class UserProgressionEvent(SQLModel, table=True):
    """
    用户进度事件表

    由原始用户事件压缩而来的进度事实（完成、得分、停留时长等）。
    """
    __tablename__ = "user_progression_event"

    id: Optional[uuid.UUID] = Field(default=None, primary_key=True)
    user_id: uuid.UUID = Field(index=True)
    occurred_at: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=False),
        nullable=False,
        index=True,
    )
    path_id: Optional[uuid.UUID] = Field(default=None, index=True)
    activity_id: Optional[uuid.UUID] = Field(default=None)

    concept_ids: Optional[Any] = Field(default_factory=list, sa_type=JSON)
    activity_kind: str = Field(default="")
    variant: str = Field(default="")
    completed: bool = Field(default=False)
    score: float = Field(default=0.0)
    dwell_ms: int = Field(default=0)
    attempts: int = Field(default=0)

    metadata_json: Optional[Any] = Field(default_factory=dict, sa_type=JSON)

    created_at: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=False),
        nullable=False,
    )
    updated_at: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=False),
        nullable=False,
    )
