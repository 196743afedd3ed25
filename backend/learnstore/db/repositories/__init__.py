"""
Repository 层

职责：数据访问层，负责与数据库交互

模块说明：
- base.py: 基础 Repository，提供批量创建 / 查询 / 软删除 / 物理删除
- course_repo.py: 课程数据访问
- course_module_repo.py: 课程模块数据访问
- lesson_repo.py: 课时数据访问
- lesson_asset_repo.py: 课时资源数据访问
- topic_mastery_repo.py: 主题掌握度数据访问
- quiz_attempt_repo.py: 测验答题记录数据访问
- decision_trace_repo.py: 决策追踪数据访问
- doc_variant_repo.py: 文档变体曝光与评估结果数据访问
- user_progression_event_repo.py: 用户进度事件数据访问

Factory:
- repository_factory.py: Repository 工厂，统一创建 Repository 实例
"""

from .base import BaseRepository, SoftDeleteRepository
from .course_repo import CourseRepository
from .course_module_repo import CourseModuleRepository
from .lesson_repo import LessonRepository
from .lesson_asset_repo import LessonAssetRepository
from .topic_mastery_repo import TopicMasteryRepository
from .quiz_attempt_repo import QuizAttemptRepository
from .decision_trace_repo import DecisionTraceRepository
from .doc_variant_repo import DocVariantExposureRepository, DocVariantOutcomeRepository
from .user_progression_event_repo import UserProgressionEventRepository

__all__ = [
    # Base
    "BaseRepository",
    "SoftDeleteRepository",
    # Course structure
    "CourseRepository",
    "CourseModuleRepository",
    "LessonRepository",
    "LessonAssetRepository",
    # Learner state
    "TopicMasteryRepository",
    "QuizAttemptRepository",
    "DecisionTraceRepository",
    "DocVariantExposureRepository",
    "DocVariantOutcomeRepository",
    "UserProgressionEventRepository",
]
