"""
应用配置（基于 pydantic-settings）

只包含持久化层需要的配置：
- 运行环境与调试开关
- PostgreSQL 连接参数（可通过 DATABASE_URL_OVERRIDE 整体覆盖，例如测试用 SQLite）
- 连接池参数
- 语句超时与慢查询阈值
"""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """全局配置"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ==================== 应用配置 ====================
    ENVIRONMENT: str = Field("development", description="运行环境")
    DEBUG: bool = Field(False, description="调试模式")
    PROJECT_NAME: str = "learnstore"

    # ==================== 数据库配置 ====================
    POSTGRES_HOST: str = Field("localhost", description="PostgreSQL 主机")
    POSTGRES_PORT: int = Field(5432, description="PostgreSQL 端口")
    POSTGRES_USER: str = Field("learnstore", description="数据库用户名")
    POSTGRES_PASSWORD: str = Field("learnstore", description="数据库密码")
    POSTGRES_DB: str = Field("learnstore", description="数据库名称")
    DATABASE_URL_OVERRIDE: str | None = Field(
        None,
        description="完整的 SQLAlchemy 异步连接 URL（设置后忽略 POSTGRES_* 配置）",
    )

    @property
    def DATABASE_URL(self) -> str:
        """构建异步数据库连接 URL（用于 SQLAlchemy）"""
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    # ==================== 连接池配置 ====================
    DB_POOL_SIZE: int = Field(20, description="基础连接池大小")
    DB_MAX_OVERFLOW: int = Field(10, description="溢出连接数")
    DB_POOL_RECYCLE: int = Field(300, description="连接回收时间（秒）")
    DB_POOL_TIMEOUT: int = Field(30, description="获取连接超时（秒）")

    # ==================== 语句执行配置 ====================
    DB_STATEMENT_TIMEOUT_SECONDS: float = Field(
        30.0,
        description="UnitOfWork 默认的事务截止时间（秒）",
    )
    SLOW_QUERY_THRESHOLD_MS: int = Field(
        100,
        description="慢查询阈值（毫秒），超过时记录 warning 日志",
    )

    # ==================== 日志配置 ====================
    LOG_LEVEL: str = Field("INFO", description="全局日志级别")
    REPOSITORY_LOG_LEVEL: str | None = Field(
        None,
        description="Repository logger 的日志级别，为空时沿用 LOG_LEVEL（DEBUG 模式下为 DEBUG）",
    )


settings = Settings()
