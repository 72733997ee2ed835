"""配置模块 -- 可通过环境变量覆盖

包含数据库路径、分页默认值等常量，以及认证相关的 AuthConfig。
"""

import os
from pathlib import Path

import structlog
from pydantic import BaseModel, Field, ValidationError

log = structlog.get_logger()


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("TASKLANE_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "TASKLANE_DB_PATH",
        str(_get_base_dir() / "sqlite" / "tasklane.db"),
    )


# 列表接口默认每页条数
DEFAULT_PAGE_SIZE: int = int(os.environ.get("TASKLANE_DEFAULT_PAGE_SIZE", "10"))

# 列表接口单页上限
MAX_PAGE_SIZE: int = int(os.environ.get("TASKLANE_MAX_PAGE_SIZE", "100"))

# 任务编号格式：前缀 + 零填充数字
TASK_CODE_PREFIX: str = "T"
TASK_CODE_WIDTH: int = 4

# 字段长度上限
TITLE_MAX_LENGTH: int = 100
DESCRIPTION_MAX_LENGTH: int = 1000
CLIENT_NAME_MAX_LENGTH: int = 100
PASSWORD_MIN_LENGTH: int = 8


class AuthConfig(BaseModel):
    """认证配置 -- 从环境变量加载

    环境变量:
        TASKLANE_SESSION_TTL_HOURS: 会话有效期（小时，默认 720）
        TASKLANE_PASSWORD_ITERATIONS: PBKDF2 迭代次数（默认 240000）
    """

    session_ttl_hours: int = Field(
        default=720,
        ge=1,
        description="会话 token 有效期（小时）",
    )
    password_iterations: int = Field(
        default=240_000,
        ge=1000,
        description="PBKDF2-HMAC-SHA256 迭代次数",
    )


_AUTH_ENV_VARS = {
    "TASKLANE_SESSION_TTL_HOURS": "session_ttl_hours",
    "TASKLANE_PASSWORD_ITERATIONS": "password_iterations",
}


def load_auth_config() -> AuthConfig:
    """从环境变量加载认证配置

    无效整数或越界值记录 warning 并使用默认值，不阻塞启动。
    """
    kwargs: dict = {}
    defaults = AuthConfig()

    for env_var, field_name in _AUTH_ENV_VARS.items():
        if val := os.environ.get(env_var):
            try:
                # 逐字段校验
                AuthConfig(**{field_name: int(val)})
                kwargs[field_name] = int(val)
            except (ValueError, ValidationError):
                log.warning(
                    "invalid_auth_config",
                    env_var=env_var,
                    value=val,
                    fallback=getattr(defaults, field_name),
                )

    return AuthConfig(**kwargs)
