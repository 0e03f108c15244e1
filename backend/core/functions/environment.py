"""
Environment Assembler - 环境变量组装

系统保留变量在前，用户变量在后。Docker 对重名变量采用后写覆盖，
因此用户显式使用同名变量时会覆盖系统值，这是已知并接受的行为，这里不做去重。
"""

from __future__ import annotations

from pathlib import Path

from dotenv import dotenv_values

from app.config import Settings
from core.config.project import ProjectConfig
from exceptions import ConfigurationError, ReservedEnvNameError
from utils.logging import get_logger

logger = get_logger(__name__)


def parse_env_file(env_file: str | Path | None, reserved_prefix: str = "SUPABASE_") -> list[str]:
    """
    解析用户 env 文件

    Args:
        env_file: 文件路径，为空时返回空列表
        reserved_prefix: 用户变量不允许使用的前缀

    Returns:
        NAME=VALUE 列表，保持文件中的顺序

    Raises:
        ConfigurationError: 文件不可读
        ReservedEnvNameError: 变量名使用了保留前缀
    """
    if not env_file:
        return []

    path = Path(env_file)
    if not path.is_file():
        raise ConfigurationError(f"Failed to read env file: {path}")

    try:
        values = dotenv_values(path, encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Failed to read env file: {e}") from e

    env: list[str] = []
    for name, value in values.items():
        if name.startswith(reserved_prefix):
            raise ReservedEnvNameError(name, reserved_prefix)
        env.append(f"{name}={value or ''}")

    logger.debug("Loaded %d user env vars from %s", len(env), path)
    return env


def build_environment(system: list[str], user: list[str]) -> list[str]:
    """拼接系统变量与用户变量（系统在前）"""
    return [*system, *user]


def verify_jwt_env(verify_jwt: bool) -> str:
    return f"VERIFY_JWT={'true' if verify_jwt else 'false'}"


def api_env(settings: Settings, project: ProjectConfig) -> list[str]:
    """函数访问本地栈所需的变量"""
    return [
        f"SUPABASE_URL=http://{project.kong_id}:8000",
        f"SUPABASE_ANON_KEY={settings.anon_key.get_secret_value()}",
        f"SUPABASE_SERVICE_ROLE_KEY={settings.service_role_key.get_secret_value()}",
        f"SUPABASE_DB_URL={project.db_url}",
    ]


def relay_system_env(settings: Settings, verify_jwt: bool) -> list[str]:
    """单函数模式：relay 容器的系统变量"""
    return [
        f"JWT_SECRET={settings.jwt_secret.get_secret_value()}",
        f"DENO_ORIGIN={settings.deno_origin}",
        verify_jwt_env(verify_jwt),
    ]


def runtime_system_env(settings: Settings, project: ProjectConfig, verify_jwt: bool) -> list[str]:
    """serve-all 模式：edge runtime 容器的系统变量"""
    return [
        f"JWT_SECRET={settings.jwt_secret.get_secret_value()}",
        *api_env(settings, project),
        verify_jwt_env(verify_jwt),
    ]
