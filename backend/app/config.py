"""
Application Configuration Management

使用 Pydantic Settings 管理配置，支持环境变量和 .env 文件。
环境变量统一使用 SERVE_ 前缀，避免与函数自身的变量冲突。
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_deno_cache_dir() -> Path:
    return Path.home() / ".supabase" / "deno"


class Settings(BaseSettings):
    """应用配置"""

    model_config = SettingsConfigDict(
        env_prefix="SERVE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================================================
    # 项目目录配置（相对 project_dir）
    # ========================================================================
    project_dir: Path = Path(".")
    supabase_dir: str = "supabase"
    functions_dir: str = "supabase/functions"
    fallback_import_map_path: str = "supabase/functions/import_map.json"
    config_file: str = "supabase/config.toml"
    deno_cache_dir: Path = Field(default_factory=_default_deno_cache_dir)

    # ========================================================================
    # 容器镜像配置
    # ========================================================================
    deno_relay_image: str = "supabase/deno-relay:v1.6.0"
    edge_runtime_image: str = "supabase/edge-runtime:v1.2.18"
    docker_timeout: int = 60

    # ========================================================================
    # 容器内路径配置
    # ========================================================================
    relay_func_dir: str = "/home/deno/functions"
    custom_import_map_path: str = "/home/deno/import_map.json"
    deno_cache_mount: str = "/root/.cache/deno"
    deno_origin: str = "http://localhost:8000"
    edge_runtime_port: int = 8081

    # ========================================================================
    # 安全配置（本地开发默认值）
    # ========================================================================
    reserved_env_prefix: str = "SUPABASE_"
    jwt_secret: SecretStr = Field(
        default=SecretStr("super-secret-jwt-token-with-at-least-32-characters-long")
    )
    anon_key: SecretStr = Field(
        default=SecretStr(
            "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9.eyJpc3MiOiJzdXBhYmFzZS1kZW1vIiwicm9sZSI6"
            "ImFub24iLCJleHAiOjE5ODM4MTI5OTZ9.CRXP1A7WOeoJeXxjNni43kdQwgnWNReilDMblYTn_I0"
        )
    )
    service_role_key: SecretStr = Field(
        default=SecretStr(
            "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9.eyJpc3MiOiJzdXBhYmFzZS1kZW1vIiwicm9sZSI6"
            "InNlcnZpY2Vfcm9sZSIsImV4cCI6MTk4MzgxMjk5Nn0"
            ".EGIM96RAZx35lJzdJsyH-qQwv8Hdp7fsn3W0YpN81IU"
        )
    )

    # ========================================================================
    # 日志配置
    # ========================================================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"
    log_format: Literal["json", "text"] = "text"
    debug: bool = False

    def project_path(self, relative: str | Path) -> Path:
        """将项目内相对路径解析为绝对路径（绝对路径原样返回）"""
        path = Path(relative)
        if path.is_absolute():
            return path
        return (self.project_dir / path).resolve()


@lru_cache
def get_settings() -> Settings:
    """获取配置单例"""
    return Settings()
