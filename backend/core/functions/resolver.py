"""
Configuration Resolver - 配置解析

确定最终生效的 import map 路径和 JWT 校验开关。

import map 优先级（从高到低）：
1. 命令行显式指定
2. config.toml 中 [functions.<slug>].import_map（仅单函数模式）
3. 目录级兜底文件 functions/import_map.json（必须是普通文件）
4. 无
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from app.config import Settings
from core.config.project import ProjectConfig
from core.functions.slug import validate_function_slug
from exceptions import ConfigurationError
from utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ServeRequest:
    """serve 请求（编排器唯一输入）

    Attributes:
        slug: 函数名，None 表示 serve-all 模式
        env_file: 用户 env 文件路径
        verify_jwt: JWT 校验覆盖值，None 表示未指定
        import_map: 显式指定的 import map 路径
    """

    slug: str | None = None
    env_file: str | None = None
    verify_jwt: bool | None = None
    import_map: str | None = None

    @property
    def serve_all(self) -> bool:
        return not self.slug


@dataclass(frozen=True)
class ResolvedConfig:
    """解析结果，每次运行只计算一次"""

    import_map: Path | None
    verify_jwt: bool
    env_file: Path | None = None


class ConfigResolver:
    """
    配置解析器

    只做存在性检查，不读取文件内容。
    """

    def __init__(self, settings: Settings, project: ProjectConfig) -> None:
        self.settings = settings
        self.project = project

    def resolve(self, request: ServeRequest) -> ResolvedConfig:
        """
        解析请求

        Raises:
            ConfigurationError: 函数名不合法、env 文件或 import map 不可读
        """
        if request.serve_all:
            return self.resolve_all(request)
        return self.resolve_function(request)

    def resolve_function(self, request: ServeRequest) -> ResolvedConfig:
        """单函数模式"""
        slug = request.slug or ""
        validate_function_slug(slug)
        env_file = self._check_env_file(request.env_file)

        function_config = self.project.functions.get(slug)
        if request.import_map:
            import_map: Path | None = self.settings.project_path(request.import_map)
        elif function_config is not None and function_config.import_map:
            declared = Path(function_config.import_map)
            if declared.is_absolute():
                import_map = declared
            else:
                import_map = self.settings.project_path(self.settings.supabase_dir) / declared
        else:
            import_map = self._fallback_import_map()
        self._check_import_map(import_map)

        if request.verify_jwt is not None:
            verify_jwt = request.verify_jwt
        elif function_config is not None:
            verify_jwt = function_config.verify_jwt
        else:
            verify_jwt = True

        logger.debug(
            "Resolved function %s: import_map=%s verify_jwt=%s", slug, import_map, verify_jwt
        )
        return ResolvedConfig(import_map=import_map, verify_jwt=verify_jwt, env_file=env_file)

    def resolve_all(self, request: ServeRequest) -> ResolvedConfig:
        """serve-all 模式

        任何显式的 verify_jwt 覆盖值（包括 True）都会关闭校验。
        """
        env_file = self._check_env_file(request.env_file)

        if request.import_map:
            import_map: Path | None = self.settings.project_path(request.import_map)
        else:
            import_map = self._fallback_import_map()
        self._check_import_map(import_map)

        verify_jwt = request.verify_jwt is None
        logger.debug("Resolved serve-all: import_map=%s verify_jwt=%s", import_map, verify_jwt)
        return ResolvedConfig(import_map=import_map, verify_jwt=verify_jwt, env_file=env_file)

    def _fallback_import_map(self) -> Path | None:
        fallback = self.settings.project_path(self.settings.fallback_import_map_path)
        if fallback.is_file():
            return fallback
        return None

    def _check_env_file(self, env_file: str | None) -> Path | None:
        if not env_file:
            return None
        path = self.settings.project_path(env_file)
        try:
            path.stat()
        except OSError as e:
            raise ConfigurationError(f"Failed to read env file: {e}") from e
        return path

    @staticmethod
    def _check_import_map(import_map: Path | None) -> None:
        if import_map is None:
            return
        try:
            import_map.stat()
        except OSError as e:
            raise ConfigurationError(f"Failed to read import map: {e}") from e
