"""
TOML 文件配置源

从本地 TOML 文件加载配置
"""

from pathlib import Path
import tomllib
from typing import Any

from exceptions import ConfigurationError
from utils.logging import get_logger

from .base import ConfigSource

logger = get_logger(__name__)


class TomlConfigSource(ConfigSource):
    """
    TOML 文件配置源

    从指定目录加载 TOML 配置文件
    """

    def __init__(self, base_dir: Path | str, suffix: str = ".toml") -> None:
        """
        初始化 TOML 配置源

        Args:
            base_dir: 配置文件所在目录
            suffix: 文件后缀，默认 .toml
        """
        self.base_dir = Path(base_dir)
        self.suffix = suffix

    def load(self, identifier: str) -> dict[str, Any] | None:
        """从 TOML 文件加载配置

        Raises:
            ConfigurationError: 文件存在但无法读取或解析
        """
        path = self._get_path(identifier)
        if not path.exists():
            return None

        try:
            with path.open("rb") as f:
                return tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.error("Failed to load TOML config from %s: %s", path, e)
            raise ConfigurationError(f"Failed to read config file {path}: {e}") from e

    def exists(self, identifier: str) -> bool:
        """检查 TOML 文件是否存在"""
        return self._get_path(identifier).is_file()

    def _get_path(self, identifier: str) -> Path:
        """获取配置文件路径"""
        return self.base_dir / f"{identifier}{self.suffix}"
