"""
环境变量解析器

解析 config.toml 中的 env(NAME) 引用
"""

from collections.abc import Mapping
import os
import re
from typing import Any

from utils.logging import get_logger

logger = get_logger(__name__)


class EnvVarResolver:
    """
    环境变量解析器

    支持格式：
    - env(VAR) - 从进程环境读取，未设置时保留原样
    """

    # 匹配 env(VAR)
    ENV_PATTERN = re.compile(r"env\(\s*([A-Za-z_][A-Za-z0-9_]*)\s*\)")

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = os.environ if environ is None else environ

    def resolve(self, data: Any) -> Any:
        """
        递归解析数据中的环境变量引用

        Args:
            data: 要解析的数据（可以是字典、列表、字符串等）

        Returns:
            解析后的数据
        """
        if isinstance(data, str):
            return self._resolve_string(data)
        elif isinstance(data, dict):
            return {k: self.resolve(v) for k, v in data.items()}
        elif isinstance(data, list):
            return [self.resolve(item) for item in data]
        return data

    def _resolve_string(self, value: str) -> str:
        """解析字符串中的环境变量"""

        def replace(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = self._environ.get(var_name)

            if env_value is None:
                logger.warning("Environment variable '%s' referenced by config is unset", var_name)
                return match.group(0)  # 保留原样

            return env_value

        return self.ENV_PATTERN.sub(replace, value)
