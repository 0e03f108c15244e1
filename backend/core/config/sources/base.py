"""
配置源抽象基类

定义项目配置加载的统一接口
"""

from abc import ABC, abstractmethod
from typing import Any


class ConfigSource(ABC):
    """
    配置源抽象基类

    所有配置来源必须实现此接口，确保可插拔性。
    """

    @abstractmethod
    def load(self, identifier: str) -> dict[str, Any] | None:
        """
        加载配置

        Args:
            identifier: 配置标识符 (如 config)

        Returns:
            配置字典，如果不存在返回 None
        """
        pass

    @abstractmethod
    def exists(self, identifier: str) -> bool:
        """
        检查配置是否存在

        Args:
            identifier: 配置标识符

        Returns:
            是否存在
        """
        pass
