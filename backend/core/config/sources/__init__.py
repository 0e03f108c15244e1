"""配置源模块"""

from core.config.sources.base import ConfigSource
from core.config.sources.toml_source import TomlConfigSource

__all__ = [
    "ConfigSource",
    "TomlConfigSource",
]
