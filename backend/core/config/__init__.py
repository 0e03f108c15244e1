"""
Core Configuration Module

提供项目配置（config.toml）的加载和管理

架构:
- ConfigSource: 配置源接口
- TomlConfigSource: TOML 文件配置源
- EnvVarResolver: env(NAME) 引用解析
- ProjectConfig: 校验后的项目配置
"""

from .env_resolver import EnvVarResolver
from .project import (
    DbConfig,
    FunctionConfig,
    ProjectConfig,
    load_project_config,
)
from .sources import ConfigSource, TomlConfigSource

__all__ = [
    "ConfigSource",
    "DbConfig",
    "EnvVarResolver",
    "FunctionConfig",
    "ProjectConfig",
    "TomlConfigSource",
    "load_project_config",
]
