"""
Functions - 函数服务

提供配置解析、环境组装与 serve 编排
"""

from core.functions.resolver import ConfigResolver, ResolvedConfig, ServeRequest
from core.functions.serve import FunctionsServer, serve, stop

__all__ = [
    "ConfigResolver",
    "FunctionsServer",
    "ResolvedConfig",
    "ServeRequest",
    "serve",
    "stop",
]
