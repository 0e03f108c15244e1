"""
Sandbox - 沙箱容器管理

提供沙箱容器生命周期、输出转发与取消监听
"""

from core.sandbox.engine import DockerEngine
from core.sandbox.lifecycle import SandboxManager
from core.sandbox.models import ContainerSpec, ExecResult, SandboxState
from core.sandbox.relay import OutputRelay
from core.sandbox.watcher import CancellationWatcher, ServeContext

__all__ = [
    "CancellationWatcher",
    "ContainerSpec",
    "DockerEngine",
    "ExecResult",
    "OutputRelay",
    "SandboxManager",
    "SandboxState",
    "ServeContext",
]
