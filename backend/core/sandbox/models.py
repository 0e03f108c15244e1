"""
Sandbox Models - 沙箱数据模型
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class SandboxState(str, Enum):
    """沙箱生命周期状态"""

    ABSENT = "absent"  # 不存在
    STARTING = "starting"  # 正在创建
    RUNNING = "running"  # 运行中
    EXECUTING = "executing"  # 运行中且有 exec 在执行
    STOPPING = "stopping"  # 正在删除


class ContainerSpec(BaseModel):
    """容器创建规格"""

    image: str
    env: list[str] = Field(default_factory=list)
    cmd: list[str] | None = None
    binds: list[str] = Field(default_factory=list)
    extra_hosts: list[str] = Field(default_factory=list)
    network_mode: str | None = None
    labels: dict[str, str] = Field(default_factory=dict)
    tty: bool = False
    stdin_open: bool = False


class ExecResult(BaseModel):
    """一次性 exec 的执行结果"""

    exit_code: int
    output: str = ""
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return self.exit_code == 0


@dataclass
class SandboxSlot:
    """单槽位沙箱记录

    以固定容器名为键，同一名称最多一个活跃容器。
    """

    name: str
    state: SandboxState = SandboxState.ABSENT
    container_id: str | None = None
    active_execs: int = 0
    state_changed_at: datetime = field(default_factory=datetime.now)

    def set_state(self, state: SandboxState) -> None:
        """设置状态"""
        self.state = state
        self.state_changed_at = datetime.now()

    def begin_exec(self) -> None:
        self.active_execs += 1
        if self.state == SandboxState.RUNNING:
            self.set_state(SandboxState.EXECUTING)

    def end_exec(self) -> None:
        self.active_execs = max(0, self.active_execs - 1)
        if self.active_execs == 0 and self.state == SandboxState.EXECUTING:
            self.set_state(SandboxState.RUNNING)
