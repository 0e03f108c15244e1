"""
Engine Mock 工具

提供 DockerEngine 的内存实现，记录所有调用，用于测试编排流程
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterator
from dataclasses import dataclass, field
import threading
from typing import Any

from core.sandbox.engine import DemuxedFrame, DockerEngine
from core.sandbox.models import ContainerSpec, ExecResult
from exceptions import ContainerNotFoundError, EngineError, ImageNotFoundError


@dataclass
class FakeContainer:
    """内存中的容器"""

    id: str
    name: str
    spec: ContainerSpec
    running: bool = False


@dataclass
class EngineCall:
    """一次引擎调用记录"""

    op: str
    target: str
    args: dict[str, Any] = field(default_factory=dict)


class FakeEngine(DockerEngine):
    """
    记录调用的假引擎

    - exec_stream 在 hold_stream=True 时阻塞，直到容器被删除
    - wait 在 exit_status 为 None 时阻塞，直到容器被删除
    - drain 沿用 DockerEngine 的实现（线程池 + 异常转换）
    """

    def __init__(self) -> None:
        super().__init__()
        self.calls: list[EngineCall] = []
        self.containers: dict[str, FakeContainer] = {}
        self.running: set[str] = set()
        self.missing_images: set[str] = set()
        self.failures: dict[str, EngineError] = {}

        self.exec_exit_code = 0
        self.exec_output = ""
        self.stream_frames: list[DemuxedFrame] = []
        self.hold_stream = False
        self.attach_chunks: list[bytes] = []
        self.exit_status: int | None = 0

        self._open_streams: list[threading.Event] = []
        self._removed: asyncio.Event | None = None
        self._next_id = 0
        self.max_live = 0

    # ------------------------------------------------------------------
    # 辅助
    # ------------------------------------------------------------------

    def ops(self) -> list[str]:
        return [call.op for call in self.calls]

    def calls_for(self, op: str) -> list[EngineCall]:
        return [call for call in self.calls if call.op == op]

    def calls_after(self, op: str) -> list[EngineCall]:
        """返回最后一次 op 之后的调用"""
        ops = self.ops()
        if op not in ops:
            return []
        index = len(ops) - 1 - ops[::-1].index(op)
        return self.calls[index + 1 :]

    def _record(self, op: str, target: str, **kwargs: Any) -> None:
        self.calls.append(EngineCall(op, target, kwargs))
        if op in self.failures:
            raise self.failures[op]

    def _removed_event(self) -> asyncio.Event:
        if self._removed is None:
            self._removed = asyncio.Event()
        return self._removed

    # ------------------------------------------------------------------
    # DockerEngine 接口
    # ------------------------------------------------------------------

    async def remove_container(self, name: str) -> None:
        self._record("remove_container", name)
        for event in self._open_streams:
            event.set()
        self._open_streams.clear()
        self._removed_event().set()
        if self.containers.pop(name, None) is None:
            raise ContainerNotFoundError(name)

    async def pull_image(self, image: str) -> None:
        self._record("pull_image", image)
        self.missing_images.discard(image)

    async def create_container(self, name: str, spec: ContainerSpec) -> str:
        self._record("create_container", name, spec=spec)
        if spec.image in self.missing_images:
            raise ImageNotFoundError(spec.image)
        self._next_id += 1
        container_id = f"{self._next_id:064x}"
        self.containers[name] = FakeContainer(container_id, name, spec)
        self.max_live = max(self.max_live, len(self.containers))
        self._removed = None
        return container_id

    async def start_container(self, container_id: str) -> None:
        self._record("start_container", container_id)
        for container in self.containers.values():
            if container.id == container_id:
                container.running = True

    async def is_running(self, name: str) -> bool:
        self._record("is_running", name)
        return name in self.running

    async def exec_run(self, container: str, cmd: list[str], env: list[str]) -> ExecResult:
        self._record("exec_run", container, cmd=cmd, env=env)
        return ExecResult(exit_code=self.exec_exit_code, output=self.exec_output)

    async def exec_stream(
        self, container: str, cmd: list[str], env: list[str]
    ) -> Iterator[DemuxedFrame]:
        self._record("exec_stream", container, cmd=cmd, env=env)
        closed = threading.Event()
        self._open_streams.append(closed)
        frames = list(self.stream_frames)
        hold = self.hold_stream

        def stream() -> Iterator[DemuxedFrame]:
            yield from frames
            if hold:
                closed.wait(timeout=5)

        return stream()

    async def attach(self, container: str) -> Iterator[bytes]:
        self._record("attach", container)
        return iter(list(self.attach_chunks))

    async def wait(self, container: str) -> int:
        self._record("wait", container)
        if self.exit_status is not None:
            return self.exit_status
        await self._removed_event().wait()
        return 137
