"""
Sandbox Lifecycle - 沙箱生命周期管理

统一管理固定名称沙箱容器的生命周期：
- restart: 先删除同名容器，再创建并启动（幂等替换，而非不存在才创建）
- exec_once / exec_and_stream: 在运行中的容器内执行命令
- attach_and_wait: 附加到常驻容器并等待其退出，与取消信号竞争
- teardown: 强制删除容器，容器不存在视为成功
"""

from __future__ import annotations

import asyncio
import contextlib

from core.sandbox.engine import DockerEngine
from core.sandbox.models import ContainerSpec, ExecResult, SandboxSlot, SandboxState
from core.sandbox.relay import OutputRelay, RelayStats
from core.sandbox.watcher import ServeContext
from exceptions import ContainerNotFoundError, EngineError, ExecFailedError, ImageNotFoundError
from utils.logging import get_logger

logger = get_logger(__name__)


class SandboxManager:
    """
    沙箱管理器

    以容器名为键的单槽位表：同一名称在任意时刻最多一个活跃容器。
    同名的并发编排之间不做协调，后一次 restart 生效。
    """

    def __init__(self, engine: DockerEngine) -> None:
        self.engine = engine
        self._slots: dict[str, SandboxSlot] = {}

    def slot(self, name: str) -> SandboxSlot:
        """获取（必要时创建）名称对应的槽位"""
        if name not in self._slots:
            self._slots[name] = SandboxSlot(name=name)
        return self._slots[name]

    def state(self, name: str) -> SandboxState:
        return self.slot(name).state

    async def is_running(self, name: str) -> bool:
        """检查任意容器是否在运行（用于本地栈前置检查）"""
        return await self.engine.is_running(name)

    async def restart(self, name: str, spec: ContainerSpec) -> str:
        """
        重启沙箱

        删除必须先完成（或确认不存在），之后才会创建新容器。

        Args:
            name: 固定容器名
            spec: 容器规格

        Returns:
            新容器 ID

        Raises:
            EngineError: 删除、拉取镜像、创建或启动失败
        """
        await self.teardown(name)

        slot = self.slot(name)
        slot.set_state(SandboxState.STARTING)
        logger.info("Starting sandbox %s (image: %s)", name, spec.image)

        try:
            container_id = await self.engine.create_container(name, spec)
        except ImageNotFoundError:
            await self.engine.pull_image(spec.image)
            container_id = await self.engine.create_container(name, spec)
        slot.container_id = container_id

        await self.engine.start_container(container_id)
        slot.set_state(SandboxState.RUNNING)
        logger.info("Sandbox started: %s (container: %s)", name, container_id[:12])
        return container_id

    async def exec_once(self, name: str, env: list[str], cmd: list[str]) -> ExecResult:
        """
        执行一次性命令并等待结束

        Raises:
            ExecFailedError: 命令以非零状态退出
            EngineError: 引擎调用失败
        """
        slot = self.slot(name)
        slot.begin_exec()
        try:
            logger.debug("Exec in %s: %s", name, " ".join(cmd))
            result = await self.engine.exec_run(name, cmd, env)
        finally:
            slot.end_exec()

        if not result.success:
            raise ExecFailedError(cmd, result.exit_code, result.output)
        return result

    async def exec_and_stream(
        self,
        name: str,
        env: list[str],
        cmd: list[str],
        relay: OutputRelay,
    ) -> RelayStats:
        """
        启动长时间运行的命令并转发其输出

        输出流完全读完（进程退出或容器被删除）之后才返回。
        """
        slot = self.slot(name)
        logger.debug("Exec (streaming) in %s: %s", name, " ".join(cmd))
        frames = await self.engine.exec_stream(name, cmd, env)
        slot.begin_exec()
        try:
            return await self.engine.drain("exec stream", relay.copy_demuxed, frames)
        finally:
            slot.end_exec()

    async def attach_and_wait(
        self,
        name: str,
        ctx: ServeContext,
        relay: OutputRelay,
    ) -> int | None:
        """
        附加到常驻容器并等待其退出

        Returns:
            容器退出码；取消先发生时返回 None
        """
        stream = await self.engine.attach(name)
        copy_task = asyncio.create_task(
            self.engine.drain("attach stream", relay.copy_passthrough, stream)
        )
        wait_task = asyncio.create_task(self.engine.wait(name))
        cancel_task = asyncio.create_task(ctx.wait_cancelled())

        try:
            await asyncio.wait({wait_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
            if ctx.cancelled:
                logger.debug("Wait on %s interrupted by cancellation", name)
                return None

            status = wait_task.result()
            logger.info("Sandbox %s exited with status %d", name, status)
            # 容器已退出，把剩余输出读完
            with contextlib.suppress(EngineError):
                await copy_task
            return status
        finally:
            for task in (cancel_task, wait_task, copy_task):
                if not task.done():
                    task.cancel()
            await asyncio.gather(cancel_task, wait_task, copy_task, return_exceptions=True)

    async def teardown(self, name: str) -> None:
        """
        强制删除容器（含卷），容器不存在视为成功

        Raises:
            EngineError: 除"不存在"以外的引擎错误
        """
        slot = self.slot(name)
        slot.set_state(SandboxState.STOPPING)
        try:
            await self.engine.remove_container(name)
            logger.info("Removed sandbox %s", name)
        except ContainerNotFoundError:
            logger.debug("Sandbox %s already absent", name)
        slot.container_id = None
        slot.active_execs = 0
        slot.set_state(SandboxState.ABSENT)
