"""
Cancellation Watcher - 取消监听

等待外部取消信号，然后尽力清理沙箱容器。
清理失败（如容器已不存在）只记录日志，不向上抛出。
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import contextlib

from exceptions import ServeError
from utils.logging import get_logger

logger = get_logger(__name__)


class ServeContext:
    """
    可取消的执行上下文

    取消信号由调用方控制（CLI 中绑定 SIGINT / SIGTERM）。
    """

    def __init__(self) -> None:
        self._cancelled = asyncio.Event()

    def cancel(self) -> None:
        """触发取消"""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    async def wait_cancelled(self) -> None:
        """阻塞直到取消"""
        await self._cancelled.wait()


class CancellationWatcher:
    """
    取消监听器

    只持有取消信号和 teardown 回调，与主流程没有其他共享状态。
    """

    def __init__(
        self,
        ctx: ServeContext,
        teardown: Callable[[], Awaitable[None]],
        name: str,
    ) -> None:
        self._ctx = ctx
        self._teardown = teardown
        self.name = name
        self._task: asyncio.Task[None] | None = None
        self.fired = False

    def start(self) -> asyncio.Task[None]:
        """启动监听任务"""
        self._task = asyncio.create_task(self._run(), name=f"watch-{self.name}")
        return self._task

    async def _run(self) -> None:
        await self._ctx.wait_cancelled()
        self.fired = True
        logger.info("Cancellation received, tearing down %s", self.name)
        try:
            await self._teardown()
        except ServeError as e:
            logger.warning("Teardown of %s after cancellation failed: %s", self.name, e)

    async def join(self) -> None:
        """等待监听任务完成（取消已触发时使用）"""
        if self._task is not None:
            await self._task

    async def stop(self) -> None:
        """停止监听任务（正常结束或出错时使用）"""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
