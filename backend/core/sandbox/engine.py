"""
Docker Engine - 容器引擎客户端

基于 docker-py 低层 APIClient 的异步封装：
- 阻塞调用统一通过 asyncio.to_thread 执行
- docker / requests 异常统一转换为 EngineError 体系
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterator
import threading
import time
from typing import Any, TypeVar

import docker
from docker import errors as docker_errors
from docker.utils import parse_repository_tag
import requests

from core.sandbox.models import ContainerSpec, ExecResult
from exceptions import ContainerNotFoundError, EngineError, ImageNotFoundError
from utils.logging import get_logger

logger = get_logger(__name__)

S = TypeVar("S")
T = TypeVar("T")

# exec_start(demux=True) 产出的帧：(stdout, stderr)，其中一个为 None
DemuxedFrame = tuple[bytes | None, bytes | None]


class DockerEngine:
    """
    Docker 引擎客户端

    只暴露编排所需的操作：remove / create / start / exec / attach / wait / inspect

    未传入 api 时，第一次调用才连接守护进程，配置校验失败的运行不会触达引擎。
    """

    def __init__(self, api: docker.APIClient | None = None, timeout: int = 60) -> None:
        self._client = api
        self._timeout = timeout
        self._lock = threading.Lock()

    @classmethod
    def from_env(cls, timeout: int = 60) -> DockerEngine:
        """从 DOCKER_HOST 等环境变量创建客户端（延迟连接）"""
        return cls(timeout=timeout)

    @property
    def _api(self) -> docker.APIClient:
        """获取 APIClient，必要时创建（在工作线程中调用）"""
        with self._lock:
            if self._client is None:
                try:
                    self._client = docker.from_env(timeout=self._timeout).api
                except docker_errors.DockerException as e:
                    raise EngineError("connect", original_error=e) from e
            return self._client

    async def _call(
        self,
        operation: str,
        func: Callable[[], T],
        *,
        container: str | None = None,
        image: str | None = None,
    ) -> T:
        """在线程池中执行阻塞调用并转换异常"""
        try:
            return await asyncio.to_thread(func)
        except docker_errors.ImageNotFound as e:
            raise ImageNotFoundError(image or "", original_error=e) from e
        except docker_errors.NotFound as e:
            raise ContainerNotFoundError(container or "", original_error=e) from e
        except (docker_errors.DockerException, requests.exceptions.RequestException, OSError) as e:
            raise EngineError(operation, original_error=e) from e

    async def remove_container(self, name: str) -> None:
        """强制删除容器及其匿名卷

        Raises:
            ContainerNotFoundError: 容器不存在
        """

        def run() -> None:
            self._api.remove_container(name, v=True, force=True)

        await self._call("remove container", run, container=name)

    async def pull_image(self, image: str) -> None:
        """拉取镜像"""
        repository, tag = parse_repository_tag(image)

        def run() -> None:
            self._api.pull(repository, tag=tag or "latest")

        logger.info("Pulling image %s", image)
        await self._call("pull image", run, image=image)

    async def create_container(self, name: str, spec: ContainerSpec) -> str:
        """创建容器，返回容器 ID

        Raises:
            ImageNotFoundError: 本地不存在镜像
        """

        def run() -> str:
            host_config = self._api.create_host_config(
                binds=spec.binds or None,
                extra_hosts=spec.extra_hosts or None,
                network_mode=spec.network_mode,
            )
            resp = self._api.create_container(
                image=spec.image,
                command=spec.cmd,
                environment=spec.env,
                host_config=host_config,
                name=name,
                labels=spec.labels or None,
                tty=spec.tty,
                stdin_open=spec.stdin_open,
            )
            return resp["Id"]

        return await self._call("create container", run, container=name, image=spec.image)

    async def start_container(self, container_id: str) -> None:
        """启动容器"""

        def run() -> None:
            self._api.start(container_id)

        await self._call("start container", run, container=container_id)

    async def is_running(self, name: str) -> bool:
        """检查容器是否处于运行状态（不存在视为未运行）"""

        def run() -> dict[str, Any]:
            return self._api.inspect_container(name)

        try:
            info = await self._call("inspect container", run, container=name)
        except ContainerNotFoundError:
            return False
        return bool(info.get("State", {}).get("Running"))

    async def exec_run(self, container: str, cmd: list[str], env: list[str]) -> ExecResult:
        """在容器中执行一次性命令并等待结束"""

        def run() -> ExecResult:
            start_time = time.time()
            exec_id = self._api.exec_create(
                container, cmd, stdout=True, stderr=True, environment=env
            )["Id"]
            output = self._api.exec_start(exec_id)
            exit_code = self._api.exec_inspect(exec_id).get("ExitCode")
            return ExecResult(
                exit_code=exit_code if exit_code is not None else -1,
                output=output.decode("utf-8", errors="replace").strip(),
                duration_ms=int((time.time() - start_time) * 1000),
            )

        return await self._call("exec", run, container=container)

    async def exec_stream(
        self, container: str, cmd: list[str], env: list[str]
    ) -> Iterator[DemuxedFrame]:
        """在容器中启动长时间运行的命令，返回解复用后的输出流"""

        def run() -> Iterator[DemuxedFrame]:
            exec_id = self._api.exec_create(
                container, cmd, stdout=True, stderr=True, environment=env
            )["Id"]
            return self._api.exec_start(exec_id, stream=True, demux=True)

        return await self._call("exec attach", run, container=container)

    async def attach(self, container: str) -> Iterator[bytes]:
        """附加到容器主输出流（包含历史日志）"""

        def run() -> Iterator[bytes]:
            return self._api.attach(container, stdout=True, stderr=True, stream=True, logs=True)

        return await self._call("attach", run, container=container)

    async def wait(self, container: str) -> int:
        """阻塞直到容器停止，返回退出码"""

        def run() -> int:
            result = self._api.wait(container, condition="not-running")
            return int(result.get("StatusCode", -1))

        return await self._call("wait", run, container=container)

    async def drain(
        self,
        operation: str,
        copy: Callable[[Iterator[S]], T],
        stream: Iterator[S],
    ) -> T:
        """在线程池中把输出流拷贝到目标，直到流结束"""
        return await self._call(operation, lambda: copy(stream))
