"""
Functions Serve - 函数服务编排

流程：
1. 配置解析（函数名、env 文件、import map、JWT 开关）
2. 解析用户 env 并检查保留前缀
3. 检查本地栈数据库是否运行
4. 重启沙箱容器，并启动取消监听
5. 单函数：deno cache 预编译，然后 deno run 并转发输出
   serve-all：附加到 edge runtime 容器并等待退出
6. 清理沙箱（正常结束由主流程负责，取消由监听器负责，恰好一次）

在第 4 步之前不会对容器做任何修改。
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
import contextlib

from app.config import Settings
from core.config.project import ProjectConfig, load_project_config
from core.functions.container import FunctionContainers
from core.functions.environment import api_env, build_environment, parse_env_file
from core.functions.resolver import ConfigResolver, ResolvedConfig, ServeRequest
from core.sandbox.engine import DockerEngine
from core.sandbox.lifecycle import SandboxManager
from core.sandbox.relay import OutputRelay
from core.sandbox.watcher import CancellationWatcher, ServeContext
from exceptions import EngineError, StackNotRunningError
from utils.logging import get_logger

logger = get_logger(__name__)


class FunctionsServer:
    """
    函数服务编排器

    一次 run 独占固定名称的 relay 容器。
    """

    def __init__(
        self,
        settings: Settings,
        project: ProjectConfig,
        sandbox: SandboxManager,
        relay: OutputRelay | None = None,
    ) -> None:
        self.settings = settings
        self.project = project
        self.sandbox = sandbox
        self.relay = relay or OutputRelay()
        self.resolver = ConfigResolver(settings, project)
        self.containers = FunctionContainers(settings, project)

    @property
    def sandbox_name(self) -> str:
        return self.project.relay_id

    async def run(self, request: ServeRequest, ctx: ServeContext) -> None:
        """
        执行一次 serve

        Raises:
            ServeError: 第一个致命错误
        """
        resolved = self.resolver.resolve(request)
        user_env = parse_env_file(resolved.env_file, self.settings.reserved_env_prefix)

        if request.serve_all:
            await self._serve_all(resolved, user_env, ctx)
        else:
            await self._serve_function(request.slug or "", resolved, user_env, ctx)

    async def _serve_function(
        self,
        slug: str,
        resolved: ResolvedConfig,
        user_env: list[str],
        ctx: ServeContext,
    ) -> None:
        import_map_flag = self.containers.function_import_map_flag(slug, resolved)
        cache_cmd = self.containers.cache_command(slug, import_map_flag)
        run_cmd = self.containers.run_command(slug, import_map_flag)
        spec = self.containers.relay_spec(resolved, user_env)
        display_dir = f"{self.settings.functions_dir}/{slug}"

        await self._assert_stack_running()
        await self.sandbox.restart(self.sandbox_name, spec)

        async with self._supervised(ctx):
            self.relay.status(f"Starting {display_dir}")
            await self.sandbox.exec_once(self.sandbox_name, user_env, cache_cmd)

            self.relay.status(f"Serving {display_dir}")
            run_env = build_environment(api_env(self.settings, self.project), user_env)
            await self.sandbox.exec_and_stream(self.sandbox_name, run_env, run_cmd, self.relay)

        self.relay.status(f"Stopped serving {display_dir}")

    async def _serve_all(
        self,
        resolved: ResolvedConfig,
        user_env: list[str],
        ctx: ServeContext,
    ) -> None:
        spec = self.containers.runtime_spec(resolved, user_env)
        self.containers.ensure_cache_dir()

        await self._assert_stack_running()
        await self.sandbox.restart(self.sandbox_name, spec)

        async with self._supervised(ctx):
            self.relay.status(f"Serving {self.settings.functions_dir}")
            # TODO: forward stdin and OS signals to the runtime container
            status = await self.sandbox.attach_and_wait(self.sandbox_name, ctx, self.relay)
            if status:
                logger.warning("Edge runtime exited with status %d", status)

        self.relay.status(f"Stopped serving {self.settings.functions_dir}")

    async def _assert_stack_running(self) -> None:
        if not await self.sandbox.is_running(self.project.db_id):
            raise StackNotRunningError(self.project.db_id)

    @contextlib.asynccontextmanager
    async def _supervised(self, ctx: ServeContext) -> AsyncIterator[None]:
        """
        在监听器的监督下运行主流程

        - 取消已触发：等待监听器完成清理，流被切断导致的引擎错误不再上抛
        - 正常结束：停止监听器，由主流程清理
        - 出错：停止监听器，容器留给下一次 restart 清理
        - 任务被取消或 KeyboardInterrupt（无法注册信号处理的平台）：按取消处理后继续上抛
        """
        name = self.sandbox_name
        watcher = CancellationWatcher(ctx, lambda: self.sandbox.teardown(name), name)
        watcher.start()
        try:
            yield
        except EngineError:
            if ctx.cancelled:
                await watcher.join()
                return
            await watcher.stop()
            raise
        except (asyncio.CancelledError, KeyboardInterrupt):
            ctx.cancel()
            await watcher.join()
            raise
        except BaseException:
            await watcher.stop()
            raise

        if ctx.cancelled:
            await watcher.join()
        else:
            await watcher.stop()
            await self.sandbox.teardown(name)


async def serve(
    request: ServeRequest,
    ctx: ServeContext,
    *,
    settings: Settings,
    engine: DockerEngine,
    project: ProjectConfig | None = None,
    relay: OutputRelay | None = None,
) -> None:
    """
    serve 入口

    成功时输出已经转发完毕；失败时抛出第一个致命错误。

    Args:
        request: serve 请求
        ctx: 可取消的执行上下文
        settings: 应用配置
        engine: 容器引擎客户端
        project: 项目配置，默认从 config.toml 加载
        relay: 输出转发器，默认写到进程 stdout / stderr
    """
    project = project or load_project_config(settings)
    server = FunctionsServer(settings, project, SandboxManager(engine), relay)
    await server.run(request, ctx)


async def stop(
    *,
    settings: Settings,
    engine: DockerEngine,
    project: ProjectConfig | None = None,
) -> None:
    """删除正在服务的 relay 容器（不存在时无操作）"""
    project = project or load_project_config(settings)
    await SandboxManager(engine).teardown(project.relay_id)
