"""
Container Specs - 容器规格与命令构建

挂载策略：
- 函数目录只读挂载到 relay_func_dir
- 自定义 import map 只读挂载到固定路径，命令行始终引用该路径
- serve-all 额外以读写方式挂载 Deno 缓存目录，跨进程复用编译缓存
"""

from __future__ import annotations

from pathlib import Path

from app.config import Settings
from core.config.project import ProjectConfig
from core.functions.environment import (
    build_environment,
    relay_system_env,
    runtime_system_env,
)
from core.functions.resolver import ResolvedConfig
from core.sandbox.models import ContainerSpec
from exceptions import ConfigurationError

PROJECT_LABEL = "com.supabase.cli.project"

DENO_RUN_FLAGS = [
    "--no-check=remote",
    "--allow-all",
    "--watch",
    "--no-clear-screen",
    "--no-npm",
]


class FunctionContainers:
    """根据解析结果构建容器规格和容器内命令"""

    def __init__(self, settings: Settings, project: ProjectConfig) -> None:
        self.settings = settings
        self.project = project

    @property
    def functions_dir(self) -> Path:
        return self.settings.project_path(self.settings.functions_dir)

    @property
    def cache_dir(self) -> Path:
        return self.settings.project_path(self.settings.deno_cache_dir)

    def _binds(self, resolved: ResolvedConfig) -> list[str]:
        binds = [f"{self.functions_dir}:{self.settings.relay_func_dir}:ro,z"]
        if resolved.import_map is not None:
            binds.append(f"{resolved.import_map}:{self.settings.custom_import_map_path}:ro,z")
        return binds

    def _labels(self) -> dict[str, str]:
        return {PROJECT_LABEL: self.project.project_id}

    def relay_spec(self, resolved: ResolvedConfig, user_env: list[str]) -> ContainerSpec:
        """单函数模式的 relay 容器"""
        return ContainerSpec(
            image=self.settings.deno_relay_image,
            env=build_environment(relay_system_env(self.settings, resolved.verify_jwt), user_env),
            binds=self._binds(resolved),
            # 允许 Linux 上的容器访问宿主机
            extra_hosts=["host.docker.internal:host-gateway"],
            network_mode=self.project.network_id,
            labels=self._labels(),
        )

    def runtime_spec(self, resolved: ResolvedConfig, user_env: list[str]) -> ContainerSpec:
        """serve-all 模式的常驻 edge runtime 容器"""
        binds = self._binds(resolved)
        binds.append(f"{self.cache_dir}:{self.settings.deno_cache_mount}:rw,z")
        return ContainerSpec(
            image=self.settings.edge_runtime_image,
            env=build_environment(
                runtime_system_env(self.settings, self.project, resolved.verify_jwt), user_env
            ),
            cmd=self.runtime_command(resolved),
            binds=binds,
            network_mode=self.project.network_id,
            labels=self._labels(),
            tty=True,
            stdin_open=True,
        )

    def runtime_command(self, resolved: ResolvedConfig) -> list[str]:
        cmd = ["start", "--dir", self.settings.relay_func_dir]
        if resolved.import_map is not None:
            cmd.extend(["--import-map", self.settings.custom_import_map_path])
        cmd.extend(["-p", str(self.settings.edge_runtime_port)])
        return cmd

    def ensure_cache_dir(self) -> Path:
        """确保宿主机 Deno 缓存目录存在"""
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(f"Failed to create deno cache directory: {e}") from e
        return self.cache_dir

    def local_function_dir(self, slug: str) -> Path:
        return self.functions_dir / slug

    def function_entrypoint(self, slug: str) -> str:
        # 镜像总是 Linux，容器内路径固定使用 /
        return f"{self.settings.relay_func_dir}/{slug}/index.ts"

    def function_import_map_flag(self, slug: str, resolved: ResolvedConfig) -> str | None:
        """
        计算函数的 --import-map 参数

        未解析出 import map 时，使用函数目录内的 import_map.json（如果存在）。

        Raises:
            ConfigurationError: 无法检查文件（不存在以外的错误）
        """
        local_path = self.local_function_dir(slug) / "import_map.json"
        docker_path = f"{self.settings.relay_func_dir}/{slug}/import_map.json"
        if resolved.import_map is not None:
            local_path = resolved.import_map
            docker_path = self.settings.custom_import_map_path

        try:
            local_path.stat()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise ConfigurationError(
                f"failed to check import_map.json for function {slug}: {e}"
            ) from e
        return f"--import-map={docker_path}"

    def cache_command(self, slug: str, import_map_flag: str | None) -> list[str]:
        cmd = ["deno", "cache"]
        if import_map_flag:
            cmd.append(import_map_flag)
        cmd.append(self.function_entrypoint(slug))
        return cmd

    def run_command(self, slug: str, import_map_flag: str | None) -> list[str]:
        cmd = ["deno", "run", *DENO_RUN_FLAGS]
        if import_map_flag:
            cmd.append(import_map_flag)
        cmd.append(self.function_entrypoint(slug))
        return cmd
