"""
Exceptions - 自定义异常类

提供统一的异常层次结构，所有致命错误都会回传到 serve 入口。
"""

from typing import Any


class ServeError(Exception):
    """Functions serve 基础异常

    所有自定义异常的基类。

    Attributes:
        message: 错误消息
        code: 错误代码（可选）
        details: 额外详情（可选）
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


class ConfigurationError(ServeError):
    """配置错误

    env 文件、import map、config.toml 不可读或不合法时抛出。
    在任何容器操作之前报告。
    """

    def __init__(
        self,
        message: str = "Invalid configuration",
        code: str = "CONFIG_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class InvalidFunctionSlugError(ConfigurationError):
    """函数名不合法"""

    def __init__(self, slug: str) -> None:
        super().__init__(
            f"Invalid Function name: {slug}. Must start with at least one letter, "
            "and only include alphanumeric characters, underscores, and hyphens. "
            "(^[A-Za-z][A-Za-z0-9_-]*$)",
            code="INVALID_SLUG",
            details={"slug": slug},
        )
        self.slug = slug


class ReservedEnvNameError(ConfigurationError):
    """用户环境变量使用了保留前缀"""

    def __init__(self, name: str, prefix: str) -> None:
        super().__init__(
            f"Invalid env name: {name}. Env names cannot start with {prefix}.",
            code="RESERVED_ENV_NAME",
            details={"name": name, "prefix": prefix},
        )
        self.name = name


class StackNotRunningError(ServeError):
    """本地开发栈未运行

    数据库容器不在运行状态时抛出。
    """

    def __init__(self, container: str) -> None:
        super().__init__(
            "supabase start is not running.",
            code="STACK_NOT_RUNNING",
            details={"container": container},
        )
        self.container = container


class EngineError(ServeError):
    """容器引擎错误

    Docker 守护进程不可达、镜像缺失、创建/执行失败时抛出。
    不做自动重试。
    """

    def __init__(
        self,
        operation: str,
        message: str | None = None,
        code: str = "ENGINE_ERROR",
        original_error: Exception | None = None,
    ) -> None:
        msg = message or f"Container engine error during {operation}"
        if original_error is not None and message is None:
            msg = f"{msg}: {original_error}"
        super().__init__(msg, code, {"operation": operation})
        self.operation = operation
        self.original_error = original_error


class ExecFailedError(EngineError):
    """容器内命令以非零状态退出"""

    def __init__(self, command: list[str], exit_code: int, output: str = "") -> None:
        message = f"Command {' '.join(command)} exited with status {exit_code}"
        if output:
            message = f"{message}:\n{output}"
        super().__init__("exec", message, code="EXEC_FAILED")
        self.command = command
        self.exit_code = exit_code
        self.output = output


class ContainerNotFoundError(EngineError):
    """容器不存在

    删除 / 清理时视为成功，由调用方吞掉。
    """

    def __init__(self, container: str, original_error: Exception | None = None) -> None:
        super().__init__(
            "lookup",
            f"Container not found: {container}",
            code="NOT_FOUND",
            original_error=original_error,
        )
        self.container = container


class ImageNotFoundError(EngineError):
    """本地不存在镜像"""

    def __init__(self, image: str, original_error: Exception | None = None) -> None:
        super().__init__(
            "create container",
            f"Image not found: {image}",
            code="IMAGE_NOT_FOUND",
            original_error=original_error,
        )
        self.image = image
