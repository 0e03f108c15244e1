"""
Logging Utilities - 日志工具

架构说明：
- get_logger() 是无依赖的，可以被任何模块安全导入
- setup_logging() 在 CLI 启动时调用
- 日志写到 stderr，stdout 留给函数输出
"""

import json
import logging
import os
import sys

# 需要配置的顶层日志器
_APP_LOGGERS = ("app", "cli", "core")


class JsonFormatter(logging.Formatter):
    """单行 JSON 日志格式"""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record),
            "logger": record.name,
            "level": record.levelname,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def get_logger(name: str) -> logging.Logger:
    """获取日志器（无依赖，可安全导入）"""
    return logging.getLogger(name)


def setup_logging(
    log_level: str | None = None,
    log_format: str = "text",
    debug: bool = False,
) -> None:
    """设置日志

    Args:
        log_level: 日志级别，默认从环境变量 LOG_LEVEL 读取
        log_format: 日志格式 (text/json)
        debug: 是否强制 DEBUG 级别
    """
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "WARNING")

    level = logging.DEBUG if debug else getattr(logging, log_level.upper(), logging.WARNING)

    if log_format == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    for name in _APP_LOGGERS:
        app_logger = logging.getLogger(name)
        app_logger.setLevel(level)

        # 如果没有处理器，添加一个
        if not app_logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(formatter)
            app_logger.addHandler(handler)
            app_logger.propagate = False  # 不传播到根日志器，避免重复

    # 设置第三方库日志级别
    logging.getLogger("docker").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
