"""
Output Relay - 输出转发

把沙箱输出实时写到操作者的控制台：
- copy_demuxed: exec 流已由 docker-py 按 stdout / stderr 拆帧，分别写入两个目标
- copy_passthrough: TTY 模式的容器主流，原样写到 stdout
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
import sys
from typing import BinaryIO

from utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class RelayStats:
    """转发字节统计"""

    stdout_bytes: int = 0
    stderr_bytes: int = 0


class OutputRelay:
    """输出转发器

    阻塞式拷贝，由调用方放到工作线程中执行。
    """

    def __init__(self, stdout: BinaryIO | None = None, stderr: BinaryIO | None = None) -> None:
        self.stdout = stdout if stdout is not None else sys.stdout.buffer
        self.stderr = stderr if stderr is not None else sys.stderr.buffer

    def copy_demuxed(self, frames: Iterable[tuple[bytes | None, bytes | None]]) -> RelayStats:
        """按通道转发解复用后的帧，保持每个通道内的顺序"""
        stats = RelayStats()
        for out_chunk, err_chunk in frames:
            if out_chunk:
                self.stdout.write(out_chunk)
                self.stdout.flush()
                stats.stdout_bytes += len(out_chunk)
            if err_chunk:
                self.stderr.write(err_chunk)
                self.stderr.flush()
                stats.stderr_bytes += len(err_chunk)
        logger.debug(
            "Relay drained: %d bytes stdout, %d bytes stderr",
            stats.stdout_bytes,
            stats.stderr_bytes,
        )
        return stats

    def copy_passthrough(self, chunks: Iterable[bytes]) -> RelayStats:
        """原样转发单一流到 stdout"""
        stats = RelayStats()
        for chunk in chunks:
            if not chunk:
                continue
            self.stdout.write(chunk)
            self.stdout.flush()
            stats.stdout_bytes += len(chunk)
        logger.debug("Passthrough drained: %d bytes", stats.stdout_bytes)
        return stats

    def status(self, message: str) -> None:
        """输出一行状态信息"""
        self.stdout.write(f"{message}\n".encode())
        self.stdout.flush()
