#!/usr/bin/env python3
"""
本地函数服务命令行

用法:
    functions-serve serve hello                      # 通过 relay 容器服务单个函数
    functions-serve serve hello --env-file .env.local
    functions-serve serve hello --no-verify-jwt
    functions-serve serve --all                      # 通过 edge runtime 服务整个函数目录
    functions-serve stop                             # 删除正在服务的容器
"""

import argparse
import asyncio
import contextlib
from pathlib import Path
import signal
import sys

from app.config import Settings, get_settings
from core.functions import ServeRequest, serve, stop
from core.sandbox import DockerEngine, ServeContext
from exceptions import ServeError
from utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """构建参数解析器"""
    parser = argparse.ArgumentParser(
        prog="functions-serve",
        description="在本地 Docker 沙箱中服务 Edge Functions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--project-dir",
        help="项目根目录（默认当前目录）",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="输出调试日志",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="服务单个函数或整个函数目录")
    serve_parser.add_argument("slug", nargs="?", help="函数名")
    serve_parser.add_argument(
        "--all",
        action="store_true",
        help="通过常驻 edge runtime 服务所有函数",
    )
    serve_parser.add_argument(
        "--env-file",
        help="注入到函数的环境变量文件",
    )
    verify_group = serve_parser.add_mutually_exclusive_group()
    verify_group.add_argument(
        "--no-verify-jwt",
        dest="verify_jwt",
        action="store_const",
        const=False,
        default=None,
        help="关闭 JWT 校验",
    )
    verify_group.add_argument(
        "--verify-jwt",
        dest="verify_jwt",
        action="store_const",
        const=True,
        help="强制开启 JWT 校验",
    )
    serve_parser.add_argument(
        "--import-map",
        help="自定义 import map 文件路径",
    )

    subparsers.add_parser("stop", help="删除正在服务的沙箱容器")
    return parser


def build_request(parser: argparse.ArgumentParser, args: argparse.Namespace) -> ServeRequest:
    """从参数构建 ServeRequest"""
    if args.all and args.slug:
        parser.error("cannot combine a function name with --all")
    if not args.all and not args.slug:
        parser.error("specify a function name or --all")
    return ServeRequest(
        slug=None if args.all else args.slug,
        env_file=args.env_file,
        verify_jwt=args.verify_jwt,
        import_map=args.import_map,
    )


def load_settings(args: argparse.Namespace) -> Settings:
    settings = get_settings()
    if args.project_dir:
        settings = settings.model_copy(update={"project_dir": Path(args.project_dir)})
    return settings


async def run(request: ServeRequest | None, settings: Settings) -> None:
    """执行子命令（request 为 None 时执行 stop）"""
    engine = DockerEngine.from_env(timeout=settings.docker_timeout)

    if request is None:
        await stop(settings=settings, engine=engine)
        return

    ctx = ServeContext()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Windows 不支持 add_signal_handler，退回 KeyboardInterrupt
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, ctx.cancel)

    await serve(request, ctx, settings=settings, engine=engine)


def main(argv: list[str] | None = None) -> int:
    """主函数"""
    parser = build_parser()
    args = parser.parse_args(argv)
    request = build_request(parser, args) if args.command == "serve" else None

    settings = load_settings(args)
    setup_logging(settings.log_level, settings.log_format, debug=args.debug or settings.debug)

    try:
        asyncio.run(run(request, settings))
    except ServeError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
