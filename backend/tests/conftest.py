"""
Pytest Configuration - 测试配置

提供测试所需的 fixtures：
- 临时 supabase 项目目录
- 指向临时目录的 Settings
- 记录调用的假引擎与内存输出
"""

from collections.abc import Callable
import io
from pathlib import Path
import textwrap

import pytest

from app.config import Settings
from core.config.project import ProjectConfig, load_project_config
from core.sandbox.relay import OutputRelay
from core.sandbox.watcher import ServeContext
from tests.mocks.engine_mock import FakeEngine

PROJECT_ID = "demo"

DEFAULT_CONFIG = f"""
project_id = "{PROJECT_ID}"

[db]
port = 54322
"""


def pytest_configure(config):
    """注册自定义标记"""
    config.addinivalue_line("markers", "integration: requires a running Docker daemon")


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """带 config.toml 和 functions 目录的项目"""
    root = tmp_path.resolve()
    supabase = root / "supabase"
    (supabase / "functions").mkdir(parents=True)
    (supabase / "config.toml").write_text(textwrap.dedent(DEFAULT_CONFIG), encoding="utf-8")
    return root


@pytest.fixture
def write_config(project_dir: Path) -> Callable[[str], None]:
    """追加 config.toml 内容"""

    def _write(extra: str) -> None:
        path = project_dir / "supabase" / "config.toml"
        content = path.read_text(encoding="utf-8") + textwrap.dedent(extra)
        path.write_text(content, encoding="utf-8")

    return _write


@pytest.fixture
def make_function(project_dir: Path) -> Callable[[str], Path]:
    """创建函数目录和入口文件"""

    def _make(slug: str) -> Path:
        func_dir = project_dir / "supabase" / "functions" / slug
        func_dir.mkdir(parents=True, exist_ok=True)
        (func_dir / "index.ts").write_text("console.log('hello')\n", encoding="utf-8")
        return func_dir

    return _make


@pytest.fixture
def settings(project_dir: Path, tmp_path: Path) -> Settings:
    """指向临时项目的配置（不读取 .env）"""
    return Settings(
        _env_file=None,
        project_dir=project_dir,
        deno_cache_dir=tmp_path / "deno-cache",
    )


@pytest.fixture
def project(settings: Settings) -> ProjectConfig:
    return load_project_config(settings)


@pytest.fixture
def engine() -> FakeEngine:
    """本地栈已运行的假引擎"""
    fake = FakeEngine()
    fake.running.add(f"supabase_db_{PROJECT_ID}")
    return fake


@pytest.fixture
def stdout() -> io.BytesIO:
    return io.BytesIO()


@pytest.fixture
def stderr() -> io.BytesIO:
    return io.BytesIO()


@pytest.fixture
def relay(stdout: io.BytesIO, stderr: io.BytesIO) -> OutputRelay:
    return OutputRelay(stdout=stdout, stderr=stderr)


@pytest.fixture
def ctx() -> ServeContext:
    return ServeContext()
