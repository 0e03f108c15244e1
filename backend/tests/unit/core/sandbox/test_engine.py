"""
DockerEngine 单元测试

使用 MagicMock 替代 docker APIClient
"""

from unittest.mock import MagicMock, patch

from docker import errors as docker_errors
import pytest
import requests

from core.sandbox.engine import DockerEngine
from core.sandbox.models import ContainerSpec
from exceptions import ContainerNotFoundError, EngineError, ImageNotFoundError


@pytest.fixture
def api():
    return MagicMock()


@pytest.fixture
def docker_engine(api):
    return DockerEngine(api)


class TestErrorMapping:
    """异常转换"""

    @pytest.mark.asyncio
    async def test_not_found(self, docker_engine, api):
        api.remove_container.side_effect = docker_errors.NotFound("No such container")

        with pytest.raises(ContainerNotFoundError) as exc_info:
            await docker_engine.remove_container("relay")

        assert exc_info.value.container == "relay"
        api.remove_container.assert_called_once_with("relay", v=True, force=True)

    @pytest.mark.asyncio
    async def test_image_not_found(self, docker_engine, api):
        api.create_container.side_effect = docker_errors.ImageNotFound("No such image")

        with pytest.raises(ImageNotFoundError) as exc_info:
            await docker_engine.create_container("relay", ContainerSpec(image="deno:1"))

        assert exc_info.value.image == "deno:1"

    @pytest.mark.asyncio
    async def test_daemon_unreachable(self, docker_engine, api):
        api.start.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(EngineError) as exc_info:
            await docker_engine.start_container("abc")

        assert exc_info.value.operation == "start container"
        assert "refused" in exc_info.value.message


class TestOperations:
    """引擎操作"""

    @pytest.mark.asyncio
    async def test_create_container(self, docker_engine, api):
        api.create_container.return_value = {"Id": "abc123"}
        spec = ContainerSpec(
            image="deno:1",
            env=["A=1"],
            binds=["/src:/dst:ro,z"],
            network_mode="supabase_network_demo",
            labels={"k": "v"},
        )

        container_id = await docker_engine.create_container("relay", spec)

        assert container_id == "abc123"
        api.create_host_config.assert_called_once_with(
            binds=["/src:/dst:ro,z"],
            extra_hosts=None,
            network_mode="supabase_network_demo",
        )
        kwargs = api.create_container.call_args.kwargs
        assert kwargs["name"] == "relay"
        assert kwargs["environment"] == ["A=1"]
        assert kwargs["host_config"] is api.create_host_config.return_value

    @pytest.mark.asyncio
    async def test_pull_image_default_tag(self, docker_engine, api):
        await docker_engine.pull_image("supabase/deno-relay")

        api.pull.assert_called_once_with("supabase/deno-relay", tag="latest")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("inspect", "expected"),
        [({"State": {"Running": True}}, True), ({"State": {"Running": False}}, False), ({}, False)],
    )
    async def test_is_running(self, docker_engine, api, inspect, expected):
        api.inspect_container.return_value = inspect

        assert await docker_engine.is_running("supabase_db_demo") is expected

    @pytest.mark.asyncio
    async def test_is_running_missing(self, docker_engine, api):
        api.inspect_container.side_effect = docker_errors.NotFound("gone")

        assert await docker_engine.is_running("supabase_db_demo") is False

    @pytest.mark.asyncio
    async def test_exec_run(self, docker_engine, api):
        api.exec_create.return_value = {"Id": "exec1"}
        api.exec_start.return_value = b"compiled\n"
        api.exec_inspect.return_value = {"ExitCode": 0}

        result = await docker_engine.exec_run("relay", ["deno", "cache"], ["A=1"])

        assert result.success
        assert result.output == "compiled"
        api.exec_create.assert_called_once_with(
            "relay", ["deno", "cache"], stdout=True, stderr=True, environment=["A=1"]
        )

    @pytest.mark.asyncio
    async def test_exec_stream_demux(self, docker_engine, api):
        api.exec_create.return_value = {"Id": "exec1"}
        api.exec_start.return_value = iter([(b"out", None)])

        frames = await docker_engine.exec_stream("relay", ["deno", "run"], [])

        assert list(frames) == [(b"out", None)]
        api.exec_start.assert_called_once_with("exec1", stream=True, demux=True)

    @pytest.mark.asyncio
    async def test_wait(self, docker_engine, api):
        api.wait.return_value = {"StatusCode": 137}

        assert await docker_engine.wait("runtime") == 137
        api.wait.assert_called_once_with("runtime", condition="not-running")

    @pytest.mark.asyncio
    async def test_drain_maps_stream_errors(self, docker_engine):
        def broken():
            yield b"partial"
            raise requests.exceptions.ChunkedEncodingError("connection reset")

        with pytest.raises(EngineError) as exc_info:
            await docker_engine.drain("exec stream", list, broken())

        assert exc_info.value.operation == "exec stream"


class TestLazyConnection:
    """延迟连接"""

    def test_from_env_does_not_connect(self):
        with patch("core.sandbox.engine.docker.from_env") as from_env:
            DockerEngine.from_env(timeout=5)

        from_env.assert_not_called()

    @pytest.mark.asyncio
    async def test_connects_on_first_call(self):
        client = MagicMock()
        client.api.inspect_container.return_value = {"State": {"Running": True}}

        with patch("core.sandbox.engine.docker.from_env", return_value=client) as from_env:
            engine = DockerEngine.from_env(timeout=5)
            assert await engine.is_running("supabase_db_demo") is True
            assert await engine.is_running("supabase_db_demo") is True

        from_env.assert_called_once_with(timeout=5)

    @pytest.mark.asyncio
    async def test_connect_failure(self):
        error = docker_errors.DockerException("Error while fetching server API version")

        with patch("core.sandbox.engine.docker.from_env", side_effect=error):
            engine = DockerEngine.from_env()
            with pytest.raises(EngineError) as exc_info:
                await engine.remove_container("relay")

        assert exc_info.value.operation == "connect"
