"""
Unit tests for the docker SDK backed engine client.
"""
from unittest import mock

import pytest
from docker.errors import APIError, BuildError, DockerException, ImageNotFound
from dcompose.ENGINE.docker_client import DockerEngineClient
from dcompose.ENGINE.engine_client import ContainerConfig
from dcompose.MODELS.settings import ComposeSettings


@pytest.fixture
def api():
    return mock.MagicMock()


@pytest.fixture
def client(api):
    return DockerEngineClient(api=api)


class TestDockerEngineClient:
    """Tests for DockerEngineClient."""

    def test_image_exists(self, client, api):
        assert client.image_exists("nginx:latest")
        api.inspect_image.side_effect = ImageNotFound("missing")
        assert not client.image_exists("nginx:latest")

    def test_pull_image_consumes_stream(self, client, api):
        api.pull.return_value = iter([{"status": "Pulling"}, {"status": "Done"}])
        client.pull_image("redis:latest")
        api.pull.assert_called_once_with("redis:latest", stream=True, decode=True)

    def test_build_image_maps_options(self, client, api):
        api.build.return_value = iter([{"stream": "Step 1/1"}])
        tag = client.build_image("/src/app", "abc123", {"dockerfile": "Dockerfile.dev", "args": ["A=1"]})

        assert tag == "abc123"
        api.build.assert_called_once_with(
            path="/src/app", tag="abc123", rm=True, decode=True,
            dockerfile="Dockerfile.dev", buildargs={"A": "1"},
        )

    def test_pull_error_chunk_raises(self, client, api):
        api.pull.return_value = iter([{"status": "Pulling"}, {"error": "manifest unknown"}])
        with pytest.raises(APIError, match="manifest unknown"):
            client.pull_image("redis:nope")

    def test_build_skips_unsupported_options(self, client, api, caplog):
        api.build.return_value = iter([{"stream": "Step 1/1"}])
        client.build_image("/src/app", "abc123", {"dockerfile": "Dockerfile", "ssh": "default"})

        api.build.assert_called_once_with(
            path="/src/app", tag="abc123", rm=True, decode=True, dockerfile="Dockerfile",
        )
        assert "ssh" in caplog.text

    def test_build_error(self, client, api):
        api.build.return_value = iter([{"error": "no such file"}])
        with pytest.raises(BuildError):
            client.build_image("/src/app", "abc123")

    def test_create_container(self, client, api):
        api.create_container.return_value = {"Id": "c0ffee"}
        config = ContainerConfig(
            name="proj_web_1",
            image="nginx:latest",
            command=["nginx"],
            environment=["A=1"],
            volumes=["/data"],
            exposed_ports=["80/tcp", "53/udp"],
            port_bindings={"80/tcp": [{"HostIp": "", "HostPort": "8080"}]},
            labels={"com.docker.compose.service": "web"},
            binds=["/srv:/data"],
            links=[("db-id", "db")],
            cap_add=["SYS_ADMIN"],
            shm_size=1024,
        )

        assert client.create_container(config) == "c0ffee"

        api.create_host_config.assert_called_once_with(
            binds=["/srv:/data"],
            links=[("db-id", "db")],
            port_bindings={"80/tcp": [{"HostIp": "", "HostPort": "8080"}]},
            cap_add=["SYS_ADMIN"],
            security_opt=None,
            shm_size=1024,
        )
        kwargs = api.create_container.call_args.kwargs
        assert kwargs["name"] == "proj_web_1"
        assert kwargs["ports"] == ["80", ("53", "udp")]
        assert kwargs["host_config"] is api.create_host_config.return_value

    def test_lifecycle_calls(self, client, api):
        client.start_container("c1")
        client.stop_container("c1")
        client.kill_container("c1")
        client.delete_container("c1", force=True)
        api.start.assert_called_once_with("c1")
        api.stop.assert_called_once_with("c1")
        api.kill.assert_called_once_with("c1")
        api.remove_container.assert_called_once_with("c1", force=True)

    def test_list_containers_filters_by_project(self, client, api):
        client.list_containers(project="proj")
        api.containers.assert_called_once_with(all=True, filters={"label": "com.docker.compose.project=proj"})

    def test_connect_retries(self):
        api = mock.MagicMock()
        api.ping.side_effect = [DockerException("not yet"), True]
        settings = ComposeSettings(connect_attempts=2)

        with mock.patch("dcompose.ENGINE.docker_client.docker.APIClient", return_value=api), \
                mock.patch("time.sleep"):
            client = DockerEngineClient.connect(settings)

        assert client.api is api
        assert api.ping.call_count == 2
