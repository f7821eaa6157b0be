# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Engine client backed by the Docker Engine API through the docker SDK.
"""
import logging
from typing import Any, Dict, List, Optional

import docker
from docker.errors import APIError, BuildError, DockerException, ImageNotFound
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..MODELS.container_spec import PROJECT_LABEL
from ..MODELS.settings import ComposeSettings
from .engine_client import ContainerConfig, EngineClient

logger = logging.getLogger(__name__)

# compose build keys that map onto a different docker SDK argument
BUILD_OPTIONS = {
    "args": "buildargs",
    "cache_from": "cache_from",
    "dockerfile": "dockerfile",
    "labels": "labels",
    "network": "network_mode",
    "shm_size": "shmsize",
    "target": "target",
    "extra_hosts": "extra_hosts",
}


class DockerEngineClient(EngineClient):
    """
    Drives a Docker daemon using the low level ``docker.APIClient``.
    """
    def __init__(self, api: Optional[docker.APIClient] = None, settings: Optional[ComposeSettings] = None):
        """
        :param api: A preconfigured API client. One is created from ``settings`` otherwise.
        :param settings: Connection settings.
        """
        self.settings = settings or ComposeSettings()
        if api is None:
            kwargs = {"timeout": self.settings.engine_timeout}
            if self.settings.engine_base_url:
                kwargs["base_url"] = self.settings.engine_base_url
            api = docker.APIClient(**kwargs)
        self.api = api

    @classmethod
    def connect(cls, settings: Optional[ComposeSettings] = None) -> "DockerEngineClient":
        """
        Creates a client and waits until the daemon answers a ping.
        """
        settings = settings or ComposeSettings()

        @retry(
            retry=retry_if_exception_type((DockerException, OSError)),
            stop=stop_after_attempt(settings.connect_attempts),
            wait=wait_exponential(multiplier=0.5, max=5),
            reraise=True,
        )
        def open_client():
            client = cls(settings=settings)
            client.api.ping()
            return client

        client = open_client()
        logger.info("Connected to container engine at %s", client.api.base_url)
        return client

    def image_exists(self, name: str) -> bool:
        try:
            self.api.inspect_image(name)
        except ImageNotFound:
            return False
        return True

    def pull_image(self, name: str) -> None:
        logger.info("Pulling image %s", name)
        for chunk in self.api.pull(name, stream=True, decode=True):
            if "error" in chunk:
                raise APIError(f"failed to pull {name}", explanation=chunk["error"])

    def build_image(self, context_dir: str, tag: str, options: Optional[Dict[str, Any]] = None) -> str:
        kwargs = {"path": context_dir, "tag": tag, "rm": True, "decode": True}
        for key, value in (options or {}).items():
            if key not in BUILD_OPTIONS:
                logger.warning("Ignoring unsupported build option '%s'", key)
                continue
            kwargs[BUILD_OPTIONS[key]] = value
        if isinstance(kwargs.get("buildargs"), list):
            kwargs["buildargs"] = dict(item.split("=", 1) for item in kwargs["buildargs"])

        logger.info("Building image %s from %s", tag, context_dir)
        log = []
        for chunk in self.api.build(**kwargs):
            log.append(chunk)
            if "error" in chunk:
                raise BuildError(chunk["error"], log)
        return tag

    def create_container(self, config: ContainerConfig) -> str:
        host_config = self.api.create_host_config(
            binds=config.binds or None,
            links=config.links or None,
            port_bindings=config.port_bindings or None,
            cap_add=config.cap_add,
            security_opt=config.security_opt,
            shm_size=config.shm_size,
        )
        response = self.api.create_container(
            image=config.image,
            name=config.name,
            command=config.command,
            entrypoint=config.entrypoint,
            environment=config.environment,
            volumes=config.volumes or None,
            ports=[self._port_definition(port) for port in config.exposed_ports] or None,
            labels=config.labels,
            host_config=host_config,
        )
        return response["Id"]

    def start_container(self, handle: str) -> None:
        self.api.start(handle)

    def stop_container(self, handle: str) -> None:
        self.api.stop(handle)

    def kill_container(self, handle: str) -> None:
        self.api.kill(handle)

    def delete_container(self, handle: str, force: bool = True) -> None:
        self.api.remove_container(handle, force=force)

    def inspect_container(self, handle: str) -> Dict[str, Any]:
        return self.api.inspect_container(handle)

    def list_containers(self, project: Optional[str] = None) -> List[Dict[str, Any]]:
        filters = {"label": f"{PROJECT_LABEL}={project}"} if project else None
        return self.api.containers(all=True, filters=filters)

    @staticmethod
    def _port_definition(key: str):
        port, _, protocol = key.partition("/")
        if protocol and protocol != "tcp":
            return (port, protocol)
        return port
