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
Recovery of containers that already exist on the engine.
"""
import logging
from typing import Any, Dict, List, Optional

from ..ENGINE.engine_client import EngineClient
from ..errors import ParseError
from ..MODELS.container_spec import SERVICE_LABEL, ContainerSpec, LifecycleState, Port
from ..REGISTRY.container_registry import ContainerRegistry

logger = logging.getLogger(__name__)


class ContainerInspector:
    """
    Rebuilds container specifications from engine inspection documents.
    """
    def __init__(self, engine: EngineClient):
        self.engine = engine

    def load_running(self, registry: ContainerRegistry) -> List[str]:
        """
        Registers every engine container carrying the registry's project label.

        :return: Labels of the containers registered.
        :raises DuplicateContainerError: If a recovered container collides with a registered label.
        """
        labels = []
        for summary in self.engine.list_containers(project=registry.project):
            info = self.engine.inspect_container(summary["Id"])
            spec = self.spec_from_inspection(info)
            state = LifecycleState.RUNNING if info.get("State", {}).get("Running") else LifecycleState.STOPPED
            registry.add(spec, handle=info["Id"], state=state)
            labels.append(spec.label)
        if labels:
            logger.info("Recovered %d containers of project %s", len(labels), registry.project)
        return labels

    def spec_from_inspection(self, info: Dict[str, Any]) -> ContainerSpec:
        """
        Builds a ContainerSpec from an ``inspect`` document.
        """
        config = info.get("Config") or {}
        host_config = info.get("HostConfig") or {}
        name = info["Name"].lstrip("/")
        labels = config.get("Labels") or {}

        command = config.get("Cmd")
        if command:
            command = " ".join(command).split()

        attributes = {
            "service": labels.get(SERVICE_LABEL),
            "label": name,
            "full_name": name,
            "image": config.get("Image"),
            "links": self._links(host_config.get("Links")),
            "ports": self._ports((info.get("NetworkSettings") or {}).get("Ports")),
            "volumes": list(config["Volumes"]) if config.get("Volumes") else None,
            "shm_size": host_config.get("ShmSize"),
            "command": command or None,
            "environment": config.get("Env") or None,
            "labels": labels,
            "cap_add": host_config.get("CapAdd") or None,
            "security_opt": host_config.get("SecurityOpt") or None,
            "loaded_from_environment": True,
        }
        return ContainerSpec(**{k: v for k, v in attributes.items() if v is not None})

    @staticmethod
    def _links(links: Optional[List[str]]) -> Optional[Dict[str, str]]:
        """
        ``/db_1:/web_1/db`` becomes ``{"db_1": "db"}``.
        """
        if not links:
            return None
        result = {}
        for link in links:
            source, _, target = link.partition(":")
            result[source.lstrip("/")] = target.rsplit("/", 1)[-1] or source.lstrip("/")
        return result

    @staticmethod
    def _ports(ports: Optional[Dict[str, Any]]) -> Optional[List[Port]]:
        if not ports:
            return None
        result = []
        for key, bindings in ports.items():
            # exposed but unpublished ports have no bindings
            binding = (bindings or [{}])[0]
            host_port = binding.get("HostPort") or None
            host_ip = binding.get("HostIp") or None
            if host_ip and not host_port:
                raise ParseError("cannot specify a host IP address without a host port", key)
            container_port = key if not key.endswith("/tcp") else key[:-len("/tcp")]
            result.append(Port(container_port=container_port, host_port=host_port, host_ip=host_ip))
        return result
