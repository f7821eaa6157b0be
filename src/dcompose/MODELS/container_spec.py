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
Models for container specifications, published ports and lifecycle state.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, model_validator

PROJECT_LABEL = "com.docker.compose.project"
SERVICE_LABEL = "com.docker.compose.service"
ONEOFF_LABEL = "com.docker.compose.oneoff"

DEFAULT_SHM_SIZE = 67108864  # 64 MiB


class LifecycleState(str, Enum):
    """
    Lifecycle of a container as tracked by the lifecycle controller.
    """
    UNMATERIALIZED = "unmaterialized"
    CREATED = "created"
    RUNNING = "running"
    STOPPED = "stopped"
    DELETED = "deleted"


class Port(BaseModel):
    """
    A published or exposed container port.
    """
    model_config = ConfigDict(frozen=True)

    container_port: str
    host_port: Optional[str] = None
    host_ip: Optional[str] = None

    @model_validator(mode="after")
    def check_host_ip(self) -> "Port":
        if self.host_ip and not self.host_port:
            raise ValueError("cannot specify a host IP address without a host port")
        return self

    @property
    def engine_key(self) -> str:
        """Port key in engine syntax, e.g. ``80/tcp``."""
        if "/" in self.container_port:
            return self.container_port
        return f"{self.container_port}/tcp"


class ContainerSpec(BaseModel):
    """
    Canonical description of one service instance.

    Built either from a manifest entry by the attribute normalizer or from
    the inspection of a live container (``loaded_from_environment``).
    Attributes that normalize to nothing are left as ``None``.
    """
    model_config = ConfigDict(frozen=True)

    service: Optional[str] = None
    label: str
    full_name: str
    image: Optional[str] = None
    build: Optional[Union[str, Dict[str, Any]]] = None

    links: Optional[Dict[str, str]] = None  # {service: alias}
    ports: Optional[List[Port]] = None
    volumes: Optional[List[str]] = None
    shm_size: int = DEFAULT_SHM_SIZE

    command: Optional[List[str]] = None
    entrypoint: Optional[List[str]] = None
    environment: Optional[List[str]] = None
    labels: Dict[str, str] = {}

    cap_add: Optional[List[str]] = None
    security_opt: Optional[List[str]] = None

    loaded_from_environment: bool = False


@dataclass(frozen=True)
class DependencyEdge:
    """
    Points from a depending container to the container it needs running first.

    ``service`` is the depended-on service name, ``alias`` the name under which
    the depending container links it.
    """
    service: str
    alias: str
    target: str  # registry label of the dependency
