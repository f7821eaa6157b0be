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
Interface of the container engine the orchestration layer drives.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel


class ContainerConfig(BaseModel):
    """
    Fully resolved parameters of a container create call.
    """
    name: str
    image: str
    command: Optional[List[str]] = None
    entrypoint: Optional[List[str]] = None
    environment: Optional[List[str]] = None
    volumes: List[str] = []  # container paths
    exposed_ports: List[str] = []  # e.g. "80/tcp"
    port_bindings: Dict[str, List[Dict[str, str]]] = {}
    labels: Dict[str, str] = {}
    binds: List[str] = []  # host:container[:mode]
    links: List[Tuple[str, str]] = []  # (container id, alias)
    cap_add: Optional[List[str]] = None
    security_opt: Optional[List[str]] = None
    shm_size: Optional[int] = None


class EngineClient(ABC):
    """
    Operations the lifecycle controller needs from a container engine.
    Handles are engine container ids.
    """

    @abstractmethod
    def image_exists(self, name: str) -> bool:
        ...

    @abstractmethod
    def pull_image(self, name: str) -> None:
        ...

    @abstractmethod
    def build_image(self, context_dir: str, tag: str, options: Optional[Dict[str, Any]] = None) -> str:
        """Builds ``context_dir`` and tags the result; returns the image reference."""

    @abstractmethod
    def create_container(self, config: ContainerConfig) -> str:
        """Creates a container and returns its handle."""

    @abstractmethod
    def start_container(self, handle: str) -> None:
        ...

    @abstractmethod
    def stop_container(self, handle: str) -> None:
        ...

    @abstractmethod
    def kill_container(self, handle: str) -> None:
        ...

    @abstractmethod
    def delete_container(self, handle: str, force: bool = True) -> None:
        ...

    @abstractmethod
    def inspect_container(self, handle: str) -> Dict[str, Any]:
        """Returns the engine's state document for the container."""

    @abstractmethod
    def list_containers(self, project: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Lists every container, running or not, as summaries with ``Id``,
        ``Names`` and ``Labels``. ``project`` restricts the list to containers
        carrying that project label.
        """
