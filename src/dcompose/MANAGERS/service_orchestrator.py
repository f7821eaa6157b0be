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
Orchestration of a compose project: loading, linking and driving its containers.
"""
import logging
from typing import Any, Dict, List, Optional

from ..ENGINE.engine_client import EngineClient
from ..errors import ContainerNotFoundError
from ..MODELS.container_spec import ContainerSpec
from ..MODELS.manifest import NormalizedManifest
from ..MODELS.settings import ComposeSettings
from ..PARSERS.compose_parser import ComposeParser
from ..REGISTRY.container_registry import ContainerRegistry
from ..RUNNERS.container_inspector import ContainerInspector
from ..RUNNERS.dependency_resolver import DependencyLinker, LinkReport
from ..UTILS.naming import ContainerNamer
from .attribute_normalizer import AttributeNormalizer
from .lifecycle_controller import BatchResult, LifecycleController

logger = logging.getLogger(__name__)


class ServiceOrchestrator:
    """
    Orchestrates the containers of one manifest based on their links.
    """
    def __init__(self, manifest: NormalizedManifest, engine: EngineClient,
                 settings: Optional[ComposeSettings] = None, base_dir: Optional[str] = None):
        """
        Builds the registry from the manifest and links it.

        :param manifest: The loaded manifest.
        :param engine: Client of the container engine.
        :param settings: Runtime settings.
        :param base_dir: Directory relative paths resolve against, the
            current working directory when omitted.
        :raises ParseError: If a service declaration is malformed.
        :raises DuplicateContainerError: If two containers share a label.
        :raises DependencyCycleError: If the links form a cycle.
        """
        self.manifest = manifest
        self.engine = engine
        self.settings = settings or ComposeSettings()
        self.registry = ContainerRegistry(manifest.project)
        self.linker = DependencyLinker()

        normalizer = AttributeNormalizer(manifest.project, ContainerNamer(manifest.project, engine))
        for name, entry in manifest.services.items():
            self.registry.add(normalizer.normalize(name, entry))

        if self.settings.load_running:
            ContainerInspector(engine).load_running(self.registry)

        self.link_report: LinkReport = self.linker.link(self.registry)
        self.controller = LifecycleController(
            self.registry, engine, max_workers=self.settings.max_workers, base_dir=base_dir
        )

    @classmethod
    def load(cls, compose_path: str, engine: EngineClient,
             settings: Optional[ComposeSettings] = None, **kwargs: Any) -> "ServiceOrchestrator":
        """
        Loads a compose file and builds the orchestrator for it.

        :raises ConfigNotFound: If the file does not exist.
        """
        settings = settings or ComposeSettings()
        parser = ComposeParser(env_file=settings.env_file, project_name=settings.project_name)
        return cls(parser.parse(compose_path), engine, settings, **kwargs)

    def up(self, *names: str) -> BatchResult:
        """
        Starts the named services, or every container, in dependency order.

        :raises ContainerNotFoundError: If a name matches no container.
        """
        labels = []
        for name in names:
            matches = self.get_containers_by_name(name) or self.get_containers_by(label=name)
            if not matches:
                raise ContainerNotFoundError(name)
            labels.extend(spec.label for spec in matches)
        if names:
            logger.info("Starting %s", ", ".join(labels))
        return self.controller.start_all(labels or None)

    def down(self) -> List[str]:
        """
        Stops every container, dependents before their dependencies.
        """
        order = list(reversed(self.linker.resolve_order(self.registry)))
        return self.controller.stop_all(order)

    def start(self, labels: Optional[List[str]] = None) -> BatchResult:
        return self.controller.start_all(labels)

    def stop(self, labels: Optional[List[str]] = None) -> List[str]:
        return self.controller.stop_all(labels)

    def kill(self, labels: Optional[List[str]] = None) -> List[str]:
        return self.controller.kill_all(labels)

    def delete(self, labels: Optional[List[str]] = None) -> List[str]:
        return self.controller.delete_all(labels)

    def ps(self) -> Dict[str, str]:
        """
        Returns the status of all containers.

        :return: Container labels and their lifecycle states.
        """
        return {entry.label: entry.state.value for entry in self.registry.entries()}

    def get_containers_by(self, **attributes: Any) -> List[ContainerSpec]:
        return self.registry.select_by(**attributes)

    def get_containers_by_name(self, name: str) -> List[ContainerSpec]:
        return self.registry.select_by_name(name)
