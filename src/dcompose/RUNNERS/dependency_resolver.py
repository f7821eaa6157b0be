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
Dependency linking between containers and resolution of start order.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from ..errors import DependencyCycleError
from ..MODELS.container_spec import DependencyEdge
from ..REGISTRY.container_registry import ContainerRegistry

logger = logging.getLogger(__name__)


@dataclass
class LinkReport:
    """
    Outcome of linking a registry.

    ``unresolved`` lists ``(label, service)`` pairs for links whose target
    service is not registered; no edge is recorded for them.
    """
    edges: Dict[str, List[DependencyEdge]] = field(default_factory=dict)
    unresolved: List[Tuple[str, str]] = field(default_factory=list)


class DependencyLinker:
    """
    Turns declared service links into dependency edges between registry entries.
    """
    def link(self, registry: ContainerRegistry) -> LinkReport:
        """
        Records a dependency edge for every link of every manifest-sourced container.

        Containers recovered from the engine are never linked. A link to a
        service that is not registered is reported and skipped.

        :param registry: The registry to link.
        :return: The edges recorded and the links that could not be resolved.
        :raises DependencyCycleError: If the links form a cycle. No edge is recorded then.
        """
        report = LinkReport()
        specs = registry.specs()

        for spec in specs:
            if spec.loaded_from_environment or not spec.links:
                continue

            edges = []
            for service, alias in spec.links.items():
                target = next((s for s in specs if s.service == service), None)
                if target is None:
                    logger.warning("%s links to unknown service '%s', ignoring the link", spec.label, service)
                    report.unresolved.append((spec.label, service))
                    continue
                edges.append(DependencyEdge(service=service, alias=alias, target=target.label))
            report.edges[spec.label] = edges

        self._check_cycles(registry.labels(), report.edges)
        registry.set_dependencies(report.edges)
        return report

    def _check_cycles(self, labels: List[str], edges: Dict[str, List[DependencyEdge]]) -> None:
        visited = set()
        path: List[str] = []

        def visit(label):
            """
            Depth-first walk keeping the current path to report the cycle.
            """
            if label in path:
                raise DependencyCycleError(path[path.index(label):] + [label])
            if label in visited:
                return
            path.append(label)
            for edge in edges.get(label, []):
                visit(edge.target)
            path.pop()
            visited.add(label)

        for label in labels:
            visit(label)

    def resolve_order(self, registry: ContainerRegistry, labels: Optional[Iterable[str]] = None) -> List[str]:
        """
        Determines the order in which containers must start, dependencies first.

        :param registry: A linked registry.
        :param labels: Containers to order, with their transitive dependencies.
            Every registered container when omitted.
        :return: Labels in start order.
        """
        entries = {entry.label: entry for entry in registry.entries()}
        ordered: List[str] = []
        visited = set()

        def visit(label):
            """
            Recursive function for topological sort.
            """
            if label in visited or label not in entries:
                return
            visited.add(label)
            for edge in entries[label].dependencies:
                visit(edge.target)
            ordered.append(label)

        for label in (entries if labels is None else labels):
            visit(label)

        return ordered
