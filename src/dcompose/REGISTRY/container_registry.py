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
Identity-indexed store of the containers that make up a compose project.
"""
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional

from ..errors import ContainerNotFoundError, DuplicateContainerError
from ..MODELS.container_spec import ContainerSpec, DependencyEdge, LifecycleState
from ..UTILS.naming import name_pattern

logger = logging.getLogger(__name__)


@dataclass
class ContainerEntry:
    """
    A registered specification together with its engine-side state.
    """
    spec: ContainerSpec
    handle: Optional[str] = None
    state: LifecycleState = LifecycleState.UNMATERIALIZED
    dependencies: List[DependencyEdge] = field(default_factory=list)

    @property
    def label(self) -> str:
        return self.spec.label

    @property
    def running(self) -> bool:
        return self.state == LifecycleState.RUNNING


class ContainerRegistry:
    """
    Single source of truth for the containers of one loaded manifest.

    Labels are unique. Iteration follows insertion order. Every mutation is
    serialized by one re-entrant lock.
    """
    def __init__(self, project: str):
        """
        :param project: Project name used to match generated container names.
        """
        self.project = project
        self._entries: Dict[str, ContainerEntry] = {}
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def add(self, spec: ContainerSpec, handle: Optional[str] = None,
            state: LifecycleState = LifecycleState.UNMATERIALIZED) -> ContainerEntry:
        """
        Registers a specification.

        :raises DuplicateContainerError: If the label is already registered.
        """
        with self._lock:
            if spec.label in self._entries:
                raise DuplicateContainerError(spec.label)
            entry = ContainerEntry(spec=spec, handle=handle, state=state)
            self._entries[spec.label] = entry
            return entry

    def remove(self, label: str) -> ContainerEntry:
        """
        Unregisters a container and drops the dependency edges pointing at it.
        """
        with self._lock:
            entry = self._entries.pop(label, None)
            if entry is None:
                raise ContainerNotFoundError(label)
            for other in self._entries.values():
                kept = [edge for edge in other.dependencies if edge.target != label]
                if len(kept) != len(other.dependencies):
                    logger.warning("Dropping dependency of %s on removed container %s", other.label, label)
                    other.dependencies = kept
            return entry

    def get(self, label: str) -> ContainerEntry:
        with self._lock:
            try:
                return self._entries[label]
            except KeyError:
                raise ContainerNotFoundError(label) from None

    def entries(self) -> List[ContainerEntry]:
        """Snapshot of the registered entries in insertion order."""
        with self._lock:
            return list(self._entries.values())

    def labels(self) -> List[str]:
        with self._lock:
            return list(self._entries)

    def specs(self) -> List[ContainerSpec]:
        return [entry.spec for entry in self.entries()]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, label: object) -> bool:
        return label in self._entries

    def __iter__(self) -> Iterator[ContainerSpec]:
        return iter(self.specs())

    def select(self, predicate: Callable[[ContainerSpec], bool]) -> List[ContainerSpec]:
        """
        Returns the specifications for which ``predicate`` holds.
        """
        return [spec for spec in self.specs() if predicate(spec)]

    def select_by(self, **attributes: Any) -> List[ContainerSpec]:
        """
        Returns the specifications whose attributes equal every given value,
        e.g. ``select_by(service="db")``.
        """
        return self.select(
            lambda spec: all(getattr(spec, key, None) == value for key, value in attributes.items())
        )

    def select_by_name(self, name: str) -> List[ContainerSpec]:
        """
        Returns the containers generated for service ``name``, whatever their
        index: ``web`` matches ``myproject_web_1`` and ``myproject_web_2``.
        """
        pattern = name_pattern(self.project, name)
        return self.select(lambda spec: pattern.fullmatch(spec.full_name) is not None)

    def transition(self, label: str, state: LifecycleState, handle: Optional[str] = None,
                   clear_handle: bool = False) -> ContainerEntry:
        """
        Records a lifecycle transition. Only the lifecycle controller calls this.
        """
        with self._lock:
            entry = self.get(label)
            if handle is not None:
                entry.handle = handle
            if clear_handle:
                entry.handle = None
            logger.debug("%s: %s -> %s", label, entry.state.value, state.value)
            entry.state = state
            return entry

    def set_dependencies(self, dependencies: Dict[str, List[DependencyEdge]]) -> None:
        """
        Replaces the dependency edges of the given containers.
        """
        with self._lock:
            for label, edges in dependencies.items():
                self.get(label).dependencies = list(edges)
