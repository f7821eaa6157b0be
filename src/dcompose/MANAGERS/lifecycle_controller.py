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
Lifecycle management for the containers of a compose project.

Containers move through ``unmaterialized -> created -> running -> stopped``
and end in ``deleted``. A container only starts once every container it
links to is running. Stopping or killing a container never touches the
containers that depend on it.
"""
import logging
import os
import threading
import uuid
from collections import defaultdict
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from ..ENGINE.engine_client import ContainerConfig, EngineClient
from ..errors import ArgumentError, BatchError, DependencyCycleError
from ..MODELS.container_spec import ContainerSpec, LifecycleState
from ..REGISTRY.container_registry import ContainerEntry, ContainerRegistry
from ..RUNNERS.dependency_resolver import DependencyLinker
from .volume_manager import VolumeManager

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """
    Outcome of a batch operation.

    :ivar started: Containers running at the end of a batch start.
    :ivar completed: Containers a batch stop, kill or delete went through for.
    :ivar failed: Containers whose operation raised, with the error.
    :ivar cancelled: Containers never attempted because a dependency failed
        or the batch was cancelled.
    """
    started: List[str] = field(default_factory=list)
    completed: List[str] = field(default_factory=list)
    failed: Dict[str, BaseException] = field(default_factory=dict)
    cancelled: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class LifecycleController:
    """
    Sequences engine calls for the containers of a registry.
    """
    def __init__(self, registry: ContainerRegistry, engine: EngineClient, max_workers: int = 1,
                 base_dir: Optional[str] = None):
        """
        :param registry: The linked registry to operate on.
        :param engine: The container engine client.
        :param max_workers: Containers started concurrently by ``start_all``.
        :param base_dir: Directory relative volume and build paths resolve
            against, the current working directory when omitted.
        """
        self.registry = registry
        self.engine = engine
        self.max_workers = max(1, max_workers)
        self.base_dir = base_dir
        self.volume_manager = VolumeManager(base_dir)
        self._cancelled = threading.Event()
        self._locks: Dict[str, threading.Lock] = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()

    def _lock_for(self, label: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks[label]

    # Single container operations

    def start(self, label: str) -> None:
        """
        Starts a container after starting, depth first, every dependency not yet running.
        Does nothing if the container is already running.
        """
        self._start_recursive(label, [])

    def _start_recursive(self, label: str, path: List[str]) -> None:
        if label in path:
            raise DependencyCycleError(path[path.index(label):] + [label])

        entry = self.registry.get(label)
        if entry.running:
            return
        for edge in list(entry.dependencies):
            if not self.registry.get(edge.target).running:
                self._start_recursive(edge.target, path + [label])
        self._materialize(entry)

    def _materialize(self, entry: ContainerEntry) -> None:
        """
        Creates the container if needed, then starts it. Dependencies must be running.
        """
        with self._lock_for(entry.label):
            if entry.running:
                return
            if entry.handle is None:
                image = self._prepare_image(entry.spec)
                config = self._container_config(entry, image)
                logger.info("Creating container %s", entry.spec.full_name)
                handle = self.engine.create_container(config)
                self.registry.transition(entry.label, LifecycleState.CREATED, handle=handle)

            logger.info("Starting container %s", entry.spec.full_name)
            self.engine.start_container(entry.handle)
            self.registry.transition(entry.label, LifecycleState.RUNNING)

    def stop(self, label: str) -> None:
        """
        Stops a running container. Containers depending on it keep running.
        """
        entry = self.registry.get(label)
        with self._lock_for(label):
            if not entry.running:
                return
            logger.info("Stopping container %s", entry.spec.full_name)
            self.engine.stop_container(entry.handle)
            self.registry.transition(label, LifecycleState.STOPPED)

    def kill(self, label: str) -> None:
        """
        Kills a running container. Containers depending on it keep running.
        """
        entry = self.registry.get(label)
        with self._lock_for(label):
            if not entry.running:
                return
            logger.info("Killing container %s", entry.spec.full_name)
            self.engine.kill_container(entry.handle)
            self.registry.transition(label, LifecycleState.STOPPED)

    def delete(self, label: str) -> None:
        """
        Force-removes the engine container, if any, and unregisters it.
        """
        entry = self.registry.get(label)
        with self._lock_for(label):
            if entry.handle is not None:
                logger.info("Deleting container %s", entry.spec.full_name)
                self.engine.delete_container(entry.handle, force=True)
            self.registry.transition(label, LifecycleState.DELETED, clear_handle=True)
            self.registry.remove(label)
        with self._locks_guard:
            self._locks.pop(label, None)

    def refresh(self, label: str) -> LifecycleState:
        """
        Reads the running state of a materialized container back from the engine.
        """
        entry = self.registry.get(label)
        if entry.handle is None:
            return entry.state
        state = self.engine.inspect_container(entry.handle).get("State", {})
        if state.get("Running"):
            new_state = LifecycleState.RUNNING
        elif state.get("Status") == "created":
            new_state = LifecycleState.CREATED
        else:
            new_state = LifecycleState.STOPPED
        return self.registry.transition(label, new_state).state

    # Batch operations

    def start_all(self, labels: Optional[Iterable[str]] = None) -> BatchResult:
        """
        Starts the given containers, or every container, with their dependencies.

        Containers without a dependency relationship start concurrently, up to
        ``max_workers`` at a time. When a container fails, the containers
        depending on it are not attempted; the others carry on.

        :raises BatchError: After the batch, if any container failed.
        """
        self._cancelled.clear()
        targets = self._select(labels)
        order = DependencyLinker().resolve_order(self.registry, targets)

        dependencies: Dict[str, Set[str]] = {}
        dependents: Dict[str, Set[str]] = defaultdict(set)
        for label in order:
            entry = self.registry.get(label)
            dependencies[label] = {edge.target for edge in entry.dependencies if edge.target in order}
            for target in dependencies[label]:
                dependents[target].add(label)

        result = BatchResult()
        done: Set[str] = set()
        pending = list(order)
        futures = {}

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            while pending or futures:
                if self._cancelled.is_set():
                    for future in [f for f in futures if f.cancel()]:
                        result.cancelled.append(futures.pop(future))
                    result.cancelled.extend(pending)
                    pending.clear()
                else:
                    for label in [l for l in pending if dependencies[l] <= done]:
                        pending.remove(label)
                        futures[pool.submit(self._materialize, self.registry.get(label))] = label

                if not futures:
                    if pending:
                        logger.error("Containers left with unmet dependencies: %s", ", ".join(pending))
                        result.cancelled.extend(pending)
                    break

                finished, _ = wait(futures, return_when=FIRST_COMPLETED)
                for future in finished:
                    label = futures.pop(future)
                    error = future.exception()
                    if error is None:
                        done.add(label)
                        result.started.append(label)
                        continue

                    logger.error("Failed to start container %s: %s", label, error)
                    result.failed[label] = error
                    for dependent in self._transitive(label, dependents):
                        if dependent in pending:
                            pending.remove(dependent)
                            result.cancelled.append(dependent)

        if result.failed:
            raise BatchError(result)
        return result

    def cancel(self) -> None:
        """
        Stops a running ``start_all`` from issuing new engine calls.
        Calls already issued are not rolled back.
        """
        self._cancelled.set()

    def stop_all(self, labels: Optional[Iterable[str]] = None) -> List[str]:
        return self._each(self.stop, labels)

    def kill_all(self, labels: Optional[Iterable[str]] = None) -> List[str]:
        return self._each(self.kill, labels)

    def delete_all(self, labels: Optional[Iterable[str]] = None) -> List[str]:
        return self._each(self.delete, labels)

    def _each(self, operation, labels: Optional[Iterable[str]]) -> List[str]:
        """
        Applies ``operation`` to each selected container. A failing container
        does not keep the others from being processed.

        :raises BatchError: After the batch, if any container failed.
        """
        result = BatchResult()
        for label in self._select(labels):
            try:
                operation(label)
            except Exception as error:
                logger.error("Failed to %s container %s: %s", operation.__name__, label, error)
                result.failed[label] = error
            else:
                result.completed.append(label)

        if result.failed:
            raise BatchError(result)
        return result.completed

    def _select(self, labels: Optional[Iterable[str]]) -> List[str]:
        """
        Known labels among ``labels`` in the given order, or every registered label.
        """
        registered = self.registry.labels()
        if not labels:
            return registered

        selected = []
        for label in labels:
            if label not in registered:
                logger.warning("Ignoring unknown container '%s'", label)
            elif label not in selected:
                selected.append(label)
        return selected

    @staticmethod
    def _transitive(label: str, dependents: Dict[str, Set[str]]) -> List[str]:
        seen: List[str] = []
        stack = [label]
        while stack:
            for dependent in sorted(dependents.get(stack.pop(), ())):
                if dependent not in seen:
                    seen.append(dependent)
                    stack.append(dependent)
        return seen

    # Materialization helpers

    def _prepare_image(self, spec: ContainerSpec) -> str:
        """
        Pulls the image if it is missing, or builds it under a generated name.
        """
        if spec.image:
            if not self.engine.image_exists(spec.image):
                self.engine.pull_image(spec.image)
            return spec.image

        if spec.build:
            if isinstance(spec.build, dict):
                options = dict(spec.build)
                context = options.pop('context', '.')
            else:
                context, options = spec.build, {}
            context = os.path.join(self.base_dir or os.getcwd(), context)
            return self.engine.build_image(os.path.abspath(context), uuid.uuid4().hex, options)

        raise ArgumentError(f"No image or build provided for container '{spec.label}'")

    def _container_config(self, entry: ContainerEntry, image: str) -> ContainerConfig:
        spec = entry.spec
        volumes, binds = self.volume_manager.prepare_volumes(spec.volumes)

        port_bindings: Dict[str, List[Dict[str, str]]] = {}
        for port in spec.ports or []:
            port_bindings.setdefault(port.engine_key, []).append(
                {"HostIp": port.host_ip or "", "HostPort": port.host_port or ""}
            )

        links = []
        for edge in entry.dependencies:
            dependency = self.registry.get(edge.target)
            links.append((dependency.handle, edge.alias))

        return ContainerConfig(
            name=spec.full_name,
            image=image,
            command=spec.command,
            entrypoint=spec.entrypoint,
            environment=spec.environment,
            volumes=volumes,
            exposed_ports=list(port_bindings),
            port_bindings=port_bindings,
            labels=spec.labels,
            binds=binds,
            links=links,
            cap_add=spec.cap_add,
            security_opt=spec.security_opt,
            shm_size=spec.shm_size,
        )
