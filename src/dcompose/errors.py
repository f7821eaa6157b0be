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
Exceptions raised by the orchestration layer.

Errors coming from the container engine itself are never wrapped; they
propagate to the caller as the engine client raised them.
"""
from typing import Any, List, Optional


class ComposeError(Exception):
    """Base class for every error raised by dcompose."""


class ConfigNotFound(ComposeError):
    """The manifest path does not exist."""

    def __init__(self, path: str):
        super().__init__(f"compose file not found: {path}")
        self.path = path


class ParseError(ComposeError):
    """A manifest entry or attribute could not be understood."""

    def __init__(self, message: str, value: Any = None):
        super().__init__(message if value is None else f"{message}: {value!r}")
        self.value = value


class DuplicateContainerError(ComposeError):
    """Two containers share the same registry label."""

    def __init__(self, label: str):
        super().__init__(f"a container already exists with label '{label}'")
        self.label = label


class ArgumentError(ComposeError, ValueError):
    """A container cannot be materialized with the attributes it has."""


class DependencyCycleError(ComposeError):
    """Container links form a cycle."""

    def __init__(self, cycle: List[str]):
        super().__init__(f"circular dependency detected: {' -> '.join(cycle)}")
        self.cycle = cycle


class ContainerNotFoundError(ComposeError, KeyError):
    """No registered container matches the requested label or name."""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"container not found: '{self.name}'"


class BatchError(ComposeError):
    """
    One or more containers failed during a batch operation.

    Containers the batch already went through are left as they are; ``result``
    tells which ones succeeded, failed or were skipped because a dependency
    failed.
    """

    def __init__(self, result: Optional[Any] = None):
        failed = ", ".join(sorted(result.failed)) if result is not None else ""
        super().__init__(f"batch operation failed for: {failed}")
        self.result = result
