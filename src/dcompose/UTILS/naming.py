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
Utilities for deriving project and container names.
"""
import logging
import os
import re
import threading
from collections import defaultdict
from typing import Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_PROJECT = "default"


def project_name_from_path(manifest_path: str) -> str:
    """
    Derives the project name from the directory holding the manifest.
    Only lower-case letters and digits are kept so that generated container
    names ``{project}_{service}_{index}`` can be split again. Falls back to
    ``DEFAULT_PROJECT`` when nothing is left.
    """
    directory = os.path.basename(os.path.dirname(os.path.abspath(manifest_path)))
    return re.sub(r'[^a-z0-9]', '', directory.lower()) or DEFAULT_PROJECT


def container_name(project: str, service: str, index: int) -> str:
    return f"{project}_{service}_{index}"


def name_pattern(project: str, service: str) -> "re.Pattern[str]":
    """
    Pattern matching generated names of ``service`` regardless of their index.
    Group 1 captures the index.
    """
    return re.compile(rf'/?{re.escape(project)}_{re.escape(service)}_(\d+)')


class ContainerNamer:
    """
    Hands out the next free numeric suffix for generated container names.

    The engine is asked once for every container it knows of; afterwards
    indexes are counted up in memory for the lifetime of this namer.
    """
    def __init__(self, project: str, engine=None):
        """
        :param project: Project name used as the name prefix.
        :param engine: Engine client to query for existing containers. Without
            one numbering starts at 1.
        """
        self.project = project
        self.engine = engine
        self._indexes: Optional[Dict[str, int]] = None
        self._lock = threading.Lock()

    def _load_indexes(self) -> Dict[str, int]:
        indexes: Dict[str, int] = defaultdict(int)
        if self.engine is None:
            return indexes

        prefix = re.compile(rf'/?{re.escape(self.project)}_(.+)_(\d+)')
        for summary in self.engine.list_containers():
            for name in summary.get("Names") or []:
                match = prefix.fullmatch(name)
                if match:
                    service, index = match.group(1), int(match.group(2))
                    indexes[service] = max(indexes[service], index)
        logger.debug("Existing container indexes for %s: %s", self.project, dict(indexes))
        return indexes

    def next_index(self, service: str) -> int:
        """
        Returns one more than the highest index used so far for ``service``.
        """
        with self._lock:
            if self._indexes is None:
                self._indexes = self._load_indexes()
            self._indexes[service] += 1
            return self._indexes[service]

    def next_name(self, service: str) -> str:
        return container_name(self.project, service, self.next_index(service))
