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
Volume management for containers, mapping declared volumes to engine mounts.
"""
import os
from typing import List, Optional, Tuple

from ..PARSERS.attribute_parsers import parse_volume


class VolumeManager:
    """
    Converts ``[source:]target[:mode]`` entries into engine volume and bind syntax.
    """
    def __init__(self, base_dir: Optional[str] = None):
        """
        Initializes the volume manager.

        :param base_dir: The base directory for resolving relative paths,
            the current working directory when omitted.
        """
        self.base_dir = base_dir

    def prepare_volumes(self, volumes: Optional[List[str]]) -> Tuple[List[str], List[str]]:
        """
        Prepares the volumes of a container.

        :param volumes: Volume entries as declared.
        :return: Container paths to declare, and ``source:target[:mode]`` binds
            with relative sources made absolute.
        :raises ParseError: If an entry is malformed.
        """
        paths: List[str] = []
        binds: List[str] = []
        for entry in volumes or []:
            volume = parse_volume(entry).unwrap()
            paths.append(volume.target)
            if volume.is_bind:
                parts = [self.resolve_source(volume.source), volume.target]
                if volume.mode:
                    parts.append(volume.mode)
                binds.append(":".join(parts))
        return paths, binds

    def resolve_source(self, source: str) -> str:
        """
        Resolves the source of a bind.

        :param source: The source path or volume name.
        :return: The absolute path, or the volume name unchanged.
        """
        if source.startswith('~'):
            return os.path.expanduser(source)
        if os.path.isabs(source):
            return source
        if not source.startswith('.') and '/' not in source:
            # named volume
            return source
        base_dir = self.base_dir or os.getcwd()
        return os.path.abspath(os.path.join(base_dir, source))
