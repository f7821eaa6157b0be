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
Parser for docker-compose files of every schema version.
"""
import logging
import os
import re
from typing import Any, Dict, Mapping, Optional

import yaml

from ..errors import ConfigNotFound, ParseError
from ..MANAGERS.environment_manager import EnvironmentManager
from ..MODELS.manifest import NormalizedManifest
from ..UTILS.naming import project_name_from_path
from ..UTILS.string_interpolation import EnvironmentInterpolator

logger = logging.getLogger(__name__)

VERSION_3_MINOR = re.compile(r'3\.\d+')


class ComposeParser:
    """
    Parser for docker-compose.yml files.
    """
    def __init__(self, context: Optional[Mapping[str, str]] = None, env_file: Optional[str] = ".env",
                 project_name: Optional[str] = None):
        """
        Initializes the parser with an optional environment context for interpolation.

        :param context: Variables for interpolation. When omitted the process
            environment is merged with the dotenv file next to the manifest.
        :param env_file: Dotenv file name, relative to the manifest directory.
        :param project_name: Overrides the project name derived from the manifest directory.
        """
        self.context = context
        self.env_file = env_file
        self.project_name = project_name

    def parse(self, compose_path: str) -> NormalizedManifest:
        """
        Parses a compose file from a path.

        :param compose_path: Path to the compose file.
        :return: Parsed, version-normalized manifest.
        :raises ConfigNotFound: If the file does not exist.
        :raises ParseError: If the file is not a valid compose document.
        """
        if not os.path.isfile(compose_path):
            raise ConfigNotFound(compose_path)

        try:
            with open(compose_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except UnicodeDecodeError as e:
            raise ParseError(f"invalid encoding in {compose_path}", str(e)) from e

        context = self.context
        if context is None:
            base_dir = os.path.dirname(os.path.abspath(compose_path))
            context = EnvironmentManager(base_dir, self.env_file).get_substitution_context()

        project = self.project_name or project_name_from_path(compose_path)
        manifest = self.parse_from_string(content, context=context, path=compose_path, project=project)
        logger.info("Loaded %s (version %s, %d services)", compose_path, manifest.version, len(manifest.services))
        return manifest

    def parse_from_string(self, content: str, context: Optional[Mapping[str, str]] = None,
                          path: str = "docker-compose.yml", project: Optional[str] = None) -> NormalizedManifest:
        """
        Parses a compose file from a string.

        :param content: YAML content of the compose file.
        :param context: Variables for interpolation, defaults to the parser context.
        :param path: Path the content was read from.
        :param project: Project name, derived from ``path`` when omitted.
        :return: Parsed, version-normalized manifest.
        """
        if context is None:
            context = self.context if self.context is not None else dict(os.environ)
        content = EnvironmentInterpolator.interpolate(content, context)

        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ParseError(f"invalid YAML in {path}", str(e)) from e
        if not data:
            data = {}
        if not isinstance(data, dict):
            raise ParseError("compose file must be a mapping", data)

        project = project or self.project_name or project_name_from_path(path)
        return self._normalize_version(data, path, project)

    def _normalize_version(self, data: Dict[str, Any], path: str, project: str) -> NormalizedManifest:
        """
        Dispatches on the declared version and picks the services source.

        :param data: The parsed document.
        :return: A NormalizedManifest instance.
        """
        declared = str(data.get('version', ''))

        if VERSION_3_MINOR.fullmatch(declared):
            version = float(declared)
        elif declared in ('3', '2'):
            version = int(declared)
        else:
            # version 1: the whole document is the services map
            return NormalizedManifest(path=path, project=project, version=1, services=data)

        services = data.get('services') or {}
        if not isinstance(services, dict):
            raise ParseError("'services' must be a mapping", services)

        return NormalizedManifest(
            path=path,
            project=project,
            version=version,
            services=services,
            volumes=data.get('volumes'),
            networks=data.get('networks'),
        )
