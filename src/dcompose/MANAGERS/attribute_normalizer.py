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
Normalization of raw service declarations into container specifications.
"""
from typing import Any, Dict, List, Optional

from ..errors import ParseError
from ..MODELS.container_spec import (
    ONEOFF_LABEL,
    PROJECT_LABEL,
    SERVICE_LABEL,
    ContainerSpec,
    Port,
)
from ..PARSERS.attribute_parsers import parse_link, parse_port, parse_shm_size
from ..UTILS.naming import ContainerNamer


class AttributeNormalizer:
    """
    Converts one service entry of a manifest into a ContainerSpec.

    Image and build are not validated here; a container without either
    fails when it is materialized.
    """
    def __init__(self, project: str, namer: Optional[ContainerNamer] = None):
        """
        :param project: Project name injected into labels and generated names.
        :param namer: Source of generated container names.
        """
        self.project = project
        self.namer = namer or ContainerNamer(project)

    def normalize(self, service: str, entry: Optional[Dict[str, Any]]) -> ContainerSpec:
        """
        Normalizes a single service declaration.

        :param service: The declared service name.
        :param entry: The raw service declaration.
        :return: A ContainerSpec instance.
        :raises ParseError: If the entry or one of its attributes is malformed.
        """
        if entry is None:
            entry = {}
        if not isinstance(entry, dict):
            raise ParseError(f"service '{service}' must be a mapping", entry)

        full_name = entry.get('container_name') or self.namer.next_name(service)

        attributes = {
            'service': service,
            'label': full_name,
            'full_name': full_name,
            'image': self._image(entry.get('image')),
            'build': entry.get('build') or None,
            'links': self._links(entry.get('links')),
            'ports': self._ports(entry.get('ports')),
            'volumes': self._volumes(entry.get('volumes')),
            'shm_size': parse_shm_size(entry.get('shm_size')).unwrap(),
            'command': self._tokenize(entry.get('command')),
            'entrypoint': self._tokenize(entry.get('entrypoint')),
            'environment': self.normalize_environment(entry.get('environment')),
            'labels': self.normalize_labels(entry.get('labels'), service),
            'cap_add': self._to_list(entry.get('cap_add')),
            'security_opt': self._to_list(entry.get('security_opt')),
        }
        return ContainerSpec(**{k: v for k, v in attributes.items() if v is not None})

    def normalize_labels(self, labels: Any, service: Optional[str]) -> Dict[str, str]:
        """
        Forces labels into a mapping and adds the project, service and one-off labels.
        """
        if isinstance(labels, list):
            result = {}
            for item in labels:
                key, _, value = str(item).partition('=')
                result[key] = value
        elif isinstance(labels, dict):
            result = {str(k): self._to_str(v) for k, v in labels.items()}
        elif labels is None:
            result = {}
        else:
            raise ParseError("labels must be a list or a mapping", labels)

        result[PROJECT_LABEL] = self.project
        result[SERVICE_LABEL] = service or ""
        result[ONEOFF_LABEL] = "False"
        return result

    def normalize_environment(self, environment: Any) -> Optional[List[str]]:
        """
        Forces the environment into a ``KEY=VALUE`` list, keeping declaration order.
        """
        if isinstance(environment, dict):
            result = [f"{k}={self._to_str(v)}" for k, v in environment.items()]
        elif isinstance(environment, list):
            result = [str(item) for item in environment]
        elif environment is None:
            return None
        else:
            raise ParseError("environment must be a list or a mapping", environment)
        return result or None

    def _image(self, image: Any) -> Optional[str]:
        if not image:
            return None
        image = str(image)
        # a ':' before the last '/' belongs to a registry host, not a tag
        if ':' in image.rsplit('/', 1)[-1] or '@' in image:
            return image
        return f"{image}:latest"

    def _links(self, links: Any) -> Optional[Dict[str, str]]:
        if not links:
            return None
        return dict(parse_link(link).unwrap() for link in self._to_list(links))

    def _ports(self, ports: Any) -> Optional[List[Port]]:
        if not ports:
            return None
        return [parse_port(port).unwrap() for port in self._to_list(ports)]

    def _volumes(self, volumes: Any) -> Optional[List[str]]:
        volumes = self._to_list(volumes)
        if volumes is None:
            return None
        for volume in volumes:
            if not isinstance(volume, str):
                raise ParseError("volume must be a string", volume)
        return volumes

    def _tokenize(self, value: Any) -> Optional[List[str]]:
        if not value:
            return None
        if isinstance(value, str):
            return value.split() or None
        return [str(v) for v in value]

    def _to_list(self, val: Any) -> Optional[List[Any]]:
        """
        Helper to ensure a value is a list, or None when empty.
        """
        if not val:
            return None
        if isinstance(val, (str, int)):
            return [val]
        return list(val)

    @staticmethod
    def _to_str(value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, bool):
            return str(value).lower()
        return str(value)
