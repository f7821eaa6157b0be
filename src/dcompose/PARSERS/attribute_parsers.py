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
Parsers for the small string grammars found in service declarations:
ports, links, volumes and shared memory sizes.

Parsers never raise. They return either ``Parsed`` or ``Invalid`` so the
caller decides whether a malformed entry is fatal.
"""
import re
from dataclasses import dataclass
from typing import Any, Generic, Optional, Tuple, TypeVar, Union

from ..errors import ParseError
from ..MODELS.container_spec import DEFAULT_SHM_SIZE, Port

T = TypeVar("T")

ACCESS_MODES = ("ro", "rw", "z", "Z", "ro,z", "ro,Z", "rw,z", "rw,Z")


@dataclass(frozen=True)
class Parsed(Generic[T]):
    """Successful parse result."""
    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Invalid:
    """Failed parse result with the reason and the offending input."""
    reason: str
    raw: Any = None

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self):
        raise ParseError(self.reason, self.raw)


ParseResult = Union[Parsed[T], Invalid]


@dataclass(frozen=True)
class VolumeSpec:
    """
    A parsed ``[source:]target[:mode]`` volume entry.
    """
    target: str
    source: Optional[str] = None
    mode: Optional[str] = None

    @property
    def is_bind(self) -> bool:
        return self.source is not None


def parse_port(entry: Any) -> ParseResult[Port]:
    """
    Parses ``container``, ``host:container`` or ``ip:host:container``.
    The long mapping syntax (``target``, ``published``, ``host_ip``) is accepted too.
    """
    if isinstance(entry, dict):
        if entry.get("target") in (None, ""):
            return Invalid("port mapping requires a target", entry)
        container_port = str(entry["target"])
        if entry.get("protocol") and "/" not in container_port:
            container_port = f"{container_port}/{entry['protocol']}"
        host_port = entry.get("published")
        host_ip = entry.get("host_ip")
    elif isinstance(entry, (str, int)) and not isinstance(entry, bool):
        parts = str(entry).split(":")
        if len(parts) > 3:
            return Invalid("too many fields in port specification", entry)
        # right to left: container, host port, host ip
        parts.reverse()
        container_port = parts[0]
        host_port = parts[1] if len(parts) > 1 else None
        host_ip = parts[2] if len(parts) > 2 else None
    else:
        return Invalid("unsupported port specification", entry)

    host_port = str(host_port) if host_port not in (None, "") else None
    host_ip = host_ip or None

    if not container_port:
        return Invalid("port specification has no container port", entry)
    if host_ip and not host_port:
        return Invalid("cannot specify a host IP address without a host port", entry)
    return Parsed(Port(container_port=container_port, host_port=host_port, host_ip=host_ip))


def parse_link(entry: Any) -> ParseResult[Tuple[str, str]]:
    """
    Parses ``service`` or ``service:alias`` into ``(service, alias)``.
    """
    if not isinstance(entry, str) or not entry:
        return Invalid("link must be a non-empty string", entry)
    parts = entry.split(":")
    if len(parts) > 2 or not all(parts):
        return Invalid("link must be 'service' or 'service:alias'", entry)
    service = parts[0]
    alias = parts[1] if len(parts) == 2 else service
    return Parsed((service, alias))


def parse_volume(entry: Any) -> ParseResult[VolumeSpec]:
    """
    Parses ``target``, ``source:target`` or ``source:target:mode``.
    """
    if not isinstance(entry, str) or not entry:
        return Invalid("volume must be a non-empty string", entry)
    parts = entry.split(":")
    if len(parts) == 1:
        return Parsed(VolumeSpec(target=parts[0]))
    if len(parts) > 3 or not all(parts):
        return Invalid("volume must be '[source:]target[:mode]'", entry)
    mode = parts[2] if len(parts) == 3 else None
    if mode is not None and mode not in ACCESS_MODES:
        return Invalid("unknown volume access mode", entry)
    return Parsed(VolumeSpec(source=parts[0], target=parts[1], mode=mode))


SHM_UNITS = {
    "": 1,
    "k": 1024, "kb": 1024,
    "m": 1024 ** 2, "mb": 1024 ** 2,
    "g": 1024 ** 3, "gb": 1024 ** 3,
}
SHM_PATTERN = re.compile(r'(\d+)\s*([A-Za-z]*)')


def parse_shm_size(value: Any) -> ParseResult[int]:
    """
    Converts ``"512m"``-style sizes into bytes using 1024-based units.
    ``None`` gives the 64 MiB default; a bare number is taken as bytes.
    """
    if value is None:
        return Parsed(DEFAULT_SHM_SIZE)
    if isinstance(value, bool):
        return Invalid("invalid shm_size", value)
    if isinstance(value, int):
        return Parsed(value)

    match = SHM_PATTERN.fullmatch(str(value).strip())
    if not match:
        return Invalid("invalid shm_size", value)
    number, unit = match.groups()
    multiplier = SHM_UNITS.get(unit.lower())
    if multiplier is None:
        return Invalid("unknown shm_size unit", value)
    return Parsed(int(number) * multiplier)
