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
Models for a loaded, version-normalized compose manifest.
"""
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel


class NormalizedManifest(BaseModel):
    """
    Version-independent view of a compose file.

    Version 1 files have no top level ``volumes``/``networks``; for versions
    2 and 3 both are passed through without validation.
    """
    path: str
    project: str
    version: Union[int, float] = 1
    services: Dict[str, Any] = {}
    volumes: Optional[Any] = None
    networks: Optional[Any] = None
