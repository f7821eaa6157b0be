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
Runtime configuration for loading and driving a compose project.
"""
import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field

ENV_PREFIX = "DCOMPOSE_"


class ComposeSettings(BaseModel):
    """
    Tunables for the loader, the engine connection and the lifecycle controller.

    :param engine_base_url: Engine endpoint, e.g. ``unix:///var/run/docker.sock``.
        ``None`` lets the docker SDK pick it up from ``DOCKER_HOST``.
    :param engine_timeout: Seconds before an engine request times out.
    :param connect_attempts: Pings attempted before giving up on the engine.
    :param max_workers: Containers started in parallel by a batch start.
        ``1`` starts them strictly one after the other.
    :param project_name: Overrides the project name derived from the manifest directory.
    :param env_file: Dotenv file, relative to the manifest directory, used for substitution.
    :param load_running: Also register containers of this project already on the engine.
    """
    engine_base_url: Optional[str] = None
    engine_timeout: int = Field(default=60, gt=0)
    connect_attempts: int = Field(default=3, ge=1)
    max_workers: int = Field(default=1, ge=1)
    project_name: Optional[str] = None
    env_file: str = ".env"
    load_running: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ComposeSettings":
        """
        Builds settings from ``DCOMPOSE_*`` variables, e.g. ``DCOMPOSE_MAX_WORKERS=4``.
        """
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            key = ENV_PREFIX + name.upper()
            if key in environ:
                values[name] = environ[key]
        return cls(**values)
