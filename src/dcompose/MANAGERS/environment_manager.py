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
Managers for resolving the variables available to manifest substitution.
"""
import logging
import os
from typing import Dict, Mapping, Optional

from dotenv import dotenv_values

logger = logging.getLogger(__name__)


class EnvironmentManager:
    """
    Merges the process environment with an optional dotenv file.
    """
    def __init__(self, base_dir: str = ".", env_file: Optional[str] = ".env"):
        """
        Initializes the environment manager.

        :param base_dir: The base directory for resolving a relative dotenv path.
        :param env_file: The dotenv file name, or None to skip it.
        """
        self.base_dir = base_dir
        self.env_file = env_file

    def get_substitution_context(self, environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """
        Returns the variables used to interpolate the manifest.
        Process variables override the ones from the dotenv file.

        :param environ: The process environment, defaults to ``os.environ``.
        :return: A dictionary containing the merged variables.
        """
        context: Dict[str, str] = {}

        if self.env_file:
            file_path = os.path.join(self.base_dir, self.env_file)
            if os.path.isfile(file_path):
                logger.debug("Loading variables from %s", file_path)
                for key, value in dotenv_values(file_path).items():
                    context[key] = value if value is not None else ""

        context.update(os.environ if environ is None else environ)
        return context
