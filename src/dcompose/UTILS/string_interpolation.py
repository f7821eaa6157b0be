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
Utilities for string interpolation using environment variables.
"""
import logging
import re
from typing import Mapping

logger = logging.getLogger(__name__)


class EnvironmentInterpolator:
    """
    Utility for interpolating environment variables in strings.
    Supports $VAR, ${VAR}, ${VAR:-default}, ${VAR:+value} and $$ as a literal dollar.
    """
    # Group 1: $$ escape
    # Group 2: bare $VAR name
    # Group 3: ${VAR} name
    # Group 4: - or +
    # Group 5: default or value
    PATTERN = re.compile(
        r'\$(?:(\$)|([A-Za-z_][A-Za-z0-9_]*)|\{([A-Za-z_][A-Za-z0-9_]*)(?::(-|\+)([^}]*))?\})'
    )

    @classmethod
    def interpolate(cls, template: str, context: Mapping[str, str]) -> str:
        """
        Interpolates environment variables in the template string using the provided context.
        Unset variables resolve to an empty string.

        :param template: The string containing $VAR or ${VAR} placeholders.
        :param context: The environment variables context.
        :return: The interpolated string.
        """
        def replace(match):
            """
            Internal replacement function for re.sub.
            """
            if match.group(1):
                return "$"

            var_name = match.group(2) or match.group(3)
            modifier = match.group(4)
            alt_value = match.group(5) or ""

            value = context.get(var_name)

            if modifier == '-':
                return value if value else alt_value
            if modifier == '+':
                return alt_value if value else ''
            if value is None:
                logger.debug("Variable %s is not set, substituting an empty string", var_name)
                return ''
            return value

        return cls.PATTERN.sub(replace, template)
