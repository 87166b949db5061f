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
${VAR} interpolation for network definition files.
"""
import re
from typing import Dict, List, Mapping

# ${VAR}, ${VAR:-default} or ${VAR:+alternative}
_PATTERN = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)(?::([-+])([^}]*))?\}')


class EnvironmentInterpolator:
    """
    Substitutes shell-style variable references using a context mapping.
    """
    @staticmethod
    def find_missing(template: str, context: Mapping[str, str]) -> List[str]:
        """
        Lists the variables referenced without a modifier that the context does not define.

        :param template: Text containing ${VAR} references.
        :param context: Variables available for substitution.
        :return: Missing variable names, in order of first appearance.
        """
        missing: List[str] = []
        for match in _PATTERN.finditer(template):
            name, modifier = match.group(1), match.group(2)
            if modifier is None and name not in context and name not in missing:
                missing.append(name)
        return missing

    @staticmethod
    def interpolate(template: str, context: Mapping[str, str]) -> str:
        """
        Interpolates the template.

        :param template: Text containing ${VAR} references.
        :param context: Variables available for substitution.
        :return: The interpolated text.
        :raises KeyError: If a plain ${VAR} is not defined in the context.
        """
        def replace(match: "re.Match[str]") -> str:
            name, modifier, alternative = match.group(1), match.group(2), match.group(3)
            value = context.get(name)

            if modifier == '-':
                return value if value else alternative
            if modifier == '+':
                return alternative if value else ''
            if value is None:
                raise KeyError(f"Variable {name} not found in context")
            return value

        return _PATTERN.sub(replace, template)

    @staticmethod
    def merged_context(*layers: Mapping[str, str]) -> Dict[str, str]:
        """
        Merges context layers; later layers override earlier ones and None values are dropped.
        """
        merged: Dict[str, str] = {}
        for layer in layers:
            merged.update({k: v for k, v in layer.items() if v is not None})
        return merged
