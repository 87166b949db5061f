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
Parser for tcnet.yml network definition files.

Example::

    network:
      readiness: delay
      delay: 2
    containers:
      - type: wiremock
        json_mappings: test-assets/wiremock/mappings
      - type: sqs
        config_file_path: test-assets/sqs/elasticmq.conf
      - type: lambda
        executable: test-assets/lambda/main
        environment:
          API_ENDPOINT: http://wiremock:8080
          SQS_ENDPOINT: http://sqs:9324
"""
import os
from typing import Any, Dict, List, Mapping, Optional

import structlog
import yaml
from dotenv import dotenv_values
from pydantic import ValidationError

from ..exceptions import ConfigurationError
from ..MODELS.network_definition import NetworkDefinition
from ..UTILS.string_interpolation import EnvironmentInterpolator

logger = structlog.get_logger(__name__)

# Per container type, the keys holding host paths.
PATH_KEYS: Dict[str, List[str]] = {
    "wiremock": ["json_mappings"],
    "sqs": ["config_file_path"],
    "sns": ["config_file"],
    "dynamodb": [],
    "lambda": ["executable"],
}


class NetworkParser:
    """
    Parser for network definition files.
    """
    def __init__(self, context: Optional[Mapping[str, str]] = None, env_file: Optional[str] = ".env"):
        """
        Initializes the parser with the variables available for interpolation.

        :param context: Variables for interpolation; defaults to the process environment.
        :param env_file: A .env file whose values are added beneath ``context``.
        """
        file_values: Dict[str, Optional[str]] = {}
        if env_file and os.path.exists(env_file):
            file_values = dotenv_values(env_file)
        self.context = EnvironmentInterpolator.merged_context(
            file_values, dict(os.environ) if context is None else context
        )

    def parse(self, path: str) -> NetworkDefinition:
        """
        Parses a definition file. Relative host paths inside it are resolved
        against the file's directory.

        :param path: Path to the definition file.
        :return: The parsed definition.
        :raises ConfigurationError: If the file is missing or invalid.
        """
        try:
            with open(path, 'r') as f:
                content = f.read()
        except OSError as e:
            raise ConfigurationError(f"reading {path}: {e}") from e
        return self.parse_from_string(content, base_dir=os.path.dirname(os.path.abspath(path)))

    def parse_from_string(self, content: str, base_dir: str = ".") -> NetworkDefinition:
        """
        Parses a definition from a string.

        :param content: YAML content.
        :param base_dir: Directory relative host paths are resolved against.
        :return: The parsed definition.
        :raises ConfigurationError: If the content is invalid.
        """
        missing = EnvironmentInterpolator.find_missing(content, self.context)
        if missing:
            raise ConfigurationError(f"undefined variable(s): {', '.join(missing)}")
        content = EnvironmentInterpolator.interpolate(content, self.context)

        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"invalid YAML: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError("a network definition must be a mapping")

        containers = data.get('containers') or []
        if not isinstance(containers, list):
            raise ConfigurationError("'containers' must be a list")
        data['containers'] = [self._resolve_paths(spec, base_dir) for spec in containers]

        try:
            definition = NetworkDefinition.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e

        logger.debug("network definition parsed", containers=[c.hostname for c in definition.containers])
        return definition

    def _resolve_paths(self, spec: Any, base_dir: str) -> Any:
        """
        Makes the host path fields of a container spec absolute.

        :param spec: One entry of the ``containers`` list.
        :param base_dir: Directory relative paths are resolved against.
        :return: The spec with resolved paths.
        """
        if not isinstance(spec, dict):
            return spec
        resolved = dict(spec)
        for key in PATH_KEYS.get(spec.get('type'), []):
            value = resolved.get(key)
            if isinstance(value, str):
                resolved[key] = self._absolute(value, base_dir)
        extra_files = resolved.get('extra_files')
        if isinstance(extra_files, list):
            resolved['extra_files'] = [
                {**f, 'source': self._absolute(f['source'], base_dir)}
                if isinstance(f, dict) and isinstance(f.get('source'), str) else f
                for f in extra_files
            ]
        return resolved

    @staticmethod
    def _absolute(path: str, base_dir: str) -> str:
        if os.path.isabs(path):
            return path
        return os.path.normpath(os.path.join(base_dir, path))
