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
Maps container config types to their adapters.
"""
from typing import Dict, Type

from .base import DockerContainer
from .dynamodb import DynamoDbContainer
from .lambda_function import LambdaContainer
from .sns import SnsContainer
from .sqs import SqsContainer
from .wiremock import WiremockContainer
from ..MODELS.container_config import ContainerConfig

ADAPTERS: Dict[str, Type[DockerContainer]] = {
    "wiremock": WiremockContainer,
    "sqs": SqsContainer,
    "sns": SnsContainer,
    "dynamodb": DynamoDbContainer,
    "lambda": LambdaContainer,
}


def build_container(config: ContainerConfig) -> DockerContainer:
    """
    Instantiates the adapter matching ``config.type``.

    :raises KeyError: If no adapter is registered for the type.
    """
    adapter = ADAPTERS[getattr(config, "type")]
    return adapter(config)
