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
Models for a whole network definition, as read from a tcnet.yml file.
"""
from typing import Annotated, List, Optional, Union
from enum import Enum
from pydantic import BaseModel, Field

from .container_config import (
    DynamoDbContainerConfig,
    LambdaContainerConfig,
    SnsContainerConfig,
    SqsContainerConfig,
    WiremockContainerConfig,
)

AnyContainerConfig = Annotated[
    Union[
        WiremockContainerConfig,
        SqsContainerConfig,
        SnsContainerConfig,
        DynamoDbContainerConfig,
        LambdaContainerConfig,
    ],
    Field(discriminator="type"),
]


class ReadinessMode(str, Enum):
    """
    How the orchestrator waits for a container before starting the next one.
    """
    NONE = "none"
    DELAY = "delay"
    POLL = "poll"


class NetworkOptions(BaseModel):
    """
    Network level options.
    """
    name: Optional[str] = None
    readiness: ReadinessMode = ReadinessMode.NONE
    delay: float = 0.0
    timeout: float = 30.0


class NetworkDefinition(BaseModel):
    """
    A network and its containers, in startup order.
    """
    network: NetworkOptions = Field(default_factory=NetworkOptions)
    containers: List[AnyContainerConfig] = []
