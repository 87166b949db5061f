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
DynamoDB Local key-value table store.
"""
from typing import Optional

from .base import DockerContainer, ManagedContainer
from ..MANAGERS.network_manager import NetworkHandle
from ..MODELS.container_config import ContainerSpec, DynamoDbContainerConfig


class DynamoDbContainer(DockerContainer):
    """
    Runs DynamoDB Local in memory; tables are created by the test after start.
    """
    def __init__(self, config: Optional[DynamoDbContainerConfig] = None):
        self.config = config or DynamoDbContainerConfig()
        self.runtime = ManagedContainer(self.config.hostname)

    @property
    def hostname(self) -> str:
        return self.config.hostname

    def container_spec(self) -> ContainerSpec:
        command = self.config.command or [
            "-jar", "DynamoDBLocal.jar", "-inMemory", "-sharedDb", "-port", str(self.config.port),
        ]
        return ContainerSpec(
            image=self.config.image,
            hostname=self.config.hostname,
            port=self.config.port,
            environment=self.config.environment,
            command=command,
        )

    def start_using(self, network: NetworkHandle) -> None:
        self.runtime.launch(network, self.container_spec())

    def mapped_port(self) -> int:
        return self.runtime.mapped_port()

    def log(self) -> str:
        return self.runtime.log()

    def stop(self) -> None:
        self.runtime.stop()

    def is_running(self) -> bool:
        return self.runtime.is_running()

    def is_ready(self) -> bool:
        return self.runtime.is_ready()
