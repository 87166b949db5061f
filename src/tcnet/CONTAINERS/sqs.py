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
ElasticMQ, standing in for SQS.
"""
from .base import DockerContainer, ManagedContainer
from ..MANAGERS.network_manager import NetworkHandle
from ..MODELS.container_config import ContainerSpec, FileCopy, SqsContainerConfig

CONFIG_TARGET = "/opt/elasticmq.conf"


class SqsContainer(DockerContainer):
    """
    Runs ElasticMQ. The elasticmq.conf is copied in before the container
    starts, since queues are only created at boot.
    """
    def __init__(self, config: SqsContainerConfig):
        self.config = config
        self.runtime = ManagedContainer(config.hostname)

    @property
    def hostname(self) -> str:
        return self.config.hostname

    def container_spec(self) -> ContainerSpec:
        return ContainerSpec(
            image=self.config.image,
            hostname=self.config.hostname,
            port=self.config.port,
            environment=self.config.environment,
            command=self.config.command,
            files=[FileCopy(source=self.config.config_file_path, target=CONFIG_TARGET, mode=0o555)],
            ready_path="/?Action=ListQueues",
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

    def endpoint_url(self) -> str:
        """Host-side SQS endpoint, for boto3 clients."""
        return self.runtime.url("")
