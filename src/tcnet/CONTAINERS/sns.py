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
SNS mock. Topics and subscriptions come from a json database file; a file
subscription lets tests read back what was published.
"""
from .base import DockerContainer, ManagedContainer
from ..MANAGERS.network_manager import NetworkHandle
from ..MODELS.container_config import ContainerSpec, FileCopy, SnsContainerConfig

CONFIG_TARGET = "/etc/sns/db.json"


class SnsContainer(DockerContainer):
    def __init__(self, config: SnsContainerConfig):
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
            environment={"DB_PATH": CONFIG_TARGET, **self.config.environment},
            command=self.config.command,
            files=[FileCopy(source=self.config.config_file, target=CONFIG_TARGET)],
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

    def get_message(self) -> str:
        """
        Returns what the file subscription has written so far.

        :raises FileNotFoundError: If nothing has been published yet.
        """
        return self.runtime.read_file(self.config.output_file).decode("utf-8").strip()
