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
The function under test, run inside an AWS Lambda base image.

The base images ship the Lambda runtime interface emulator, which serves the
same invocation path whatever the runtime is.
"""
from typing import Any, Dict, Optional

import httpx

from .base import DockerContainer, ManagedContainer
from ..MANAGERS.network_manager import NetworkHandle
from ..MODELS.container_config import ContainerSpec, FileCopy, LambdaContainerConfig

INVOCATION_PATH = "/2015-03-31/functions/function/invocations"


class LambdaContainer(DockerContainer):
    """
    Runs the function under test. ``config.environment`` usually holds the
    addresses of the other containers on the network, e.g.
    ``{"SQS_ENDPOINT": "http://sqs:9324"}``; it is passed through unchanged.
    """
    def __init__(self, config: LambdaContainerConfig):
        self.config = config
        self.runtime = ManagedContainer(config.hostname)

    @property
    def hostname(self) -> str:
        return self.config.hostname

    def container_spec(self) -> ContainerSpec:
        executable = FileCopy(
            source=self.config.executable,
            target=self.config.executable_target,
            mode=0o755,
        )
        return ContainerSpec(
            image=self.config.image,
            hostname=self.config.hostname,
            port=self.config.port,
            environment=self.config.environment,
            command=self.config.command or [self.config.handler],
            files=[executable, *self.config.extra_files],
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

    def invocation_url(self) -> str:
        return self.runtime.url(INVOCATION_PATH)

    def invoke(self, event: Dict[str, Any], timeout: Optional[float] = 30.0) -> httpx.Response:
        """
        Posts ``event`` as the triggering JSON payload and returns the raw response.
        """
        return httpx.post(self.invocation_url(), json=event, timeout=timeout)
