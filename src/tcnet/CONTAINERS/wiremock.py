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
WireMock HTTP mock endpoint.
"""
from typing import List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

from .base import DockerContainer, ManagedContainer
from ..MANAGERS.network_manager import NetworkHandle
from ..MODELS.container_config import ContainerSpec, FileCopy, WiremockContainerConfig

MAPPINGS_TARGET = "/home/wiremock/mappings"
ADMIN_REQUESTS_PATH = "/__admin/requests"


class WiremockRequest(BaseModel):
    """A request as journaled by WireMock."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    url: str = ""
    absolute_url: str = Field("", alias="absoluteUrl")
    method: str = ""
    body: Optional[str] = None


class WiremockResponseDefinition(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: int = 0
    body: Optional[str] = None


class WiremockAdminRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    request: WiremockRequest = Field(default_factory=WiremockRequest)
    response_definition: WiremockResponseDefinition = Field(
        default_factory=WiremockResponseDefinition, alias="responseDefinition"
    )
    was_matched: bool = Field(False, alias="wasMatched")


class WiremockAdminStatus(BaseModel):
    """
    The request journal returned by ``GET /__admin/requests``.
    """
    model_config = ConfigDict(extra="ignore")

    requests: List[WiremockAdminRequest] = []

    def find(self, absolute_url: str) -> Optional[WiremockAdminRequest]:
        """
        Returns the first journaled request to ``absolute_url``, if any.
        """
        for admin_request in self.requests:
            if admin_request.request.absolute_url == absolute_url:
                return admin_request
        return None


class WiremockContainer(DockerContainer):
    """
    Runs WireMock with the stub mappings from ``config.json_mappings``.
    """
    def __init__(self, config: Optional[WiremockContainerConfig] = None):
        self.config = config or WiremockContainerConfig()
        self.runtime = ManagedContainer(self.config.hostname)

    @property
    def hostname(self) -> str:
        return self.config.hostname

    def container_spec(self) -> ContainerSpec:
        files = []
        if self.config.json_mappings:
            files.append(FileCopy(source=self.config.json_mappings, target=MAPPINGS_TARGET))
        return ContainerSpec(
            image=self.config.image,
            hostname=self.config.hostname,
            port=self.config.port,
            environment=self.config.environment,
            command=self.config.command or ["--port", str(self.config.port)],
            files=files,
            ready_path="/__admin/mappings",
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

    def get_admin_status(self) -> WiremockAdminStatus:
        """
        Fetches the WireMock request journal.

        :raises httpx.HTTPStatusError: If the admin API answers with an error status.
        """
        response = httpx.get(self.runtime.url(ADMIN_REQUESTS_PATH), timeout=10.0)
        response.raise_for_status()
        return WiremockAdminStatus.model_validate(response.json())
