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
Docker network handling: the shared network every container attaches to, and
cleanup of networks left behind by earlier runs.
"""
import uuid
from typing import Any, Dict, List, Optional

import docker
import docker.errors
import structlog

from ..exceptions import NetworkStartError, UsageError

logger = structlog.get_logger(__name__)

NETWORK_LABEL = "tcnet.network"


def generate_network_name(prefix: str = "tcnet") -> str:
    """
    Returns a unique network name such as ``tcnet-3f2a9c1d0b7e``.
    """
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


class NetworkHandle:
    """
    A named, ephemeral Docker bridge network.

    Containers hold a non-owning reference to the handle; the orchestrator that
    created it is the only one that removes it.
    """
    def __init__(self, client: docker.DockerClient, name: str, host: str = "localhost"):
        """
        Initializes the handle. Nothing is created until :meth:`create` is called.

        :param client: Docker client used for every API call.
        :param name: Network name; also used as the label value on attached containers.
        :param host: Host name under which mapped container ports are reachable.
        """
        self.client = client
        self.name = name
        self.host = host
        self._network: Optional[Any] = None

    @property
    def exists(self) -> bool:
        """Whether the network has been created and not yet removed."""
        return self._network is not None

    @property
    def labels(self) -> Dict[str, str]:
        """Labels put on the network and on every container attached to it."""
        return {NETWORK_LABEL: self.name}

    def create(self) -> None:
        """
        Creates the network.

        :raises UsageError: If the network already exists.
        :raises NetworkStartError: If Docker refuses to create it.
        """
        if self._network is not None:
            raise UsageError(f"network {self.name} has already been created")
        try:
            self._network = self.client.networks.create(
                self.name,
                driver="bridge",
                labels=self.labels,
            )
        except docker.errors.DockerException as e:
            raise NetworkStartError(f"creating network {self.name}: {e}") from e
        logger.info("network created", network=self.name)

    def connect(self, container: Any, alias: str) -> None:
        """
        Attaches a created container to the network under ``alias``.

        :param container: A docker-py container object.
        :param alias: Hostname other containers use to reach it.
        :raises UsageError: If the network has not been created.
        """
        if self._network is None:
            raise UsageError(f"network {self.name} must be created before containers attach to it")
        self._network.connect(container, aliases=[alias])

    def remove(self) -> None:
        """
        Removes the network. A handle that was never created, or has already been
        removed, is left alone.

        :raises docker.errors.DockerException: If Docker fails to remove it.
        """
        if self._network is None:
            return
        self._network.remove()
        self._network = None
        logger.info("network removed", network=self.name)


def prune_network(client: docker.DockerClient, name: str) -> Dict[str, List[str]]:
    """
    Removes every container labelled with network ``name`` and then the network.
    Used to clean up runs that were detached or crashed before teardown.

    :param client: Docker client.
    :param name: Network name.
    :return: Names of the removed containers and networks.
    """
    removed: Dict[str, List[str]] = {"containers": [], "networks": []}
    selector = {"label": f"{NETWORK_LABEL}={name}"}

    for container in client.containers.list(all=True, filters=selector):
        container.remove(force=True)
        removed["containers"].append(container.name)
        logger.info("container pruned", container=container.name, network=name)

    for network in client.networks.list(names=[name]):
        if network.name != name:
            continue
        network.remove()
        removed["networks"].append(network.name)
        logger.info("network pruned", network=name)

    return removed
