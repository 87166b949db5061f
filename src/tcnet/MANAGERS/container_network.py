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
Orchestration of a network of containers: ordered startup with readiness
pacing, and best-effort teardown.
"""
import time
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import docker
import docker.errors
import structlog

from .network_manager import NetworkHandle, generate_network_name
from .readiness import FixedDelay, NoWait, ReadinessStrategy, Sleep, strategy_for
from ..CONTAINERS.base import DockerContainer
from ..CONTAINERS.registry import build_container
from ..exceptions import NetworkStartError, NetworkStopError, UsageError
from ..MODELS.network_definition import NetworkDefinition
from ..MODELS.settings import Settings

logger = structlog.get_logger(__name__)


class NetworkState(str, Enum):
    """
    Lifecycle of a container network. Single shot: a stopped or failed network
    cannot be started again.
    """
    UNSTARTED = "unstarted"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    FAILED = "failed"


class ContainerNetwork:
    """
    Starts registered containers one at a time, in registration order, on a
    network of their own, and stops them all again.
    """
    def __init__(self,
                 client: Optional[docker.DockerClient] = None,
                 name: Optional[str] = None,
                 settings: Optional[Settings] = None,
                 sleep: Sleep = time.sleep):
        """
        Initializes the orchestrator. No Docker call is made until :meth:`start`.

        :param client: Docker client; ``docker.from_env()`` is used when omitted.
        :param name: Network name; a unique one is generated when omitted.
        :param settings: Process settings (host, network prefix).
        :param sleep: Sleep function used by :meth:`start_with_delay`.
        """
        self.settings = settings or Settings()
        self._client = client
        self.name = name or generate_network_name(self.settings.network_prefix)
        self._sleep = sleep
        self._containers: List[DockerContainer] = []
        self.network: Optional[NetworkHandle] = None
        self.state = NetworkState.UNSTARTED

    @classmethod
    def from_definition(cls,
                        definition: NetworkDefinition,
                        client: Optional[docker.DockerClient] = None,
                        settings: Optional[Settings] = None,
                        sleep: Sleep = time.sleep) -> Tuple["ContainerNetwork", Dict[str, DockerContainer]]:
        """
        Builds an orchestrator and its containers from a parsed definition file.

        :return: The orchestrator and its containers keyed by hostname.
        """
        network = cls(client=client, name=definition.network.name, settings=settings, sleep=sleep)
        containers: Dict[str, DockerContainer] = {}
        for config in definition.containers:
            container = build_container(config)
            if container.hostname in containers:
                raise UsageError(f"hostname {container.hostname} is used by more than one container")
            containers[container.hostname] = container
            network.register(container)
        return network, containers

    @property
    def containers(self) -> Tuple[DockerContainer, ...]:
        """Registered containers in startup order."""
        return tuple(self._containers)

    @property
    def client(self) -> docker.DockerClient:
        if self._client is None:
            self._client = docker.from_env()
        return self._client

    def register(self, container: DockerContainer) -> "ContainerNetwork":
        """
        Appends a container to the startup order.

        :param container: The container to add.
        :return: This orchestrator, so registrations can be chained.
        :raises UsageError: Once the network has been started.
        """
        if self.state is not NetworkState.UNSTARTED:
            raise UsageError(f"cannot register containers on a network that is {self.state.value}")
        self._containers.append(container)
        return self

    with_container = register

    def start(self, readiness: Optional[ReadinessStrategy] = None) -> None:
        """
        Creates the network, then starts every container in registration order,
        waiting on ``readiness`` after each one.

        The first failure aborts the sequence: containers already attempted are
        stopped, the network is removed and the original error is re-raised.

        :param readiness: How to wait after each start; no wait by default.
        :raises UsageError: If the network was already started.
        :raises NetworkStartError: If the network cannot be created.
        :raises ContainerStartError: If a container fails to start or become ready.
        """
        if self.state is not NetworkState.UNSTARTED:
            raise UsageError(f"network {self.name} is {self.state.value} and cannot be started again")

        readiness = readiness or NoWait()
        self.state = NetworkState.STARTING
        try:
            self.network = NetworkHandle(self.client, self.name, host=self.settings.host)
            self.network.create()
        except docker.errors.DockerException as e:
            self.state = NetworkState.FAILED
            raise NetworkStartError(f"connecting to Docker for network {self.name}: {e}") from e
        except Exception:
            self.state = NetworkState.FAILED
            raise

        order = [c.hostname for c in self._containers]
        logger.info("starting containers", network=self.name, order=order)

        attempted: List[DockerContainer] = []
        for container in self._containers:
            attempted.append(container)
            try:
                container.start_using(self.network)
                readiness.wait(container)
            except Exception:
                self.state = NetworkState.FAILED
                logger.error("aborting network start", network=self.name, container=container.hostname)
                self._cleanup_after_failure(attempted)
                raise

        self.state = NetworkState.RUNNING
        logger.info("network running", network=self.name)

    def start_with_delay(self, delay: float) -> None:
        """
        Starts the network, pausing ``delay`` seconds after each container start.
        """
        self.start(FixedDelay(delay, sleep=self._sleep))

    def start_from_definition(self, definition: NetworkDefinition) -> None:
        """
        Starts the network with the readiness strategy a definition file selects.
        """
        self.start(strategy_for(definition.network, sleep=self._sleep))

    def _cleanup_after_failure(self, attempted: Sequence[DockerContainer]) -> None:
        errors = self._teardown(attempted)
        for error in errors:
            logger.warning("cleanup after failed start incomplete", network=self.name, error=str(error))

    def stop(self) -> None:
        """
        Stops every container, continuing past failures, then removes the network.
        After a failed teardown the network stays in ``stopping`` and ``stop()``
        can be called again to retry what is left.

        :raises UsageError: If the network was never started.
        :raises NetworkStopError: Aggregating every failure, after all stops were attempted.
        """
        if self.state is NetworkState.UNSTARTED:
            raise UsageError(f"network {self.name} was never started")
        if self.state is NetworkState.STOPPED:
            logger.debug("network already stopped", network=self.name)
            return

        failed = self.state is NetworkState.FAILED
        if not failed:
            self.state = NetworkState.STOPPING
        logger.info("stopping containers", network=self.name)

        errors = self._teardown(self._containers)

        if errors:
            raise NetworkStopError(errors)
        if not failed:
            self.state = NetworkState.STOPPED
        logger.info("network stopped", network=self.name)

    def _teardown(self, containers: Sequence[DockerContainer]) -> List[Exception]:
        """
        Stops each container exactly once, then removes the network unless some
        container still reports itself running.

        :return: Every error encountered.
        """
        errors: List[Exception] = []
        for container in containers:
            try:
                container.stop()
            except Exception as e:
                logger.error("container failed to stop", container=container.hostname, error=str(e))
                errors.append(e)

        still_running = []
        for container in containers:
            try:
                if container.is_running():
                    still_running.append(container.hostname)
            except Exception as e:
                errors.append(e)
                still_running.append(container.hostname)

        if self.network is None or not self.network.exists:
            return errors
        if still_running:
            errors.append(UsageError(
                f"network {self.name} left in place; still running: {', '.join(still_running)}"
            ))
            return errors
        try:
            self.network.remove()
        except docker.errors.DockerException as e:
            errors.append(e)
        return errors

    def mapped_ports(self) -> Dict[str, int]:
        """
        Mapped ports of all containers, keyed by hostname.

        :raises UsageError: Unless the network is running.
        """
        if self.state is not NetworkState.RUNNING:
            raise UsageError(f"network {self.name} is {self.state.value}; mapped ports are only known while running")
        return {c.hostname: c.mapped_port() for c in self._containers}

    def __enter__(self) -> "ContainerNetwork":
        if self.state is NetworkState.UNSTARTED:
            self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc is None:
            self.stop()
            return
        try:
            self.stop()
        except NetworkStopError as e:
            logger.error("teardown failed after error in network block", network=self.name, error=str(e))
