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
The container contract every service adapter implements, and the Docker
bookkeeping adapters compose to fulfil it.
"""
import os
import posixpath
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Optional

import docker.errors
import httpx
import structlog

from ..exceptions import ContainerNotStartedError, ContainerStartError, ContainerStopError, UsageError
from ..MANAGERS.network_manager import NetworkHandle
from ..MODELS.container_config import ContainerSpec, StagePoint
from ..UTILS.archive import describe, pack_path, unpack_file

logger = structlog.get_logger(__name__)

STOP_TIMEOUT = 10
READY_TIMEOUT = 2.0


class ContainerState(str, Enum):
    """
    Lifecycle of a single container.
    """
    NEW = "new"
    STARTING = "starting"
    RUNNING = "running"
    FAILED = "failed"
    STOPPED = "stopped"


class DockerContainer(ABC):
    """
    A service container that can join a network, be queried while the test
    runs, and be stopped again.
    """

    @property
    @abstractmethod
    def hostname(self) -> str:
        """Network alias of the container."""

    @abstractmethod
    def start_using(self, network: NetworkHandle) -> None:
        """
        Creates the container on ``network`` and starts it. May be called once.

        :raises ContainerStartError: If any startup step fails.
        :raises UsageError: On a second call.
        """

    @abstractmethod
    def mapped_port(self) -> int:
        """
        Host port bound to the internal service port.

        :raises ContainerNotStartedError: Before a successful start.
        """

    @abstractmethod
    def log(self) -> str:
        """Snapshot of the container's stdout and stderr."""

    @abstractmethod
    def stop(self) -> None:
        """
        Stops and removes the container. Does nothing if it was never created.

        :raises ContainerStopError: If Docker fails to stop or remove it.
        """

    @abstractmethod
    def is_running(self) -> bool:
        """Whether Docker reports the container as running."""

    def is_ready(self) -> bool:
        """Whether the service accepts requests. Defaults to :meth:`is_running`."""
        return self.is_running()


class ManagedContainer:
    """
    Owns one Docker container: its handle, its ports and its lifecycle state.

    The handle is kept as soon as the container is created so that a failed
    start can still be cleaned up by :meth:`stop`.
    """
    def __init__(self, hostname: str):
        """
        :param hostname: Network alias, used to identify the container in errors and logs.
        """
        self.hostname = hostname
        self.state = ContainerState.NEW
        self.handle: Optional[Any] = None
        self.spec: Optional[ContainerSpec] = None
        self.network: Optional[NetworkHandle] = None
        self._mapped_port: Optional[int] = None

    def launch(self, network: NetworkHandle, spec: ContainerSpec) -> None:
        """
        Pulls, creates, attaches, stages files into and starts the container.

        :param network: The network to join.
        :param spec: Container specification built by the adapter.
        :raises UsageError: If the container was already launched.
        :raises ContainerStartError: If any step fails.
        """
        if self.state is not ContainerState.NEW:
            raise UsageError(f"{self.hostname}: container can only be started once (state: {self.state.value})")

        self.state = ContainerState.STARTING
        self.spec = spec
        self.network = network
        log = logger.bind(container=self.hostname, network=network.name)

        try:
            self._check_sources()
            self._ensure_image()
            self.handle = self._step("creating container", self._create)
            self._step("attaching to network", network.connect, self.handle, spec.hostname)
            self._stage(StagePoint.BEFORE_START)
            self._step("starting container", self.handle.start)
            self._stage(StagePoint.AFTER_START)
            self._mapped_port = self._resolve_mapped_port()
        except ContainerStartError as e:
            self.state = ContainerState.FAILED
            log.error("container failed to start", operation=e.operation, reason=e.reason)
            raise

        self.state = ContainerState.RUNNING
        log.info("container started", image=spec.image, port=spec.port, mapped_port=self._mapped_port)

    def _step(self, operation: str, func: Callable[..., Any], *args: Any) -> Any:
        """
        Runs one startup step, turning Docker and I/O failures into ContainerStartError.
        """
        try:
            return func(*args)
        except (docker.errors.DockerException, OSError) as e:
            raise ContainerStartError(self.hostname, operation, str(e)) from e

    def _check_sources(self) -> None:
        for file_copy in self.spec.files:
            if not os.path.exists(file_copy.source):
                raise ContainerStartError(
                    self.hostname, "staging files", f"{file_copy.source} does not exist"
                )

    def _ensure_image(self) -> None:
        images = self.network.client.images
        try:
            images.get(self.spec.image)
            return
        except docker.errors.ImageNotFound:
            pass
        except docker.errors.DockerException as e:
            raise ContainerStartError(self.hostname, "inspecting image", str(e)) from e

        logger.info("pulling image", container=self.hostname, image=self.spec.image)
        self._step("pulling image", images.pull, self.spec.image)

    def _create(self) -> Any:
        spec = self.spec
        return self.network.client.containers.create(
            image=spec.image,
            command=spec.command or None,
            name=f"{self.network.name}-{spec.hostname}",
            hostname=spec.hostname,
            environment=dict(spec.environment),
            ports={spec.port_key: None},
            labels={**self.network.labels, **spec.labels},
        )

    def _stage(self, stage: StagePoint) -> None:
        for file_copy in self.spec.files:
            if file_copy.stage is not stage:
                continue
            logger.debug("staging file", container=self.hostname,
                         source=describe(file_copy.source), target=file_copy.target)
            self.copy_to(file_copy.source, file_copy.target, file_copy.mode)

    def copy_to(self, source: str, target: str, mode: Optional[int] = None) -> None:
        """
        Copies a host file or directory to ``target`` inside the container.

        :raises ContainerStartError: If the copy fails.
        """
        if self.handle is None:
            raise ContainerNotStartedError(self.hostname, "copy files")
        data = self._step("staging files", pack_path, source, target, mode)
        destination = posixpath.dirname(target.rstrip('/')) or "/"
        if not self._step("staging files", self.handle.put_archive, destination, data):
            raise ContainerStartError(self.hostname, "staging files", f"copying {source} to {target} was refused")

    def _resolve_mapped_port(self) -> int:
        self._step("resolving mapped port", self.handle.reload)
        bindings = (self.handle.ports or {}).get(self.spec.port_key)
        if not bindings:
            raise ContainerStartError(
                self.hostname, "resolving mapped port", f"no host binding for {self.spec.port_key}"
            )
        return int(bindings[0]["HostPort"])

    def mapped_port(self) -> int:
        """
        :raises ContainerNotStartedError: Unless the container is running.
        """
        if self.state is not ContainerState.RUNNING or self._mapped_port is None:
            raise ContainerNotStartedError(self.hostname, "read the mapped port")
        return self._mapped_port

    def url(self, path: str = "/") -> str:
        """HTTP URL of ``path`` on the mapped service port."""
        port = self.mapped_port()
        return f"http://{self.network.host}:{port}{path}"

    def log(self) -> str:
        """
        :raises ContainerNotStartedError: If no container was ever created.
        """
        if self.handle is None:
            raise ContainerNotStartedError(self.hostname, "read logs")
        return self.handle.logs(stdout=True, stderr=True).decode("utf-8", errors="replace")

    def read_file(self, path: str) -> bytes:
        """
        Reads a single file out of the container.

        :raises ContainerNotStartedError: If no container was ever created.
        :raises FileNotFoundError: If the file does not exist in the container.
        """
        if self.handle is None:
            raise ContainerNotStartedError(self.hostname, "read files")
        try:
            stream, _ = self.handle.get_archive(path)
        except docker.errors.NotFound as e:
            raise FileNotFoundError(f"{self.hostname}:{path}") from e
        return unpack_file(stream)

    def stop(self) -> None:
        """
        Stops and removes the container; a container that is already gone counts as stopped.

        :raises ContainerStopError: If Docker fails to stop or remove it.
        """
        if self.handle is None:
            return

        try:
            self.handle.stop(timeout=STOP_TIMEOUT)
            self.handle.remove(v=True)
        except docker.errors.NotFound:
            logger.debug("container already removed", container=self.hostname)
        except docker.errors.DockerException as e:
            raise ContainerStopError(self.hostname, str(e)) from e

        self.handle = None
        self._mapped_port = None
        self.state = ContainerState.STOPPED
        logger.info("container stopped", container=self.hostname)

    def is_running(self) -> bool:
        if self.handle is None:
            return False
        try:
            self.handle.reload()
        except docker.errors.NotFound:
            return False
        return self.handle.status == "running"

    def is_ready(self) -> bool:
        """
        Whether the service answers HTTP on its readiness path. Any response
        below 500 counts; connection failures do not.
        """
        if self.state is not ContainerState.RUNNING:
            return False
        try:
            response = httpx.get(self.url(self.spec.ready_path), timeout=READY_TIMEOUT)
        except httpx.HTTPError:
            return False
        return response.status_code < 500
