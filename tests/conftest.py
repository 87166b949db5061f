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
Shared fixtures: an in-memory stand-in for the docker SDK client that records
every call in order and can be told to fail specific operations.
"""
import posixpath
from typing import Dict, List, Optional, Tuple

import docker.errors
import pytest

from tcnet.UTILS.archive import pack_bytes


class FakeNetwork:
    def __init__(self, client: "FakeDockerClient", name: str, labels: Dict[str, str]):
        self.client = client
        self.name = name
        self.labels = labels
        self.connected: List[Tuple[str, List[str]]] = []

    def connect(self, container, aliases=None):
        self.client.record("network.connect", container.hostname)
        self.client.maybe_fail("connect", container.hostname)
        self.connected.append((container.hostname, list(aliases or [])))

    def remove(self):
        self.client.record("network.remove", self.name)
        self.client.maybe_fail("network.remove", self.name)
        self.client.network_objects.pop(self.name, None)


class FakeContainer:
    def __init__(self, client: "FakeDockerClient", image: str, name: str, hostname: str,
                 ports: Dict[str, Optional[int]], **kwargs):
        self.client = client
        self.image = image
        self.name = name
        self.hostname = hostname
        self.requested_ports = ports
        self.kwargs = kwargs
        self.labels = kwargs.get("labels") or {}
        self.status = "created"
        self.ports: Dict[str, List[Dict[str, str]]] = {}
        self.archives: List[Tuple[str, bytes]] = []
        self.files: Dict[str, bytes] = {}
        self.log_output = b""
        self.removed = False

    def start(self):
        self.client.record("start", self.hostname)
        self.client.maybe_fail("start", self.hostname)
        self.status = "running"
        self.ports = {
            key: [{"HostIp": "0.0.0.0", "HostPort": str(self.client.allocate_port())}]
            for key in self.requested_ports
        }

    def reload(self):
        if self.removed:
            raise docker.errors.NotFound(f"No such container: {self.name}")

    def put_archive(self, path, data):
        self.client.record("put_archive", self.hostname, path)
        self.client.maybe_fail("put_archive", self.hostname)
        self.archives.append((path, data))
        return True

    def get_archive(self, path):
        if path not in self.files:
            raise docker.errors.NotFound(f"Could not find the file {path} in container {self.name}")
        return iter([pack_bytes(posixpath.basename(path), self.files[path])]), {"name": path}

    def logs(self, stdout=True, stderr=True):
        return self.log_output

    def stop(self, timeout=None):
        self.client.record("stop", self.hostname)
        self.client.maybe_fail("stop", self.hostname)
        self.status = "exited"

    def remove(self, v=False, force=False):
        self.client.record("remove", self.hostname)
        self.client.maybe_fail("remove", self.hostname)
        self.removed = True
        self.client.container_objects.pop(self.name, None)


class FakeImages:
    def __init__(self, client: "FakeDockerClient"):
        self.client = client
        self.present = set()

    def get(self, name):
        if name not in self.present:
            raise docker.errors.ImageNotFound(f"No such image: {name}")
        return name

    def pull(self, repository, tag=None, **kwargs):
        self.client.record("images.pull", repository)
        self.client.maybe_fail("pull", repository)
        self.present.add(repository)
        return repository


class FakeContainers:
    def __init__(self, client: "FakeDockerClient"):
        self.client = client

    def create(self, image, command=None, name=None, hostname=None, ports=None, **kwargs):
        self.client.record("containers.create", hostname)
        self.client.maybe_fail("create", hostname)
        container = FakeContainer(self.client, image, name, hostname, ports or {}, command=command, **kwargs)
        self.client.container_objects[name] = container
        return container

    def list(self, all=False, filters=None):
        label = (filters or {}).get("label", "")
        key, _, value = label.partition("=")
        return [c for c in self.client.container_objects.values() if c.labels.get(key) == value]


class FakeNetworks:
    def __init__(self, client: "FakeDockerClient"):
        self.client = client

    def create(self, name, driver=None, labels=None, **kwargs):
        self.client.record("network.create", name)
        self.client.maybe_fail("network.create", name)
        network = FakeNetwork(self.client, name, labels or {})
        self.client.network_objects[name] = network
        return network

    def list(self, names=None):
        return [n for n in self.client.network_objects.values() if not names or n.name in names]


class FakeDockerClient:
    """
    Records calls as tuples such as ("start", "sqs"). ``failures`` maps
    "operation:target" to the exception that operation should raise.
    """
    def __init__(self):
        self.calls: List[Tuple[str, ...]] = []
        self.failures: Dict[str, Exception] = {}
        self.container_objects: Dict[str, FakeContainer] = {}
        self.network_objects: Dict[str, FakeNetwork] = {}
        self.images = FakeImages(self)
        self.containers = FakeContainers(self)
        self.networks = FakeNetworks(self)
        self._next_port = 49152

    def record(self, *call: str) -> None:
        self.calls.append(call)

    def maybe_fail(self, operation: str, target: str) -> None:
        error = self.failures.get(f"{operation}:{target}")
        if error is not None:
            raise error

    def allocate_port(self) -> int:
        self._next_port += 1
        return self._next_port

    def container(self, hostname: str) -> FakeContainer:
        for container in self.container_objects.values():
            if container.hostname == hostname:
                return container
        raise KeyError(hostname)

    def operations(self, *names: str) -> List[Tuple[str, ...]]:
        return [c for c in self.calls if c[0] in names]


@pytest.fixture
def docker_client():
    return FakeDockerClient()


@pytest.fixture
def network_handle(docker_client):
    from tcnet.MANAGERS.network_manager import NetworkHandle

    handle = NetworkHandle(docker_client, "tcnet-test")
    handle.create()
    return handle


@pytest.fixture
def assets(tmp_path):
    """Host files the adapters copy into containers."""
    elasticmq = tmp_path / "elasticmq.conf"
    elasticmq.write_text("queues { sqs-queue {} }\n")
    sns = tmp_path / "sns.json"
    sns.write_text('{"version": 1, "topics": []}\n')
    mappings = tmp_path / "mappings"
    mappings.mkdir()
    (mappings / "hello.json").write_text('{"request": {"method": "GET", "url": "/"}, "response": {"status": 200}}')
    executable = tmp_path / "bootstrap"
    executable.write_text("#!/bin/sh\necho hello\n")
    return {
        "elasticmq": str(elasticmq),
        "sns": str(sns),
        "mappings": str(mappings),
        "executable": str(executable),
        "missing": str(tmp_path / "does-not-exist.conf"),
    }
