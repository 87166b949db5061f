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
Unit tests for the container network orchestrator.
"""
import itertools

import docker
import docker.errors
import pytest

from tcnet.CONTAINERS.base import DockerContainer
from tcnet.CONTAINERS.dynamodb import DynamoDbContainer
from tcnet.CONTAINERS.sqs import SqsContainer
from tcnet.CONTAINERS.wiremock import WiremockContainer
from tcnet.exceptions import (
    ContainerNotReadyError,
    ContainerStartError,
    ContainerStopError,
    NetworkStartError,
    NetworkStopError,
    UsageError,
)
from tcnet.MANAGERS.container_network import ContainerNetwork, NetworkState
from tcnet.MANAGERS.readiness import PollReadiness
from tcnet.MODELS.container_config import SqsContainerConfig, WiremockContainerConfig
from tcnet.MODELS.network_definition import NetworkDefinition


class RecordingContainer(DockerContainer):
    """A container double that records lifecycle calls into a shared journal."""

    def __init__(self, name, journal, fail_start=False, fail_stop=False, ready_after=1):
        self._name = name
        self.journal = journal
        self.fail_start = fail_start
        self.fail_stop = fail_stop
        self.ready_after = ready_after
        self.ready_checks = 0
        self.running = False

    @property
    def hostname(self):
        return self._name

    def start_using(self, network):
        self.journal.append(("start_using", self._name, network.exists))
        if self.fail_start:
            raise ContainerStartError(self._name, "staging files", "boom")
        self.running = True

    def mapped_port(self):
        return 40000

    def log(self):
        return ""

    def stop(self):
        self.journal.append(("stop", self._name))
        if self.fail_stop:
            raise ContainerStopError(self._name, "refused")
        self.running = False

    def is_running(self):
        return self.running

    def is_ready(self):
        self.ready_checks += 1
        return self.ready_checks >= self.ready_after


class JournalingClient:
    """Wraps the fake docker client so network calls land in the same journal."""

    def __init__(self, docker_client, journal):
        self.inner = docker_client
        self.journal = journal
        self.images = docker_client.images
        self.containers = docker_client.containers
        self.networks = self

    def create(self, name, **kwargs):
        self.journal.append(("network.create", name))
        network = self.inner.networks.create(name, **kwargs)
        original_remove = network.remove

        def remove():
            self.journal.append(("network.remove", name))
            original_remove()

        network.remove = remove
        return network


@pytest.fixture
def journal():
    return []


@pytest.fixture
def client(docker_client, journal):
    return JournalingClient(docker_client, journal)


def build(client, journal, names, **kwargs):
    network = ContainerNetwork(client=client, name="tcnet-unit", sleep=kwargs.pop("sleep", lambda s: None))
    containers = [RecordingContainer(n, journal, **kwargs.get(n, {})) for n in names]
    for container in containers:
        network.register(container)
    return network, containers


class TestRegistration:
    """Tests for building the container list."""

    def test_register_returns_self_for_chaining(self, client, journal):
        network = ContainerNetwork(client=client)
        a, b = RecordingContainer("a", journal), RecordingContainer("b", journal)
        assert network.with_container(a).with_container(b) is network
        assert network.containers == (a, b)

    def test_register_after_start_is_rejected(self, client, journal):
        network, _ = build(client, journal, ["a"])
        network.start()
        with pytest.raises(UsageError):
            network.register(RecordingContainer("b", journal))

    def test_generated_names_are_unique(self, client):
        assert ContainerNetwork(client=client).name != ContainerNetwork(client=client).name


class TestStart:
    """Tests for ordered startup."""

    @pytest.mark.parametrize("names", list(itertools.permutations(["wiremock", "sqs", "lambda"])))
    def test_starts_each_container_once_in_registration_order(self, client, journal, names):
        network, _ = build(client, journal, list(names))
        network.start()
        started = [entry[1] for entry in journal if entry[0] == "start_using"]
        assert started == list(names)
        assert network.state is NetworkState.RUNNING

    def test_network_exists_before_any_container_starts(self, client, journal):
        network, _ = build(client, journal, ["a", "b"])
        network.start()
        assert journal[0] == ("network.create", "tcnet-unit")
        assert all(entry[2] for entry in journal if entry[0] == "start_using")

    def test_start_twice_is_a_usage_error(self, client, journal):
        network, _ = build(client, journal, ["a"])
        network.start()
        with pytest.raises(UsageError):
            network.start()

    def test_start_after_stop_is_a_usage_error(self, client, journal):
        network, _ = build(client, journal, ["a"])
        network.start()
        network.stop()
        with pytest.raises(UsageError):
            network.start()

    def test_failure_aborts_remaining_starts(self, client, journal):
        network, _ = build(client, journal, ["a", "b", "c"], b={"fail_start": True})
        with pytest.raises(ContainerStartError) as excinfo:
            network.start()
        assert excinfo.value.hostname == "b"
        started = [entry[1] for entry in journal if entry[0] == "start_using"]
        assert started == ["a", "b"]
        assert network.state is NetworkState.FAILED

    def test_failure_stops_attempted_containers_and_removes_network(self, client, journal):
        network, containers = build(client, journal, ["a", "b", "c"], b={"fail_start": True})
        with pytest.raises(ContainerStartError):
            network.start()
        stopped = [entry[1] for entry in journal if entry[0] == "stop"]
        assert stopped == ["a", "b"]
        assert journal[-1] == ("network.remove", "tcnet-unit")
        assert not containers[0].running

    def test_stop_after_failed_start_stays_failed(self, client, journal):
        network, _ = build(client, journal, ["a", "b"], b={"fail_start": True})
        with pytest.raises(ContainerStartError):
            network.start()
        network.stop()
        assert network.state is NetworkState.FAILED

    def test_network_creation_failure(self, docker_client, journal):
        docker_client.failures["network.create:tcnet-unit"] = docker.errors.APIError("no bridge")
        network, _ = build(docker_client, journal, ["a"])
        with pytest.raises(NetworkStartError):
            network.start()
        assert journal == []
        assert network.state is NetworkState.FAILED

    def test_unreachable_daemon_fails_the_network(self, monkeypatch):
        def from_env():
            raise docker.errors.DockerException("Error while fetching server API version")

        monkeypatch.setattr(docker, "from_env", from_env)
        network = ContainerNetwork(name="tcnet-unit")
        network.register(RecordingContainer("a", []))
        with pytest.raises(NetworkStartError) as excinfo:
            network.start()
        assert "server API version" in str(excinfo.value)
        assert network.state is NetworkState.FAILED


class TestReadinessPacing:
    """Tests for the delay between container starts."""

    def test_start_with_delay_pauses_after_each_container(self, client, journal):
        pauses = []
        network, _ = build(client, journal, ["a", "b", "c"], sleep=pauses.append)
        network.start_with_delay(2.0)
        assert pauses == [2.0, 2.0, 2.0]
        assert sum(pauses) >= (3 - 1) * 2.0

    def test_delay_happens_before_next_start(self, client, journal):
        def sleep(seconds):
            journal.append(("sleep", seconds))

        network, _ = build(client, journal, ["a", "b"], sleep=sleep)
        network.start_with_delay(1.5)
        kinds = [entry[0] for entry in journal if entry[0] in ("start_using", "sleep")]
        assert kinds == ["start_using", "sleep", "start_using", "sleep"]

    def test_zero_delay_does_not_sleep(self, client, journal):
        pauses = []
        network, _ = build(client, journal, ["a", "b"], sleep=pauses.append)
        network.start_with_delay(0)
        assert pauses == []

    def test_poll_readiness_waits_until_ready(self, client, journal):
        network, containers = build(client, journal, ["a"], a={"ready_after": 3})
        network.start(PollReadiness(timeout=60, max_attempts=5, sleep=lambda s: None))
        assert containers[0].ready_checks == 3
        assert network.state is NetworkState.RUNNING

    def test_poll_readiness_failure_is_fail_fast(self, client, journal):
        network, _ = build(client, journal, ["a", "b"], a={"ready_after": 100})
        with pytest.raises(ContainerNotReadyError):
            network.start(PollReadiness(timeout=60, max_attempts=3, sleep=lambda s: None))
        started = [entry[1] for entry in journal if entry[0] == "start_using"]
        assert started == ["a"]


class TestStop:
    """Tests for best-effort teardown."""

    def test_stops_every_container_once_then_removes_network(self, client, journal):
        network, _ = build(client, journal, ["a", "b", "c"])
        network.start()
        journal.clear()
        network.stop()
        assert journal == [("stop", "a"), ("stop", "b"), ("stop", "c"), ("network.remove", "tcnet-unit")]
        assert network.state is NetworkState.STOPPED

    def test_stop_continues_past_failures_and_aggregates(self, client, journal):
        network, _ = build(client, journal, ["a", "b", "c"], a={"fail_stop": True}, c={"fail_stop": True})
        network.start()
        journal.clear()
        with pytest.raises(NetworkStopError) as excinfo:
            network.stop()
        assert [entry[1] for entry in journal if entry[0] == "stop"] == ["a", "b", "c"]
        hostnames = [getattr(e, "hostname", None) for e in excinfo.value.errors]
        assert "a" in hostnames and "c" in hostnames

    def test_network_kept_while_a_container_still_runs(self, client, journal, docker_client):
        network, _ = build(client, journal, ["a", "b"], b={"fail_stop": True})
        network.start()
        with pytest.raises(NetworkStopError) as excinfo:
            network.stop()
        assert ("network.remove", "tcnet-unit") not in journal
        assert "tcnet-unit" in docker_client.network_objects
        assert any("still running: b" in str(e) for e in excinfo.value.errors)

    def test_second_stop_is_a_no_op(self, client, journal):
        network, _ = build(client, journal, ["a"])
        network.start()
        network.stop()
        journal.clear()
        network.stop()
        assert journal == []
        assert network.state is NetworkState.STOPPED

    def test_stop_before_start_is_a_usage_error(self, client, journal):
        network, _ = build(client, journal, ["a"])
        with pytest.raises(UsageError):
            network.stop()

    def test_failed_stop_can_be_retried(self, client, journal, docker_client):
        network, containers = build(client, journal, ["a", "b"], b={"fail_stop": True})
        network.start()
        with pytest.raises(NetworkStopError):
            network.stop()
        assert network.state is NetworkState.STOPPING

        containers[1].fail_stop = False
        network.stop()
        assert network.state is NetworkState.STOPPED
        assert not containers[1].running
        assert "tcnet-unit" not in docker_client.network_objects

    def test_context_manager_keeps_the_body_error(self, client, journal):
        network, _ = build(client, journal, ["a"], a={"fail_stop": True})
        with pytest.raises(ValueError):
            with network:
                raise ValueError("assertion in test body")
        assert ("stop", "a") in journal

    def test_context_manager_starts_and_stops(self, client, journal):
        network, _ = build(client, journal, ["a"])
        with network as running:
            assert running.state is NetworkState.RUNNING
        assert network.state is NetworkState.STOPPED

    def test_mapped_ports_only_while_running(self, client, journal):
        network, _ = build(client, journal, ["a", "b"])
        with pytest.raises(UsageError):
            network.mapped_ports()
        network.start()
        assert network.mapped_ports() == {"a": 40000, "b": 40000}


class TestWithAdapters:
    """End to end through real adapters against the fake docker client."""

    def test_staging_failure_prevents_later_starts(self, docker_client, assets):
        wiremock = WiremockContainer(WiremockContainerConfig(json_mappings=assets["mappings"]))
        sqs = SqsContainer(SqsContainerConfig(config_file_path=assets["missing"]))
        later = WiremockContainer(WiremockContainerConfig(hostname="later"))
        network = ContainerNetwork(client=docker_client, name="tcnet-unit")
        network.register(wiremock).register(sqs).register(later)

        with pytest.raises(ContainerStartError) as excinfo:
            network.start()

        assert excinfo.value.hostname == "sqs"
        assert excinfo.value.operation == "staging files"
        created = [c[1] for c in docker_client.operations("containers.create")]
        assert created == ["wiremock"]
        assert docker_client.container_objects == {}
        assert docker_client.network_objects == {}

    def test_from_definition_registers_in_file_order(self, docker_client, assets):
        definition = NetworkDefinition.model_validate({
            "containers": [
                {"type": "sqs", "config_file_path": assets["elasticmq"]},
                {"type": "dynamodb"},
            ]
        })
        network, containers = ContainerNetwork.from_definition(definition, client=docker_client)
        assert [c.hostname for c in network.containers] == ["sqs", "dynamodb"]
        network.start_from_definition(definition)
        assert set(network.mapped_ports()) == {"sqs", "dynamodb"}
        network.stop()
        assert docker_client.network_objects == {}

    def test_retried_stop_removes_what_a_failed_stop_left(self, docker_client):
        network = ContainerNetwork(client=docker_client, name="tcnet-unit")
        network.register(DynamoDbContainer())
        network.start()
        docker_client.failures["stop:dynamodb"] = docker.errors.APIError("container is restarting")

        with pytest.raises(NetworkStopError):
            network.stop()
        assert "tcnet-unit-dynamodb" in docker_client.container_objects
        assert "tcnet-unit" in docker_client.network_objects

        del docker_client.failures["stop:dynamodb"]
        network.stop()
        assert network.state is NetworkState.STOPPED
        assert docker_client.container_objects == {}
        assert docker_client.network_objects == {}

    def test_from_definition_rejects_duplicate_hostnames(self, docker_client):
        definition = NetworkDefinition.model_validate({
            "containers": [{"type": "dynamodb"}, {"type": "dynamodb"}]
        })
        with pytest.raises(UsageError):
            ContainerNetwork.from_definition(definition, client=docker_client)
