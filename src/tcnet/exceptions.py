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
Exceptions raised while composing, running and tearing down a container network.
"""
from typing import List, Sequence


class TcnetError(Exception):
    """Base class for all tcnet errors."""


class ConfigurationError(TcnetError):
    """A network definition file could not be parsed or validated."""


class UsageError(TcnetError):
    """An operation was called in a lifecycle state that does not allow it."""


class ContainerNotStartedError(UsageError):
    """
    Raised when a container is queried before it has been started.
    """
    def __init__(self, hostname: str, operation: str):
        self.hostname = hostname
        self.operation = operation
        super().__init__(f"{hostname}: cannot {operation} before the container has started")


class NetworkStartError(TcnetError):
    """The Docker network itself could not be created."""


class ContainerStartError(TcnetError):
    """
    A container failed during one step of its startup.

    :param hostname: Network alias of the failing container.
    :param operation: The step that failed, e.g. "pulling image".
    :param reason: Human readable cause.
    """
    def __init__(self, hostname: str, operation: str, reason: str):
        self.hostname = hostname
        self.operation = operation
        self.reason = reason
        super().__init__(f"{hostname}: {operation}: {reason}")


class ContainerNotReadyError(ContainerStartError):
    """A started container never reported itself ready."""


class ContainerStopError(TcnetError):
    """
    A container could not be stopped or removed.
    """
    def __init__(self, hostname: str, reason: str):
        self.hostname = hostname
        self.reason = reason
        super().__init__(f"{hostname}: stopping container: {reason}")


class NetworkStopError(TcnetError):
    """
    Aggregates every failure seen while tearing a network down.
    """
    def __init__(self, errors: Sequence[Exception]):
        self.errors: List[Exception] = list(errors)
        details = "; ".join(str(e) for e in self.errors)
        super().__init__(f"{len(self.errors)} error(s) stopping container network: {details}")
