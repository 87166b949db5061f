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
Strategies for waiting on a freshly started container before the next one is
started: none, a fixed pause, or polling its readiness signal with backoff.
"""
import time
from typing import Callable, Optional

import docker.errors
import structlog
from tenacity import RetryError, Retrying, retry_if_result, stop_after_attempt, stop_after_delay, wait_exponential

from ..CONTAINERS.base import DockerContainer
from ..exceptions import ContainerNotReadyError
from ..MODELS.network_definition import NetworkOptions, ReadinessMode

logger = structlog.get_logger(__name__)

Sleep = Callable[[float], None]


class ReadinessStrategy:
    """
    Waits after a container has started. The default does not wait at all.
    """
    def wait(self, container: DockerContainer) -> None:
        """
        :param container: The container that has just started.
        :raises ContainerNotReadyError: If the container is judged not ready.
        """


class NoWait(ReadinessStrategy):
    """Starts the next container immediately."""


class FixedDelay(ReadinessStrategy):
    """
    Pauses for a fixed time after every container start.
    """
    def __init__(self, delay: float, sleep: Sleep = time.sleep):
        """
        :param delay: Seconds to pause.
        :param sleep: Sleep function, replaceable for tests.
        """
        if delay < 0:
            raise ValueError("delay must not be negative")
        self.delay = delay
        self.sleep = sleep

    def wait(self, container: DockerContainer) -> None:
        if self.delay:
            logger.debug("pausing after start", container=container.hostname, delay=self.delay)
            self.sleep(self.delay)


class PollReadiness(ReadinessStrategy):
    """
    Polls ``container.is_ready()`` with exponential backoff until it succeeds or
    ``timeout`` seconds have passed.
    """
    def __init__(self,
                 timeout: float = 30.0,
                 initial_interval: float = 0.1,
                 max_interval: float = 2.0,
                 max_attempts: Optional[int] = None,
                 sleep: Sleep = time.sleep):
        """
        :param timeout: Upper bound on the time spent polling one container.
        :param initial_interval: First backoff interval in seconds.
        :param max_interval: Cap on the backoff interval.
        :param max_attempts: Optional cap on the number of polls.
        :param sleep: Sleep function, replaceable for tests.
        """
        self.timeout = timeout
        self.initial_interval = initial_interval
        self.max_interval = max_interval
        self.max_attempts = max_attempts
        self.sleep = sleep

    def wait(self, container: DockerContainer) -> None:
        stop = stop_after_delay(self.timeout)
        if self.max_attempts is not None:
            stop = stop | stop_after_attempt(self.max_attempts)
        retrying = Retrying(
            stop=stop,
            wait=wait_exponential(multiplier=self.initial_interval, max=self.max_interval),
            retry=retry_if_result(lambda ready: not ready),
            sleep=self.sleep,
        )
        try:
            retrying(container.is_ready)
        except RetryError as e:
            attempts = e.last_attempt.attempt_number
            raise ContainerNotReadyError(
                container.hostname,
                "waiting for readiness",
                f"not ready after {attempts} attempt(s) within {self.timeout}s",
            ) from e
        except docker.errors.DockerException as e:
            raise ContainerNotReadyError(container.hostname, "waiting for readiness", str(e)) from e
        logger.debug("container ready", container=container.hostname)


def strategy_for(options: NetworkOptions, sleep: Sleep = time.sleep) -> ReadinessStrategy:
    """
    Builds the strategy selected in a network definition.
    """
    if options.readiness is ReadinessMode.DELAY:
        return FixedDelay(options.delay, sleep=sleep)
    if options.readiness is ReadinessMode.POLL:
        return PollReadiness(timeout=options.timeout, sleep=sleep)
    return NoWait()
