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
Models for per-service container configuration and the launch parameters
built from it.
"""
from typing import Dict, List, Literal, Optional
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class StagePoint(str, Enum):
    """
    When a file is copied into a container relative to starting it.
    """
    BEFORE_START = "before_start"
    AFTER_START = "after_start"


class FileCopy(BaseModel):
    """
    A host file or directory to copy into a container.
    """
    model_config = ConfigDict(frozen=True)

    source: str
    target: str
    mode: Optional[int] = None
    stage: StagePoint = StagePoint.BEFORE_START


class ContainerSpec(BaseModel):
    """
    Everything needed to create one container on a network.
    Built by an adapter from its configuration.
    """
    model_config = ConfigDict(frozen=True)

    image: str
    hostname: str
    port: int
    environment: Dict[str, str] = {}
    command: List[str] = []
    files: List[FileCopy] = []
    labels: Dict[str, str] = {}
    ready_path: str = "/"

    @property
    def port_key(self) -> str:
        """The port key Docker uses in port bindings, e.g. "8080/tcp"."""
        return f"{self.port}/tcp"


class ContainerConfig(BaseModel):
    """
    Settings shared by every adapter. Frozen: a config never changes once built.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    hostname: str
    port: int
    image: str
    environment: Dict[str, str] = {}
    command: List[str] = []


class WiremockContainerConfig(ContainerConfig):
    """
    WireMock HTTP mock. ``json_mappings`` is a directory of stub mapping files.
    """
    type: Literal["wiremock"] = "wiremock"
    hostname: str = "wiremock"
    port: int = 8080
    image: str = "wiremock/wiremock:latest"
    json_mappings: Optional[str] = None


class SqsContainerConfig(ContainerConfig):
    """
    ElasticMQ, an SQS compatible queue. ``config_file_path`` is an elasticmq.conf.
    """
    type: Literal["sqs"] = "sqs"
    hostname: str = "sqs"
    port: int = 9324
    image: str = "softwaremill/elasticmq"
    config_file_path: str


class SnsContainerConfig(ContainerConfig):
    """
    SNS mock. ``config_file`` is the topic/subscription database json;
    ``output_file`` is where a file subscription writes delivered messages.
    """
    type: Literal["sns"] = "sns"
    hostname: str = "sns"
    port: int = 9911
    image: str = "s12v/sns"
    config_file: str
    output_file: str = "/tmp/sns.out"


class DynamoDbContainerConfig(ContainerConfig):
    """
    DynamoDB Local table store.
    """
    type: Literal["dynamodb"] = "dynamodb"
    hostname: str = "dynamodb"
    port: int = 8000
    image: str = "amazon/dynamodb-local"


class LambdaContainerConfig(ContainerConfig):
    """
    The function under test, run by an AWS Lambda base image with the runtime
    interface emulator. ``executable`` is copied to ``executable_target`` and
    ``handler`` is passed as the container command.
    """
    type: Literal["lambda"] = "lambda"
    hostname: str = "lambda"
    port: int = 8080
    image: str = "public.ecr.aws/lambda/provided:al2023"
    executable: str
    executable_target: str = "/var/runtime/bootstrap"
    handler: str = "bootstrap"
    extra_files: List[FileCopy] = Field(default_factory=list)
