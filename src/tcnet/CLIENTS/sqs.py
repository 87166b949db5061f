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
SQS client for asserting on queue contents.
"""
from typing import Any, Dict, List, Optional

from .aws import DEFAULT_REGION, local_client


class SqsClient:
    """
    Reads messages from queues on an ElasticMQ container.
    """
    def __init__(self, port: int, host: str = "localhost", region: str = DEFAULT_REGION, client: Optional[Any] = None):
        """
        :param port: Mapped port of the SQS container.
        :param host: Host the port is mapped on.
        :param client: Pre-built boto3 SQS client, mainly for tests.
        """
        self.client = client or local_client("sqs", host, port, region)

    def get_messages_from(self, queue_name: str, wait_seconds: int = 1, max_messages: int = 10) -> List[Dict[str, Any]]:
        """
        Receives up to ``max_messages`` messages from a queue.

        :param queue_name: Name of the queue.
        :param wait_seconds: Long polling wait.
        :return: The messages as returned by boto3; each has a ``Body`` key.
        """
        queue_url = self.client.get_queue_url(QueueName=queue_name)["QueueUrl"]
        response = self.client.receive_message(
            QueueUrl=queue_url,
            MaxNumberOfMessages=max_messages,
            WaitTimeSeconds=wait_seconds,
        )
        return response.get("Messages", [])
