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
boto3 session settings for talking to local AWS doubles.
"""
import boto3

DEFAULT_REGION = "eu-west-1"

# The doubles accept any credentials, but botocore refuses to sign without some.
DUMMY_CREDENTIALS = {
    "aws_access_key_id": "test",
    "aws_secret_access_key": "test",
}


def local_client(service: str, host: str, port: int, region: str = DEFAULT_REGION):
    """
    Creates a boto3 client for ``service`` pointed at a mapped container port.
    """
    return boto3.client(
        service,
        endpoint_url=f"http://{host}:{port}",
        region_name=region,
        **DUMMY_CREDENTIALS,
    )
