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
DynamoDB client for preparing tables and asserting on their contents.
"""
from typing import Any, Dict, List, Optional

from .aws import DEFAULT_REGION, local_client


class DynamoDbClient:
    """
    Talks to a DynamoDB Local container.
    """
    def __init__(self, port: int, host: str = "localhost", region: str = DEFAULT_REGION, client: Optional[Any] = None):
        self.client = client or local_client("dynamodb", host, port, region)

    def create_table(self, table_name: str, hash_key: str, key_type: str = "S") -> None:
        """
        Creates a table keyed on a single hash attribute and waits until it exists.

        :param table_name: Name of the table.
        :param hash_key: Name of the hash key attribute.
        :param key_type: DynamoDB scalar type of the key ("S", "N" or "B").
        """
        self.client.create_table(
            TableName=table_name,
            AttributeDefinitions=[{"AttributeName": hash_key, "AttributeType": key_type}],
            KeySchema=[{"AttributeName": hash_key, "KeyType": "HASH"}],
            ProvisionedThroughput={"ReadCapacityUnits": 1, "WriteCapacityUnits": 1},
        )
        self.client.get_waiter("table_exists").wait(TableName=table_name)

    def get_items_in_table(self, table_name: str) -> List[Dict[str, Any]]:
        """
        Scans a whole table, following pagination.

        :return: Items in DynamoDB attribute-value form, e.g. ``{"Message": {"S": "..."}}``.
        """
        items: List[Dict[str, Any]] = []
        paginator = self.client.get_paginator("scan")
        for page in paginator.paginate(TableName=table_name):
            items.extend(page.get("Items", []))
        return items
