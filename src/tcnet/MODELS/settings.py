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
Process level settings read from TCNET_* environment variables and .env files.
"""
import os
from typing import Dict, Literal, Mapping, Optional
from dotenv import dotenv_values
from pydantic import BaseModel

ENV_PREFIX = "TCNET_"


class Settings(BaseModel):
    """
    Settings that are not part of any single network definition.
    """
    host: str = "localhost"
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"
    network_prefix: str = "tcnet"

    @classmethod
    def from_env(cls,
                 env_file: Optional[str] = ".env",
                 environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Builds settings from the environment.

        Values from ``env_file`` are applied first and real environment
        variables override them.

        :param env_file: Path to a .env file; ignored if missing or None.
        :param environ: Environment mapping, defaults to ``os.environ``.
        :return: The settings.
        """
        merged: Dict[str, str] = {}
        if env_file and os.path.exists(env_file):
            merged.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
        merged.update(os.environ if environ is None else environ)

        values = {}
        for field_name in cls.model_fields:
            key = f"{ENV_PREFIX}{field_name.upper()}"
            if key in merged:
                values[field_name] = merged[key]
        return cls(**values)
