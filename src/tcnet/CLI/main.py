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
Command Line Interface for tcnet.
"""
import os
import time

import click
import docker
import docker.errors
import yaml

from ..exceptions import TcnetError
from ..MANAGERS.container_network import ContainerNetwork
from ..MANAGERS.network_manager import prune_network
from ..MODELS.settings import Settings
from ..PARSERS.network_parser import NetworkParser
from ..UTILS.log_config import configure_logging


@click.group()
@click.option('--file', '-f', default='tcnet.yml', help='Network definition file path')
@click.option('--env-file', default='.env', help='.env file used for settings and interpolation')
@click.pass_context
def cli(ctx, file, env_file):
    """
    tcnet - Test Container Network.

    Starts an isolated Docker network of service doubles around a function under test.
    """
    ctx.ensure_object(dict)
    settings = Settings.from_env(env_file=env_file)
    configure_logging(settings.log_level, settings.log_format)
    ctx.obj['file'] = file
    ctx.obj['env_file'] = env_file
    ctx.obj['settings'] = settings


def _load_definition(ctx):
    """
    Parses the definition file, or returns None after reporting why it could not.
    """
    file = ctx.obj['file']
    if not os.path.exists(file):
        click.echo(f"Error: {file} not found.")
        return None
    try:
        return NetworkParser(env_file=ctx.obj['env_file']).parse(file)
    except TcnetError as e:
        click.echo(f"Error: {e}")
        return None


@cli.command()
@click.option('--detach', '-d', is_flag=True, help='Leave the network running and exit')
@click.pass_context
def up(ctx, detach):
    """Start the containers defined in the definition file."""
    definition = _load_definition(ctx)
    if definition is None:
        ctx.exit(1)

    try:
        network, _ = ContainerNetwork.from_definition(definition, settings=ctx.obj['settings'])
        network.start_from_definition(definition)
    except (TcnetError, docker.errors.DockerException) as e:
        click.echo(f"Error: {e}")
        ctx.exit(1)

    click.echo(f"Network {network.name} started.")
    click.echo(f"{'CONTAINER':15} {'IMAGE':40} {'PORT':>6}")
    click.echo("-" * 63)
    for container in network.containers:
        click.echo(f"{container.hostname:15} {container.config.image:40} {container.mapped_port():>6}")

    if detach:
        click.echo(f"Detached. Remove it with: tcnet down {network.name}")
        return

    click.echo("Running... Press Ctrl+C to stop.")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        click.echo("\nStopping containers...")
    try:
        network.stop()
    except TcnetError as e:
        click.echo(f"Error: {e}")
        ctx.exit(1)
    click.echo("Containers stopped.")


@cli.command()
@click.argument('name')
@click.pass_context
def down(ctx, name):
    """Remove every container of network NAME, then the network."""
    try:
        removed = prune_network(docker.from_env(), name)
    except docker.errors.DockerException as e:
        click.echo(f"Error: {e}")
        ctx.exit(1)
    click.echo(f"Removed {len(removed['containers'])} container(s) and {len(removed['networks'])} network(s).")


@cli.command()
@click.pass_context
def config(ctx):
    """Print the resolved network definition."""
    definition = _load_definition(ctx)
    if definition is None:
        ctx.exit(1)
    click.echo(yaml.safe_dump(definition.model_dump(mode='json'), sort_keys=False))


def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})


if __name__ == '__main__':
    main()
