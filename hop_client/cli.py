"""
RabbitMQ Management CLI

Command-line interface over the typed management API client.
"""
import asyncio
import os
from datetime import datetime
from typing import Awaitable, Callable, TypeVar

import click
import pandas as pd
from pydantic import BaseModel, ValidationError

from hop_client.aggregators import connections_frame, nodes_frame, summarize_connections, summarize_nodes
from hop_client.client import Client
from hop_client.config import (
    DEFAULT_BASE_URL,
    DEFAULT_PASSWORD,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USERNAME,
    ClientConfig,
)
from hop_client.errors import HopError
from hop_client.logging_config import configure_logging

T = TypeVar("T")


def open_client(config: ClientConfig) -> Client:
    return Client.from_config(config)


def run_with_client(config: ClientConfig, call: Callable[[Client], Awaitable[T]]) -> T:
    """Open a client, await one call on it and close it again.

    Client errors are reported as click errors (exit code 1).
    """
    async def _run():
        async with open_client(config) as client:
            return await call(client)

    try:
        return asyncio.run(_run())
    except HopError as exc:
        raise click.ClickException(str(exc)) from exc


def display_fields(record: dict, indent: str = "") -> None:
    """Display a flat or nested record to console.

    Args:
        record: Dictionary of field values
        indent: Prefix for each line
    """
    for key, value in record.items():
        if isinstance(value, dict):
            click.echo(f"{indent}{key}:")
            display_fields(value, indent + "  ")
        elif isinstance(value, float):
            click.echo(f"{indent}{key}: {value:.2f}")
        else:
            click.echo(f"{indent}{key}: {value}")


def display_model(model: BaseModel, exclude: set | None = None) -> None:
    display_fields(model.model_dump(exclude=exclude))


def write_summary_to_csv(summary: dict, output_dir: str) -> str:
    """Write a cluster summary to a CSV file with ISO datetime timestamp.

    Args:
        summary: Dictionary of summary values
        output_dir: Directory to write CSV file

    Returns:
        Path to the created CSV file
    """
    os.makedirs(output_dir, exist_ok=True)

    # Generate ISO datetime timestamp: YYYYMMDD-HHMMSS
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")

    csv_path = os.path.join(output_dir, f"cluster-summary-{timestamp}.csv")
    pd.DataFrame([summary]).to_csv(csv_path, index=False)
    return csv_path


@click.group()
@click.option('--url', envvar='HOP_URL', default=DEFAULT_BASE_URL, show_default=True,
              help='Management API base URL')
@click.option('--username', envvar='HOP_USERNAME', default=DEFAULT_USERNAME, show_default=True)
@click.option('--password', envvar='HOP_PASSWORD', default=DEFAULT_PASSWORD)
@click.option('--timeout', type=float, default=DEFAULT_TIMEOUT_SECONDS, show_default=True,
              help='Request timeout in seconds')
@click.option('--log-level', default='WARNING', show_default=True,
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False))
@click.pass_context
def cli(ctx, url, username, password, timeout, log_level):
    """RabbitMQ Management API Client"""
    configure_logging(log_level)
    try:
        ctx.obj = ClientConfig(base_url=url, username=username, password=password, timeout=timeout)
    except ValidationError as exc:
        raise click.BadParameter(str(exc)) from exc


@cli.command()
@click.pass_obj
def overview(config):
    """Show cluster overview and totals"""
    res = run_with_client(config, lambda client: client.get_overview())
    display_model(res, exclude={'listeners', 'contexts', 'exchange_types'})
    click.echo(f"exchange_types: {', '.join(res.exchange_type_names)}")
    click.echo(f"listeners: {len(res.listeners)}")


@cli.command()
@click.option('--vhost', default='/', show_default=True, help='Virtual host to test')
@click.pass_context
def aliveness(ctx, vhost):
    """Run the aliveness test against a virtual host"""
    ok = run_with_client(ctx.obj, lambda client: client.aliveness_test(vhost))
    click.echo(f"vhost {vhost}: {'ok' if ok else 'FAILED'}")
    if not ok:
        ctx.exit(1)


@cli.command()
@click.pass_obj
def whoami(config):
    """Show the authenticated user and its tags"""
    res = run_with_client(config, lambda client: client.who_am_i())
    click.echo(f"{res.name} [{', '.join(res.tags)}]")


@cli.command()
@click.pass_obj
def nodes(config):
    """List cluster nodes"""
    res = run_with_client(config, lambda client: client.get_nodes())
    for node in res:
        click.echo(
            f"{node.name}  type={node.type}  mem={node.memory_utilization:.0%}  "
            f"sockets={node.sockets_used}/{node.sockets_total}  "
            f"alarms={'yes' if node.memory_alarm_active or node.disk_alarm_active else 'no'}"
        )


@cli.command()
@click.argument('name')
@click.pass_obj
def node(config, name):
    """Show one cluster node"""
    res = run_with_client(config, lambda client: client.get_node(name))
    display_model(res, exclude={'auth_mechanisms', 'erlang_apps'})
    click.echo(f"auth_mechanisms: {', '.join(m.name for m in res.auth_mechanisms)}")
    click.echo(f"erlang_apps: {len(res.erlang_apps)}")


@cli.command()
@click.pass_obj
def connections(config):
    """List client connections"""
    res = run_with_client(config, lambda client: client.get_connections())
    for conn in res:
        click.echo(f"{conn.name}  user={conn.user}  vhost={conn.vhost}  state={conn.state}")


@cli.command()
@click.pass_obj
def channels(config):
    """List channels across all connections"""
    res = run_with_client(config, lambda client: client.get_channels())
    for ch in res:
        click.echo(
            f"{ch.connection_name} ({ch.number})  consumers={ch.consumer_count}  "
            f"state={ch.state}  confirm={ch.uses_publisher_confirms}  tx={ch.transactional}"
        )


@cli.command('close-connection')
@click.argument('name')
@click.option('--reason', default=None, help='Reason reported to the connection peer')
@click.pass_obj
def close_connection(config, name, reason):
    """Request closure of a client connection"""
    run_with_client(config, lambda client: client.close_connection(name, reason=reason))
    # the broker closes the connection asynchronously
    click.echo(f"Close requested for {name}")


async def collect_cluster_snapshot(client: Client) -> tuple:
    """Fetch nodes and connections concurrently"""
    return await asyncio.gather(client.get_nodes(), client.get_connections())


@cli.command()
@click.option('--output-dir', default=None, help='Write the summary to a CSV file in this directory')
@click.pass_obj
def summary(config, output_dir):
    """Summarize node utilization and connections"""
    node_list, connection_list = run_with_client(config, collect_cluster_snapshot)
    if not node_list:
        raise click.ClickException("Broker reported no nodes")

    result = summarize_nodes(nodes_frame(node_list))
    if connection_list:
        result.update(summarize_connections(connections_frame(connection_list)))
    else:
        result.update({'connection_count': 0, 'tls_connection_count': 0})

    click.echo("\nCluster Summary:")
    display_fields(result, indent="  ")

    if output_dir:
        csv_path = write_summary_to_csv(result, output_dir)
        click.echo(f"\nSummary written to {csv_path}")


if __name__ == '__main__':
    cli()
