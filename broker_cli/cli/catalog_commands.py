"""CLI command for broker catalogs."""

import json

import click
from tabulate import tabulate

from broker_cli.cli.common import broker_url_options, resolve_broker, get_adapter, fail
from broker_cli.client.types import GetCatalogParams
from broker_cli.exceptions import BrokerCliError


@click.command('catalog')
@broker_url_options
@click.option('--format', '-f', 'output_format', type=click.Choice(['table', 'json']), default='table',
              help='Output format')
@click.pass_context
def catalog_cli(ctx, server, project, broker, host, api_version, output_format):
    """Get the service catalog of a broker."""

    try:
        location, api_version = resolve_broker(ctx, server, project, broker, host, api_version)
        result = get_adapter(ctx).get_catalog(GetCatalogParams(server=location.url, api_version=api_version))
    except BrokerCliError as e:
        fail(f"Error getting catalog: {e}")

    if output_format == 'json':
        click.echo(json.dumps([s.to_wire() for s in result.services], indent=2))
        return

    if not result.services:
        click.echo(f"Broker {location.broker!r} in project {location.project!r} has no associated services")
        return

    headers = ['Service', 'Service ID', 'Plan', 'Plan ID', 'Free', 'Bindable']
    rows = []
    for service in result.services:
        if not service.plans:
            rows.append([service.name, service.id, '', '', '', service.bindable])
        for plan in service.plans:
            rows.append([service.name, service.id, plan.name, plan.id,
                         plan.is_free(), plan.is_bindable(service)])

    click.echo(f"Service catalog of broker {location.broker!r} within project {location.project!r}:")
    click.echo(tabulate(rows, headers=headers, tablefmt='grid'))
    click.echo(f"\nTotal: {len(result.services)} services")
