"""CLI commands for service brokers."""

import click
from typing import List
from tabulate import tabulate

from broker_cli.cli.common import get_adapter, cli_setting, fail, print_instances, progress_marker
from broker_cli.client.adapter import Adapter
from broker_cli.client.types import CreateBrokerParams, DeleteBrokerParams, ListBrokersParams
from broker_cli.config import config
from broker_cli.exceptions import BrokerCliError, CleanupError, CleanupCancelledError
from broker_cli.services.cleanup import BrokerCleanupService, CleanupReport, InstanceSummary
from broker_cli.utils.broker_url import construct_broker_url


def project_options(f):
    """Add --project and the hidden --host option."""
    f = click.option('--host', hidden=True)(f)
    return click.option('--project', '-p', required=True, help='[Required] The GCP project to use')(f)


def cleanup_broker(ctx: click.Context, adapter: Adapter, broker_url: str,
                   force: bool, verbose: bool) -> CleanupReport:
    """Delete the contents of a broker, exiting non-zero unless all of it is gone."""

    def confirm(instances: List[InstanceSummary]) -> bool:
        click.echo(f"The following service instances in broker {broker_url!r} will be deleted:")
        print_instances(instances)
        return click.confirm("Do you want to continue?", default=False)

    service = BrokerCleanupService(
        adapter,
        api_version=cli_setting(ctx, 'api_version'),
        progress=progress_marker if verbose else None,
        polling=config.polling
    )

    try:
        report = service.cleanup(broker_url, confirm=None if force else confirm)
    except CleanupCancelledError as e:
        fail(e.message)
    except CleanupError as e:
        click.echo(f"❌ Failed to cleanup broker {broker_url!r}:", err=True)
        for instance_id, error in e.errors.items():
            click.echo(f"   {instance_id}: {error}", err=True)
        try:
            remaining = service.list_instances(broker_url)
        except BrokerCliError as list_error:
            click.echo(f"   Could not list remaining instances: {list_error}", err=True)
        else:
            click.echo("The below resources are yet to be cleaned up:")
            print_instances(remaining)
        fail(f"Cleanup of broker {broker_url!r} did not complete")
    except BrokerCliError as e:
        fail(f"Failed to cleanup broker {broker_url!r}: {e}")

    if verbose:
        click.echo()
    if not report.deleted_instances:
        click.echo("There are no service instances associated with the broker")

    return report


@click.group()
def brokers_cli():
    """Manage service brokers."""
    pass


@brokers_cli.command('create')
@project_options
@click.option('--broker', '-b', required=True, help='[Required] Name of broker to create')
@click.option('--title', '-t', help='Title of broker to create, defaults to the broker name')
@click.pass_context
def create_broker(ctx, project, host, broker, title):
    """Create a service broker."""

    try:
        result = get_adapter(ctx).create_broker(CreateBrokerParams(
            host=cli_setting(ctx, 'host', host),
            project=project,
            name=broker,
            title=title or broker
        ))
    except BrokerCliError as e:
        fail(f"Failed to create broker {broker!r} in project {project!r}: {e}")

    click.echo(f"✅ Successfully created broker {broker!r} in project {project!r}")
    click.echo(f"   Title: {result.title or ''}")
    click.echo(f"   URL: {result.url or ''}")
    click.echo(f"   Create time: {result.createTime or ''}")


@brokers_cli.command('delete')
@project_options
@click.option('--broker', '-b', required=True, help='[Required] The name of the broker')
@click.option('--cleanup', is_flag=True, help='Delete the contents of the broker first')
@click.option('--force', '-f', is_flag=True, help='Clean up without asking for confirmation')
@click.option('--verbose', '-v', is_flag=True, help='Print progress while cleaning up')
@click.pass_context
def delete_broker(ctx, project, host, broker, cleanup, force, verbose):
    """Delete a service broker."""

    adapter = get_adapter(ctx)
    broker_url = construct_broker_url(cli_setting(ctx, 'host', host), project, broker)

    if cleanup:
        cleanup_broker(ctx, adapter, broker_url, force, verbose)

    try:
        adapter.delete_broker(DeleteBrokerParams(broker_url=broker_url))
    except BrokerCliError as e:
        fail(f"Failed to delete broker {broker!r} in project {project!r}: {e}")

    click.echo(f"✅ Successfully deleted broker {broker!r} in project {project!r}")


@brokers_cli.command('cleanup')
@project_options
@click.option('--broker', '-b', required=True, help='[Required] The name of the broker')
@click.option('--force', '-f', is_flag=True, help='Delete broker contents without asking for confirmation')
@click.option('--verbose', '-v', is_flag=True, help='Print progress while cleaning up')
@click.pass_context
def cleanup_command(ctx, project, host, broker, force, verbose):
    """Delete all service instances and bindings within a broker."""

    broker_url = construct_broker_url(cli_setting(ctx, 'host', host), project, broker)

    report = cleanup_broker(ctx, get_adapter(ctx), broker_url, force, verbose)

    if report.deleted_instances:
        bindings = sum(len(ids) for ids in report.deleted_bindings.values())
        click.echo(f"✅ Successfully cleaned up broker {broker!r} in project {project!r}")
        click.echo(f"   Instances deleted: {len(report.deleted_instances)}")
        click.echo(f"   Bindings deleted: {bindings}")


@brokers_cli.command('list')
@project_options
@click.pass_context
def list_brokers(ctx, project, host):
    """List service brokers in a project."""

    try:
        result = get_adapter(ctx).list_brokers(
            ListBrokersParams(host=cli_setting(ctx, 'host', host), project=project)
        )
    except BrokerCliError as e:
        fail(f"Failed to list brokers in project {project!r}: {e}")

    if not result.brokers:
        click.echo(f"Project {project!r} has no associated brokers")
        return

    headers = ['Name', 'Title', 'URL', 'Create Time']
    rows = [[b.name, b.title or '', b.url or '', b.createTime or ''] for b in result.brokers]

    click.echo(f"Brokers in project {project!r}:")
    click.echo(tabulate(rows, headers=headers, tablefmt='grid'))
    click.echo(f"\nTotal: {len(result.brokers)} brokers")
