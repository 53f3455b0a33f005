"""CLI commands for service instances."""

import click

from broker_cli.cli.common import (
    broker_url_options, resolve_broker, get_adapter, fail, parse_json_object,
    poll_instance_op_func, wait_for_completion, format_fields, format_operation,
    print_instances
)
from broker_cli.client.types import (
    OperationType, CreateInstanceParams, DeleteInstanceParams, UpdateInstanceParams
)
from broker_cli.exceptions import BrokerCliError
from broker_cli.services.cleanup import BrokerCleanupService

ASYNC_HELP = 'Let the broker execute the request asynchronously'
WAIT_HELP = 'Keep polling the last operation while the broker executes the request asynchronously'


@click.group()
def instances_cli():
    """Manage service instances."""
    pass


@instances_cli.command('create')
@broker_url_options
@click.option('--instance', '-i', 'instance_id', required=True, help='[Required] Service instance ID')
@click.option('--service', '-r', 'service_id', required=True,
              help='[Required] The service ID used to create the service instance')
@click.option('--plan', '-l', 'plan_id', required=True,
              help='[Required] The plan ID used to create the service instance')
@click.option('--asynchronous', '-a', is_flag=True, help=ASYNC_HELP)
@click.option('--wait', '-w', is_flag=True, help=WAIT_HELP)
@click.option('--context', '-t', help='[JSON Object] Platform specific contextual information')
@click.option('--organization', '-o', help='[Deprecated in favor of context] Platform organization GUID')
@click.option('--space', '-e', help='[Deprecated in favor of context] Platform space GUID')
@click.option('--parameters', '-m', help='[JSON Object] Configuration options for the service instance')
@click.pass_context
def create_instance(ctx, server, project, broker, host, api_version, instance_id, service_id,
                    plan_id, asynchronous, wait, context, organization, space, parameters):
    """Create a service instance."""

    adapter = get_adapter(ctx)

    try:
        location, api_version = resolve_broker(ctx, server, project, broker, host, api_version)
        broker_url = location.url
        result = adapter.create_instance(CreateInstanceParams(
            server=broker_url,
            instance_id=instance_id,
            service_id=service_id,
            plan_id=plan_id,
            api_version=api_version,
            accepts_incomplete=asynchronous,
            context=parse_json_object(context, 'context'),
            organization_guid=organization,
            space_guid=space,
            parameters=parse_json_object(parameters, 'parameters')
        ))
    except BrokerCliError as e:
        fail(f"Error creating instance {instance_id}: {e}")

    fields = format_fields(dashboard_url=result.dashboard_url, operation=result.operation_id)

    if not result.async_:
        click.echo(f"✅ Successfully created the instance {instance_id}: {fields}")
        return

    if not wait:
        click.echo(f"✅ Successfully started the operation to create instance {instance_id}: {fields}")
        return

    wait_for_completion('create', f"instance {instance_id}", result.operation_id, poll_instance_op_func(
        adapter, api_version, broker_url, instance_id, service_id, plan_id,
        result.operation_id, OperationType.CREATE
    ))


@instances_cli.command('delete')
@broker_url_options
@click.option('--instance', '-i', 'instance_id', required=True, help='[Required] Service instance ID')
@click.option('--service', '-r', 'service_id', required=True,
              help='[Required] The service ID used by the service instance')
@click.option('--plan', '-l', 'plan_id', required=True,
              help='[Required] The plan ID used by the service instance')
@click.option('--asynchronous', '-a', is_flag=True, help=ASYNC_HELP)
@click.option('--wait', '-w', is_flag=True, help=WAIT_HELP)
@click.pass_context
def delete_instance(ctx, server, project, broker, host, api_version, instance_id, service_id,
                    plan_id, asynchronous, wait):
    """Delete a service instance."""

    adapter = get_adapter(ctx)

    try:
        location, api_version = resolve_broker(ctx, server, project, broker, host, api_version)
        broker_url = location.url
        result = adapter.delete_instance(DeleteInstanceParams(
            server=broker_url,
            instance_id=instance_id,
            service_id=service_id,
            plan_id=plan_id,
            api_version=api_version,
            accepts_incomplete=asynchronous
        ))
    except BrokerCliError as e:
        fail(f"Error deleting instance {instance_id}: {e}")

    if not result.async_:
        click.echo(f"✅ Successfully deleted the instance {instance_id}")
        return

    if not wait:
        click.echo(f"✅ Successfully started the operation to delete instance {instance_id}: "
                   f"{format_fields(operation=result.operation_id)}")
        return

    wait_for_completion('delete', f"instance {instance_id}", result.operation_id, poll_instance_op_func(
        adapter, api_version, broker_url, instance_id, service_id, plan_id,
        result.operation_id, OperationType.DELETE
    ))


@instances_cli.command('update')
@broker_url_options
@click.option('--instance', '-i', 'instance_id', required=True, help='[Required] Service instance ID')
@click.option('--service', '-r', 'service_id', required=True,
              help='[Required] The service ID used by the service instance')
@click.option('--plan', '-l', 'plan_id', help='The plan ID to move the service instance to')
@click.option('--asynchronous', '-a', is_flag=True, help=ASYNC_HELP)
@click.option('--wait', '-w', is_flag=True, help=WAIT_HELP)
@click.option('--context', '-t', help='[JSON Object] Platform specific contextual information')
@click.option('--parameters', '-m', help='[JSON Object] Configuration options for the service instance')
@click.option('--oldservice', '-f', help='[Deprecated because it is immutable] The previous service ID')
@click.option('--oldplan', '-n', help='The plan ID used by the service instance prior to the update')
@click.option('--oldorganization', '-o', help='[Deprecated in favor of context] The previous organization ID')
@click.option('--oldspace', '-e', help='[Deprecated in favor of context] The previous space ID')
@click.pass_context
def update_instance(ctx, server, project, broker, host, api_version, instance_id, service_id,
                    plan_id, asynchronous, wait, context, parameters, oldservice, oldplan,
                    oldorganization, oldspace):
    """Update a service instance."""

    adapter = get_adapter(ctx)

    try:
        location, api_version = resolve_broker(ctx, server, project, broker, host, api_version)
        broker_url = location.url
        result = adapter.update_instance(UpdateInstanceParams(
            server=broker_url,
            instance_id=instance_id,
            service_id=service_id,
            plan_id=plan_id,
            api_version=api_version,
            accepts_incomplete=asynchronous,
            context=parse_json_object(context, 'context'),
            parameters=parse_json_object(parameters, 'parameters'),
            previous_service_id=oldservice,
            previous_plan_id=oldplan,
            previous_organization_id=oldorganization,
            previous_space_id=oldspace
        ))
    except BrokerCliError as e:
        fail(f"Error updating instance {instance_id}: {e}")

    if not result.async_:
        click.echo(f"✅ Successfully updated the instance {instance_id}")
        return

    if not wait:
        click.echo(f"✅ Successfully started the operation to update instance {instance_id}: "
                   f"{format_fields(operation=result.operation_id)}")
        return

    wait_for_completion('update', f"instance {instance_id}", result.operation_id, poll_instance_op_func(
        adapter, api_version, broker_url, instance_id, service_id, plan_id,
        result.operation_id, OperationType.UPDATE
    ))


@instances_cli.command('poll')
@broker_url_options
@click.option('--instance', '-i', 'instance_id', required=True, help='[Required] Service instance ID')
@click.option('--service', '-r', 'service_id', help='The service ID used to create the service instance')
@click.option('--plan', '-l', 'plan_id', help='The plan ID used to create the service instance')
@click.option('--operation', '-o', 'operation_id', help='The operation ID returned by the broker')
@click.pass_context
def poll_instance(ctx, server, project, broker, host, api_version, instance_id, service_id,
                  plan_id, operation_id):
    """Poll the last operation of a service instance once."""

    adapter = get_adapter(ctx)

    try:
        location, api_version = resolve_broker(ctx, server, project, broker, host, api_version)
        broker_url = location.url
        poll = poll_instance_op_func(adapter, api_version, broker_url, instance_id, service_id,
                                     plan_id, operation_id, OperationType.UNKNOWN)
        op = poll()
    except BrokerCliError as e:
        fail(f"Error polling operation {operation_id!r} for instance {instance_id}: {e}")

    click.echo(f"Polled the operation {operation_id!r} for instance {instance_id} in broker "
               f"{broker_url}: {format_operation(op)}")
    if op.failed:
        fail(f"Operation {operation_id!r} for instance {instance_id} failed")


@instances_cli.command('list')
@broker_url_options
@click.pass_context
def list_instances(ctx, server, project, broker, host, api_version):
    """List service instances in a broker."""

    try:
        location, api_version = resolve_broker(ctx, server, project, broker, host, api_version)
        broker_url = location.url
        service = BrokerCleanupService(get_adapter(ctx), api_version=api_version)
        instances = service.list_instances(broker_url)
    except BrokerCliError as e:
        fail(f"Error listing instances: {e}")

    if not instances:
        click.echo(f"Broker {location.broker!r} in project {location.project!r} has no associated instances")
        return

    click.echo(f"Service instances in broker {location.broker!r} within project {location.project!r}:")
    print_instances(instances)
    click.echo(f"\nTotal: {len(instances)} instances")
