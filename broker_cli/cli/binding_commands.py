"""CLI commands for service bindings."""

import json

import click

from broker_cli.cli.common import (
    broker_url_options, resolve_broker, get_adapter, fail, parse_json_object,
    poll_binding_op_func, wait_for_completion, format_fields, format_operation
)
from broker_cli.client.types import OperationType, CreateBindingParams, DeleteBindingParams
from broker_cli.exceptions import BrokerCliError

ASYNC_HELP = 'Let the broker execute the request asynchronously'
WAIT_HELP = 'Keep polling the last operation while the broker executes the request asynchronously'


def binding_options(f):
    """Add the --instance and --binding options every binding command takes."""
    f = click.option('--binding', '-d', 'binding_id', required=True,
                     help='[Required] Service binding ID')(f)
    return click.option('--instance', '-i', 'instance_id', required=True,
                        help='[Required] Service instance ID')(f)


@click.group()
def bindings_cli():
    """Manage service bindings."""
    pass


@bindings_cli.command('create')
@broker_url_options
@binding_options
@click.option('--service', '-r', 'service_id', required=True,
              help='[Required] The service ID used to create the service binding')
@click.option('--plan', '-l', 'plan_id', required=True,
              help='[Required] The plan ID used to create the service binding')
@click.option('--asynchronous', '-a', is_flag=True, help=ASYNC_HELP)
@click.option('--wait', '-w', is_flag=True, help=WAIT_HELP)
@click.option('--context', '-t', help='[JSON Object] Contextual information for the binding')
@click.option('--bind-resource', '-e', help='[JSON Object] Platform resources associated with the binding')
@click.option('--app-guid', '-g', help="[Deprecated in favor of bind-resource's app_guid] Application GUID")
@click.option('--parameters', '-m', help='[JSON Object] Configuration options for the service binding')
@click.pass_context
def create_binding(ctx, server, project, broker, host, api_version, instance_id, binding_id,
                   service_id, plan_id, asynchronous, wait, context, bind_resource, app_guid,
                   parameters):
    """Create a service binding."""

    adapter = get_adapter(ctx)
    resource = f"binding {binding_id} to instance {instance_id}"

    try:
        location, api_version = resolve_broker(ctx, server, project, broker, host, api_version)
        broker_url = location.url
        result = adapter.create_binding(CreateBindingParams(
            server=broker_url,
            instance_id=instance_id,
            binding_id=binding_id,
            service_id=service_id,
            plan_id=plan_id,
            api_version=api_version,
            accepts_incomplete=asynchronous,
            context=parse_json_object(context, 'context'),
            app_guid=app_guid,
            bind_resource=parse_json_object(bind_resource, 'bind-resource'),
            parameters=parse_json_object(parameters, 'parameters')
        ))
    except BrokerCliError as e:
        fail(f"Error creating {resource}: {e}")

    if not result.async_:
        click.echo(f"✅ Successfully created the {resource}: "
                   f"{format_fields(syslog_drain_url=result.syslog_drain_url, route_service_url=result.route_service_url)}")
        if result.credentials:
            click.echo("Credentials:")
            click.echo(json.dumps(result.credentials, indent=2))
        return

    if not wait:
        click.echo(f"✅ Successfully started the operation to create the {resource}: "
                   f"{format_fields(operation=result.operation_id)}")
        return

    wait_for_completion('create', resource, result.operation_id, poll_binding_op_func(
        adapter, api_version, broker_url, instance_id, binding_id, service_id, plan_id,
        result.operation_id, OperationType.CREATE
    ))


@bindings_cli.command('delete')
@broker_url_options
@binding_options
@click.option('--service', '-r', 'service_id', required=True,
              help='[Required] The service ID used by the service binding')
@click.option('--plan', '-l', 'plan_id', required=True,
              help='[Required] The plan ID used by the service binding')
@click.option('--asynchronous', '-a', is_flag=True, help=ASYNC_HELP)
@click.option('--wait', '-w', is_flag=True, help=WAIT_HELP)
@click.pass_context
def delete_binding(ctx, server, project, broker, host, api_version, instance_id, binding_id,
                   service_id, plan_id, asynchronous, wait):
    """Delete a service binding."""

    adapter = get_adapter(ctx)
    resource = f"binding {binding_id} to instance {instance_id}"

    try:
        location, api_version = resolve_broker(ctx, server, project, broker, host, api_version)
        broker_url = location.url
        result = adapter.delete_binding(DeleteBindingParams(
            server=broker_url,
            instance_id=instance_id,
            binding_id=binding_id,
            service_id=service_id,
            plan_id=plan_id,
            api_version=api_version,
            accepts_incomplete=asynchronous
        ))
    except BrokerCliError as e:
        fail(f"Error deleting {resource}: {e}")

    if not result.async_:
        click.echo(f"✅ Successfully deleted the {resource}")
        return

    if not wait:
        click.echo(f"✅ Successfully started the operation to delete the {resource}: "
                   f"{format_fields(operation=result.operation_id)}")
        return

    wait_for_completion('delete', resource, result.operation_id, poll_binding_op_func(
        adapter, api_version, broker_url, instance_id, binding_id, service_id, plan_id,
        result.operation_id, OperationType.DELETE
    ))


@bindings_cli.command('poll')
@broker_url_options
@binding_options
@click.option('--service', '-r', 'service_id', help='The service ID used to create the service binding')
@click.option('--plan', '-l', 'plan_id', help='The plan ID used to create the service binding')
@click.option('--operation', '-o', 'operation_id', help='The operation ID returned by the broker')
@click.pass_context
def poll_binding(ctx, server, project, broker, host, api_version, instance_id, binding_id,
                 service_id, plan_id, operation_id):
    """Poll the last operation of a service binding once."""

    adapter = get_adapter(ctx)
    resource = f"binding {binding_id} to instance {instance_id}"

    try:
        location, api_version = resolve_broker(ctx, server, project, broker, host, api_version)
        broker_url = location.url
        poll = poll_binding_op_func(adapter, api_version, broker_url, instance_id, binding_id,
                                    service_id, plan_id, operation_id, OperationType.UNKNOWN)
        op = poll()
    except BrokerCliError as e:
        fail(f"Error polling operation {operation_id!r} for {resource}: {e}")

    click.echo(f"Polled the operation {operation_id!r} for {resource} in broker {broker_url}: "
               f"{format_operation(op)}")
    if op.failed:
        fail(f"Operation {operation_id!r} for {resource} failed")
