"""Helpers shared by the CLI command groups."""

import json
import sys
from typing import Any, Callable, Dict, List, Optional, Tuple

import click
from tabulate import tabulate

from broker_cli.client.adapter import Adapter, HttpAdapter
from broker_cli.client.transport import (
    transport_from_service_account_file, transport_with_default_credentials
)
from broker_cli.client.types import (
    Operation, OperationType, LastOperationParams,
    InstanceLastOperationParams, BindingLastOperationParams
)
from broker_cli.config import config
from broker_cli.exceptions import BrokerCliError, ParameterError
from broker_cli.services.cleanup import InstanceSummary
from broker_cli.utils.broker_url import BrokerLocation, BrokerURLConstructor
from broker_cli.utils.polling import BackoffConfig, wait_on_operation


def build_adapter(obj: Dict[str, Any]) -> Adapter:
    """Create an HTTP adapter authenticated with --creds or default credentials."""
    creds = obj.get('creds') or obj['config'].get('creds')
    timeout = config.broker.request_timeout

    if creds:
        transport = transport_from_service_account_file(creds, timeout=timeout)
    else:
        transport = transport_with_default_credentials(timeout=timeout)

    return HttpAdapter(transport)


def get_adapter(ctx: click.Context) -> Adapter:
    """Adapter for this invocation, built on first use."""
    if 'adapter' not in ctx.obj:
        ctx.obj['adapter'] = ctx.obj['adapter_factory'](ctx.obj)
    return ctx.obj['adapter']


def cli_setting(ctx: click.Context, key: str, value: Optional[str] = None) -> Optional[str]:
    """Return a flag value, falling back to the CLI configuration."""
    return value or ctx.obj['config'].get(key)


def fail(message: str):
    """Print an error and exit with a non-zero status."""
    click.echo(f"❌ {message}", err=True)
    sys.exit(1)


def parse_json_object(value: Optional[str], flag: str) -> Optional[Dict[str, Any]]:
    """Parse a JSON object flag value; an empty value means not given."""
    if not value:
        return None

    try:
        parsed = json.loads(value)
    except ValueError as e:
        raise ParameterError(f"Error parsing --{flag} {value!r} as a JSON object: {e}",
                             field=flag, value=value) from e

    if not isinstance(parsed, dict):
        raise ParameterError(f"--{flag} must be a JSON object, got {value!r}",
                             field=flag, value=value)
    return parsed


def broker_url_options(f):
    """Add the options addressing a broker: --server or --project and --broker."""
    options = [
        click.option('--server', '-s',
                     help='[Required if project and broker are not given] Broker URL (https://...)'),
        click.option('--project', '-p',
                     help='[Required if server is not given] The GCP project of the broker'),
        click.option('--broker', '-b',
                     help='[Required if server is not given] The broker name'),
        click.option('--host', hidden=True),
        click.option('--api-version', help='OSB API version sent with every request'),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def resolve_broker(ctx: click.Context, server, project, broker, host,
                   api_version) -> Tuple[BrokerLocation, str]:
    """Resolve the broker addressing flags and the API version to use.

    Raises:
        BrokerURLError: if the addressing flags are missing or conflicting
    """
    constructor = BrokerURLConstructor(
        server=server,
        project=project,
        broker=broker,
        host=cli_setting(ctx, 'host', host)
    )
    constructor.broker_url()
    return constructor.location, cli_setting(ctx, 'api_version', api_version)


def progress_marker():
    click.echo('.', nl=False)


def wait(poll: Callable[[], Operation]) -> Operation:
    """Poll until a terminal state with the configured backoff and timeout."""
    return wait_on_operation(
        poll,
        timeout=config.polling.timeout,
        config=BackoffConfig(base_delay=config.polling.base_delay,
                             max_delay=config.polling.max_delay)
    )


def poll_instance_op_func(
    adapter: Adapter,
    api_version: str,
    broker_url: str,
    instance_id: str,
    service_id: Optional[str],
    plan_id: Optional[str],
    operation_id: Optional[str],
    operation_type: OperationType
) -> Callable[[], Operation]:
    def poll() -> Operation:
        return adapter.instance_last_operation(InstanceLastOperationParams(
            server=broker_url,
            instance_id=instance_id,
            last_operation=LastOperationParams(
                api_version=api_version,
                service_id=service_id,
                plan_id=plan_id,
                operation_id=operation_id,
                operation_type=operation_type
            )
        ))
    return poll


def poll_binding_op_func(
    adapter: Adapter,
    api_version: str,
    broker_url: str,
    instance_id: str,
    binding_id: str,
    service_id: Optional[str],
    plan_id: Optional[str],
    operation_id: Optional[str],
    operation_type: OperationType
) -> Callable[[], Operation]:
    def poll() -> Operation:
        return adapter.binding_last_operation(BindingLastOperationParams(
            server=broker_url,
            instance_id=instance_id,
            binding_id=binding_id,
            last_operation=LastOperationParams(
                api_version=api_version,
                service_id=service_id,
                plan_id=plan_id,
                operation_id=operation_id,
                operation_type=operation_type
            )
        ))
    return poll


def format_operation(op: Operation) -> str:
    if op.description:
        return f"state={op.state!r}, description={op.description!r}"
    return f"state={op.state!r}"


def format_fields(**fields) -> str:
    """Render the set fields of a result as key=value pairs."""
    return ", ".join(f"{k}={v!r}" for k, v in fields.items() if v is not None)


def wait_for_completion(verb: str, resource: str, operation_id: Optional[str],
                        poll: Callable[[], Operation]) -> Operation:
    """Wait on an asynchronous create, update or delete and report the outcome.

    Exits non-zero if polling fails or the operation ends in any state other
    than succeeded.
    """
    try:
        op = wait(poll)
    except BrokerCliError as e:
        fail(f"Error polling last operation {operation_id!r} for {resource}: {e}")

    if op.succeeded:
        click.echo(f"✅ Successfully {verb}d the {resource} asynchronously "
                   f"(operation {operation_id!r}): {format_operation(op)}")
        return op

    fail(f"Failed {verb[:-1]}ing the {resource} asynchronously "
         f"(operation {operation_id!r}): {format_operation(op)}")


def print_instances(instances: List[InstanceSummary]):
    """Print broker instances as a table."""
    headers = ['Instance ID', 'Service ID', 'Plan ID', 'Create Time', 'Bindings']
    rows = [
        [i.instance_id, i.service_id, i.plan_id, i.create_time or '', i.num_bindings]
        for i in instances
    ]
    click.echo(tabulate(rows, headers=headers, tablefmt='grid'))
