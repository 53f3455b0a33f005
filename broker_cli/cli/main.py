"""Main CLI entry point for Broker CLI."""

import click
import sys
import json
from pathlib import Path

from broker_cli import __version__, __author__
from broker_cli.cli.binding_commands import bindings_cli
from broker_cli.cli.broker_commands import brokers_cli
from broker_cli.cli.catalog_commands import catalog_cli
from broker_cli.cli.common import build_adapter
from broker_cli.cli.config import DEFAULT_CONFIG_PATH, load_cli_config, save_cli_config
from broker_cli.cli.instance_commands import instances_cli
from broker_cli.logging_config import setup_logging


@click.group()
@click.option('--creds', '-c',
              help='Private JSON key file used to authenticate requests; '
                   'application default credentials are used if not given')
@click.option('--config-file', default=DEFAULT_CONFIG_PATH, help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.pass_context
def cli(ctx, creds, config_file, verbose):
    """Broker CLI - call Service Broker APIs directly."""

    # Setup logging
    if verbose:
        setup_logging()

    # Ensure context object exists
    ctx.ensure_object(dict)

    # Load configuration
    config_path = Path(config_file).expanduser()
    cli_config = load_cli_config(config_path)

    ctx.obj['config'] = cli_config
    ctx.obj['config_path'] = config_path
    ctx.obj['creds'] = creds
    ctx.obj.setdefault('adapter_factory', build_adapter)


@cli.command()
@click.option('--host', help='Service Broker API host used when a broker is given by project and name')
@click.option('--api-version', help='Default OSB API version')
@click.option('--creds', 'creds_file', help='Default service account key file')
@click.pass_context
def configure(ctx, host, api_version, creds_file):
    """Save CLI defaults."""

    cli_config = dict(ctx.obj['config'])
    if host:
        cli_config['host'] = host
    if api_version:
        cli_config['api_version'] = api_version
    if creds_file:
        cli_config['creds'] = str(Path(creds_file).expanduser())

    # Save configuration
    config_path = ctx.obj['config_path']
    save_cli_config(config_path, cli_config)

    click.echo(f"✅ Configuration saved to {config_path}")
    click.echo(f"   Host: {cli_config['host']}")
    click.echo(f"   API version: {cli_config['api_version']}")
    if cli_config.get('creds'):
        click.echo(f"   Credentials: {cli_config['creds']}")


@cli.command()
@click.pass_context
def config(ctx):
    """Show current configuration."""

    click.echo(f"Configuration file: {ctx.obj['config_path']}")
    click.echo("Current configuration:")
    click.echo(json.dumps(ctx.obj['config'], indent=2))


@cli.command()
def version():
    """Show version information."""

    click.echo("Broker CLI")
    click.echo(f"Version: {__version__}")
    click.echo(f"Author: {__author__}")


# Add command groups
cli.add_command(brokers_cli, name='brokers')
cli.add_command(instances_cli, name='instances')
cli.add_command(bindings_cli, name='bindings')
cli.add_command(catalog_cli, name='catalog')


def main():
    """Main entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\nOperation cancelled by user")
        sys.exit(1)
    except Exception as e:
        click.echo(f"❌ Error: {e}", err=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
