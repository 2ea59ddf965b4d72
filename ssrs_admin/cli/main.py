"""
ssrs-admin CLI - Main entry point.
Built with Click for a rich command-line interface.
"""

import functools
import logging
import sys
from pathlib import Path

import click
import requests
from decouple import UndefinedValueError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .. import __version__, catalog
from ..config import ReportServerConfig
from ..exceptions import ReportServerError
from ..models import ItemType
from ..paths import join_path, normalize_path
from ..soap_client import ReportServerClient

console = Console()

ITEM_TYPES = [t.value for t in ItemType if t != ItemType.UNKNOWN]


def get_proxy(ctx) -> ReportServerClient:
    """Build (once per invocation) the report server client from config."""
    obj = ctx.find_root().obj
    if obj.get('proxy') is None:
        config_path = obj.get('config_path')
        if config_path:
            config = ReportServerConfig.from_yaml(config_path)
        else:
            config = ReportServerConfig.from_env()
        proxy = ReportServerClient.from_config(config)
        ctx.find_root().call_on_close(proxy.close)
        obj['proxy'] = proxy
    return obj['proxy']


def handle_errors(func):
    """Print report server and transport errors instead of a traceback."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (ReportServerError, FileNotFoundError, ValueError, UndefinedValueError) as e:
            console.print(f"[red]Error: {escape(str(e))}[/red]")
            sys.exit(1)
        except requests.exceptions.RequestException as e:
            console.print(f"[red]Error: report server request failed: {escape(str(e))}[/red]")
            sys.exit(1)
    return wrapper


def _format_date(value) -> str:
    return value.strftime('%Y-%m-%d %H:%M') if value else 'N/A'


@click.group()
@click.version_option(version=__version__, prog_name='ssrs-admin')
@click.option('--config', '-c', 'config_path', default=None,
              help='Path to YAML config file (default: SSRS_* environment variables)')
@click.option('--verbose', '-v', is_flag=True, help='Log remote calls')
@click.pass_context
def cli(ctx, config_path, verbose):
    """Manage reports on a SQL Server Reporting Services instance."""
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config_path

    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )


# =============================================================================
# Browse Commands
# =============================================================================

@cli.command('ls')
@click.argument('folder', default='/')
@click.option('--recursive', '-r', is_flag=True, help='Include subfolders')
@click.pass_context
@handle_errors
def list_items(ctx, folder, recursive):
    """List catalog items in a folder."""
    items = catalog.list_children(get_proxy(ctx), folder, recursive)

    table = Table(title=f"Catalog: {normalize_path(folder)}")
    table.add_column("Path", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Modified", style="green")

    for item in items:
        table.add_row(escape(item.path), item.type.value, _format_date(item.modified_date))

    console.print(table)


@cli.command('find')
@click.argument('name')
@click.option('--folder', '-f', default='/', help='Folder to search')
@click.option('--exact', is_flag=True, help='Match the whole name')
@click.option('--type', '-t', 'item_type', type=click.Choice(ITEM_TYPES, case_sensitive=False),
              help='Only items of this type')
@click.pass_context
@handle_errors
def find(ctx, name, folder, exact, item_type):
    """Search for items by name (prefix match unless --exact)."""
    items = catalog.find_items(get_proxy(ctx), name, folder=folder, exact=exact, item_type=item_type)

    if not items:
        console.print(f"[yellow]No items matching '{name}'[/yellow]")
        return

    for item in items:
        console.print(f"{escape(item.path)}  [magenta]{item.type.value}[/magenta]")


@cli.command('exists')
@click.argument('path')
@click.pass_context
@handle_errors
def exists(ctx, path):
    """Check whether an item exists (exit code 1 if not)."""
    path = normalize_path(path)
    if catalog.item_exists(get_proxy(ctx), path):
        console.print(f"[green]{path} exists[/green]")
    else:
        console.print(f"[yellow]{path} not found[/yellow]")
        sys.exit(1)


@cli.command('mkdir')
@click.argument('name')
@click.option('--parent', '-p', default='/', help='Parent folder')
@click.pass_context
@handle_errors
def mkdir(ctx, name, parent):
    """Create a folder."""
    path = catalog.create_folder(get_proxy(ctx), name, parent)
    console.print(f"[green]Created {path}[/green]")


# =============================================================================
# Publish Commands
# =============================================================================

@cli.command('publish')
@click.argument('rdl_file', type=click.Path(exists=True))
@click.argument('folder')
@click.option('--name', '-n', help='Report name (default: file name)')
@click.option('--overwrite', is_flag=True, help='Replace an existing report')
@click.pass_context
@handle_errors
def publish(ctx, rdl_file, folder, name, overwrite):
    """Publish an .rdl file (or every .rdl file in a directory) to FOLDER."""
    proxy = get_proxy(ctx)

    if Path(rdl_file).is_dir():
        results = catalog.publish_folder(proxy, rdl_file, folder, overwrite=overwrite)
    else:
        warnings = catalog.publish_report(proxy, rdl_file, folder, name=name, overwrite=overwrite)
        report_name = name or Path(rdl_file).stem
        results = {join_path(folder, report_name): warnings}

    for path, warnings in results.items():
        console.print(f"[green]Published {path}[/green]")
        for warning in warnings:
            console.print(f"  [yellow]Warning: {escape(str(warning))}[/yellow]")

    if not results:
        console.print(f"[yellow]No .rdl files found in {rdl_file}[/yellow]")


@cli.command('delete')
@click.argument('path')
@click.option('--yes', '-y', is_flag=True, help='Do not ask for confirmation')
@click.pass_context
@handle_errors
def delete(ctx, path, yes):
    """Delete (unpublish) an item."""
    path = normalize_path(path)
    if not yes:
        click.confirm(f"Delete {path}?", abort=True)

    catalog.delete_item(get_proxy(ctx), path)
    console.print(f"[green]Deleted {path}[/green]")


@cli.command('move')
@click.argument('path')
@click.argument('target_folder')
@click.pass_context
@handle_errors
def move(ctx, path, target_folder):
    """Move an item into TARGET_FOLDER."""
    destination = catalog.move_item(get_proxy(ctx), path, target_folder)
    console.print(f"[green]Moved to {destination}[/green]")


@cli.command('export')
@click.argument('path')
@click.argument('destination', type=click.Path())
@click.option('--folder', 'is_folder', is_flag=True, help='PATH is a folder: export every report in it')
@click.option('--recursive', '-r', is_flag=True, help='With --folder, include subfolders')
@click.pass_context
@handle_errors
def export(ctx, path, destination, is_folder, recursive):
    """Download report definitions to DESTINATION."""
    proxy = get_proxy(ctx)

    if is_folder:
        written = catalog.export_folder(proxy, path, destination, recursive=recursive)
    else:
        written = [catalog.export_report(proxy, path, destination)]

    for file_path in written:
        console.print(f"[green]Wrote {file_path}[/green]")
    console.print(f"Exported {len(written)} report(s)")


# =============================================================================
# Data Source Commands
# =============================================================================

@cli.command('datasources')
@click.argument('path')
@click.pass_context
@handle_errors
def datasources(ctx, path):
    """Show the data sources of a report."""
    sources = catalog.get_data_sources(get_proxy(ctx), path)

    table = Table(title=f"Data sources: {normalize_path(path)}")
    table.add_column("Name", style="cyan")
    table.add_column("Reference", style="green")

    for ds in sources:
        if ds.invalid:
            reference = "[red]invalid reference[/red]"
        else:
            reference = ds.reference or "(embedded)"
        table.add_row(ds.name, reference)

    console.print(table)


@cli.command('set-datasource')
@click.argument('path')
@click.argument('name')
@click.argument('reference')
@click.pass_context
@handle_errors
def set_datasource(ctx, path, name, reference):
    """Point data source NAME of a report at shared data source REFERENCE."""
    catalog.set_data_source(get_proxy(ctx), path, name, reference)
    console.print(f"[green]{name} -> {normalize_path(reference)}[/green]")


# =============================================================================
# Secrets Commands
# =============================================================================

@cli.group()
@click.option('--vault-dir', default=None, help='Vault directory (default: nearest .vault)')
@click.pass_context
def secrets(ctx, vault_dir):
    """Manage encrypted credentials (e.g. SSRS_PASSWORD)."""
    ctx.obj['vault_dir'] = vault_dir


def _vault(ctx):
    from ..secrets_vault import get_vault
    return get_vault(ctx.obj.get('vault_dir'))


@secrets.command('set')
@click.argument('key')
@click.option('--value', prompt=True, hide_input=True, help='Secret value (prompted if omitted)')
@click.pass_context
@handle_errors
def set_secret(ctx, key, value):
    """Store a secret."""
    _vault(ctx).set(key, value)
    console.print(f"[green]Stored {key}[/green]")


@secrets.command('delete')
@click.argument('key')
@click.pass_context
@handle_errors
def delete_secret(ctx, key):
    """Delete a secret."""
    if _vault(ctx).delete(key):
        console.print(f"[green]Deleted {key}[/green]")
    else:
        console.print(f"[yellow]{key} not found[/yellow]")
        sys.exit(1)


@secrets.command('list')
@click.pass_context
@handle_errors
def list_secrets(ctx):
    """List stored secret keys."""
    keys = _vault(ctx).list_keys()
    if not keys:
        console.print("[yellow]Vault is empty[/yellow]")
    for key in keys:
        console.print(key)


def main():
    """Main entry point."""
    cli()


if __name__ == '__main__':
    main()
