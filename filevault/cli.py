"""
@file: cli.py
@description:
Command-line entry points.

- ``filevault``: client for a running server (upload, delete, list, download)
- ``filevault-admin``: server-side management (serve, init-db, users, reconcile)

@dependencies:
- click: Command groups and prompts
- filevault.client: HTTP calls made by the client commands
- filevault.core.config: Server and client settings
"""

import secrets
import sys
from pathlib import Path
from typing import List, Optional

import click
from pydantic import ValidationError

from filevault import __version__
from filevault.client import ClientError, FileVaultClient
from filevault.core.config import Settings, get_client_settings, get_settings
from filevault.core.exceptions import StorageUnavailable
from filevault.schemas.files import FileRecord, Role

UNAUTHORIZED_MESSAGE = "Invalid API key or insufficient permissions"


def _client(ctx: click.Context, api_key: Optional[str]) -> FileVaultClient:
    if not api_key:
        api_key = click.prompt("Enter your API key", hide_input=True)
    settings = ctx.obj
    return FileVaultClient(
        settings.FILEVAULT_API_URL,
        api_key=api_key,
        timeout=settings.FILEVAULT_TIMEOUT,
    )


def _fail(error: ClientError, action: str) -> None:
    if error.status_code == 401:
        click.echo(UNAUTHORIZED_MESSAGE, err=True)
    elif error.status_code == 404:
        click.echo("File not found", err=True)
    else:
        click.echo(f"Error {action}: {error.message}", err=True)
    sys.exit(1)


def format_table(files: List[FileRecord], base_url: str) -> str:
    """Render files as aligned columns: Name, Creator, Uploaded at, URL."""
    header = ("Name", "Creator", "Uploaded at", "URL")
    rows = [
        (
            record.name,
            record.creator,
            record.uploaded_at.strftime("%Y-%m-%d %H:%M:%S"),
            f"{base_url.rstrip('/')}/{record.id}",
        )
        for record in files
    ]
    widths = [max(len(row[i]) for row in [header] + rows) for i in range(len(header))]
    lines = [" ".join(cell.ljust(width) for cell, width in zip(row, widths)).rstrip()
             for row in [header] + rows]
    return "\n".join(lines)


api_key_option = click.option(
    "--api-key",
    envvar="FILEVAULT_API_KEY",
    default=None,
    help="API key (prompted for if not given).",
)


@click.group(invoke_without_command=True)
@click.pass_context
def client_cli(ctx: click.Context):
    """FileVault client."""
    ctx.obj = get_client_settings()
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@client_cli.command("help")
@click.pass_context
def help_cmd(ctx: click.Context):
    """Display this help page."""
    click.echo(ctx.parent.get_help())


@client_cli.command()
def version():
    """Display the CLI version."""
    click.echo(f"FileVault CLI v{__version__}")


@client_cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@api_key_option
@click.pass_context
def upload(ctx: click.Context, path: Path, api_key: Optional[str]):
    """Upload a file from its path."""
    with _client(ctx, api_key) as client:
        try:
            file_id = client.upload(path)
        except ClientError as e:
            _fail(e, "uploading file")
        click.echo(f"File uploaded successfully to {client.file_url(file_id)}")


@client_cli.command()
@click.argument("file_id")
@api_key_option
@click.pass_context
def delete(ctx: click.Context, file_id: str, api_key: Optional[str]):
    """Delete a file from its ID."""
    with _client(ctx, api_key) as client:
        try:
            client.delete(file_id)
        except ClientError as e:
            _fail(e, "deleting file")
    click.echo("File deleted successfully")


@client_cli.command("list")
@api_key_option
@click.pass_context
def list_cmd(ctx: click.Context, api_key: Optional[str]):
    """List uploaded files."""
    with _client(ctx, api_key) as client:
        try:
            files = client.list_files()
        except ClientError as e:
            _fail(e, "fetching files")
        if not files:
            click.echo("No files found")
            return
        click.echo()
        click.echo(format_table(files, client.base_url))
        click.echo()


@client_cli.command()
@click.argument("file_id")
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path),
              default=None, help="Where to write the file (defaults to the file id).")
@click.pass_context
def download(ctx: click.Context, file_id: str, output: Optional[Path]):
    """Download a file by its ID. No API key needed."""
    settings = ctx.obj
    with FileVaultClient(settings.FILEVAULT_API_URL, timeout=settings.FILEVAULT_TIMEOUT) as client:
        try:
            data = client.download(file_id)
        except ClientError as e:
            _fail(e, "downloading file")
    target = output or Path(file_id)
    target.write_bytes(data)
    click.echo(f"Saved {len(data)} bytes to {target}")


# Server-side administration


def _load_settings() -> Settings:
    try:
        return get_settings()
    except ValidationError as e:
        click.echo(f"Invalid configuration: {e}", err=True)
        sys.exit(1)


def _open_storage(settings: Settings):
    from filevault.main import open_storage

    try:
        return open_storage(settings)
    except StorageUnavailable as e:
        click.echo(f"Cannot open storage: {e.detail}", err=True)
        sys.exit(1)


def _parse_role(ctx, param, value: str) -> Role:
    try:
        return Role.parse(value)
    except (KeyError, ValueError):
        names = ", ".join(role.name for role in Role)
        raise click.BadParameter(f"expected one of {names} or 0-3")


@click.group()
def admin_cli():
    """FileVault server administration."""


@admin_cli.command()
def serve():
    """Run the API server."""
    from filevault.main import run

    run(_load_settings())


@admin_cli.command("init-db")
def init_db():
    """Create the catalog tables and seed the master identity."""
    catalog, _ = _open_storage(_load_settings())
    catalog.close()
    click.echo("Database initialised successfully")


@admin_cli.command("add-user")
@click.argument("username")
@click.argument("role", callback=_parse_role)
@click.option("--token", default=None, help="Use this API key instead of generating one.")
def add_user(username: str, role: Role, token: Optional[str]):
    """Create or replace USERNAME with ROLE and print its API key."""
    catalog, _ = _open_storage(_load_settings())
    try:
        token = token or secrets.token_urlsafe(32)
        catalog.upsert_identity(token, username, role)
    finally:
        catalog.close()
    click.echo(f"{username} ({role.name}): {token}")


@admin_cli.command("remove-user")
@click.argument("username")
def remove_user(username: str):
    """Remove USERNAME; its API key stops working immediately."""
    catalog, _ = _open_storage(_load_settings())
    try:
        removed = catalog.delete_identity(username)
    finally:
        catalog.close()
    if not removed:
        click.echo(f"No such user: {username}", err=True)
        sys.exit(1)
    click.echo(f"Removed {username}")


@admin_cli.command("list-users")
def list_users():
    """List usernames and roles."""
    catalog, _ = _open_storage(_load_settings())
    try:
        identities = catalog.list_identities()
    finally:
        catalog.close()
    for identity in identities:
        click.echo(f"{identity.username}\t{identity.role.name}")


@admin_cli.command()
def reconcile():
    """Remove stale pending rows and orphan blobs once."""
    from filevault.services.reconciler import Reconciler

    settings = _load_settings()
    catalog, blob_store = _open_storage(settings)
    try:
        report = Reconciler(catalog, blob_store, settings.RECONCILE_GRACE_SECONDS).sweep()
    finally:
        catalog.close()
    click.echo(
        f"Removed {len(report.pending_rows_removed)} pending rows and "
        f"{len(report.orphan_blobs_removed)} orphan blobs"
    )
    if report.failures:
        click.echo(f"Failed to clean up: {', '.join(report.failures)}", err=True)
        sys.exit(1)
