"""Command Line Interface for adbackup."""

import sqlite3
import sys
import time
from pathlib import Path
from typing import List, NoReturn, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .adb import Device, list_apps, list_devices, pull, push
from .archive import AbeTool, ArchiveTranscoder
from .backup import BackupExecutor, BackupOptions
from .config import AdbackupConfig, get_config, load_config
from .errors import AdbackupError
from .store import BlobStore
from .util import format_duration, format_size, setup_logging, verbosity_to_level

console = Console()

FATAL_ERRORS = (AdbackupError, OSError, sqlite3.Error)


def _abort(message: str) -> NoReturn:
    """Report a fatal error and exit with status 1."""
    console.print(f"[red]Error: {escape(message)}[/red]")
    sys.exit(1)


def _config(ctx: click.Context) -> AdbackupConfig:
    return ctx.obj["config"]


def device_option(func):
    """Shared ``--device`` option."""
    return click.option(
        "--device", "-d", "device_id", metavar="ID",
        help="Id of device if more than one connected"
    )(func)


def password_option(func):
    """Shared ``--password`` option."""
    return click.option(
        "--password", "-p", default="", show_default=False,
        help="Backup password entered on the device"
    )(func)


@click.group()
@click.version_option(__version__, prog_name="adbackup")
@click.option("--verbose", "-v", count=True, help="Increases logging verbosity each use for up to 3 times")
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, path_type=Path), help="Configuration file path")
@click.pass_context
def cli(ctx, verbose: int, config_path: Optional[Path]):
    """A backup tool for android using adb."""
    ctx.ensure_object(dict)

    if config_path:
        config = load_config(config_path)
    else:
        config = get_config()
    ctx.obj["config"] = config

    level = verbosity_to_level(verbose) if verbose else config.log_level
    setup_logging(level=level, log_file=config.log_file, console=console)


def _get_target_device(config: AdbackupConfig, device_id: Optional[str]) -> str:
    """Resolve the device to operate on."""
    if device_id:
        return device_id

    devices = list_devices(config.adb_path)

    if not devices:
        _abort("No device found. Make sure that you connect at least one device with enabled debug options.")
    elif len(devices) > 1:
        _print_devices(devices)
        _abort("Multiple devices found. Please specify --device")

    return devices[0].id


def _print_devices(devices: List[Device]) -> None:
    table = Table(title="Connected Devices")
    table.add_column("Id", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Details", style="white")

    for device in devices:
        table.add_row(device.id, device.display_name, device.details)

    console.print(table)


def _open_store(config: AdbackupConfig, name: str) -> BlobStore:
    return BlobStore.open(name, directory=config.store_dir)


@cli.command("devices")
@click.pass_context
def devices_command(ctx):
    """List connected devices."""
    config = _config(ctx)

    try:
        devices = list_devices(config.adb_path)
    except FATAL_ERRORS as e:
        _abort(str(e))

    if not devices:
        console.print(
            "[yellow]No device found. Make sure that you connect at least one device "
            "with enabled debug options.[/yellow]"
        )
        return

    _print_devices(devices)


@cli.command("apps")
@device_option
@click.pass_context
def apps_command(ctx, device_id: Optional[str]):
    """List all installed apps on devices."""
    config = _config(ctx)

    try:
        packages = list_apps(device_id, config.adb_path)
    except FATAL_ERRORS as e:
        _abort(str(e))

    table = Table(title="Installed Applications")
    table.add_column("Package", style="cyan")

    for package in packages:
        table.add_row(package)

    console.print(table)


@cli.command("backup")
@device_option
@password_option
@click.option("--applications", "-a", is_flag=True, help="Include the apk's into the backup")
@click.option("--shared", "-s", is_flag=True, help="Include the shared storage into the backup")
@click.option("--system", "-S", is_flag=True, help="Include the system apps storage into the backup")
@click.option("--specified", "-o", multiple=True, metavar="APP", help="Include only the specified apps into the backup")
@click.option("--extract", "extract_to", type=click.Path(path_type=Path), help="Also unpack the backup into per-application archives")
@click.pass_context
def backup_command(ctx, device_id: Optional[str], password: str, applications: bool,
                   shared: bool, system: bool, specified: List[str],
                   extract_to: Optional[Path]):
    """Start backup of device."""
    config = _config(ctx)
    options = BackupOptions(
        applications=applications or config.backup.applications,
        shared_storage=shared or config.backup.shared_storage,
        system_apps=system or config.backup.system_apps,
        only_specified_apps=list(specified) or list(config.backup.only_specified_apps),
    )

    started = time.monotonic()

    try:
        device_id = _get_target_device(config, device_id)
        with _open_store(config, device_id) as store:
            result = BackupExecutor(device_id, store, config).backup(options, password, extract_to)
    except FATAL_ERRORS as e:
        _abort(f"Backup failed: {e}")

    console.print("[bold green]Backup completed successfully![/bold green]")
    console.print(f"Device: {result.device_id}")
    console.print(f"Version: {result.version}")
    console.print(f"Duration: {format_duration(time.monotonic() - started)}")

    if result.extracted is not None:
        console.print(f"Extracted: {len(result.extracted.application_archives)} application archives "
                      f"-> {result.extracted.output_directory}")
        if result.extracted.skipped_count:
            console.print(f"[yellow]Skipped entries: {result.extracted.skipped_count}[/yellow]")


@cli.command("restore")
@device_option
@click.option("--version", "-V", "version", type=int, help="Restore this version instead of the latest")
@click.pass_context
def restore_command(ctx, device_id: Optional[str], version: Optional[int]):
    """Restore android backup."""
    config = _config(ctx)

    try:
        device_id = _get_target_device(config, device_id)
        with _open_store(config, device_id) as store:
            restored = BackupExecutor(device_id, store, config).restore(version)
    except FATAL_ERRORS as e:
        _abort(f"Restore failed: {e}")

    console.print(f"[bold green]Restored version {restored} to {device_id}[/bold green]")


@cli.command("pull")
@device_option
@click.argument("path")
@click.pass_context
def pull_command(ctx, device_id: Optional[str], path: str):
    """Pull file/folder from android into current folder of your pc."""
    config = _config(ctx)

    try:
        output = pull(device_id, path, config.adb_path)
    except FATAL_ERRORS as e:
        _abort(str(e))

    console.print(output.strip())


@cli.command("push")
@device_option
@click.argument("src_path")
@click.argument("dst_path")
@click.pass_context
def push_command(ctx, device_id: Optional[str], src_path: str, dst_path: str):
    """Push file/folder from the pc to a connected android device."""
    config = _config(ctx)

    try:
        output = push(device_id, src_path, dst_path, config.adb_path)
    except FATAL_ERRORS as e:
        _abort(str(e))

    console.print(output.strip())


def _transcoder(config: AdbackupConfig) -> ArchiveTranscoder:
    return ArchiveTranscoder(
        AbeTool(config.abe_jar, config.java_path),
        show_progress=config.backup.show_progress
    )


@cli.command("extract")
@password_option
@click.argument("container", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("output", type=click.Path(path_type=Path))
@click.pass_context
def extract_command(ctx, password: str, container: Path, output: Path):
    """Unpack a backup into per-application archives."""
    config = _config(ctx)

    try:
        result = _transcoder(config).extract(container, output, password)
    except FATAL_ERRORS as e:
        _abort(f"Extraction failed: {e}")

    console.print(f"[bold green]Extracted {len(result.application_archives)} application archives "
                  f"into {output}[/bold green]")

    if result.skipped_count:
        console.print(f"[yellow]{result.skipped_count} entries could not be written on this system:[/yellow]")
        for name in result.skipped_entries[:10]:
            console.print(f"  {name}")


@cli.command("pack")
@password_option
@click.option("--keep-input", is_flag=True, help="Do not delete the input directory afterwards")
@click.argument("input_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("container", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def pack_command(ctx, password: str, keep_input: bool, input_dir: Path, container: Path):
    """Pack per-application archives back into a backup."""
    config = _config(ctx)

    try:
        _transcoder(config).pack(input_dir, container, password, remove_input=not keep_input)
    except FATAL_ERRORS as e:
        _abort(f"Packing failed: {e}")

    console.print(f"[bold green]Packed {input_dir} into {container}[/bold green]")


@cli.group("store")
def store():
    """Backup store commands."""
    pass


@store.command("versions")
@click.argument("name")
@click.pass_context
def store_versions(ctx, name: str):
    """List the backups stored for a device (or store name)."""
    config = _config(ctx)

    # Listing must not create a store for a mistyped name
    if not BlobStore.path_for(name, config.store_dir).exists():
        console.print("[yellow]No backups found[/yellow]")
        return

    try:
        with _open_store(config, name) as blob_store:
            records = blob_store.list_versions()
    except FATAL_ERRORS as e:
        _abort(str(e))

    if not records:
        console.print("[yellow]No backups found[/yellow]")
        return

    table = Table(title=f"Stored Backups - {name}")
    table.add_column("Version", style="cyan")
    table.add_column("Created", style="white")
    table.add_column("Size", style="white")
    table.add_column("Hash", style="white")

    for record in records:
        table.add_row(str(record.version), record.created_at, format_size(record.size), record.content_hash)

    console.print(table)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
