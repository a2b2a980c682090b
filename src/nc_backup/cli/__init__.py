"""CLI module for Nextcloud backup and restore.

Usage:
    nc-backup backup /mnt/backups          # as the nextcloud user
    nc-backup restore /mnt/backups         # as root
    nc-backup verify /mnt/backups
    nc-backup --config ./instance.toml -v backup /mnt/backups

Commands:
    backup   - Back up the instance into TARGET_DIR/nextcloud-backup
    restore  - Restore the backup contained in BACKUP_DIR/nextcloud-backup
    verify   - Check that BACKUP_DIR/nextcloud-backup is complete and restorable

Exit codes: 0 on success, 1 on failure, abort or help, 2 on usage errors,
130 when interrupted.
"""

import argparse
import logging
import signal
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from nc_backup.config.loader import load_instance_config
from nc_backup.config.models import InstanceConfig
from nc_backup.errors import ConfigurationError
from nc_backup.orchestrator import (
    BackupOrchestrator,
    RestoreOrchestrator,
    RunResult,
)

console = Console()

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INTERRUPTED = 130


class _Parser(argparse.ArgumentParser):
    """ArgumentParser whose ``-h``/``--help`` exit is nonzero as well."""

    def exit(self, status: int = 0, message: str | None = None):
        super().exit(status or EXIT_FAILED, message)


# ============================================================================
# Helpers
# ============================================================================


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _raise_interrupt(signum, frame):
    raise KeyboardInterrupt


def ask_operator(prompt: str) -> bool:
    """Ask the operator on the terminal; only ``y``/``yes`` means yes."""
    try:
        response = console.input(prompt)
    except EOFError:
        return False
    return response.strip().lower() in ("y", "yes")


def _load_config(args: argparse.Namespace) -> InstanceConfig | None:
    try:
        return load_instance_config(args.config)
    except (FileNotFoundError, ConfigurationError) as e:
        console.print(f"Error: {e}", style="red", markup=False, highlight=False, soft_wrap=True)
        return None


def _print_result(result: RunResult) -> None:
    if result.aborted and result.error is None:
        console.print("[yellow]Restore cancelled, aborting.[/yellow]")
        return

    style = "yellow" if result.aborted else "red"
    console.print()
    console.print(
        f"[bold {style}]x[/bold {style}] {result.state} at step "
        f"[bold]{result.failed_step}[/bold]"
    )
    if result.error is not None:
        console.print(result.error.message, markup=False, highlight=False, soft_wrap=True)
    for warning in result.warnings:
        console.print(f"Warning: {warning}", style="yellow", markup=False, soft_wrap=True)


# ============================================================================
# Command implementations
# ============================================================================


def cmd_backup(args: argparse.Namespace) -> int:
    """Back up the configured instance.

    Args:
        args: Parsed CLI arguments with ``target_dir``.

    Returns:
        0 on success, 1 on failure.
    """
    config = _load_config(args)
    if config is None:
        return EXIT_FAILED

    result = BackupOrchestrator(config).run(Path(args.target_dir))
    if not result.success:
        _print_result(result)
        return EXIT_FAILED

    console.print(
        f"[bold green]v[/bold green] Nextcloud backup completed: "
        f"[cyan]{result.backup_root}[/cyan]"
    )
    return EXIT_OK


def cmd_restore(args: argparse.Namespace) -> int:
    """Restore the configured instance from a backup.

    Args:
        args: Parsed CLI arguments with ``backup_dir``.

    Returns:
        0 on success, 1 on failure or when the operator declines.
    """
    config = _load_config(args)
    if config is None:
        return EXIT_FAILED

    orchestrator = RestoreOrchestrator(config, confirm=ask_operator)
    result = orchestrator.run(Path(args.backup_dir))
    if not result.success:
        _print_result(result)
        return EXIT_FAILED

    console.print("[bold green]v[/bold green] Nextcloud backup successfully restored.")
    console.print(
        "[dim]If the backup was not very recent, it might make sense to run[/dim] "
        "[cyan]nextcloud-occ maintenance:data-fingerprint[/cyan][dim].[/dim]"
    )
    console.print(
        "[dim]See https://docs.nextcloud.com/server/latest/admin_manual/maintenance/"
        "restore.html#synchronising-with-clients-after-data-recovery[/dim]"
    )
    return EXIT_OK


def cmd_verify(args: argparse.Namespace) -> int:
    """Check that a backup is complete and compatible, without restoring.

    Args:
        args: Parsed CLI arguments with ``backup_dir``.

    Returns:
        0 if the backup could be restored onto this instance, 1 otherwise.
    """
    config = _load_config(args)
    if config is None:
        return EXIT_FAILED

    result = RestoreOrchestrator(config).check(Path(args.backup_dir))

    if result.manifest is not None:
        table = Table(title="Backup", show_header=False)
        table.add_column("Key", style="dim")
        table.add_column("Value")
        table.add_row("Location", str(result.backup_root))
        table.add_row("Created", result.manifest.time)
        table.add_row("Nextcloud version", result.manifest.version)
        table.add_row("Database", result.manifest.engine)
        console.print(table)

    if not result.success:
        _print_result(result)
        return EXIT_FAILED

    console.print("[bold green]v[/bold green] Backup is complete and can be restored")
    return EXIT_OK


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = _Parser(
        prog="nc-backup",
        description="Coordinated backup and restore of a Nextcloud instance",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Instance config TOML (default: $NC_BACKUP_CONFIG or /etc/nc-backup.toml)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log every external command",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    p_backup = subparsers.add_parser(
        "backup",
        help="Back up the instance (run as the nextcloud user)",
        description="The backup will be created in TARGET_DIR/nextcloud-backup.",
    )
    p_backup.add_argument("target_dir", metavar="TARGET_DIR")
    p_backup.set_defaults(func=cmd_backup)

    p_restore = subparsers.add_parser(
        "restore",
        help="Restore a backup (run as root)",
        description=(
            "Restore the backup contained in BACKUP_DIR/nextcloud-backup. "
            "Note that this requires a working nextcloud installation which "
            "will then be overwritten."
        ),
    )
    p_restore.add_argument("backup_dir", metavar="BACKUP_DIR")
    p_restore.set_defaults(func=cmd_restore)

    p_verify = subparsers.add_parser(
        "verify",
        help="Check a backup without restoring it",
        description="Check BACKUP_DIR/nextcloud-backup against this instance.",
    )
    p_verify.add_argument("backup_dir", metavar="BACKUP_DIR")
    p_verify.set_defaults(func=cmd_verify)

    return parser


def main() -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = build_parser()
    args = parser.parse_args()

    _setup_logging(args.verbose)
    signal.signal(signal.SIGTERM, _raise_interrupt)

    try:
        return args.func(args)
    except KeyboardInterrupt:
        console.print("\n[bold red]Interrupted.[/bold red]")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
