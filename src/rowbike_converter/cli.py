#!/usr/bin/env python3
"""
Row/Bike Converter CLI.

Convert RowErg and BikeErg workouts using personal power-curve calibrations.

Usage:
    rowbike pace 1:50                  # watts and cal/hr for a pace on both machines
    rowbike fit samples.json --damper 5 --save
    rowbike convert workout.json --format csv
    rowbike calibrations --damper 5
    rowbike delete 3
    rowbike sync                       # one reconciliation pass with the remote
    rowbike export --output backup.json
    rowbike import backup.json
    rowbike serve --port 8000
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .config import get_settings
from .db.sqlite_store import SQLiteCalibrationStore
from .exceptions import RowBikeError
from .metrics.c2 import format_pace, pace_to_watts, parse_pace, watts_to_calories_per_hour
from .metrics.calibration import fit_power_curve, validate_calibration, MIN_VALID_R2
from .models import CalibrationProfile, Modality, Sample, Workout
from .services.converter import WorkoutConverter
from .services.data_transfer import export_data, import_data
from .sync.connectivity import ConnectivityMonitor
from .sync.reconciler import SyncReconciler
from .sync.remote import RemoteCalibrationClient

console = Console()
err_console = Console(stderr=True)


def _format_time(ms: Optional[int]) -> str:
    if not ms:
        return "-"
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")


def _load_json(path: str):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def get_store(args) -> SQLiteCalibrationStore:
    """Open the local store, honouring --db and --user."""
    settings = get_settings()
    store = SQLiteCalibrationStore(
        args.db or settings.database_path,
        user_id=args.user or settings.user_id,
    )
    store.initialize()
    return store


def cmd_pace(args):
    """Show watts and calories for a pace on both machines."""
    seconds = parse_pace(args.pace)

    table = Table(title=f"Pace {args.pace}", box=box.ROUNDED)
    table.add_column("Machine", style="cyan")
    table.add_column("Pace", style="white")
    table.add_column("Watts", style="green")
    table.add_column("Cal/hr", style="yellow")

    for modality, unit, per_500 in (
        (Modality.ROW, "/500m", True),
        (Modality.BIKE, "/1000m", False),
    ):
        watts = pace_to_watts(seconds, per_500)
        table.add_row(
            modality.display_name,
            f"{format_pace(seconds)}{unit}",
            f"{watts:.0f}",
            f"{watts_to_calories_per_hour(watts):.0f}",
        )

    console.print(table)


def cmd_fit(args):
    """Fit a power curve to a JSON sample file."""
    data = _load_json(args.file)
    raw_samples = data.get("samples", []) if isinstance(data, dict) else data
    samples = [Sample.from_dict(s) for s in raw_samples]
    modality = Modality(args.modality)

    fit = fit_power_curve(samples, modality)
    profile = CalibrationProfile(
        modality=modality,
        damper=args.damper,
        a=fit.a,
        b=fit.b,
        r2=fit.r2,
        samples=samples,
    )
    validated = validate_calibration(profile)

    table = Table(title=f"{modality.display_name} calibration (damper {args.damper})", box=box.ROUNDED)
    table.add_column("Coefficient", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("a", f"{fit.a:.6g}")
    table.add_row("b", f"{fit.b:.4f}")
    table.add_row("R²", f"{fit.r2:.4f}")
    table.add_row("Samples", str(len(samples)))
    console.print(table)

    if validated:
        console.print("[green]Calibration is valid.[/green]")
    else:
        console.print(f"[yellow]R² below {MIN_VALID_R2}; collect more consistent samples.[/yellow]")

    if args.save:
        if not validated:
            console.print("[yellow]Not saved: only valid calibrations are stored.[/yellow]")
            return
        saved = get_store(args).save(profile)
        console.print(f"[green]Saved calibration {saved.id}.[/green]")


def cmd_convert(args):
    """Convert a JSON workout to the target machine."""
    workout = Workout.from_dict(_load_json(args.file))

    if args.generic:
        converter = WorkoutConverter()
        calibration = None
        result = converter.convert(workout)
    else:
        converter = WorkoutConverter(get_store(args))
        result, calibration = converter.convert_with_stored_calibration(workout)

    if calibration is not None:
        err_console.print(
            f"Using calibration {calibration.id} (damper {calibration.damper}, R² {calibration.r2:.3f})",
            style="dim",
        )
    else:
        err_console.print("Using generic curve", style="dim")

    print(converter.export(result, args.format, calibration))


def cmd_calibrations(args):
    """List stored calibrations."""
    store = get_store(args)
    profiles = store.list_by_damper(args.damper) if args.damper else store.list_all()

    if not profiles:
        console.print("[yellow]No calibrations stored.[/yellow]")
        return

    table = Table(title="Calibrations", box=box.ROUNDED)
    table.add_column("ID", style="cyan")
    table.add_column("Machine", style="white")
    table.add_column("Damper", style="white")
    table.add_column("a", style="white")
    table.add_column("b", style="white")
    table.add_column("R²", style="green")
    table.add_column("Samples", style="white")
    table.add_column("Created", style="dim")

    for p in profiles:
        r2_style = "green" if validate_calibration(p) else "yellow"
        table.add_row(
            str(p.id),
            p.modality.display_name,
            str(p.damper),
            f"{p.a:.6g}",
            f"{p.b:.4f}",
            f"[{r2_style}]{p.r2:.4f}[/{r2_style}]",
            str(len(p.samples)),
            _format_time(p.created_at),
        )

    console.print(table)


def cmd_delete(args):
    """Delete a stored calibration."""
    if get_store(args).delete(args.id):
        console.print(f"[green]Deleted calibration {args.id}.[/green]")
    else:
        console.print(f"[red]Calibration {args.id} not found.[/red]")
        sys.exit(1)


def cmd_sync(args):
    """Run one sync pass against the remote endpoint."""
    settings = get_settings()
    store = get_store(args)

    async def run():
        async with RemoteCalibrationClient(
            args.remote or settings.remote_base_url,
            user_id=store.user_id,
            timeout=settings.remote_timeout_seconds,
        ) as remote:
            reconciler = SyncReconciler(store, remote, ConnectivityMonitor())
            return await reconciler.sync_calibrations(store.user_id)

    summary = asyncio.run(run())

    table = Table(title="Sync Results", box=box.ROUNDED)
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="green")
    table.add_row("Uploaded", str(summary.uploaded))
    table.add_row("Downloaded", str(summary.downloaded))
    table.add_row("Errors", str(len(summary.errors)))
    console.print(table)

    for error in summary.errors:
        console.print(f"[red]{error}[/red]")


def cmd_export(args):
    """Export everything in the local store as JSON."""
    document = export_data(get_store(args))
    if args.output:
        Path(args.output).write_text(document, encoding="utf-8")
        console.print(f"[green]Exported to {args.output}[/green]")
    else:
        print(document)


def cmd_import(args):
    """Import a JSON export into the local store."""
    json_data = Path(args.file).read_text(encoding="utf-8")
    counts = import_data(get_store(args), json_data)

    table = Table(title="Import Results", box=box.ROUNDED)
    table.add_column("Collection", style="cyan")
    table.add_column("Imported", style="green")
    for name, count in counts.items():
        table.add_row(name, str(count))
    console.print(table)


def cmd_serve(args):
    """Run the remote calibration endpoint."""
    import uvicorn

    settings = get_settings()
    host = args.host or settings.api_host
    port = args.port or settings.api_port
    console.print(Panel(f"[bold]Row/Bike Converter API[/bold] on http://{host}:{port}"))
    uvicorn.run("rowbike_converter.api.app:app", host=host, port=port, log_level=settings.log_level.lower())


COMMANDS = {
    "pace": cmd_pace,
    "fit": cmd_fit,
    "convert": cmd_convert,
    "calibrations": cmd_calibrations,
    "delete": cmd_delete,
    "sync": cmd_sync,
    "export": cmd_export,
    "import": cmd_import,
    "serve": cmd_serve,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rowbike",
        description="Row/Bike Converter - RowErg and BikeErg workout conversion",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  rowbike pace 1:50
  rowbike fit samples.json --modality bike --damper 5 --save
  rowbike convert workout.json --format csv
  rowbike calibrations --damper 5
  rowbike sync --remote https://example.com
  rowbike export --output backup.json
        """,
    )
    parser.add_argument("--db", type=str, help="Path to the local SQLite database")
    parser.add_argument("--user", type=str, help="User id for stored data")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Pace command
    pace_p = subparsers.add_parser("pace", help="Show watts and cal/hr for a pace")
    pace_p.add_argument("pace", help="Pace as M:SS or M:SS.T")

    # Fit command
    fit_p = subparsers.add_parser("fit", help="Fit a calibration from a sample file")
    fit_p.add_argument("file", help="JSON list of samples (or {\"samples\": [...]})")
    fit_p.add_argument(
        "--modality", choices=[m.value for m in Modality], default=Modality.BIKE.value,
        help="Machine the samples were recorded on",
    )
    fit_p.add_argument("--damper", "-d", type=int, default=5, help="Damper setting (1-10)")
    fit_p.add_argument("--save", action="store_true", help="Store the calibration if valid")

    # Convert command
    convert_p = subparsers.add_parser("convert", help="Convert a workout JSON file")
    convert_p.add_argument("file", help="Workout JSON file")
    convert_p.add_argument("--format", "-f", choices=["text", "csv"], default="text")
    convert_p.add_argument(
        "--generic", action="store_true", help="Ignore stored calibrations and use the generic curve"
    )

    # Calibrations command
    cal_p = subparsers.add_parser("calibrations", help="List stored calibrations")
    cal_p.add_argument("--damper", "-d", type=int, help="Only this damper setting")

    # Delete command
    delete_p = subparsers.add_parser("delete", help="Delete a stored calibration")
    delete_p.add_argument("id", help="Calibration id")

    # Sync command
    sync_p = subparsers.add_parser("sync", help="Sync calibrations with the remote endpoint")
    sync_p.add_argument("--remote", type=str, help="Remote base URL (overrides settings)")

    # Export command
    export_p = subparsers.add_parser("export", help="Export the local store as JSON")
    export_p.add_argument("--output", "-o", type=str, help="Write to a file instead of stdout")

    # Import command
    import_p = subparsers.add_parser("import", help="Import a JSON export")
    import_p.add_argument("file", help="JSON export file")

    # Serve command
    serve_p = subparsers.add_parser("serve", help="Run the calibration API server")
    serve_p.add_argument("--host", type=str, help="Bind address")
    serve_p.add_argument("--port", type=int, help="Port")

    return parser


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )

    handler = COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        return

    try:
        handler(args)
    except RowBikeError as e:
        err_console.print(f"[red]Error: {e.message}[/red]")
        sys.exit(1)
    except KeyError as e:
        err_console.print(f"[red]Error: missing field {e}[/red]")
        sys.exit(1)
    except (OSError, ValueError) as e:
        err_console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
