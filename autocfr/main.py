import logging
import threading
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from autocfr.config.loader import load_config
from autocfr.config.models import ArchiveMode, DiscoveryMode, Ordering
from autocfr.infrastructure.logging import setup_logging
from autocfr.infrastructure.event_bus import EventBus
from autocfr.infrastructure.file_scanner import FileScanner
from autocfr.infrastructure.handbrake import HandBrakeAdapter
from autocfr.infrastructure.housekeeping import HousekeepingService
from autocfr.infrastructure.computer import Computer
from autocfr.pipeline.archive_stage import VideoArchiver
from autocfr.pipeline.discovery import VideoDiscovery
from autocfr.pipeline.encode_stage import VideoEncoder
from autocfr.pipeline.orchestrator import Orchestrator
from autocfr.pipeline.runner import BatchRunner
from autocfr.ui.report import RunReport

app = typer.Typer(help="autocfr - batch HandBrake constant-frame-rate encoding with archiving")
console = Console()


@app.command()
def encode(
    input_dir: Path = typer.Argument(
        ..., exists=True, file_okay=False, dir_okay=True, help="Directory containing unencoded videos"
    ),
    output_dir: Path = typer.Argument(..., help="Directory to contain encoded videos"),
    archive_dir: Path = typer.Argument(..., help="Directory to contain archived videos"),
    shutdown_computer: bool = typer.Argument(..., help="Shut down the computer after the run (true/false)"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to YAML config"),
    mode: Optional[DiscoveryMode] = typer.Option(
        None, "--mode", help="Discovery mode: strict, or triage (archive already-encoded videos first)"
    ),
    ordering: Optional[Ordering] = typer.Option(
        None, "--ordering", help="Scheduling: barrier (concurrent tasks, ordered encodes) or sequential"
    ),
    archive_mode: Optional[ArchiveMode] = typer.Option(
        None, "--archive-mode", help="Archive by moving (default) or copying the encoded file"
    ),
    preset: Optional[str] = typer.Option(None, "--preset", help="Override HandBrake preset"),
    log_path: Optional[Path] = typer.Option(None, "--log-path", help="Path to log file (overrides config)"),
    debug: bool = typer.Option(False, "--debug/--no-debug", help="Enable verbose debug logging"),
):
    """Encode every video under INPUT_DIR, then archive the results."""
    try:
        config = load_config(config_path)
        # Apply CLI overrides
        if mode is not None: config.discovery.mode = mode
        if ordering is not None: config.pipeline.ordering = ordering
        if archive_mode is not None: config.archive.mode = archive_mode
        if preset: config.encoder.preset = preset
        if log_path is not None: config.general.log_path = str(log_path)
        if debug: config.general.debug = True

        log_path_value = Path(config.general.log_path) if config.general.log_path else None
        logger = setup_logging(output_dir, debug=config.general.debug, log_path=log_path_value)
        logger.info(
            f"Config: mode={config.discovery.mode.value}, ordering={config.pipeline.ordering.value}, "
            f"archive={config.archive.mode.value}, preset={config.encoder.preset}, "
            f"extensions={config.general.extensions}"
        )

        bus = EventBus()
        report = RunReport(bus)
        shutdown_event = threading.Event()

        handbrake = HandBrakeAdapter.from_config(config.encoder, event_bus=bus)
        video_encoder = VideoEncoder(handbrake, event_bus=bus, shutdown_event=shutdown_event)
        archiver = VideoArchiver(mode=config.archive.mode, event_bus=bus)
        discovery = VideoDiscovery(
            FileScanner(config.general.extensions),
            mode=config.discovery.mode,
            archiver=archiver,
            event_bus=bus,
        )
        orchestrator = Orchestrator(
            video_encoder,
            archiver,
            encode_permit=threading.BoundedSemaphore(config.pipeline.encode_permits),
            ordering=config.pipeline.ordering,
            event_bus=bus,
            shutdown_event=shutdown_event,
        )
        runner = BatchRunner(
            HousekeepingService(config.general.extensions),
            discovery,
            orchestrator,
            computer=Computer(),
        )

        with archiver:
            success = runner.run(input_dir, output_dir, archive_dir, shutdown_computer)

        report.render(console)

    except KeyboardInterrupt:
        typer.secho("\nRun stopped by user (Ctrl+C)", fg=typer.colors.YELLOW)
        raise typer.Exit(code=130)

    except typer.Exit:
        raise

    except Exception as e:
        logging.getLogger(__name__).critical("Fatal error", exc_info=True)
        typer.secho(f"Fatal Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    if not success:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
