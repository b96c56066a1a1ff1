"""Wrapper around HandBrakeCLI.

The rest of the pipeline only relies on the boolean result of `encode`; the
output lines are consumed for logging (and progress events) only.
"""

import logging
import queue
import re
import subprocess
import threading
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict

from autocfr.config.models import EncoderConfig
from autocfr.domain import naming
from autocfr.domain.events import EncodeProgress
from autocfr.infrastructure.event_bus import EventBus

POLL_INTERVAL_S = 0.1


class KeyOnlyOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str

    def to_args(self) -> List[str]:
        return [self.key]


class KeyValueOption(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    value: Union[Path, str]

    def to_args(self) -> List[str]:
        return [self.key, str(self.value)]


Option = Union[KeyOnlyOption, KeyValueOption]


class Input:
    @staticmethod
    def of(path: Path) -> KeyValueOption:
        return KeyValueOption(key="--input", value=path)


class Output:
    @staticmethod
    def of(path: Path) -> KeyValueOption:
        return KeyValueOption(key="--output", value=path)


class Preset:
    @staticmethod
    def of(name: str) -> KeyValueOption:
        return KeyValueOption(key="--preset", value=name)


class Encoder:
    @staticmethod
    def of(name: str) -> KeyValueOption:
        return KeyValueOption(key="--encoder", value=name)


class Format:
    @staticmethod
    def of(container: str) -> KeyValueOption:
        return KeyValueOption(key="--format", value=container)


CONTAINER_FORMATS = {
    ".mp4": "av_mp4",
    ".m4v": "av_mp4",
    ".mkv": "av_mkv",
    ".webm": "av_webm",
}


def container_format(output_path: Path) -> Optional[str]:
    return CONTAINER_FORMATS.get(naming.strip_in_progress(output_path).suffix.lower())


class FrameRateControl:
    @staticmethod
    def cfr() -> KeyOnlyOption:
        return KeyOnlyOption(key="--cfr")

    @staticmethod
    def vfr() -> KeyOnlyOption:
        return KeyOnlyOption(key="--vfr")

    @staticmethod
    def pfr() -> KeyOnlyOption:
        return KeyOnlyOption(key="--pfr")


def build_options(config: EncoderConfig) -> List[Option]:
    """Default option set for every encode."""
    options: List[Option] = [Preset.of(config.preset)]
    if config.encoder:
        options.append(Encoder.of(config.encoder))
    options.append(getattr(FrameRateControl, config.frame_rate_control)())
    return options


class HandBrakeProgressLogger:
    """Logs all HandBrake output as DEBUG and the ETA every 10% as INFO.

    Not thread-safe: use one instance per HandBrake process.
    """

    # Encoding: task 1 of 1, 1.63 % (60.56 fps, avg 83.01 fps, ETA 00h22m29s)
    ENCODING_ETA_PATTERN = re.compile(
        r"Encoding: task 1 of 1, (\d+)[.]\d+ % [(]\d+[.]\d+ fps, avg \d+[.]\d+ fps, (ETA \d+h\d+m\d+s)[)]"
    )

    def __init__(
        self,
        logger: logging.Logger,
        on_milestone: Optional[Callable[[int, str], None]] = None,
    ):
        self.logger = logger
        self.on_milestone = on_milestone
        self.remaining_percents = set(range(0, 101, 10))

    def __call__(self, line: str):
        line = line.rstrip()
        self.logger.debug(line)

        # HandBrake rewrites the progress line with carriage returns
        for chunk in line.split("\r"):
            match = self.ENCODING_ETA_PATTERN.fullmatch(chunk.strip())
            if not match:
                continue
            percent = int(match.group(1))
            if percent in self.remaining_percents:
                self.remaining_percents.discard(percent)
                eta = match.group(2)
                self.logger.info(f"{percent}% {eta}")
                if self.on_milestone:
                    self.on_milestone(percent, eta)


class HandBrakeAdapter:
    """Runs HandBrakeCLI for one input/output pair at a time."""

    def __init__(
        self,
        cli_path: str = "HandBrakeCLI",
        options: Iterable[Option] = (),
        event_bus: Optional[EventBus] = None,
    ):
        self.cli_path = cli_path
        self.options = list(options)
        self.event_bus = event_bus
        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_config(cls, config: EncoderConfig, event_bus: Optional[EventBus] = None) -> "HandBrakeAdapter":
        return cls(cli_path=config.cli_path, options=build_options(config), event_bus=event_bus)

    def _build_command(self, input_path: Path, output_path: Path, options: Iterable[Option]) -> List[str]:
        cmd = [self.cli_path, *Input.of(input_path).to_args(), *Output.of(output_path).to_args()]
        # Staging names (.part) hide the container from HandBrake, so force it
        container = container_format(output_path)
        if container:
            cmd.extend(Format.of(container).to_args())
        for option in options:
            cmd.extend(option.to_args())
        return cmd

    def encode(
        self,
        input_path: Path,
        output_path: Path,
        *options: Option,
        shutdown_event: Optional[threading.Event] = None,
    ) -> bool:
        """Encodes input_path to output_path.

        Returns True if HandBrake exited cleanly (or the output already exists).
        """
        if output_path.exists():
            self.logger.warning(f"Output ({output_path}) already exists")
            return True

        cmd = self._build_command(input_path, output_path, options or self.options)
        self.logger.debug(f"HANDBRAKE_CMD: {' '.join(cmd)}")

        def publish_progress(percent: int, eta: str):
            if self.event_bus:
                self.event_bus.publish(EncodeProgress(input_path=input_path, percent=percent, eta=eta))

        progress_logger = HandBrakeProgressLogger(self.logger, on_milestone=publish_progress)

        try:
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                universal_newlines=True,
                bufsize=1
            )
            # Lines are read on a separate thread so a silent process can still be interrupted
            output_queue: "queue.Queue[Optional[str]]" = queue.Queue()

            def _reader():
                for line in process.stdout or []:
                    output_queue.put(line)
                output_queue.put(None)

            reader_thread = threading.Thread(target=_reader, name="handbrake-reader", daemon=True)
            reader_thread.start()

            try:
                while True:
                    if shutdown_event and shutdown_event.is_set():
                        self.logger.info(f"HANDBRAKE_INTERRUPTED: {input_path.name} (shutdown signal)")
                        self._terminate(process)
                        return False

                    try:
                        line = output_queue.get(timeout=POLL_INTERVAL_S)
                    except queue.Empty:
                        if process.poll() is not None:
                            break
                        continue

                    if line is None:
                        break
                    progress_logger(line)
                process.wait()
            except KeyboardInterrupt:
                self.logger.info(f"HANDBRAKE_INTERRUPTED: {input_path.name} (KeyboardInterrupt)")
                self._terminate(process)
                raise
        except Exception as e:
            self.logger.error(f"Error encoding: {input_path}: {e}")
            return False

        if process.returncode != 0:
            self.logger.error(f"HandBrakeCLI exited with code {process.returncode}: {input_path}")
            return False
        return True

    @staticmethod
    def _terminate(process: subprocess.Popen):
        process.terminate()
        try:
            process.wait(timeout=3)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()
