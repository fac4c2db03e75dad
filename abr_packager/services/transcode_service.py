"""
This module produces the encoded renditions of a ladder.

It has two layers:

- `TranscodingEngine` is the boundary to the tool that actually decodes,
  scales and encodes video. `FFmpegTranscodingEngine` drives ffmpeg through
  ffmpeg-python; tests substitute their own engine.
- `RenditionTranscoder` fans one engine call per ladder entry out onto a
  thread pool, joins them, and turns the first failure into a
  `TranscodeError` for that rendition. Once a job fails, queued jobs are
  cancelled and running ones are asked to stop through a shared
  `threading.Event`; the pool is always fully joined before the error is
  raised, so no later stage can start while a transcode is still running.
"""
import subprocess
import threading
import time
from concurrent.futures import CancelledError, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, Optional

import ffmpeg
from loguru import logger

from ..config.settings import PipelineSettings
from ..domain.artifacts import OutputTree, RenditionArtifact
from ..domain.exceptions import (
    EngineCancelledException,
    EngineException,
    EngineTimeoutException,
    TranscodeError,
)
from ..domain.ladder import Ladder, RenditionSpec
from ..utils.format_utils import file_size_or_zero, format_timedelta, formatted_size
from ..utils.process_utils import format_cmd, tail
from .layout_service import ensure_directory_exists

# Seconds between checks for cancellation and timeout while ffmpeg runs.
CANCEL_POLL_INTERVAL = 0.5


class ResizeMode(Enum):
    """How the source frame is fitted into the target box."""

    # Scale down to fit inside width x height, keep aspect ratio, no crop, no pad.
    FIT = "fit"


@dataclass(frozen=True)
class TranscodeRequest:
    input_path: Path
    width: int
    height: int
    bitrate_kbps: int
    output_path: Path
    resize_mode: ResizeMode = ResizeMode.FIT

    @classmethod
    def for_rendition(cls, input_path: Path, spec: RenditionSpec, output_path: Path) -> "TranscodeRequest":
        return cls(input_path, spec.width, spec.height, spec.bitrate_kbps, output_path)


class TranscodingEngine:
    """Interface to an external transcoder."""

    def transcode(self, request: TranscodeRequest, cancel_event: Optional[threading.Event] = None) -> None:
        """
        Produces `request.output_path` or raises.

        Implementations must raise `EngineException` (or a subclass) on
        failure, `EngineTimeoutException` on timeout, and should stop early
        with `EngineCancelledException` once `cancel_event` is set.
        """
        raise NotImplementedError("Subclasses must implement transcode().")


class FFmpegTranscodingEngine(TranscodingEngine):
    """
    Transcodes with ffmpeg.

    The command is built with ffmpeg-python: the video is scaled to fit the
    target box (aspect ratio kept, dimensions rounded to even numbers as
    H.264 requires), encoded with the configured video codec at the target
    bitrate, and the audio is re-encoded with the configured audio codec.
    """

    def __init__(self, settings: Optional[PipelineSettings] = None, cmd_log_file_path: Optional[Path] = None):
        self.settings = settings or PipelineSettings()
        self.cmd_log_file_path = cmd_log_file_path

    def build_stream(self, request: TranscodeRequest):
        """Returns the ffmpeg-python output node for `request`."""
        if request.resize_mode is not ResizeMode.FIT:
            raise ValueError(f"Unsupported resize mode: {request.resize_mode}")

        source = ffmpeg.input(str(request.input_path))
        video = source.video.filter(
            "scale",
            request.width,
            request.height,
            force_original_aspect_ratio="decrease",
            force_divisible_by=2,
        )
        output_kwargs = {
            "vcodec": self.settings.video_codec,
            "acodec": self.settings.audio_codec,
            "video_bitrate": f"{request.bitrate_kbps}k",
        }
        if self.settings.ffmpeg_threads:
            output_kwargs["threads"] = self.settings.ffmpeg_threads
        return (
            ffmpeg.output(video, source.audio, str(request.output_path), **output_kwargs)
            .global_args("-nostdin")
            .overwrite_output()
        )

    def build_command(self, request: TranscodeRequest) -> list:
        return ffmpeg.compile(self.build_stream(request), cmd=self.settings.ffmpeg_binary)

    def transcode(self, request: TranscodeRequest, cancel_event: Optional[threading.Event] = None) -> None:
        stream = self.build_stream(request)
        command = ffmpeg.compile(stream, cmd=self.settings.ffmpeg_binary)
        logger.debug(f"FFmpeg command: {format_cmd(command)}")
        if self.cmd_log_file_path:
            try:
                with self.cmd_log_file_path.open("a", encoding="utf-8") as cmd_f:
                    cmd_f.write(format_cmd(command) + "\n")
            except OSError as e:
                logger.error(f"Failed to write command to log file {self.cmd_log_file_path}: {e}")

        try:
            process = ffmpeg.run_async(
                stream,
                cmd=self.settings.ffmpeg_binary,
                pipe_stdout=True,
                pipe_stderr=True,
            )
        except FileNotFoundError as e:
            raise EngineException(f"Command not found: {self.settings.ffmpeg_binary}") from e
        except OSError as e:
            raise EngineException(f"Could not start {self.settings.ffmpeg_binary}: {e}") from e

        stderr = self._wait(process, cancel_event)
        if process.returncode != 0:
            raise EngineException(
                f"ffmpeg failed with code {process.returncode}: {tail(stderr)}",
                returncode=process.returncode,
                stderr=stderr,
            )
        if file_size_or_zero(request.output_path) == 0:
            raise EngineException(f"ffmpeg produced no output at {request.output_path}", returncode=0, stderr=stderr)

    def _wait(self, process, cancel_event: Optional[threading.Event]) -> str:
        """Waits for ffmpeg, killing it on timeout or cancellation. Returns stderr."""
        timeout = self.settings.ffmpeg_timeout
        deadline = time.monotonic() + timeout if timeout else None
        while True:
            try:
                _, stderr = process.communicate(timeout=CANCEL_POLL_INTERVAL)
                return (stderr or b"").decode("utf-8", errors="replace")
            except subprocess.TimeoutExpired:
                if cancel_event is not None and cancel_event.is_set():
                    self._kill(process)
                    raise EngineCancelledException("ffmpeg stopped: run aborted")
                if deadline is not None and time.monotonic() >= deadline:
                    self._kill(process)
                    raise EngineTimeoutException(f"ffmpeg exceeded timeout of {timeout} seconds")

    @staticmethod
    def _kill(process) -> None:
        process.kill()
        try:
            process.communicate(timeout=30)
        except subprocess.TimeoutExpired:
            logger.warning("ffmpeg did not exit after kill")


class RenditionTranscoder:
    """
    Produces one `RenditionArtifact` per ladder entry.

    Attributes:
        engine: The transcoding engine used for every rendition.
        max_workers: How many renditions are transcoded at once. With 1 the
                     renditions run one after another in ladder order.
    """

    def __init__(self, engine: TranscodingEngine, max_workers: int = 1):
        self.engine = engine
        self.max_workers = max(1, max_workers)

    def transcode_all(self, input_file: Path, ladder: Ladder, tree: OutputTree) -> Dict[str, RenditionArtifact]:
        """
        Transcodes `input_file` into every rendition of `ladder`.

        Returns:
            Rendition name -> artifact, in ladder order.

        Raises:
            TranscodeError: For the first rendition that failed. Files already
                            written stay in `resolutions/`.
        """
        input_path = Path(input_file)
        ensure_directory_exists(tree.resolutions_dir)
        cancel_event = threading.Event()
        artifacts: Dict[str, RenditionArtifact] = {}
        failed_spec: Optional[RenditionSpec] = None
        failure: Optional[BaseException] = None

        workers = min(self.max_workers, len(ladder))
        logger.info(f"Transcoding {len(ladder)} rendition(s) of {input_path.name} with {workers} worker(s)")

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="transcode") as executor:
            futures = {
                executor.submit(self._transcode_one, input_path, spec, tree, cancel_event): spec
                for spec in ladder
            }
            for future in as_completed(futures):
                spec = futures[future]
                try:
                    artifacts[spec.name] = future.result()
                except (CancelledError, EngineCancelledException):
                    logger.debug(f"Rendition {spec.name} cancelled")
                except Exception as e:
                    if failure is None:
                        failed_spec, failure = spec, e
                        logger.error(f"Rendition {spec.name} failed, aborting remaining renditions: {e}")
                        cancel_event.set()
                        for pending in futures:
                            pending.cancel()
                    else:
                        logger.warning(f"Rendition {spec.name} also failed: {e}")

        if failure is not None:
            raise TranscodeError(failed_spec.name, failure) from failure

        return {spec.name: artifacts[spec.name] for spec in ladder}

    def _transcode_one(
        self, input_path: Path, spec: RenditionSpec, tree: OutputTree, cancel_event: threading.Event
    ) -> RenditionArtifact:
        if cancel_event.is_set():
            raise EngineCancelledException(f"Rendition {spec.name} skipped: run aborted")

        output_path = tree.rendition_path(spec.name)
        request = TranscodeRequest.for_rendition(input_path, spec, output_path)
        logger.info(f"[{spec.name}] {spec.width}x{spec.height} @ {spec.bitrate_kbps}k -> {output_path.name}")
        started = datetime.now()
        try:
            self.engine.transcode(request, cancel_event)
        except EngineCancelledException:
            raise
        except Exception:
            # Stop the rest of the ladder before this worker picks up another job.
            cancel_event.set()
            raise

        elapsed = datetime.now() - started
        logger.info(
            f"[{spec.name}] done in {format_timedelta(elapsed)} ({formatted_size(file_size_or_zero(output_path))})"
        )
        return RenditionArtifact(spec.name, output_path)
