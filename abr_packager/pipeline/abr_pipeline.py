from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Union

from loguru import logger

from ..config.common import COMMAND_TEXT
from ..config.settings import PipelineSettings
from ..domain.artifacts import EncryptionSpec, OutputTree, PackagingResult, RenditionArtifact
from ..domain.exceptions import PackagingError, TranscodeError
from ..domain.ladder import Ladder, LadderLike, coerce_ladder, default_ladder
from ..services.descriptor_service import build_descriptors
from ..services.layout_service import prepare_output_tree
from ..services.logging_service import ErrorLog, ExportLog
from ..services.packaging_service import PackagingCoordinator, PackagingEngine, ShakaPackagerEngine
from ..services.transcode_service import FFmpegTranscodingEngine, RenditionTranscoder, TranscodingEngine
from ..utils.format_utils import file_size_or_zero, format_timedelta, formatted_size

PathLike = Union[str, Path]


class AbrPackagingPipeline:
    """
    Exports one source video as an encrypted or clear HLS + DASH stream set.

    The ladder, settings and engines are fixed at construction time; only
    `set_ladder()` replaces the ladder afterwards. Engines left as None are
    built per run from the settings (ffmpeg and Shaka Packager), so their
    commands are recorded in that run's `cmd.txt`.
    """

    def __init__(
        self,
        settings: Optional[PipelineSettings] = None,
        ladder: Optional[LadderLike] = None,
        transcoding_engine: Optional[TranscodingEngine] = None,
        packaging_engine: Optional[PackagingEngine] = None,
    ):
        self.settings = settings or PipelineSettings.load()
        self._ladder: Ladder = coerce_ladder(ladder) if ladder is not None else default_ladder()
        self.transcoding_engine = transcoding_engine
        self.packaging_engine = packaging_engine

    @property
    def ladder(self) -> Ladder:
        return self._ladder

    def set_ladder(self, entries: LadderLike) -> "AbrPackagingPipeline":
        """
        Replaces the ladder.

        The new ladder is validated as a whole before anything changes, so an
        `InvalidLadderError` leaves the current ladder in place.
        """
        ladder = coerce_ladder(entries)
        self._ladder = ladder
        logger.info(f"Ladder set to {list(ladder.names)} (audio from {ladder.audio_source.name})")
        return self

    def export(
        self,
        input_file: PathLike,
        output_base_path: Optional[PathLike] = None,
        encryption_keys: Optional[str] = None,
        pssh: Optional[str] = None,
    ) -> PackagingResult:
        """
        Transcodes `input_file` into every rendition and packages the result.

        Args:
            input_file: The source video.
            output_base_path: Where the run's output root is created. Defaults
                              to the system temporary directory.
            encryption_keys: Raw key material in the packager's `--keys`
                             format. None packages the streams in the clear.
            pssh: PSSH box(es) for encrypted output. Defaults to the configured
                  `settings.pssh`. Ignored without `encryption_keys`.

        Returns:
            The `PackagingResult` with the output directory and both manifests.

        Raises:
            InputNotFoundError, DirectoryCreationError, TranscodeError,
            PackagingError; InvalidEncryptionError for empty key material,
            raised before the input is checked or anything is created.
        """
        started = datetime.now()
        ladder = self._ladder
        input_path = Path(input_file)
        encryption = self._encryption_spec(encryption_keys, pssh)

        tree = prepare_output_tree(input_path, output_base_path)
        logger.info(f"Exporting {input_path.name} to {tree.root}")

        cmd_log_file_path = tree.root / COMMAND_TEXT
        transcoding_engine = self.transcoding_engine or FFmpegTranscodingEngine(self.settings, cmd_log_file_path)
        packaging_engine = self.packaging_engine or ShakaPackagerEngine(self.settings, cmd_log_file_path)

        try:
            artifacts = RenditionTranscoder(transcoding_engine, self.settings.max_workers).transcode_all(
                input_path, ladder, tree
            )
            descriptors = build_descriptors(
                artifacts,
                tree,
                audio_source_index=ladder.audio_source_index,
                audio_group_id=self.settings.audio_group_id,
                audio_label=self.settings.audio_label,
            )
            result = PackagingCoordinator(packaging_engine).package(descriptors, tree, encryption)
        except TranscodeError as e:
            ErrorLog(tree.root).write(
                f"Export failed for: {input_path}",
                f"Stage: transcode, rendition: {e.rendition_name}",
                f"Cause: {type(e.cause).__name__} - {e.cause}",
            )
            raise
        except PackagingError as e:
            ErrorLog(tree.root).write(
                f"Export failed for: {input_path}",
                "Stage: packaging",
                f"Cause: {type(e.cause).__name__} - {e.cause}",
            )
            raise

        ended = datetime.now()
        ExportLog(tree.root).write(
            self._report(input_path, ladder, tree, artifacts, result, encryption is not None, started, ended)
        )
        logger.success(f"Exported {input_path.name} in {format_timedelta(ended - started)}: {result.hls_manifest_path}")
        return result

    def _encryption_spec(self, encryption_keys: Optional[str], pssh: Optional[str]) -> Optional[EncryptionSpec]:
        if encryption_keys is None:
            return None
        return EncryptionSpec(encryption_keys, pssh or self.settings.pssh)

    @staticmethod
    def _report(
        input_path: Path,
        ladder: Ladder,
        tree: OutputTree,
        artifacts: Dict[str, RenditionArtifact],
        result: PackagingResult,
        encrypted: bool,
        started: datetime,
        ended: datetime,
    ) -> dict:
        renditions = {}
        for spec in ladder:
            artifact = artifacts[spec.name]
            renditions[spec.name] = {
                "width": spec.width,
                "height": spec.height,
                "bitrate_kbps": spec.bitrate_kbps,
                "file": str(artifact.file_path),
                "size": formatted_size(file_size_or_zero(artifact.file_path)),
            }
        return {
            "input": str(input_path.resolve()),
            "output_root": str(tree.root),
            "audio_source": ladder.audio_source.name,
            "renditions": renditions,
            "hls": str(result.hls_manifest_path),
            "dash": str(result.dash_manifest_path),
            "encrypted": encrypted,
            "started_datetime": started.isoformat(timespec="seconds"),
            "ended_datetime": ended.isoformat(timespec="seconds"),
            "total_time": format_timedelta(ended - started),
        }
