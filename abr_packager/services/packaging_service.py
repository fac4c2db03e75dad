"""
This module turns the stream descriptor list into HLS and DASH manifests.

`PackagingEngine` is the boundary to the external packager;
`ShakaPackagerEngine` runs Shaka Packager's `packager` binary.
`PackagingCoordinator` fixes the manifest locations inside the output tree,
attaches the optional encryption parameters, makes exactly one engine call
and reports where the manifests are.
"""
from pathlib import Path
from typing import List, Optional, Sequence

from loguru import logger

from ..config.settings import PipelineSettings
from ..domain.artifacts import EncryptionSpec, OutputTree, PackagingResult, StreamDescriptor
from ..domain.exceptions import EngineException, PackagingError
from ..utils.process_utils import run_cmd, tail


class PackagingEngine:
    """Interface to an external HLS/DASH packager."""

    def package(
        self,
        descriptors: Sequence[StreamDescriptor],
        hls_output_path: Path,
        dash_output_path: Path,
        encryption: Optional[EncryptionSpec] = None,
    ) -> None:
        """Writes both manifests and their segments, or raises `EngineException`."""
        raise NotImplementedError("Subclasses must implement package().")


class ShakaPackagerEngine(PackagingEngine):
    """Packages with the Shaka Packager command-line tool."""

    def __init__(self, settings: Optional[PipelineSettings] = None, cmd_log_file_path: Optional[Path] = None):
        self.settings = settings or PipelineSettings()
        self.cmd_log_file_path = cmd_log_file_path

    def build_command(
        self,
        descriptors: Sequence[StreamDescriptor],
        hls_output_path: Path,
        dash_output_path: Path,
        encryption: Optional[EncryptionSpec] = None,
    ) -> List[str]:
        cmd = [self.settings.packager_binary]
        cmd.extend(descriptor.to_packager_arg() for descriptor in descriptors)
        cmd.extend(["--hls_master_playlist_output", str(hls_output_path)])
        cmd.extend(["--mpd_output", str(dash_output_path)])
        if encryption is not None:
            cmd.extend([
                "--enable_raw_key_encryption",
                "--keys", encryption.raw_keys,
                "--pssh", encryption.pssh,
            ])
        return cmd

    def package(
        self,
        descriptors: Sequence[StreamDescriptor],
        hls_output_path: Path,
        dash_output_path: Path,
        encryption: Optional[EncryptionSpec] = None,
    ) -> None:
        cmd = self.build_command(descriptors, hls_output_path, dash_output_path, encryption)
        # The key material must not end up in logs or in the command file.
        result = run_cmd(
            cmd,
            timeout=self.settings.packager_timeout,
            show_cmd=encryption is None,
            cmd_log_file_path=self.cmd_log_file_path if encryption is None else None,
        )
        if result.returncode != 0:
            raise EngineException(
                f"packager failed with code {result.returncode}: {tail(result.stderr)}",
                returncode=result.returncode,
                stderr=result.stderr or "",
            )
        missing = [str(p) for p in (hls_output_path, dash_output_path) if not p.is_file()]
        if missing:
            raise EngineException(f"packager exited cleanly but did not write {', '.join(missing)}", returncode=0)


class PackagingCoordinator:
    """Runs the single packaging call of a pipeline run."""

    def __init__(self, engine: PackagingEngine):
        self.engine = engine

    def package(
        self,
        descriptors: Sequence[StreamDescriptor],
        tree: OutputTree,
        encryption: Optional[EncryptionSpec] = None,
    ) -> PackagingResult:
        """
        Packages `descriptors` into `output/h264_master.m3u8` and `output/h264.mpd`.

        Encryption, when given, applies to every stream.

        Raises:
            PackagingError: If the engine fails for any reason, timeouts included.
        """
        hls_path = tree.hls_manifest_path
        dash_path = tree.dash_manifest_path
        logger.info(
            f"Packaging {len(descriptors)} stream(s) into {tree.output_dir}"
            f"{' with raw-key encryption' if encryption else ''}"
        )
        try:
            self.engine.package(list(descriptors), hls_path, dash_path, encryption)
        except Exception as e:
            logger.error(f"Packaging failed: {e}")
            raise PackagingError(e) from e

        return PackagingResult(tree.output_dir, hls_path, dash_path)
