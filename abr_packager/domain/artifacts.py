"""
Values that flow between the pipeline stages.

    OutputTree         created by the layout service, shared by every stage
    RenditionArtifact  one per ladder entry, produced by the transcoder
    AudioStream        one per run, built from the audio source artifact
    VideoStream        one per artifact
    EncryptionSpec     optional, applied to every stream at packaging time
    PackagingResult    the externally visible result of `export()`
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Union

from ..config.ladder import (
    AUDIO_OUTPUT_NAME,
    AUDIO_PLAYLIST_NAME,
    DASH_MANIFEST_NAME,
    HLS_MASTER_PLAYLIST_NAME,
    OUTPUT_DIR_NAME,
    RENDITION_FILE_TEMPLATE,
    RESOLUTIONS_DIR_NAME,
    VIDEO_IFRAME_PLAYLIST_TEMPLATE,
    VIDEO_OUTPUT_TEMPLATE,
    VIDEO_PLAYLIST_TEMPLATE,
)
from .exceptions import InvalidEncryptionError


@dataclass(frozen=True)
class OutputTree:
    """
    The per-run directory tree `{base}/{random_id}_{input_name}/`.

    Only `root` is created up front; the two subtrees are created by the stage
    that first writes into them.
    """

    root: Path

    @property
    def resolutions_dir(self) -> Path:
        return self.root / RESOLUTIONS_DIR_NAME

    @property
    def output_dir(self) -> Path:
        return self.root / OUTPUT_DIR_NAME

    def rendition_path(self, rendition_name: str) -> Path:
        return self.resolutions_dir / RENDITION_FILE_TEMPLATE.format(name=rendition_name)

    @property
    def audio_output_path(self) -> Path:
        return self.output_dir / AUDIO_OUTPUT_NAME

    def video_output_path(self, rendition_name: str) -> Path:
        return self.output_dir / VIDEO_OUTPUT_TEMPLATE.format(name=rendition_name)

    @property
    def hls_manifest_path(self) -> Path:
        return self.output_dir / HLS_MASTER_PLAYLIST_NAME

    @property
    def dash_manifest_path(self) -> Path:
        return self.output_dir / DASH_MANIFEST_NAME


@dataclass(frozen=True)
class RenditionArtifact:
    """An encoded rendition on disk, inside `resolutions/`."""

    rendition_name: str
    file_path: Path


@dataclass(frozen=True)
class AudioStream:
    """Packaging request for the audio track, taken from one rendition file."""

    source: RenditionArtifact
    output_path: Path
    playlist_name: str
    group_id: str
    label: str

    def to_packager_arg(self) -> str:
        return (
            f"in={self.source.file_path},stream=audio,output={self.output_path},"
            f"playlist_name={self.playlist_name},hls_group_id={self.group_id},hls_name={self.label}"
        )

    @classmethod
    def for_artifact(cls, artifact: RenditionArtifact, tree: OutputTree, group_id: str, label: str) -> "AudioStream":
        return cls(artifact, tree.audio_output_path, AUDIO_PLAYLIST_NAME, group_id, label)


@dataclass(frozen=True)
class VideoStream:
    """Packaging request for the video track of one rendition."""

    source: RenditionArtifact
    output_path: Path
    playlist_name: str
    iframe_playlist_name: str

    def to_packager_arg(self) -> str:
        return (
            f"in={self.source.file_path},stream=video,output={self.output_path},"
            f"playlist_name={self.playlist_name},iframe_playlist_name={self.iframe_playlist_name}"
        )

    @classmethod
    def for_artifact(cls, artifact: RenditionArtifact, tree: OutputTree) -> "VideoStream":
        name = artifact.rendition_name
        return cls(
            artifact,
            tree.video_output_path(name),
            VIDEO_PLAYLIST_TEMPLATE.format(name=name),
            VIDEO_IFRAME_PLAYLIST_TEMPLATE.format(name=name),
        )


StreamDescriptor = Union[AudioStream, VideoStream]


@dataclass(frozen=True)
class EncryptionSpec:
    """
    Raw-key encryption parameters, applied to every stream of a run.

    Attributes:
        raw_keys: Key material in the packager's `--keys` format, e.g.
                  `label=:key_id=<32 hex>:key=<32 hex>`.
        pssh: Hex-encoded PSSH box(es) to embed.
    """

    raw_keys: str
    pssh: str

    def __post_init__(self):
        if not self.raw_keys or not self.raw_keys.strip():
            raise InvalidEncryptionError("EncryptionSpec.raw_keys cannot be empty.")
        if not self.pssh or not self.pssh.strip():
            raise InvalidEncryptionError("EncryptionSpec.pssh cannot be empty.")

    def __repr__(self) -> str:
        # Keep key material out of logs.
        return f"EncryptionSpec(raw_keys=<{len(self.raw_keys)} chars>, pssh={self.pssh[:16]}...)"


@dataclass(frozen=True)
class PackagingResult:
    """Where the manifests of a successful run are."""

    output_directory: Path
    hls_manifest_path: Path
    dash_manifest_path: Path

    def to_dict(self) -> Dict[str, str]:
        return {
            "path": str(self.output_directory),
            "hls": str(self.hls_manifest_path),
            "dash": str(self.dash_manifest_path),
        }
