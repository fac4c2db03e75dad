"""
Runtime settings for one `AbrPackagingPipeline`.

`PipelineSettings` collects everything the engines need (binary paths,
timeouts, thread and worker counts) and the packaging labels. It is built once
and passed to the pipeline at construction time instead of being read from
globals by each stage.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

from .common import (
    DEFAULT_FFMPEG_BINARY,
    DEFAULT_FFMPEG_THREADS,
    DEFAULT_FFMPEG_TIMEOUT,
    DEFAULT_MAX_WORKERS,
    DEFAULT_PACKAGER_BINARY,
    DEFAULT_PACKAGER_TIMEOUT,
    USER_CONFIG,
    USER_CONFIG_PATH,
    load_user_config,
)
from .ladder import (
    AUDIO_CODEC,
    DEFAULT_AUDIO_GROUP_ID,
    DEFAULT_AUDIO_LABEL,
    DEFAULT_PSSH,
    VIDEO_CODEC,
)


def _lookup(config: Dict[str, Any], section: str, key: str) -> Any:
    """Finds `section.key` either nested (`{section: {key: ...}}`) or dotted."""
    nested = config.get(section)
    if isinstance(nested, dict) and key in nested:
        return nested[key]
    return config.get(f"{section}.{key}")


@dataclass
class PipelineSettings:
    """Settings shared by every stage of a pipeline run."""

    # ffmpeg
    ffmpeg_binary: str = DEFAULT_FFMPEG_BINARY
    ffmpeg_threads: int = DEFAULT_FFMPEG_THREADS
    ffmpeg_timeout: Optional[float] = DEFAULT_FFMPEG_TIMEOUT

    # Shaka packager
    packager_binary: str = DEFAULT_PACKAGER_BINARY
    packager_timeout: Optional[float] = DEFAULT_PACKAGER_TIMEOUT

    # Concurrency
    max_workers: int = DEFAULT_MAX_WORKERS

    # Encoding
    video_codec: str = VIDEO_CODEC
    audio_codec: str = AUDIO_CODEC

    # Packaging labels
    audio_group_id: str = DEFAULT_AUDIO_GROUP_ID
    audio_label: str = DEFAULT_AUDIO_LABEL
    pssh: str = DEFAULT_PSSH

    @classmethod
    def from_user_config(cls, user_config: Dict[str, Any]) -> "PipelineSettings":
        """
        Builds settings from a parsed user configuration mapping.

        Both layouts are accepted:

            ffmpeg:
              binaries: /opt/ffmpeg/bin/ffmpeg
              timeout: 600
            packager.binaries: /opt/shaka/packager

        Unknown keys are ignored; missing keys keep their defaults.

        Args:
            user_config: The mapping loaded from `config.user.yaml`.

        Returns:
            A PipelineSettings instance.
        """
        settings = cls()
        if not user_config:
            return settings

        value = _lookup(user_config, "ffmpeg", "binaries")
        if value:
            settings.ffmpeg_binary = str(value)
        value = _lookup(user_config, "ffmpeg", "threads")
        if value is not None:
            settings.ffmpeg_threads = int(value)
        value = _lookup(user_config, "ffmpeg", "timeout")
        if value is not None:
            settings.ffmpeg_timeout = float(value) if value else None

        value = _lookup(user_config, "packager", "binaries")
        if value:
            settings.packager_binary = str(value)
        value = _lookup(user_config, "packager", "timeout")
        if value is not None:
            settings.packager_timeout = float(value) if value else None

        value = _lookup(user_config, "pipeline", "max_workers")
        if value is not None:
            settings.max_workers = max(1, int(value))

        value = _lookup(user_config, "encoding", "video_codec")
        if value:
            settings.video_codec = str(value)
        value = _lookup(user_config, "encoding", "audio_codec")
        if value:
            settings.audio_codec = str(value)

        value = _lookup(user_config, "packaging", "audio_group_id")
        if value:
            settings.audio_group_id = str(value)
        value = _lookup(user_config, "packaging", "audio_label")
        if value:
            settings.audio_label = str(value)
        value = _lookup(user_config, "packaging", "pssh")
        if value:
            settings.pssh = str(value)

        return settings

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "PipelineSettings":
        """
        Loads settings from a YAML file, or from `config.user.yaml` when no path
        is given.
        """
        if path is None or Path(path).resolve() == USER_CONFIG_PATH:
            user_config = USER_CONFIG
        else:
            user_config = load_user_config(Path(path))
        settings = cls.from_user_config(user_config)
        logger.debug(f"Pipeline settings: {settings}")
        return settings
