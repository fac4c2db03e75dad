"""
Shared fixtures and fake engines.

The fakes stand in for ffmpeg and Shaka Packager: they record every call and
write small placeholder files where the real tools would write media, so the
pipeline can be exercised end to end without either binary.
"""
import threading
from pathlib import Path

import pytest

from abr_packager.config.settings import PipelineSettings
from abr_packager.domain.artifacts import OutputTree
from abr_packager.domain.exceptions import EngineCancelledException, EngineException
from abr_packager.domain.ladder import Ladder
from abr_packager.services.packaging_service import PackagingEngine
from abr_packager.services.transcode_service import TranscodingEngine


def rendition_name_of(request) -> str:
    # resolutions/video_{name}.mp4
    return request.output_path.stem[len("video_"):]


class FakeTranscodingEngine(TranscodingEngine):
    """Writes a placeholder file per request; fails for the names in `fail_on`."""

    def __init__(self, fail_on=(), error=None):
        self.fail_on = set(fail_on)
        self.error = error
        self.requests = []
        self._lock = threading.Lock()

    @property
    def called_names(self):
        return [rendition_name_of(r) for r in self.requests]

    def transcode(self, request, cancel_event=None):
        with self._lock:
            self.requests.append(request)
        name = rendition_name_of(request)
        if name in self.fail_on:
            raise self.error or EngineException(f"ffmpeg failed for {name}", returncode=1)
        request.output_path.write_bytes(b"encoded " + name.encode())


class BlockingTranscodingEngine(TranscodingEngine):
    """
    Every rendition except `failing` waits for the run to be cancelled; the
    failing one raises immediately once all jobs have started.
    """

    def __init__(self, failing: str, job_count: int):
        self.failing = failing
        self.cancelled = []
        self._started = threading.Barrier(job_count, timeout=5)
        self._lock = threading.Lock()

    def transcode(self, request, cancel_event=None):
        name = rendition_name_of(request)
        self._started.wait()
        if name == self.failing:
            raise EngineException(f"ffmpeg failed for {name}", returncode=1)
        if cancel_event is not None and cancel_event.wait(5):
            with self._lock:
                self.cancelled.append(name)
            raise EngineCancelledException(f"{name} stopped")
        request.output_path.write_bytes(b"encoded")


class FakePackagingEngine(PackagingEngine):
    """Records each call and writes every output and both manifests."""

    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def package(self, descriptors, hls_output_path, dash_output_path, encryption=None):
        self.calls.append(
            {
                "descriptors": list(descriptors),
                "hls": hls_output_path,
                "dash": dash_output_path,
                "encryption": encryption,
            }
        )
        if self.error is not None:
            raise self.error
        for descriptor in descriptors:
            descriptor.output_path.write_bytes(b"packaged")
            (descriptor.output_path.parent / descriptor.playlist_name).write_text("#EXTM3U\n")
        hls_output_path.write_text("#EXTM3U\n")
        dash_output_path.write_text("<MPD/>\n")


@pytest.fixture
def settings():
    return PipelineSettings()


@pytest.fixture
def source_video(tmp_path) -> Path:
    path = tmp_path / "input" / "My Clip.final.mp4"
    path.parent.mkdir()
    path.write_bytes(b"not really a video")
    return path


@pytest.fixture
def output_base(tmp_path) -> Path:
    path = tmp_path / "out"
    path.mkdir()
    return path


@pytest.fixture
def tree(tmp_path) -> OutputTree:
    root = tmp_path / "run"
    root.mkdir()
    return OutputTree(root)


@pytest.fixture
def small_ladder() -> Ladder:
    return Ladder.from_mapping({"144p": [256, 144, 250], "720p": [1280, 720, 4800]})


@pytest.fixture
def four_step_ladder() -> Ladder:
    return Ladder.from_mapping(
        {
            "240p": [426, 240, 500],
            "480p": [854, 480, 2400],
            "720p": [1280, 720, 4800],
            "1080p": [1920, 1080, 8000],
        }
    )
