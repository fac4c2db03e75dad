"""
Pipeline Tests
==============
End-to-end runs of `AbrPackagingPipeline.export` with fake engines.
"""
import pytest
import yaml

from abr_packager.domain.artifacts import AudioStream, VideoStream
from abr_packager.domain.exceptions import (
    AbrPackagerException,
    EngineException,
    InputNotFoundError,
    InvalidEncryptionError,
    InvalidLadderError,
    PackagingError,
    TranscodeError,
)
from abr_packager.pipeline.abr_pipeline import AbrPackagingPipeline
from abr_packager.services.logging_service import ExportLog

from conftest import FakePackagingEngine, FakeTranscodingEngine

KEYS = "label=:key_id=0123456789abcdef0123456789abcdef:key=fedcba9876543210fedcba9876543210"


def make_pipeline(settings, ladder, fail_on=(), packaging_error=None):
    return AbrPackagingPipeline(
        settings,
        ladder,
        transcoding_engine=FakeTranscodingEngine(fail_on=fail_on),
        packaging_engine=FakePackagingEngine(error=packaging_error),
    )


class TestExport:
    def test_full_run_layout(self, settings, four_step_ladder, source_video, output_base):
        pipeline = make_pipeline(settings, four_step_ladder)
        result = pipeline.export(source_video, output_base)

        root = result.output_directory.parent
        assert root.parent == output_base
        assert root.name.endswith("_My_Clip")
        assert result.output_directory == root / "output"
        assert result.hls_manifest_path == root / "output" / "h264_master.m3u8"
        assert result.dash_manifest_path == root / "output" / "h264.mpd"
        assert result.hls_manifest_path.is_file()
        assert result.dash_manifest_path.is_file()

        resolutions = sorted(p.name for p in (root / "resolutions").iterdir())
        assert resolutions == sorted(f"video_{n}.mp4" for n in four_step_ladder.names)
        packaged = {p.name for p in result.output_directory.glob("*.mp4")}
        assert packaged == {"audio.mp4"} | {f"h264_{n}.mp4" for n in four_step_ladder.names}

    def test_comma_in_input_name_keeps_descriptors_parseable(self, settings, small_ladder, tmp_path, output_base):
        source = tmp_path / "Trailer, final.mp4"
        source.write_bytes(b"not really a video")
        pipeline = make_pipeline(settings, small_ladder)
        result = pipeline.export(source, output_base)

        assert result.output_directory.parent.name.endswith("_Trailer__final")
        for descriptor in pipeline.packaging_engine.calls[0]["descriptors"]:
            fields = descriptor.to_packager_arg().split(",")
            assert all("=" in field for field in fields)
            assert fields[0] == f"in={descriptor.source.file_path}"

    def test_single_packaging_call_with_ordered_descriptors(self, settings, small_ladder, source_video, output_base):
        pipeline = make_pipeline(settings, small_ladder)
        pipeline.export(source_video, output_base)

        calls = pipeline.packaging_engine.calls
        assert len(calls) == 1
        descriptors = calls[0]["descriptors"]
        assert [type(d) for d in descriptors] == [AudioStream, VideoStream, VideoStream]
        assert descriptors[0].source.rendition_name == "144p"
        assert [d.source.rendition_name for d in descriptors[1:]] == ["144p", "720p"]
        assert calls[0]["encryption"] is None

    def test_export_log(self, settings, small_ladder, source_video, output_base):
        result = make_pipeline(settings, small_ladder).export(source_video, output_base)

        report = ExportLog(result.output_directory.parent).load()
        assert report
        assert report["hls"] == str(result.hls_manifest_path)
        assert report["audio_source"] == "144p"
        assert list(report["renditions"]) == ["144p", "720p"]
        assert report["renditions"]["720p"]["bitrate_kbps"] == 4800
        assert report["encrypted"] is False

    def test_each_run_gets_its_own_root(self, settings, small_ladder, source_video, output_base):
        pipeline = make_pipeline(settings, small_ladder)
        first = pipeline.export(source_video, output_base)
        second = pipeline.export(source_video, output_base)
        assert first.output_directory != second.output_directory
        assert len(list(output_base.iterdir())) == 2

    def test_parallel_workers(self, settings, four_step_ladder, source_video, output_base):
        settings.max_workers = 4
        pipeline = make_pipeline(settings, four_step_ladder)
        pipeline.export(source_video, output_base)
        descriptors = pipeline.packaging_engine.calls[0]["descriptors"]
        assert [d.source.rendition_name for d in descriptors[1:]] == list(four_step_ladder.names)

    def test_missing_input_creates_nothing(self, settings, small_ladder, tmp_path, output_base):
        pipeline = make_pipeline(settings, small_ladder)
        with pytest.raises(InputNotFoundError):
            pipeline.export(tmp_path / "nope.mp4", output_base)
        assert list(output_base.iterdir()) == []
        assert pipeline.transcoding_engine.requests == []


class TestEncryption:
    def test_default_pssh(self, settings, small_ladder, source_video, output_base):
        pipeline = make_pipeline(settings, small_ladder)
        pipeline.export(source_video, output_base, KEYS)

        encryption = pipeline.packaging_engine.calls[0]["encryption"]
        assert encryption.raw_keys == KEYS
        assert encryption.pssh == settings.pssh

    def test_custom_pssh(self, settings, small_ladder, source_video, output_base):
        pipeline = make_pipeline(settings, small_ladder)
        result = pipeline.export(source_video, output_base, KEYS, pssh="00ff00ff")

        assert pipeline.packaging_engine.calls[0]["encryption"].pssh == "00ff00ff"
        report = yaml.safe_load((result.output_directory.parent / "export_log.yaml").read_text(encoding="utf-8"))
        assert report["encrypted"] is True
        assert KEYS not in str(report)

    def test_empty_keys_are_rejected_before_any_work(self, settings, small_ladder, source_video, output_base):
        pipeline = make_pipeline(settings, small_ladder)
        with pytest.raises(InvalidEncryptionError) as exc_info:
            pipeline.export(source_video, output_base, "")
        assert isinstance(exc_info.value, AbrPackagerException)
        assert list(output_base.iterdir()) == []
        assert pipeline.transcoding_engine.requests == []


class TestFailures:
    def test_transcode_failure_skips_packaging(self, settings, four_step_ladder, source_video, output_base):
        pipeline = make_pipeline(settings, four_step_ladder, fail_on={"480p"})
        with pytest.raises(TranscodeError) as exc_info:
            pipeline.export(source_video, output_base)

        assert exc_info.value.rendition_name == "480p"
        assert pipeline.packaging_engine.calls == []
        (root,) = output_base.iterdir()
        assert not (root / "output").exists()
        assert not (root / "export_log.yaml").exists()
        error_text = (root / "error.txt").read_text(encoding="utf-8")
        assert "rendition: 480p" in error_text

    def test_packaging_failure(self, settings, small_ladder, source_video, output_base):
        error = EngineException("packager failed with code 1", returncode=1)
        pipeline = make_pipeline(settings, small_ladder, packaging_error=error)
        with pytest.raises(PackagingError) as exc_info:
            pipeline.export(source_video, output_base)

        assert exc_info.value.cause is error
        (root,) = output_base.iterdir()
        assert "Stage: packaging" in (root / "error.txt").read_text(encoding="utf-8")
        # Renditions stay on disk for inspection.
        assert len(list((root / "resolutions").iterdir())) == 2


class TestLadderSelection:
    def test_default_ladder(self, settings):
        pipeline = AbrPackagingPipeline(settings)
        assert pipeline.ladder.names == ("144p", "240p", "360p", "480p", "720p", "1080p", "2k", "4k")

    def test_set_ladder_from_mapping(self, settings, source_video, output_base):
        pipeline = make_pipeline(settings, None)
        assert pipeline.set_ladder({"360p": [640, 360, 1000]}) is pipeline
        pipeline.export(source_video, output_base)
        assert pipeline.transcoding_engine.called_names == ["360p"]

    def test_invalid_ladder_keeps_previous(self, settings, small_ladder):
        pipeline = make_pipeline(settings, small_ladder)
        with pytest.raises(InvalidLadderError):
            pipeline.set_ladder({"360p": [640, 360, 1000], "720p": [1280, 720]})
        assert pipeline.ladder == small_ladder

    def test_empty_ladder_rejected(self, settings, small_ladder):
        pipeline = make_pipeline(settings, small_ladder)
        with pytest.raises(InvalidLadderError):
            pipeline.set_ladder({})
        assert pipeline.ladder == small_ladder
