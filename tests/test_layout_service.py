"""
Output Layout Tests
===================
Folder naming, isolation between runs and the create-if-absent policy.
"""
import re
import tempfile
from pathlib import Path

import pytest

from abr_packager.domain.exceptions import DirectoryCreationError, InputNotFoundError
from abr_packager.services.layout_service import (
    ensure_directory_exists,
    generate_random_id,
    prepare_output_tree,
    sanitize_input_name,
)

RANDOM_ID = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$")


class TestNaming:
    def test_random_id_format(self):
        assert RANDOM_ID.match(generate_random_id())

    def test_random_ids_differ(self):
        assert len({generate_random_id() for _ in range(200)}) == 200

    @pytest.mark.parametrize(
        "filename, expected",
        [
            ("/videos/My Holiday.final.mp4", "My_Holiday"),
            ("clip.mp4", "clip"),
            (".hidden.mp4", ".hidden"),
            ("no_extension", "no_extension"),
            ("tab\there and\nthere.mkv", "tab_here_and_there"),
            ("Trailer, final.mp4", "Trailer__final"),
            ("a,b,c.mov", "a_b_c"),
        ],
    )
    def test_sanitize_input_name(self, filename, expected):
        assert sanitize_input_name(filename) == expected

    def test_sanitize_truncates_to_70(self):
        assert sanitize_input_name("a" * 120 + ".mp4") == "a" * 70


class TestEnsureDirectoryExists:
    def test_creates_with_parents_and_is_idempotent(self, tmp_path):
        target = tmp_path / "a" / "b"
        assert ensure_directory_exists(target) == target
        assert ensure_directory_exists(target) == target
        assert target.is_dir()

    def test_tolerates_concurrent_creator(self, tmp_path, monkeypatch):
        target = tmp_path / "raced"
        original_mkdir = Path.mkdir

        def mkdir_then_fail(self, *args, **kwargs):
            original_mkdir(self, *args, **kwargs)
            raise OSError("created by someone else")

        monkeypatch.setattr(Path, "mkdir", mkdir_then_fail)
        assert ensure_directory_exists(target) == target

    def test_raises_when_directory_cannot_be_created(self, tmp_path, monkeypatch):
        def refuse(self, *args, **kwargs):
            raise PermissionError("read-only")

        monkeypatch.setattr(Path, "mkdir", refuse)
        with pytest.raises(DirectoryCreationError):
            ensure_directory_exists(tmp_path / "denied")


class TestPrepareOutputTree:
    def test_root_layout(self, source_video, output_base):
        tree = prepare_output_tree(source_video, output_base)
        assert tree.root.is_dir()
        assert tree.root.parent == output_base
        random_id, _, name = tree.root.name.partition("_")
        assert RANDOM_ID.match(random_id)
        assert name == "My_Clip"
        # Subtrees are created by the stages that use them.
        assert not tree.resolutions_dir.exists()
        assert not tree.output_dir.exists()

    def test_roots_are_unique_per_run(self, source_video, output_base):
        roots = {prepare_output_tree(source_video, output_base).root for _ in range(5)}
        assert len(roots) == 5

    def test_missing_input_creates_nothing(self, output_base):
        with pytest.raises(InputNotFoundError):
            prepare_output_tree("/no/such/file.mp4", output_base)
        assert list(output_base.iterdir()) == []

    def test_defaults_to_temp_directory(self, source_video, tmp_path, monkeypatch):
        temp_dir = tmp_path / "system-temp"
        monkeypatch.setattr(tempfile, "gettempdir", lambda: str(temp_dir))
        tree = prepare_output_tree(source_video)
        assert tree.root.parent == temp_dir

    def test_accepts_string_paths(self, source_video, output_base):
        tree = prepare_output_tree(str(source_video), str(output_base) + "/")
        assert tree.root.parent == output_base
